"""Tests for the single-shot port probe."""

from __future__ import annotations

import asyncio

import pytest

from conftest import free_port
from ledgersession.models import Endpoint
from ledgersession.probe import PortProbe
from ledgersession.readiness import ReadinessGate


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


async def _accept(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
    writer.close()


@pytest.mark.anyio
async def test_probe_reports_listening_port() -> None:
    server = await asyncio.start_server(_accept, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    try:
        result = await PortProbe().probe(Endpoint("127.0.0.1", port), 3)
    finally:
        server.close()
        await server.wait_closed()

    assert result.reachable is True
    assert result.attempt == 3
    assert result.error is None


@pytest.mark.anyio
async def test_probe_treats_refused_connection_as_result() -> None:
    endpoint = Endpoint("127.0.0.1", free_port())

    result = await PortProbe(connect_timeout=0.5).probe(endpoint)

    assert result.reachable is False
    assert result.endpoint == endpoint
    assert result.error


@pytest.mark.anyio
async def test_malformed_hostname_is_unreachable_not_an_error() -> None:
    endpoint = Endpoint("a..b", 7050)

    result = await PortProbe(connect_timeout=0.5).probe(endpoint, 1)

    assert result.reachable is False
    assert result.attempt == 1
    assert result.error


@pytest.mark.anyio
async def test_gate_sees_listener_within_one_interval_of_start() -> None:
    port = free_port()
    endpoint = Endpoint("127.0.0.1", port)
    gate = ReadinessGate(PortProbe(connect_timeout=0.25), interval=0.0625, grace_period=0.0)
    loop = asyncio.get_running_loop()

    async def _start_later() -> tuple[asyncio.AbstractServer, float]:
        await asyncio.sleep(0.2)
        server = await asyncio.start_server(_accept, "127.0.0.1", port)
        return server, loop.time()

    starter = asyncio.create_task(_start_later())
    report = await gate.await_all([endpoint], max_wait_seconds=5)
    ready_at = loop.time()
    server, started_at = await starter
    try:
        assert report.endpoints[endpoint].attempts > 1
        assert ready_at - started_at <= gate.interval + 0.25
    finally:
        server.close()
        await server.wait_closed()
