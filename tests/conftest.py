"""Shared fixtures for the ledgersession test-suite."""

from __future__ import annotations

import asyncio
import socket
from pathlib import Path

import pytest

from ledgersession.config import AppConfig, TimingConfig
from ledgersession.models import Endpoint, ProbeResult


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        credential_root=tmp_path / "credentials",
        profile_root=tmp_path / "profiles",
        timing=TimingConfig(port_wait_secs=1, probe_interval=0.0625, grace_period=0.0, connect_timeout=0.5),
    )


class ScheduledProbe:
    """Fake probe: each endpoint turns reachable after a delay (None = never)."""

    def __init__(
        self,
        ready_after: dict[Endpoint, float | None] | None = None,
        *,
        latencies: dict[Endpoint, float] | None = None,
    ) -> None:
        self._ready_after = dict(ready_after or {})
        self._latencies = dict(latencies or {})
        self._started: float | None = None
        self.calls: list[tuple[Endpoint, int]] = []

    async def probe(self, endpoint: Endpoint, attempt: int = 0) -> ProbeResult:
        loop = asyncio.get_running_loop()
        if self._started is None:
            self._started = loop.time()
        self.calls.append((endpoint, attempt))
        latency = self._latencies.get(endpoint, 0.0)
        if latency:
            await asyncio.sleep(latency)
        delay = self._ready_after.get(endpoint)
        reachable = delay is not None and loop.time() - self._started >= delay
        error = None if reachable else "Connection refused"
        return ProbeResult(endpoint=endpoint, attempt=attempt, reachable=reachable, error=error)

    def calls_for(self, endpoint: Endpoint) -> int:
        return sum(1 for seen, _ in self.calls if seen == endpoint)
