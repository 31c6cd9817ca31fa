"""Single-shot TCP reachability probe."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from .models import Endpoint, ProbeResult

LOG = logging.getLogger(__name__)


class Probe(Protocol):
    """Interface implemented by endpoint probes."""

    async def probe(self, endpoint: Endpoint, attempt: int) -> ProbeResult: ...


class PortProbe:
    """Opens and immediately closes a TCP connection to an endpoint."""

    def __init__(self, *, connect_timeout: float = 1.0) -> None:
        self._connect_timeout = connect_timeout

    async def probe(self, endpoint: Endpoint, attempt: int = 0) -> ProbeResult:
        LOG.debug(
            "Testing if port %s on host %s has started ...",
            endpoint.port,
            endpoint.host,
            extra={"endpoint": str(endpoint), "attempt": attempt},
        )
        try:
            _reader, writer = await asyncio.wait_for(
                asyncio.open_connection(endpoint.host, endpoint.port),
                timeout=self._connect_timeout,
            )
        except (OSError, UnicodeError, asyncio.TimeoutError) as exc:
            return ProbeResult(endpoint=endpoint, attempt=attempt, reachable=False, error=_describe(exc))
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:  # pragma: no cover - peer reset while closing
            pass
        return ProbeResult(endpoint=endpoint, attempt=attempt, reachable=True)


def _describe(exc: BaseException) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return "connect timed out"
    return str(exc) or type(exc).__name__


__all__ = ["PortProbe", "Probe"]
