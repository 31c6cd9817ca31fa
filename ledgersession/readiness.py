"""Readiness gate that waits for every endpoint a profile depends on."""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Iterable, Mapping

from .errors import EndpointTimeoutError
from .models import Endpoint, ProbeResult
from .probe import PortProbe, Probe

LOG = logging.getLogger(__name__)

DEFAULT_MAX_WAIT_SECONDS = 30
DEFAULT_INTERVAL = 1.0
DEFAULT_GRACE_PERIOD = 5.0


@dataclass(frozen=True, slots=True)
class EndpointReadiness:
    """How long a single endpoint took to start accepting connections."""

    endpoint: Endpoint
    attempts: int
    elapsed: float


@dataclass(frozen=True, slots=True)
class ReadinessReport:
    """Summary returned once every endpoint is reachable."""

    endpoints: Mapping[Endpoint, EndpointReadiness]
    grace_period: float
    elapsed: float

    @property
    def probe_count(self) -> int:
        return sum(entry.attempts for entry in self.endpoints.values())


class ReadinessGate:
    """Polls endpoints concurrently until all are up or one runs out of time."""

    def __init__(
        self,
        probe: Probe | None = None,
        *,
        interval: float = DEFAULT_INTERVAL,
        grace_period: float = DEFAULT_GRACE_PERIOD,
    ) -> None:
        if interval <= 0:
            raise ValueError("Probe interval must be positive.")
        self._probe = probe or PortProbe()
        self._interval = interval
        self._grace_period = grace_period

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def grace_period(self) -> float:
        return self._grace_period

    async def await_all(
        self,
        endpoints: Iterable[Endpoint],
        max_wait_seconds: float = DEFAULT_MAX_WAIT_SECONDS,
    ) -> ReadinessReport:
        """Block until every endpoint accepts connections, then sleep the grace period."""

        targets = tuple(dict.fromkeys(endpoints))
        if not targets:
            return ReadinessReport(endpoints={}, grace_period=0.0, elapsed=0.0)

        loop = asyncio.get_running_loop()
        started = loop.time()
        budget = self.attempt_budget(max_wait_seconds)
        tasks = [
            asyncio.create_task(
                self._await_endpoint(endpoint, budget, max_wait_seconds),
                name=f"ledgersession-wait-{endpoint}",
            )
            for endpoint in targets
        ]
        try:
            done, _pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        failures = [task.exception() for task in tasks if task in done and task.exception() is not None]
        if failures:
            raise failures[0]

        results = {task.result().endpoint: task.result() for task in tasks}
        LOG.info(
            "All endpoints are listening, waiting %.1fs for the network to settle",
            self._grace_period,
            extra={"endpoints": [str(endpoint) for endpoint in targets]},
        )
        if self._grace_period > 0:
            await asyncio.sleep(self._grace_period)
        return ReadinessReport(
            endpoints=results,
            grace_period=self._grace_period,
            elapsed=loop.time() - started,
        )

    def attempt_budget(self, max_wait_seconds: float) -> int:
        """Upper bound on retries; the wall-clock deadline may stop an endpoint sooner."""

        return max(0, math.ceil(max_wait_seconds / self._interval))

    async def _await_endpoint(self, endpoint: Endpoint, budget: int, max_wait_seconds: float) -> EndpointReadiness:
        loop = asyncio.get_running_loop()
        started = loop.time()
        deadline = started + max_wait_seconds
        attempt = 0
        while True:
            result = await self._probe_within(endpoint, attempt, max(deadline - loop.time(), self._interval))
            if result.reachable:
                LOG.info("Port has started", extra={"endpoint": str(endpoint), "attempt": attempt})
                return EndpointReadiness(endpoint=endpoint, attempts=attempt + 1, elapsed=loop.time() - started)
            if attempt >= budget or loop.time() + self._interval > deadline:
                elapsed = loop.time() - started
                LOG.error(
                    "Port has not started, giving up waiting",
                    extra={"endpoint": str(endpoint), "attempts": attempt + 1, "elapsed": elapsed},
                )
                raise EndpointTimeoutError(endpoint, attempt + 1, elapsed, result.error)
            LOG.debug(
                "Port has not started, waiting %.1fs ...",
                self._interval,
                extra={"endpoint": str(endpoint), "attempt": attempt, "error": result.error},
            )
            await asyncio.sleep(self._interval)
            attempt += 1

    async def _probe_within(self, endpoint: Endpoint, attempt: int, timeout: float) -> ProbeResult:
        try:
            return await asyncio.wait_for(self._probe.probe(endpoint, attempt), timeout=timeout)
        except asyncio.TimeoutError:
            return ProbeResult(endpoint=endpoint, attempt=attempt, reachable=False, error="probe timed out")


__all__ = [
    "DEFAULT_GRACE_PERIOD",
    "DEFAULT_INTERVAL",
    "DEFAULT_MAX_WAIT_SECONDS",
    "EndpointReadiness",
    "ReadinessGate",
    "ReadinessReport",
]
