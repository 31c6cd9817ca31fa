"""Ledger backends producing admin and client handles."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, runtime_checkable

from .errors import AuthenticationError, BackendError
from .models import Credentials, ProfileConfig, ProfileMode

LOG = logging.getLogger(__name__)

DEFAULT_IDENTITIES: Mapping[str, str] = {"admin": "adminpw"}


@runtime_checkable
class AdminHandle(Protocol):
    """Administrative connection produced by a successful setup."""

    async def disconnect(self) -> None:
        """Release the connection and any credential-store handles."""


@runtime_checkable
class ClientHandle(Protocol):
    """Connection scoped to a single business network."""

    network_identifier: str

    async def reset(self) -> None:
        """Reset the business network to its initial state."""

    async def disconnect(self) -> None:
        """Release the client connection."""


@runtime_checkable
class LedgerBackend(Protocol):
    """Protocol implemented by ledger backends."""

    async def connect(self, profile_name: str, config: ProfileConfig, credentials: Credentials) -> AdminHandle:
        """Authenticate against the profile and return an admin handle."""

    async def connect_client(
        self,
        profile_name: str,
        config: ProfileConfig,
        network_identifier: str,
        credentials: Credentials,
    ) -> ClientHandle:
        """Authenticate a client scoped to ``network_identifier``."""


@dataclass(slots=True)
class NetworkState:
    """Simulated world state of one business network."""

    assets: dict[str, Any] = field(default_factory=dict)
    resets: int = 0


class InMemoryAdminHandle:
    def __init__(self, backend: InMemoryLedgerBackend, profile_name: str, identity: str) -> None:
        self._backend = backend
        self.profile_name = profile_name
        self.identity = identity
        self.connected = True

    async def disconnect(self) -> None:
        if not self.connected:
            raise BackendError(f"Admin connection for '{self.profile_name}' already closed.")
        self.connected = False
        self._backend._release(self)


class InMemoryClientHandle:
    def __init__(self, backend: InMemoryLedgerBackend, network_identifier: str, identity: str) -> None:
        self._backend = backend
        self.network_identifier = network_identifier
        self.identity = identity
        self.connected = True

    @property
    def state(self) -> NetworkState:
        return self._backend.network(self.network_identifier)

    async def reset(self) -> None:
        if not self.connected:
            raise BackendError(f"Client for '{self.network_identifier}' is disconnected.")
        await self._backend.reset_network(self.network_identifier)

    async def disconnect(self) -> None:
        self.connected = False
        self._backend._release(self)


class InMemoryLedgerBackend:
    """Backend that keeps the whole ledger inside the current process."""

    def __init__(self, identities: Mapping[str, str] | None = None, *, latency: float = 0.0) -> None:
        self._identities = dict(DEFAULT_IDENTITIES if identities is None else identities)
        self._latency = latency
        self._networks: dict[str, NetworkState] = {}
        self._open: set[object] = set()

    @property
    def open_handles(self) -> int:
        return len(self._open)

    def register_identity(self, enrollment_id: str, secret: str) -> None:
        self._identities[enrollment_id] = secret

    def network(self, network_identifier: str) -> NetworkState:
        return self._networks.setdefault(network_identifier, NetworkState())

    async def connect(self, profile_name: str, config: ProfileConfig, credentials: Credentials) -> InMemoryAdminHandle:
        if config.mode is ProfileMode.NETWORKED:
            raise BackendError("The in-memory backend cannot serve networked profiles.")
        await self._authenticate(credentials)
        handle = InMemoryAdminHandle(self, profile_name, credentials.enrollment_id)
        self._open.add(handle)
        LOG.debug("Admin connected", extra={"profile": profile_name, "identity": credentials.enrollment_id})
        return handle

    async def connect_client(
        self,
        profile_name: str,
        config: ProfileConfig,
        network_identifier: str,
        credentials: Credentials,
    ) -> InMemoryClientHandle:
        await self._authenticate(credentials)
        self.network(network_identifier)
        handle = InMemoryClientHandle(self, network_identifier, credentials.enrollment_id)
        self._open.add(handle)
        LOG.debug(
            "Client connected",
            extra={"profile": profile_name, "network": network_identifier, "identity": credentials.enrollment_id},
        )
        return handle

    async def reset_network(self, network_identifier: str) -> None:
        state = self.network(network_identifier)
        state.assets.clear()
        state.resets += 1

    async def _authenticate(self, credentials: Credentials) -> None:
        if self._latency:
            await asyncio.sleep(self._latency)
        expected = self._identities.get(credentials.enrollment_id)
        if expected is None or expected != credentials.secret:
            raise AuthenticationError(f"Enrollment rejected for identity '{credentials.enrollment_id}'.")

    def _release(self, handle: object) -> None:
        self._open.discard(handle)


class BackendRegistry:
    """Maps profile modes to the backend that serves them."""

    def __init__(self, backends: Mapping[ProfileMode, LedgerBackend] | None = None) -> None:
        self._backends: dict[ProfileMode, LedgerBackend] = dict(backends or {})

    @classmethod
    def default(cls) -> BackendRegistry:
        """Web and embedded share an in-memory backend; networked must be registered."""

        shared = InMemoryLedgerBackend()
        return cls({ProfileMode.WEB: shared, ProfileMode.EMBEDDED: shared})

    def register(self, mode: ProfileMode | str, backend: LedgerBackend) -> None:
        self._backends[ProfileMode.parse(mode)] = backend

    def get(self, mode: ProfileMode | str) -> LedgerBackend | None:
        return self._backends.get(ProfileMode.parse(mode))

    def __contains__(self, mode: object) -> bool:
        try:
            return ProfileMode.parse(mode) in self._backends  # type: ignore[arg-type]
        except ValueError:
            return False


__all__ = [
    "AdminHandle",
    "BackendRegistry",
    "ClientHandle",
    "DEFAULT_IDENTITIES",
    "InMemoryAdminHandle",
    "InMemoryClientHandle",
    "InMemoryLedgerBackend",
    "LedgerBackend",
    "NetworkState",
]
