"""Shared dataclasses used across probe/readiness/session modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class ProfileMode(str, Enum):
    """Closed set of connection profile types."""

    WEB = "web"
    EMBEDDED = "embedded"
    NETWORKED = "networked"

    @classmethod
    def parse(cls, value: "ProfileMode | str") -> "ProfileMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            choices = ", ".join(mode.value for mode in cls)
            raise ValueError(f"Unknown profile mode '{value}' (expected one of: {choices}).") from None


class StorageKind(str, Enum):
    """Persistence backend implied by a profile mode."""

    LOCAL = "local"
    MEMORY = "memory"
    FILESYSTEM = "filesystem"


class SessionStatus(str, Enum):
    """Lifecycle states of a session."""

    UNCONNECTED = "unconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True, slots=True)
class Endpoint:
    """A host/port pair a profile needs to reach."""

    host: str
    port: int

    def __post_init__(self) -> None:
        if not self.host:
            raise ValueError("Endpoint host must not be empty.")
        if not 0 < self.port < 65536:
            raise ValueError(f"Endpoint port out of range: {self.port}")

    def url(self, scheme: str = "grpc") -> str:
        return f"{scheme}://{self.host}:{self.port}"

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True, slots=True)
class Credentials:
    """Enrollment identity and secret used for the credential exchange."""

    enrollment_id: str
    secret: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class ProbeResult:
    """Outcome of a single connection attempt."""

    endpoint: Endpoint
    attempt: int
    reachable: bool
    error: str | None = None


@dataclass(frozen=True, slots=True)
class ProfileConfig:
    """Resolved configuration for one session."""

    mode: ProfileMode
    endpoints: tuple[Endpoint, ...] = ()
    storage: StorageKind = StorageKind.MEMORY
    credential_store_path: Path | None = None
    deploy_timeout: float | None = None
    invoke_timeout: float | None = None
    membership_services_url: str | None = None
    peer_url: str | None = None
    event_hub_url: str | None = None

    def __post_init__(self) -> None:
        if self.mode is ProfileMode.NETWORKED:
            if not self.endpoints:
                raise ValueError("Networked profiles require at least one endpoint.")
        elif self.endpoints:
            raise ValueError(f"{self.mode.value} profiles must not declare endpoints.")
        if len(set(self.endpoints)) != len(self.endpoints):
            raise ValueError("Profile endpoints must be unique.")

    @property
    def requires_readiness(self) -> bool:
        return bool(self.endpoints)

    def to_options(self) -> dict[str, Any]:
        """Render the connection profile record persisted for this config."""

        options: dict[str, Any] = {"type": _PROFILE_TYPES[self.mode]}
        if self.mode is ProfileMode.NETWORKED:
            if self.credential_store_path is not None:
                options["keyValStore"] = str(self.credential_store_path)
            if self.membership_services_url:
                options["membershipServicesURL"] = self.membership_services_url
            if self.peer_url:
                options["peerURL"] = self.peer_url
            if self.event_hub_url:
                options["eventHubURL"] = self.event_hub_url
        if self.deploy_timeout is not None:
            options["deployWaitTime"] = self.deploy_timeout
        if self.invoke_timeout is not None:
            options["invokeWaitTime"] = self.invoke_timeout
        return options


_PROFILE_TYPES: dict[ProfileMode, str] = {
    ProfileMode.WEB: "web",
    ProfileMode.EMBEDDED: "embedded",
    ProfileMode.NETWORKED: "hlf",
}


__all__ = [
    "Credentials",
    "Endpoint",
    "ProbeResult",
    "ProfileConfig",
    "ProfileMode",
    "SessionStatus",
    "StorageKind",
]
