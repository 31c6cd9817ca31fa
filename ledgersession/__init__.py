"""Connection lifecycle and readiness probing for ledger network sessions."""

from __future__ import annotations

__version__ = "0.1.0"

from .backends import BackendRegistry, InMemoryLedgerBackend
from .config import AppConfig, load_config
from .errors import (
    AuthenticationError,
    EndpointTimeoutError,
    InvalidStateError,
    LedgerSessionError,
    NotReadyError,
    SessionConnectionError,
    UnreadyError,
)
from .models import Credentials, Endpoint, ProfileConfig, ProfileMode, SessionStatus
from .probe import PortProbe
from .profiles import ProfileResolver, ProfileStore
from .readiness import ReadinessGate
from .session import ConnectionSession, Session

__all__ = [
    "AppConfig",
    "AuthenticationError",
    "BackendRegistry",
    "ConnectionSession",
    "Credentials",
    "Endpoint",
    "EndpointTimeoutError",
    "InMemoryLedgerBackend",
    "InvalidStateError",
    "LedgerSessionError",
    "NotReadyError",
    "PortProbe",
    "ProfileConfig",
    "ProfileMode",
    "ProfileResolver",
    "ProfileStore",
    "ReadinessGate",
    "Session",
    "SessionConnectionError",
    "SessionStatus",
    "UnreadyError",
    "__version__",
    "load_config",
]
