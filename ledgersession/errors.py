"""Exception hierarchy raised by the session manager."""

from __future__ import annotations

from .models import Endpoint


class LedgerSessionError(RuntimeError):
    """Base class for all errors raised by ledgersession."""


class ConfigError(LedgerSessionError):
    """Raised when configuration values cannot be parsed."""


class EndpointTimeoutError(LedgerSessionError, TimeoutError):
    """Raised when an endpoint never became reachable within its budget."""

    def __init__(self, endpoint: Endpoint, attempts: int, elapsed: float, reason: str | None = None) -> None:
        self.endpoint = endpoint
        self.attempts = attempts
        self.elapsed = elapsed
        self.reason = reason
        message = f"Endpoint {endpoint} not reachable after {attempts} attempt(s) ({elapsed:.1f}s elapsed)"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class SessionConnectionError(LedgerSessionError):
    """Raised when a session cannot be set up or used."""


class UnreadyError(SessionConnectionError):
    """Network endpoints did not become ready before the deadline."""

    def __init__(self, timeout: EndpointTimeoutError) -> None:
        self.timeout = timeout
        super().__init__(f"Network not ready: {timeout}")


class NotReadyError(SessionConnectionError):
    """An operation needed a connected session."""


class InvalidStateError(SessionConnectionError):
    """A lifecycle operation was invoked out of order."""


class AuthenticationError(LedgerSessionError):
    """The credential exchange was rejected."""


class BackendError(LedgerSessionError):
    """A ledger backend failed outside of authentication."""


class ProfileStoreError(LedgerSessionError):
    """A connection profile record could not be read or written."""


__all__ = [
    "AuthenticationError",
    "BackendError",
    "ConfigError",
    "EndpointTimeoutError",
    "InvalidStateError",
    "LedgerSessionError",
    "NotReadyError",
    "ProfileStoreError",
    "SessionConnectionError",
    "UnreadyError",
]
