"""Connection/session lifecycle: readiness, profile creation and credential exchange."""

from __future__ import annotations

import logging
from typing import Callable

from .backends import AdminHandle, BackendRegistry, ClientHandle, LedgerBackend
from .config import AppConfig
from .errors import (
    EndpointTimeoutError,
    InvalidStateError,
    NotReadyError,
    SessionConnectionError,
    UnreadyError,
)
from .models import Credentials, ProfileConfig, ProfileMode, SessionStatus
from .probe import PortProbe
from .profiles import ProfileOverrides, ProfileResolver, ProfileStore
from .readiness import ReadinessGate, ReadinessReport

LOG = logging.getLogger(__name__)

SessionListener = Callable[["Session", SessionStatus, SessionStatus], None]

_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.UNCONNECTED: frozenset({SessionStatus.CONNECTING}),
    SessionStatus.CONNECTING: frozenset({SessionStatus.CONNECTED, SessionStatus.UNCONNECTED}),
    SessionStatus.CONNECTED: frozenset({SessionStatus.DISCONNECTED}),
    SessionStatus.DISCONNECTED: frozenset(),
}


class Session:
    """Opaque handle for one administrative connection.

    Only ``ConnectionSession`` changes its state; callers read it through the
    properties below.
    """

    __slots__ = ("_profile_name", "_config", "_state", "_identity", "_admin", "_clients", "_readiness")

    def __init__(self, profile_name: str, config: ProfileConfig) -> None:
        self._profile_name = profile_name
        self._config = config
        self._state = SessionStatus.UNCONNECTED
        self._identity: Credentials | None = None
        self._admin: AdminHandle | None = None
        self._clients: list[ClientHandle] = []
        self._readiness: ReadinessReport | None = None

    @property
    def profile_name(self) -> str:
        return self._profile_name

    @property
    def config(self) -> ProfileConfig:
        return self._config

    @property
    def mode(self) -> ProfileMode:
        return self._config.mode

    @property
    def state(self) -> SessionStatus:
        return self._state

    @property
    def identity(self) -> Credentials | None:
        return self._identity

    @property
    def admin(self) -> AdminHandle | None:
        return self._admin

    @property
    def clients(self) -> tuple[ClientHandle, ...]:
        return tuple(self._clients)

    @property
    def readiness(self) -> ReadinessReport | None:
        """Report from the readiness gate, for networked sessions."""

        return self._readiness

    @property
    def connected(self) -> bool:
        return self._state is SessionStatus.CONNECTED

    def __repr__(self) -> str:
        return f"Session(profile_name={self._profile_name!r}, mode={self.mode.value!r}, state={self._state.value!r})"


class ConnectionSession:
    """Owns the setup → use → teardown sequence for ledger sessions."""

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        resolver: ProfileResolver | None = None,
        gate: ReadinessGate | None = None,
        store: ProfileStore | None = None,
        backends: BackendRegistry | None = None,
    ) -> None:
        self._config = config or AppConfig()
        timing = self._config.timing
        self._resolver = resolver or ProfileResolver(self._config)
        self._gate = gate or ReadinessGate(
            PortProbe(connect_timeout=timing.connect_timeout),
            interval=timing.probe_interval,
            grace_period=timing.grace_period,
        )
        self._store = store or ProfileStore(self._config.profile_root)
        self._backends = backends or BackendRegistry.default()
        self._listeners: set[SessionListener] = set()

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def store(self) -> ProfileStore:
        return self._store

    @property
    def backends(self) -> BackendRegistry:
        return self._backends

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Subscribe to state transitions; returns an unsubscribe handle."""

        self._listeners.add(listener)

        def _unsubscribe() -> None:
            self._listeners.discard(listener)

        return _unsubscribe

    def open(
        self,
        mode: ProfileMode | str,
        network_name: str,
        *,
        overrides: ProfileOverrides | None = None,
    ) -> Session:
        """Resolve the profile and return an unconnected session."""

        if not network_name:
            raise ValueError("A profile/network name is required.")
        config = self._resolver.resolve(mode, overrides, profile_name=network_name)
        return Session(network_name, config)

    async def set_up(
        self,
        mode: ProfileMode | str,
        network_name: str,
        credentials: Credentials,
        *,
        overrides: ProfileOverrides | None = None,
    ) -> Session:
        """Create a session, wait for the network and authenticate."""

        session = self.open(mode, network_name, overrides=overrides)
        return await self.connect(session, credentials)

    async def connect(self, session: Session, credentials: Credentials) -> Session:
        """Drive an unconnected session to ``connected``.

        On any failure the session is put back into ``unconnected`` and the
        error is re-raised.
        """

        if session.state is not SessionStatus.UNCONNECTED:
            raise InvalidStateError(
                f"Cannot connect session '{session.profile_name}' in state '{session.state.value}'."
            )
        backend = self._backend_for(session)
        self._transition(session, SessionStatus.CONNECTING)
        admin: AdminHandle | None = None
        try:
            if session.config.requires_readiness:
                session._readiness = await self._await_ready(session)
            LOG.info("Creating connection profile", extra={"profile": session.profile_name})
            self._store.save(session.profile_name, session.config)
            LOG.info(
                "Connecting to profile",
                extra={"profile": session.profile_name, "identity": credentials.enrollment_id},
            )
            admin = await backend.connect(session.profile_name, session.config, credentials)
        except BaseException:
            session._readiness = None
            self._transition(session, SessionStatus.UNCONNECTED)
            raise
        session._admin = admin
        session._identity = credentials
        self._transition(session, SessionStatus.CONNECTED)
        LOG.info("Connected to profile", extra={"profile": session.profile_name})
        return session

    async def get_client(
        self,
        session: Session,
        network_identifier: str,
        credentials: Credentials | None = None,
    ) -> ClientHandle:
        """Authenticate a network-scoped client on top of a connected session."""

        if session.state is not SessionStatus.CONNECTED:
            raise NotReadyError(
                f"Session '{session.profile_name}' is {session.state.value}; call set_up before get_client."
            )
        identity = credentials or session.identity
        if identity is None:  # pragma: no cover - connected sessions always carry an identity
            raise NotReadyError(f"Session '{session.profile_name}' has no identity.")
        backend = self._backend_for(session)
        LOG.info(
            "Connecting client",
            extra={"profile": session.profile_name, "network": network_identifier},
        )
        client = await backend.connect_client(session.profile_name, session.config, network_identifier, identity)
        session._clients.append(client)
        return client

    async def tear_down(self, session: Session) -> None:
        """Disconnect every handle held by the session."""

        if session.state is not SessionStatus.CONNECTED or session.admin is None:
            raise InvalidStateError(
                f"Must call set_up successfully before calling tear_down (session is {session.state.value})."
            )
        LOG.info("Disconnecting session", extra={"profile": session.profile_name})
        clients = list(session._clients)
        session._clients.clear()
        admin = session._admin
        session._admin = None
        self._transition(session, SessionStatus.DISCONNECTED)
        errors: list[Exception] = []
        for client in clients:
            try:
                await client.disconnect()
            except Exception as exc:
                LOG.exception(
                    "Failed to disconnect client",
                    extra={"profile": session.profile_name, "network": client.network_identifier},
                )
                errors.append(exc)
        await admin.disconnect()
        if errors:
            raise errors[0]
        LOG.info("Disconnected session", extra={"profile": session.profile_name})

    async def reset_network_state(self, session: Session) -> None:
        """Reset the most recently connected business network, if any."""

        if session.state is not SessionStatus.CONNECTED:
            raise InvalidStateError(
                f"Cannot reset network state for session in state '{session.state.value}'."
            )
        if not session._clients:
            return
        client = session._clients[-1]
        LOG.info(
            "Resetting business network",
            extra={"profile": session.profile_name, "network": client.network_identifier},
        )
        await client.reset()

    async def _await_ready(self, session: Session) -> ReadinessReport:
        budget = self._config.timing.port_wait_secs
        try:
            return await self._gate.await_all(session.config.endpoints, budget)
        except EndpointTimeoutError as exc:
            raise UnreadyError(exc) from exc

    def _backend_for(self, session: Session) -> LedgerBackend:
        backend = self._backends.get(session.mode)
        if backend is None:
            raise SessionConnectionError(f"No backend registered for {session.mode.value} profiles.")
        return backend

    def _transition(self, session: Session, target: SessionStatus) -> None:
        current = session._state
        if target not in _TRANSITIONS[current]:
            raise InvalidStateError(f"Illegal session transition {current.value} -> {target.value}.")
        session._state = target
        LOG.debug(
            "Session state changed",
            extra={"profile": session.profile_name, "from": current.value, "to": target.value},
        )
        for listener in tuple(self._listeners):
            listener(session, current, target)


__all__ = ["ConnectionSession", "Session", "SessionListener"]
