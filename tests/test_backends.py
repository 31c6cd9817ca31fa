"""Tests for the ledger backends."""

from __future__ import annotations

import pytest

from ledgersession.backends import (
    AdminHandle,
    BackendRegistry,
    ClientHandle,
    InMemoryLedgerBackend,
    LedgerBackend,
)
from ledgersession.errors import AuthenticationError, BackendError
from ledgersession.models import Credentials, Endpoint, ProfileConfig, ProfileMode

EMBEDDED = ProfileConfig(mode=ProfileMode.EMBEDDED)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.mark.anyio
async def test_in_memory_backend_authenticates_known_identity() -> None:
    backend = InMemoryLedgerBackend()

    admin = await backend.connect("test-net", EMBEDDED, Credentials("admin", "adminpw"))

    assert isinstance(admin, AdminHandle)
    assert backend.open_handles == 1
    await admin.disconnect()
    assert backend.open_handles == 0


@pytest.mark.anyio
async def test_in_memory_backend_rejects_bad_secret() -> None:
    backend = InMemoryLedgerBackend()

    with pytest.raises(AuthenticationError, match="admin"):
        await backend.connect("test-net", EMBEDDED, Credentials("admin", "wrong"))
    assert backend.open_handles == 0


@pytest.mark.anyio
async def test_registered_identity_can_connect_clients() -> None:
    backend = InMemoryLedgerBackend({})
    backend.register_identity("WebAppAdmin", "DJY27pEnl16d")

    client = await backend.connect_client(
        "test-net",
        EMBEDDED,
        "digitalproperty-network",
        Credentials("WebAppAdmin", "DJY27pEnl16d"),
    )

    assert isinstance(client, ClientHandle)
    assert client.network_identifier == "digitalproperty-network"


@pytest.mark.anyio
async def test_client_reset_clears_network_state() -> None:
    backend = InMemoryLedgerBackend()
    client = await backend.connect_client("test-net", EMBEDDED, "net", Credentials("admin", "adminpw"))
    client.state.assets["car-1"] = {"owner": "alice"}

    await client.reset()

    assert client.state.assets == {}
    assert backend.network("net").resets == 1
    await client.disconnect()
    with pytest.raises(BackendError):
        await client.reset()


@pytest.mark.anyio
async def test_admin_disconnect_twice_fails() -> None:
    backend = InMemoryLedgerBackend()
    admin = await backend.connect("test-net", EMBEDDED, Credentials("admin", "adminpw"))
    await admin.disconnect()

    with pytest.raises(BackendError):
        await admin.disconnect()


@pytest.mark.anyio
async def test_in_memory_backend_refuses_networked_profiles() -> None:
    backend = InMemoryLedgerBackend()
    networked = ProfileConfig(mode=ProfileMode.NETWORKED, endpoints=(Endpoint("localhost", 7051),))

    with pytest.raises(BackendError):
        await backend.connect("test-net", networked, Credentials("admin", "adminpw"))


def test_default_registry_serves_web_and_embedded() -> None:
    registry = BackendRegistry.default()

    assert "web" in registry
    assert ProfileMode.EMBEDDED in registry
    assert ProfileMode.NETWORKED not in registry
    assert "bogus" not in registry
    assert registry.get("web") is registry.get("embedded")
    assert isinstance(registry.get("web"), LedgerBackend)


def test_registry_register_accepts_string_modes() -> None:
    registry = BackendRegistry()
    backend = InMemoryLedgerBackend()

    registry.register("networked", backend)

    assert registry.get(ProfileMode.NETWORKED) is backend
