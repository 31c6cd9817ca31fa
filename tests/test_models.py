"""Tests for the shared value types."""

from __future__ import annotations

import pytest

from ledgersession.models import Credentials, Endpoint, ProfileMode


def test_endpoint_identity_is_host_and_port() -> None:
    assert Endpoint("localhost", 7050) == Endpoint("localhost", 7050)
    assert len({Endpoint("localhost", 7050), Endpoint("localhost", 7050), Endpoint("localhost", 7051)}) == 2
    assert str(Endpoint("peer0", 7051)) == "peer0:7051"
    assert Endpoint("peer0", 7051).url() == "grpc://peer0:7051"


@pytest.mark.parametrize("host, port", [("", 7050), ("localhost", 0), ("localhost", 70000)])
def test_endpoint_rejects_invalid_values(host: str, port: int) -> None:
    with pytest.raises(ValueError):
        Endpoint(host, port)


def test_credentials_repr_hides_secret() -> None:
    credentials = Credentials("WebAppAdmin", "DJY27pEnl16d")

    assert "DJY27pEnl16d" not in repr(credentials)
    assert "WebAppAdmin" in repr(credentials)


def test_profile_mode_parse_accepts_strings() -> None:
    assert ProfileMode.parse("Networked") is ProfileMode.NETWORKED
    assert ProfileMode.parse(ProfileMode.WEB) is ProfileMode.WEB
    with pytest.raises(ValueError, match="expected one of"):
        ProfileMode.parse("fabric")
