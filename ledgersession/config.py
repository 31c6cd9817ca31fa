"""App configuration loading helpers."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Mapping

import tomllib

from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigError
from .models import Endpoint

LOG = logging.getLogger(__name__)

CONFIG_FILE = Path.home() / ".config" / "ledgersession" / "config.toml"

ENV_PORT_WAIT = "LEDGER_PORT_WAIT_SECS"
ENV_DEPLOY_WAIT = "LEDGER_DEPLOY_WAIT_SECS"
ENV_INVOKE_WAIT = "LEDGER_INVOKE_WAIT_SECS"


class EndpointConfig(BaseModel):
    """Host/port entry for one network service."""

    host: str = "localhost"
    port: int = Field(gt=0, lt=65536)

    def to_endpoint(self) -> Endpoint:
        return Endpoint(host=self.host, port=self.port)


class NetworkEndpointsConfig(BaseModel):
    """The five services a networked profile waits for."""

    orderer: EndpointConfig = Field(default_factory=lambda: EndpointConfig(port=7050))
    peer: EndpointConfig = Field(default_factory=lambda: EndpointConfig(port=7051))
    chaincode: EndpointConfig = Field(default_factory=lambda: EndpointConfig(port=7052))
    event_hub: EndpointConfig = Field(default_factory=lambda: EndpointConfig(port=7053))
    membership: EndpointConfig = Field(default_factory=lambda: EndpointConfig(port=7054))

    def ordered(self) -> tuple[Endpoint, ...]:
        return tuple(
            entry.to_endpoint()
            for entry in (self.orderer, self.peer, self.chaincode, self.event_hub, self.membership)
        )


class TimingConfig(BaseModel):
    """Wait budgets; deploy/invoke values are handed to the backend untouched."""

    port_wait_secs: int = Field(default=30, ge=0)
    deploy_wait_secs: int | None = None
    invoke_wait_secs: int | None = None
    probe_interval: float = Field(default=1.0, gt=0)
    grace_period: float = Field(default=5.0, ge=0)
    connect_timeout: float = Field(default=1.0, gt=0)


class AppConfig(BaseModel):
    """Shape of the configuration file."""

    profile_name: str = "ledger-systests"
    credential_root: Path = Field(default_factory=lambda: Path.home() / ".ledgersession-credentials")
    profile_root: Path = Field(default_factory=lambda: Path.home() / ".ledgersession-connection-profiles")
    endpoints: NetworkEndpointsConfig = Field(default_factory=NetworkEndpointsConfig)
    timing: TimingConfig = Field(default_factory=TimingConfig)

    def with_timing(self, **updates: object) -> AppConfig:
        """Return a copy with timing values changed and re-validated."""

        try:
            timing = TimingConfig.model_validate({**self.timing.model_dump(), **updates})
        except ValidationError as exc:
            raise ConfigError(f"Invalid timing override: {exc}") from exc
        return self.model_copy(update={"timing": timing})

    def with_overrides(self, values: Mapping[str, str]) -> AppConfig:
        """Apply environment-style wait overrides from an explicit mapping."""

        updates: dict[str, object] = {}
        for key, field_name in (
            (ENV_PORT_WAIT, "port_wait_secs"),
            (ENV_DEPLOY_WAIT, "deploy_wait_secs"),
            (ENV_INVOKE_WAIT, "invoke_wait_secs"),
        ):
            raw = values.get(key)
            if not raw:
                continue
            try:
                parsed = int(raw)
            except ValueError:
                raise ConfigError(f"{key} must be an integer number of seconds, got {raw!r}") from None
            LOG.info("%s set, using: %s", key, parsed, extra={"override": key, "value": parsed})
            updates[field_name] = parsed
        if not updates:
            return self
        return self.with_timing(**updates)


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from disk; fall back to defaults if missing."""

    config_path = path or CONFIG_FILE
    try:
        with config_path.open("rb") as handle:
            raw = tomllib.load(handle)
    except FileNotFoundError:
        return AppConfig()
    except (tomllib.TOMLDecodeError, OSError):
        LOG.warning("Ignoring unreadable config file", extra={"path": str(config_path)})
        return AppConfig()

    try:
        return AppConfig.model_validate(raw)
    except ValidationError:
        LOG.warning("Ignoring invalid config file", extra={"path": str(config_path)})
        return AppConfig()


def save_config(config: AppConfig, path: Path | None = None) -> None:
    """Persist configuration to disk."""

    config_path = path or CONFIG_FILE
    config_path.parent.mkdir(parents=True, exist_ok=True)
    lines: list[str] = [
        f"profile_name = {_toml_string(config.profile_name)}",
        f"credential_root = {_toml_string(config.credential_root.as_posix())}",
        f"profile_root = {_toml_string(config.profile_root.as_posix())}",
        "",
        "[timing]",
        f"port_wait_secs = {config.timing.port_wait_secs}",
    ]
    if config.timing.deploy_wait_secs is not None:
        lines.append(f"deploy_wait_secs = {config.timing.deploy_wait_secs}")
    if config.timing.invoke_wait_secs is not None:
        lines.append(f"invoke_wait_secs = {config.timing.invoke_wait_secs}")
    lines.append(f"probe_interval = {config.timing.probe_interval}")
    lines.append(f"grace_period = {config.timing.grace_period}")
    lines.append(f"connect_timeout = {config.timing.connect_timeout}")
    for role in NetworkEndpointsConfig.model_fields:
        entry: EndpointConfig = getattr(config.endpoints, role)
        lines.append("")
        lines.append(f"[endpoints.{role}]")
        lines.append(f"host = {_toml_string(entry.host)}")
        lines.append(f"port = {entry.port}")
    config_path.write_text("\n".join(lines) + "\n")


def _toml_string(value: str) -> str:
    # JSON string escapes are a subset of TOML basic-string escapes.
    return json.dumps(value, ensure_ascii=False)


__all__ = [
    "AppConfig",
    "CONFIG_FILE",
    "EndpointConfig",
    "NetworkEndpointsConfig",
    "TimingConfig",
    "load_config",
    "save_config",
]
