"""Profile resolution and the on-disk connection profile store."""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from .config import AppConfig
from .errors import ProfileStoreError
from .models import ProfileConfig, ProfileMode, StorageKind

LOG = logging.getLogger(__name__)

PROFILE_FILENAME = "connection.json"


class ProfileOverrides(BaseModel):
    """Per-session timeout overrides consumed by the backend's deploy/invoke stage."""

    deploy_timeout: float | None = Field(default=None, gt=0)
    invoke_timeout: float | None = Field(default=None, gt=0)


class ProfileResolver:
    """Maps a profile mode onto a concrete ``ProfileConfig``."""

    def __init__(self, config: AppConfig | None = None) -> None:
        self._config = config or AppConfig()

    @property
    def config(self) -> AppConfig:
        return self._config

    def resolve(
        self,
        mode: ProfileMode | str,
        overrides: ProfileOverrides | None = None,
        *,
        profile_name: str | None = None,
    ) -> ProfileConfig:
        """Build the profile for ``mode``; only networked mode touches the disk."""

        mode = ProfileMode.parse(mode)
        overrides = overrides or ProfileOverrides()
        timing = self._config.timing
        deploy_timeout = overrides.deploy_timeout
        if deploy_timeout is None and timing.deploy_wait_secs is not None:
            deploy_timeout = float(timing.deploy_wait_secs)
        invoke_timeout = overrides.invoke_timeout
        if invoke_timeout is None and timing.invoke_wait_secs is not None:
            invoke_timeout = float(timing.invoke_wait_secs)

        if mode is ProfileMode.WEB:
            return ProfileConfig(
                mode=mode,
                storage=StorageKind.LOCAL,
                deploy_timeout=deploy_timeout,
                invoke_timeout=invoke_timeout,
            )
        if mode is ProfileMode.EMBEDDED:
            return ProfileConfig(
                mode=mode,
                storage=StorageKind.MEMORY,
                deploy_timeout=deploy_timeout,
                invoke_timeout=invoke_timeout,
            )

        name = profile_name or self._config.profile_name
        key_store = self._config.credential_root / name
        key_store.mkdir(parents=True, exist_ok=True)
        endpoints = self._config.endpoints
        return ProfileConfig(
            mode=mode,
            endpoints=endpoints.ordered(),
            storage=StorageKind.FILESYSTEM,
            credential_store_path=key_store,
            deploy_timeout=deploy_timeout,
            invoke_timeout=invoke_timeout,
            membership_services_url=endpoints.membership.to_endpoint().url(),
            peer_url=endpoints.peer.to_endpoint().url(),
            event_hub_url=endpoints.event_hub.to_endpoint().url(),
        )


class ProfileStore:
    """Named connection profile records kept under a root directory."""

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def save(self, name: str, config: ProfileConfig) -> Path:
        """Write (or overwrite) the record for ``name``."""

        path = self._path_for(name)
        payload = json.dumps(config.to_options(), indent=2, sort_keys=True)
        staging = path.with_name(f".{PROFILE_FILENAME}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            staging.write_text(payload + "\n")
            staging.replace(path)
        except OSError as exc:
            staging.unlink(missing_ok=True)
            raise ProfileStoreError(f"Failed to write profile '{name}': {exc}") from exc
        LOG.debug("Saved connection profile", extra={"profile": name, "path": str(path)})
        return path

    def load(self, name: str) -> dict[str, Any]:
        path = self._path_for(name)
        try:
            data = json.loads(path.read_text())
        except FileNotFoundError:
            raise ProfileStoreError(f"Profile '{name}' not found.") from None
        except (OSError, json.JSONDecodeError) as exc:
            raise ProfileStoreError(f"Failed to read profile '{name}': {exc}") from exc
        if not isinstance(data, dict):
            raise ProfileStoreError(f"Profile '{name}' is not a JSON object.")
        return data

    def exists(self, name: str) -> bool:
        return self._path_for(name).is_file()

    def names(self) -> tuple[str, ...]:
        if not self._root.is_dir():
            return ()
        return tuple(
            sorted(entry.name for entry in self._root.iterdir() if (entry / PROFILE_FILENAME).is_file())
        )

    def delete(self, name: str) -> None:
        directory = self._path_for(name).parent
        if directory.is_dir():
            shutil.rmtree(directory)

    def _path_for(self, name: str) -> Path:
        if not name or name in {".", ".."} or "/" in name or "\\" in name:
            raise ProfileStoreError(f"Invalid profile name: {name!r}")
        return self._root / name / PROFILE_FILENAME


__all__ = ["PROFILE_FILENAME", "ProfileOverrides", "ProfileResolver", "ProfileStore"]
