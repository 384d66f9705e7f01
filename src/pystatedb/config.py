"""Configuration for pystatedb."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from typing import Any

from pystatedb._constants import LAYOUT_KEY, NAMESPACE_SEPARATOR, VERSION_KEY, package_version
from pystatedb.exceptions import StateDbConfigError

BACKENDS = frozenset({"memory", "file", "http"})


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _default_path() -> Path:
    return Path.home() / ".pystatedb" / "state.json"


@dataclasses.dataclass(frozen=True)
class StateDbConfig:
    """State database configuration.

    Parameters
    ----------
    namespace : str
        Partition of the medium owned by this application. Two
        applications with different namespaces never see each other's keys.
    version : str
        Running application version. Stored state written by any other
        version is discarded at boot. Defaults to the installed
        ``pystatedb`` version.
    backend : str
        Persistence medium: ``"memory"``, ``"file"`` or ``"http"``.
    path : Path
        JSON file used by the ``file`` backend.
    base_url : str
        Server root used by the ``http`` backend.
    version_key : str
        Key of the version marker.
    layout_key : str
        Key of the persisted layout snapshot.
    degrade_to_memory : bool
        When the medium is unusable at boot, continue with ephemeral
        in-memory state instead of failing.
    """

    namespace: str = "pystatedb"
    version: str = dataclasses.field(default_factory=package_version)
    backend: str = "file"
    path: Path = dataclasses.field(default_factory=_default_path)
    base_url: str = ""
    version_key: str = VERSION_KEY
    layout_key: str = LAYOUT_KEY
    degrade_to_memory: bool = True

    def __post_init__(self) -> None:
        if not self.namespace.strip():
            raise StateDbConfigError("namespace must be non-empty")
        if NAMESPACE_SEPARATOR in self.namespace:
            raise StateDbConfigError(f"namespace must not contain {NAMESPACE_SEPARATOR!r}")
        if not self.version.strip():
            raise StateDbConfigError("version must be non-empty")
        if self.backend not in BACKENDS:
            raise StateDbConfigError(f"Unknown backend {self.backend!r}; expected one of {sorted(BACKENDS)}")
        if self.backend == "http" and not self.base_url:
            raise StateDbConfigError("base_url is required for the http backend")
        if self.version_key == self.layout_key:
            raise StateDbConfigError("version_key and layout_key must differ")

    @classmethod
    def from_env(cls, **overrides: Any) -> StateDbConfig:
        """Create configuration from ``STATEDB_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "STATEDB_NAMESPACE": "namespace",
            "STATEDB_VERSION": "version",
            "STATEDB_BACKEND": "backend",
            "STATEDB_URL": "base_url",
            "STATEDB_VERSION_KEY": "version_key",
            "STATEDB_LAYOUT_KEY": "layout_key",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        path_env = env.get("STATEDB_PATH")
        if path_env is not None and "path" not in overrides:
            config_kwargs["path"] = Path(path_env).expanduser()

        if "degrade_to_memory" not in overrides:
            config_kwargs["degrade_to_memory"] = _env_bool(env.get("STATEDB_DEGRADE_TO_MEMORY"), True)

        if "path" in overrides:
            overrides["path"] = Path(overrides["path"])

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
