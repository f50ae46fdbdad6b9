"""
YAML-backed configuration store.

Holds the per-attribute "import this attribute automatically" flags and the
sidecar write mode that gates metadata import.
"""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any

import yaml

from catalog_metadata.exceptions import ConfigError
from catalog_metadata.models import WriteSidecarMode

logger = logging.getLogger(__name__)

# Default configuration file location
DEFAULT_CONFIG_PATH = Path.home() / ".catalog_metadata.yaml"

WRITE_SIDECAR_KEY = "write_sidecar_files"


def import_flag_setting(subkey: str | None) -> str:
    """Setting name of the per-attribute flag word."""
    return f"plugins/metadata/{subkey}_flag"


class ConfigStore:
    """Flat key/value settings, optionally persisted to a YAML file.

    A store created without a path lives only in memory.
    """

    def __init__(
        self,
        path: str | Path | None = None,
        values: dict[str, Any] | None = None,
    ) -> None:
        self.path = Path(path) if path is not None else None
        self._values: dict[str, Any] = dict(values or {})
        self._lock = threading.Lock()

    @classmethod
    def load(cls, path: str | Path = DEFAULT_CONFIG_PATH) -> ConfigStore:
        """Load settings from a YAML file; a missing file gives an empty store."""
        path = Path(path)
        if not path.exists():
            logger.debug(f"No configuration at {path}, starting empty")
            return cls(path)

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration root must be a mapping: {path}")
        return cls(path, {str(k): v for k, v in data.items()})

    def save(self) -> None:
        if self.path is None:
            return
        with self._lock:
            data = dict(self._values)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=True)

    def key_exists(self, key: str) -> bool:
        with self._lock:
            return key in self._values

    def get_int(self, key: str, default: int = 0) -> int:
        with self._lock:
            value = self._values.get(key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning(f"Setting {key!r} is not an integer: {value!r}")
            return default

    def set_int(self, key: str, value: int) -> None:
        with self._lock:
            self._values[key] = int(value)

    def get_str(self, key: str, default: str = "") -> str:
        with self._lock:
            value = self._values.get(key, default)
        return default if value is None else str(value)

    def set_str(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value

    @property
    def write_sidecar_mode(self) -> WriteSidecarMode:
        raw = self.get_str(WRITE_SIDECAR_KEY, WriteSidecarMode.ON_IMPORT.value)
        try:
            return WriteSidecarMode(raw)
        except ValueError:
            logger.warning(f"Unknown {WRITE_SIDECAR_KEY} value {raw!r}")
            return WriteSidecarMode.ON_IMPORT
