"""Configuration management for ClaudeSync.

Configuration lives in two JSON files:

* the global config at ``~/.claudesync/config.json``, which also holds the
  session keys of every provider, and
* the local config at ``<root>/.claudesync/config.local.json``, where
  ``<root>`` is the nearest ancestor of the working directory containing a
  ``.claudesync`` folder. Local values take precedence on read.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from .exceptions import ClaudeSyncConfigError, ClaudeSyncSessionKeyError
from .utils import (
    CONFIG_DIR_NAME,
    DEFAULT_API_URL,
    DEFAULT_PROVIDER,
    GLOBAL_CONFIG_FILE,
    LOCAL_CONFIG_FILE,
    SESSION_KEY_SUFFIX,
    format_timestamp,
    parse_iso_timestamp,
)

logger = logging.getLogger(__name__)

DEFAULTS: dict[str, Any] = {
    "claude_api_url": DEFAULT_API_URL,
    "active_provider": DEFAULT_PROVIDER,
}


def find_local_root(start_dir: Path) -> Optional[Path]:
    """Find the nearest directory (start_dir included) holding a .claudesync folder.

    Args:
        start_dir: Directory to start searching from

    Returns:
        The directory containing ``.claudesync``, or None if no ancestor has one
    """
    current = start_dir.resolve()
    for candidate in (current, *current.parents):
        if (candidate / CONFIG_DIR_NAME).is_dir():
            return candidate
    return None


def _session_key_name(provider: str) -> str:
    return f"{provider}{SESSION_KEY_SUFFIX}"


class ConfigManager:
    """Two-layer (global + local) configuration store."""

    def __init__(
        self,
        global_dir: Optional[Path] = None,
        start_dir: Optional[Path] = None,
    ):
        """Load both configuration layers.

        Args:
            global_dir: Directory of the global config (default: ~/.claudesync)
            start_dir: Directory the local config is searched from (default: CWD)
        """
        self.global_dir = global_dir or Path.home() / CONFIG_DIR_NAME
        self.start_dir = (start_dir or Path.cwd()).resolve()
        self._local_root = find_local_root(self.start_dir)
        self._lock = threading.RLock()

        self.global_config: dict[str, Any] = self._load(self.global_config_path)
        self.local_config: dict[str, Any] = (
            self._load(self.local_config_path) if self._local_root else {}
        )

    # =========================
    # Paths
    # =========================

    @property
    def global_config_path(self) -> Path:
        return self.global_dir / GLOBAL_CONFIG_FILE

    @property
    def local_root(self) -> Path:
        """Root of the local project; the start directory if none was found."""
        return self._local_root or self.start_dir

    @property
    def local_config_path(self) -> Path:
        return self.local_root / CONFIG_DIR_NAME / LOCAL_CONFIG_FILE

    # =========================
    # Persistence
    # =========================

    @staticmethod
    def _load(path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ClaudeSyncConfigError(f"Could not read config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ClaudeSyncConfigError(f"Config file {path} must contain an object")
        return data

    @staticmethod
    def _save(path: Path, data: dict[str, Any]) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
        except OSError as e:
            raise ClaudeSyncConfigError(f"Could not write config file {path}: {e}") from e
        logger.debug("Saved config to %s", path)

    def _save_global(self) -> None:
        self._save(self.global_config_path, self.global_config)

    def _save_local(self) -> None:
        self._save(self.local_config_path, self.local_config)
        if self._local_root is None:
            self._local_root = self.start_dir

    # =========================
    # Generic access
    # =========================

    def get(self, key: str, default: Any = None) -> Any:
        """Return the local value, else the global value, else a default."""
        with self._lock:
            if key in self.local_config:
                return self.local_config[key]
            if key in self.global_config:
                return self.global_config[key]
        if default is not None:
            return default
        return DEFAULTS.get(key)

    def require(self, key: str) -> Any:
        """Return a configuration value that must be set.

        Raises:
            ClaudeSyncConfigError: If the key is not set
        """
        value = self.get(key)
        if value is None or value == "":
            raise ClaudeSyncConfigError(
                f"Configuration '{key}' is not set. "
                f"Run 'claudesync config set {key} <value>' or select it first."
            )
        return value

    def set(self, key: str, value: Any, local: bool = False) -> None:
        """Set a value in one layer and persist that layer immediately."""
        with self._lock:
            if local:
                self.local_config[key] = value
                self._save_local()
            else:
                self.global_config[key] = value
                self._save_global()

    def delete(self, key: str, local: bool = False) -> None:
        """Remove a key from one layer (no-op if absent)."""
        with self._lock:
            layer = self.local_config if local else self.global_config
            if key not in layer:
                return
            del layer[key]
            if local:
                self._save_local()
            else:
                self._save_global()

    def as_dict(self) -> dict[str, Any]:
        """Merged view of both layers, local values winning."""
        with self._lock:
            merged = dict(self.global_config)
            merged.update(self.local_config)
        return merged

    # =========================
    # Active pointers
    # =========================

    def set_active_organization(self, organization_id: str) -> None:
        """Select an organization and drop the project selection in one write."""
        with self._lock:
            self.local_config["active_organization_id"] = organization_id
            self.local_config.pop("active_project_id", None)
            self.local_config.pop("active_project_name", None)
            self._save_local()

    def set_active_project(self, project_id: str, project_name: str) -> None:
        with self._lock:
            self.local_config["active_project_id"] = project_id
            self.local_config["active_project_name"] = project_name
            self._save_local()

    def get_local_path(self) -> Path:
        """Local directory to sync, resolved against the local root.

        Raises:
            ClaudeSyncConfigError: If local_path is not set
        """
        local_path = Path(str(self.require("local_path"))).expanduser()
        if not local_path.is_absolute():
            local_path = self.local_root / local_path
        return local_path.resolve()

    # =========================
    # Session keys
    # =========================

    def set_session_key(self, provider: str, session_key: str, expiry: datetime) -> None:
        """Store a provider session key in the global config."""
        with self._lock:
            self.global_config[_session_key_name(provider)] = {
                "key": session_key,
                "expiry": format_timestamp(expiry),
            }
            self._save_global()

    def get_session_key(self, provider: str) -> tuple[str, datetime]:
        """Return the stored (session key, expiry) for a provider.

        Raises:
            ClaudeSyncSessionKeyError: If no valid session key is stored
        """
        with self._lock:
            value = self.global_config.get(_session_key_name(provider))

        if value is None:
            raise ClaudeSyncSessionKeyError(
                f"No session key found for {provider}. "
                "Please run 'claudesync auth login' first."
            )
        if not isinstance(value, dict):
            raise ClaudeSyncSessionKeyError(
                f"Invalid session key format for provider {provider}"
            )

        session_key = value.get("key")
        expiry = parse_iso_timestamp(value.get("expiry"))
        if not isinstance(session_key, str) or expiry is None:
            raise ClaudeSyncSessionKeyError(
                f"Invalid session key format for provider {provider}"
            )
        if not session_key:
            raise ClaudeSyncSessionKeyError(
                f"Empty session key for {provider}. "
                "Please run 'claudesync auth login' to set a valid session key."
            )
        return session_key, expiry

    def clear_all_session_keys(self) -> None:
        with self._lock:
            for key in [k for k in self.global_config if k.endswith(SESSION_KEY_SUFFIX)]:
                del self.global_config[key]
            self._save_global()

    def get_providers_with_session_keys(self) -> list[str]:
        with self._lock:
            return sorted(
                key[: -len(SESSION_KEY_SUFFIX)]
                for key in self.global_config
                if key.endswith(SESSION_KEY_SUFFIX)
            )
