"""Configuration management for pydrsync.

Settings are read from environment variables first and fall back to a JSON
document in the user's config directory::

    {
        "api_key": "...",
        "api_url": "https://app.drime.cloud/api/v1",
        "session_token": "...",
        "workspace_id": 0
    }
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://app.drime.cloud/api/v1"
CONFIG_DIR_NAME = "pydrsync"
CONFIG_FILE_NAME = "config.json"


class Config:
    """Reads and persists pydrsync settings."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize the configuration.

        Args:
            config_path: Location of the JSON config file
                (default: ``$XDG_CONFIG_HOME/pydrsync/config.json``)
        """
        self._config_path = config_path
        self._data: Optional[dict[str, Any]] = None

    def get_config_path(self) -> Path:
        """Return the path of the JSON config file."""
        if self._config_path is not None:
            return self._config_path
        base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
        return Path(base) / CONFIG_DIR_NAME / CONFIG_FILE_NAME

    def _load(self) -> dict[str, Any]:
        if self._data is None:
            path = self.get_config_path()
            self._data = {}
            if path.exists():
                try:
                    with open(path, encoding="utf-8") as f:
                        loaded = json.load(f)
                    if isinstance(loaded, dict):
                        self._data = loaded
                    else:
                        logger.warning("Ignoring malformed config file %s", path)
                except (OSError, ValueError) as e:
                    logger.warning("Could not read config file %s: %s", path, e)
        return self._data

    def _save(self, updates: dict[str, Any]) -> None:
        data = dict(self._load())
        data.update(updates)
        data = {k: v for k, v in data.items() if v is not None}

        path = self.get_config_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        # Credentials live in this file
        os.chmod(path, 0o600)
        self._data = data

    @property
    def api_key(self) -> Optional[str]:
        """API key from ``DRIME_API_KEY`` or the config file."""
        return os.environ.get("DRIME_API_KEY") or self._load().get("api_key")

    @property
    def api_url(self) -> str:
        """API base URL from ``DRIME_API_URL``, the config file or the default."""
        return (
            os.environ.get("DRIME_API_URL")
            or self._load().get("api_url")
            or DEFAULT_API_URL
        )

    @property
    def session_token(self) -> Optional[str]:
        """Refreshable session token stored by a previous login, if any."""
        return self._load().get("session_token")

    @property
    def workspace_id(self) -> int:
        """Workspace used for remote paths (0 is the personal workspace)."""
        return int(self._load().get("workspace_id") or 0)

    def is_configured(self) -> bool:
        """Whether an API key is available."""
        return bool(self.api_key)

    def save_api_key(self, api_key: str) -> None:
        """Persist the API key."""
        self._save({"api_key": api_key})

    def save_session_token(self, token: Optional[str]) -> None:
        """Persist (or clear, with None) the session token."""
        self._save({"session_token": token})

    def save_workspace(self, workspace_id: Optional[int]) -> None:
        """Persist the workspace used for remote paths."""
        self._save({"workspace_id": workspace_id or None})


config = Config()
