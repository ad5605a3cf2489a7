"""Configuration management for pys3sync.

Settings are resolved from environment variables first, then from the
config file at ``~/.config/pys3sync/config`` and finally from defaults.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from .exceptions import S3ConfigError

logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_MODE = "standard"
DEFAULT_CONCURRENCY = 5
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_READ_TIMEOUT = 60.0

# Setting name -> environment variables checked in order
_ENV_VARS: dict[str, tuple[str, ...]] = {
    "region": ("PYS3SYNC_REGION", "AWS_REGION", "AWS_DEFAULT_REGION"),
    "endpoint_url": ("PYS3SYNC_ENDPOINT_URL", "AWS_ENDPOINT_URL_S3"),
    "profile": ("PYS3SYNC_PROFILE", "AWS_PROFILE"),
    "max_retries": ("PYS3SYNC_MAX_RETRIES",),
    "retry_mode": ("PYS3SYNC_RETRY_MODE",),
    "concurrency": ("PYS3SYNC_CONCURRENCY",),
    "path_style": ("PYS3SYNC_PATH_STYLE",),
    "default_bucket": ("PYS3SYNC_DEFAULT_BUCKET",),
}


class Config:
    """Resolved pys3sync settings."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding the config file. Defaults to
                ~/.config/pys3sync
        """
        self.config_dir = config_dir or Path.home() / ".config" / "pys3sync"
        self._file_settings: dict[str, str] = {}
        self._load_file()

    def get_config_path(self) -> Path:
        """Return the path of the config file."""
        return self.config_dir / "config"

    def _load_file(self) -> None:
        path = self.get_config_path()
        if not path.exists():
            return
        try:
            with open(path, encoding="utf-8") as f:
                for line_no, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line or line.startswith("#"):
                        continue
                    if "=" not in line:
                        logger.warning(f"Ignoring malformed line {line_no} in {path}")
                        continue
                    name, value = line.split("=", 1)
                    self._file_settings[name.strip().lower()] = value.strip()
        except OSError as e:
            logger.warning(f"Failed to read config file {path}: {e}")

    def _get(self, name: str) -> Optional[str]:
        for env_var in _ENV_VARS.get(name, ()):
            value = os.environ.get(env_var)
            if value:
                return value
        return self._file_settings.get(name)

    def _get_int(self, name: str, default: int) -> int:
        value = self._get(name)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError as e:
            raise S3ConfigError(f"Setting '{name}' must be an integer, got {value!r}") from e

    @property
    def region(self) -> str:
        return self._get("region") or DEFAULT_REGION

    @property
    def endpoint_url(self) -> Optional[str]:
        return self._get("endpoint_url")

    @property
    def profile(self) -> Optional[str]:
        return self._get("profile")

    @property
    def max_retries(self) -> int:
        return self._get_int("max_retries", DEFAULT_MAX_RETRIES)

    @property
    def retry_mode(self) -> str:
        return self._get("retry_mode") or DEFAULT_RETRY_MODE

    @property
    def concurrency(self) -> int:
        return self._get_int("concurrency", DEFAULT_CONCURRENCY)

    @property
    def path_style(self) -> bool:
        value = self._get("path_style")
        return value is not None and value.lower() in ("1", "true", "yes", "on")

    @property
    def default_bucket(self) -> Optional[str]:
        return self._get("default_bucket")

    def save_setting(self, name: str, value: str) -> None:
        """Persist a setting to the config file.

        Args:
            name: Setting name (e.g. "region", "endpoint_url")
            value: Setting value

        Raises:
            S3ConfigError: If the setting name is unknown
        """
        if name not in _ENV_VARS:
            raise S3ConfigError(f"Unknown setting: {name}")

        self._file_settings[name] = value
        self.config_dir.mkdir(parents=True, exist_ok=True)
        path = self.get_config_path()
        with open(path, "w", encoding="utf-8") as f:
            for key in sorted(self._file_settings):
                f.write(f"{key}={self._file_settings[key]}\n")
        logger.debug(f"Saved setting {name} to {path}")


config = Config()
