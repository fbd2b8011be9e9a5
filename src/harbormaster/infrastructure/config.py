"""Configuration constants, environment overrides, and timeout settings."""

from __future__ import annotations

import os
import sys
from pathlib import Path


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    try:
        value = int(raw) if raw else default
    except ValueError:
        return default
    return value if value > 0 else default


APP_NAME: str = "harbormaster"

# Detection
CACHE_TTL: int = _env_int("HARBORMASTER_CACHE_TTL", 60)  # seconds
DETECTION_TIMEOUT: int = _env_int("HARBORMASTER_DETECTION_TIMEOUT", 5000)  # ms
VERSION_QUERY_TIMEOUT: float = 5.0  # seconds
MODE_QUERY_TIMEOUT: float = 5.0  # seconds

# Status polling
POLL_INTERVAL: int = _env_int("HARBORMASTER_POLL_INTERVAL", 5)  # seconds
STATUS_CHECK_TIMEOUT: float = 3.0  # seconds
MAX_FAILURE_COUNT: int = 5  # max backoff of 2^5 = 32 intervals

# Event names
EVENT_DETECTION_STARTED: str = "detection-started"
EVENT_DETECTION_COMPLETED: str = "detection-completed"
EVENT_RUNTIME_SELECTED: str = "runtime-selected"
EVENT_STATUS_UPDATE: str = "runtime-status-update"


def platform_config_dir(platform: str | None = None, env: dict[str, str] | None = None) -> Path:
    """Return the per-user config directory for the given platform.

    Windows: %APPDATA%\\harbormaster
    macOS:   ~/Library/Application Support/com.harbormaster.app
    Linux:   ~/.config/harbormaster
    """
    platform = platform or sys.platform
    env = os.environ if env is None else env

    override = env.get("HARBORMASTER_CONFIG_DIR")
    if override:
        return Path(override).expanduser()

    if platform.startswith("win"):
        appdata = env.get("APPDATA")
        base = Path(appdata) if appdata else Path.home() / "AppData" / "Roaming"
        return base / APP_NAME
    if platform == "darwin":
        return Path.home() / "Library" / "Application Support" / f"com.{APP_NAME}.app"
    return Path.home() / ".config" / APP_NAME


CONFIG_DIR: Path = platform_config_dir()
PREFERENCES_PATH: Path = CONFIG_DIR / "config.json"


class TimeoutConfig:
    """Timeouts applied to detection pipelines and child-process calls."""

    def __init__(
        self,
        detection_timeout: int = DETECTION_TIMEOUT,
        status_timeout: float = STATUS_CHECK_TIMEOUT,
        version_timeout: float = VERSION_QUERY_TIMEOUT,
        mode_timeout: float = MODE_QUERY_TIMEOUT,
    ) -> None:
        self.detection_timeout = detection_timeout
        self.status_timeout = status_timeout
        self.version_timeout = version_timeout
        self.mode_timeout = mode_timeout

    def detection_budget_s(self, override_ms: int | None = None) -> float:
        """Detection budget in seconds, optionally overridden per call."""
        ms = override_ms if override_ms is not None else self.detection_timeout
        return max(ms, 0) / 1000
