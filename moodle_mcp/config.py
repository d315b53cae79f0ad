"""Configuration for the Moodle MCP server"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from . import __version__


class ConfigError(Exception):
    """Required process configuration is missing or malformed."""


class Config:
    # Server identity
    SERVER_NAME = "moodle-mcp-server"
    SERVER_VERSION = __version__
    PROTOCOL_VERSION = "2024-11-05"

    # Paths
    LOG_DIR = Path(os.environ.get("MOODLE_MCP_LOG_DIR", Path.home() / ".moodle-mcp" / "logs"))

    # Logging (NEVER to stdout)
    LOG_FILE = LOG_DIR / "moodle-mcp.log"
    ERROR_LOG = LOG_DIR / "moodle-mcp-errors.log"
    LOG_LEVEL = os.environ.get("MOODLE_MCP_LOG_LEVEL", "INFO").upper()

    # Upstream
    DEFAULT_TIMEOUT = 30.0

    @classmethod
    def ensure_dirs(cls):
        """Create required directories"""
        cls.LOG_DIR.mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class MoodleSettings:
    """Connection settings captured once at startup."""

    api_url: str
    api_token: str
    default_course_id: Optional[str] = None
    timeout: float = Config.DEFAULT_TIMEOUT

    @classmethod
    def from_env(cls, environ=None) -> "MoodleSettings":
        env = os.environ if environ is None else environ

        api_url = env.get("MOODLE_API_URL", "").strip()
        if not api_url:
            raise ConfigError("MOODLE_API_URL environment variable is required")

        api_token = env.get("MOODLE_API_TOKEN", "").strip()
        if not api_token:
            raise ConfigError("MOODLE_API_TOKEN environment variable is required")

        # Optional: tools accept courseId per call when unset
        default_course_id = env.get("MOODLE_COURSE_ID", "").strip() or None

        raw_timeout = env.get("MOODLE_API_TIMEOUT", "").strip()
        try:
            timeout = float(raw_timeout) if raw_timeout else Config.DEFAULT_TIMEOUT
        except ValueError:
            raise ConfigError(f"MOODLE_API_TIMEOUT must be a number of seconds, got {raw_timeout!r}")

        return cls(
            api_url=api_url,
            api_token=api_token,
            default_course_id=default_course_id,
            timeout=timeout,
        )
