"""processlib environment configuration.

Environment variables:
    PROCESSLIB_TIMEOUT: default execution timeout in seconds
        - empty/unset/invalid/<= 0 = no timeout (default)

    PROCESSLIB_TERM_TIMEOUT: seconds to wait after a graceful terminate
        - default 2.0, clamped to 0.1-60

    PROCESSLIB_KILL_TIMEOUT: seconds to wait after a forced kill
        - default 1.0, clamped to 0.1-60

    PROCESSLIB_ENCODING: encoding used to decode output lines
        - default utf-8 (undecodable bytes are replaced)

    PROCESSLIB_LOG_DEBUG: debug logging
        - true/1/yes/on = DEBUG level, written to a temp file
        - false/0/no/off = INFO level on stderr (default)
"""

from __future__ import annotations

import codecs
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

__all__ = ["Config", "load_config", "get_config", "reload_config"]

DEFAULT_TERM_TIMEOUT = 2.0
DEFAULT_KILL_TIMEOUT = 1.0
DEFAULT_ENCODING = "utf-8"


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse a boolean environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_timeout(value: str | None) -> float | None:
    """Parse the execution timeout; None means wait forever."""
    if not value or not value.strip():
        return None
    try:
        timeout = float(value)
    except ValueError:
        return None
    return timeout if timeout > 0 else None


def _parse_grace_period(value: str | None, default: float) -> float:
    """Parse a termination grace period, clamped to 0.1-60 seconds."""
    if not value:
        return default
    try:
        seconds = float(value)
    except ValueError:
        return default
    return max(0.1, min(seconds, 60.0))


def _parse_encoding(value: str | None) -> str:
    """Parse the output encoding; unknown codecs fall back to utf-8."""
    if not value or not value.strip():
        return DEFAULT_ENCODING
    try:
        return codecs.lookup(value.strip()).name
    except LookupError:
        return DEFAULT_ENCODING


@dataclass
class Config:
    """processlib configuration.

    Attributes:
        timeout: Default execution timeout in seconds (None = no timeout)
        term_timeout: Wait after graceful terminate before killing
        kill_timeout: Wait after forced kill
        encoding: Output line encoding
        log_debug: Debug logging to a temp file
        log_file: Log file path (set automatically when log_debug=True)
    """

    timeout: float | None = None
    term_timeout: float = DEFAULT_TERM_TIMEOUT
    kill_timeout: float = DEFAULT_KILL_TIMEOUT
    encoding: str = DEFAULT_ENCODING
    log_debug: bool = False
    log_file: str | None = None

    def __repr__(self) -> str:
        return (
            f"Config(timeout={self.timeout}, "
            f"term_timeout={self.term_timeout}, "
            f"kill_timeout={self.kill_timeout}, "
            f"encoding={self.encoding}, "
            f"log_debug={self.log_debug}, "
            f"log_file={self.log_file})"
        )


def _generate_log_file_path() -> str:
    """Build a timestamped log file path under the system temp dir."""
    log_dir = Path(tempfile.gettempdir()) / "processlib"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"processlib_debug_{timestamp}.log"

    return str(log_file.resolve())


def load_config() -> Config:
    """Load configuration from environment variables."""
    log_debug = _parse_bool(os.environ.get("PROCESSLIB_LOG_DEBUG"), default=False)
    log_file = _generate_log_file_path() if log_debug else None

    return Config(
        timeout=_parse_timeout(os.environ.get("PROCESSLIB_TIMEOUT")),
        term_timeout=_parse_grace_period(
            os.environ.get("PROCESSLIB_TERM_TIMEOUT"), DEFAULT_TERM_TIMEOUT
        ),
        kill_timeout=_parse_grace_period(
            os.environ.get("PROCESSLIB_KILL_TIMEOUT"), DEFAULT_KILL_TIMEOUT
        ),
        encoding=_parse_encoding(os.environ.get("PROCESSLIB_ENCODING")),
        log_debug=log_debug,
        log_file=log_file,
    )


# Global instance, loaded lazily
_config: Config | None = None


def get_config() -> Config:
    """Return the global configuration."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Reload configuration from the environment (for tests)."""
    global _config
    _config = load_config()
    return _config
