"""
Error types and error logging for scheduled_resource.

Logs full stack traces for debugging while showing clean messages to users.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path


class ScheduleError(Exception):
    """Base class for all schedule errors."""


class ConfigurationError(ScheduleError):
    """
    The schedule configuration cannot be built or used.

    Raised for a malformed manifest, a resource group naming an unknown
    kind, an unparsable time expression, a failing decoration hook, or a
    kind/provider that cannot be resolved at query time.
    """


class ProviderError(ScheduleError):
    """A use-block provider failed while answering a query."""

    def __init__(self, kind: str, message: str):
        super().__init__(f"Provider for kind '{kind}' failed: {message}")
        self.kind = kind


class QueryRangeError(ScheduleError):
    """The query interval is inverted (t1 > t2) and strict checking was requested."""


def _error_log_path() -> Path:
    """Resolve error log path, respecting SCHEDRES_LOG_DIR."""
    log_dir = os.environ.get("SCHEDRES_LOG_DIR")
    if log_dir:
        return Path(log_dir) / "schedres-errors.log"
    return Path.home() / ".scheduled_resource" / "schedres-errors.log"


def log_exception(exc: Exception, context: str = "") -> Path:
    """
    Log exception with full traceback to file.

    Args:
        exc: The exception that occurred
        context: Optional context string (e.g., command name)

    Returns:
        Path to the error log file
    """
    log_path = _error_log_path()
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a") as f:
            f.write(f"\n{'='*60}\n")
            f.write(f"[{timestamp}]")
            if context:
                f.write(f" {context}")
            f.write("\n")
            f.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    except OSError:
        pass  # Can't write error log, don't crash over it
    return log_path
