"""
Logging configuration for scheduled_resource.

Quiet by default; debug output to stderr on request.
"""

import logging
import sys
import warnings


def configure_quiet_mode(quiet: bool = True):
    """
    Configure logging for normal CLI use.

    Args:
        quiet: If True, only warnings and errors from scheduled_resource
            reach the log. If False, informational messages do too.
    """
    level = logging.WARNING if quiet else logging.INFO
    logging.getLogger("scheduled_resource").setLevel(level)
    if quiet:
        warnings.filterwarnings("ignore", category=DeprecationWarning)


def enable_debug_mode():
    """Enable debug-level logging to stderr."""
    # Re-enable warnings
    warnings.filterwarnings("default")

    # Configure root logger for debug output
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Add stderr handler if not already present
    if not any(isinstance(h, logging.StreamHandler) and h.stream == sys.stderr
               for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S"
        ))
        root_logger.addHandler(handler)

    logging.getLogger("scheduled_resource").setLevel(logging.DEBUG)
