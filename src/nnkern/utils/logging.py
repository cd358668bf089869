"""Logging utilities for nnkern.

One package logger, configured on first use from the NNKERN_LOG_LEVEL
environment variable, plus a helper that reports host round-trip fallbacks
loudly the first time and quietly afterwards.
"""

import logging
import os
import sys
import threading
from typing import Optional

_logger: Optional[logging.Logger] = None
_logger_lock = threading.Lock()
_fallback_seen: set = set()

_VALID_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def get_logger() -> logging.Logger:
    """Get the nnkern logger (thread-safe).

    The level is read from NNKERN_LOG_LEVEL (default WARNING).
    """
    global _logger
    if _logger is None:
        with _logger_lock:
            if _logger is not None:
                return _logger

            _logger = logging.getLogger("nnkern")
            level_name = os.environ.get("NNKERN_LOG_LEVEL", "WARNING").upper()
            if level_name not in _VALID_LEVELS:
                print(
                    f"Warning: Invalid NNKERN_LOG_LEVEL='{level_name}'. "
                    f"Valid values: {', '.join(sorted(_VALID_LEVELS))}. "
                    f"Defaulting to WARNING.",
                    file=sys.stderr,
                )
                level_name = "WARNING"
            _logger.setLevel(getattr(logging, level_name))

            # Records propagate to the application's handlers.
            if not _logger.handlers:
                _logger.addHandler(logging.NullHandler())

    return _logger


def log_fallback(kernel: str, reason: str) -> None:
    """Log that a device buffer was served by the CPU kernel.

    The first fallback per kernel is logged at WARNING, later ones at DEBUG.
    """
    logger = get_logger()
    with _logger_lock:
        if kernel not in _fallback_seen:
            _fallback_seen.add(kernel)
            level = logging.WARNING
            note = " (first occurrence, further fallbacks logged at DEBUG)"
        else:
            level = logging.DEBUG
            note = ""
    logger.log(level, f"{kernel}: {reason}, using CPU kernel via host copy{note}")
