#!/usr/bin/env python3
"""
Centralized error logging for Tracker.

Errors caught at a computation-pass boundary are reported here so one bad
event never blanks the whole dashboard but the failure still leaves a trace.
"""

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Growth protection constants
MAX_LOG_SIZE_BYTES = 10 * 1024 * 1024  # 10 MB
MAX_LOG_BACKUPS = 3


def _default_log_file() -> Path:
    override = os.environ.get("TRACKER_ERROR_LOG")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".lifelog" / "logs" / "tracker-errors.log"


def _rotate_log_if_needed(log_file: Path) -> None:
    """Rotate log file if it exceeds MAX_LOG_SIZE_BYTES."""
    try:
        if not log_file.exists():
            return

        if log_file.stat().st_size < MAX_LOG_SIZE_BYTES:
            return

        for i in range(MAX_LOG_BACKUPS - 1, 0, -1):
            old_backup = log_file.with_suffix(f".{i}.log")
            new_backup = log_file.with_suffix(f".{i + 1}.log")
            if old_backup.exists():
                old_backup.replace(new_backup)

        log_file.replace(log_file.with_suffix(".1.log"))
    except OSError as e:
        print(f"[error_logger] Log rotation failed: {e}", file=sys.stderr)


def log_error(module: str, error: Exception, context: Optional[str] = None,
              reraise: bool = False, log_file: Optional[Path] = None) -> str:
    """
    Log an error to the module logger and append it to the error log file.

    Args:
        module: Module name (e.g., "data_aggregator")
        error: The exception that occurred
        context: Additional context about what was being attempted
        reraise: Whether to re-raise the exception after logging
        log_file: Override for the error log location

    Returns:
        The formatted log line

    Example:
        try:
            values = await adapter.get_values_for_range(...)
        except DataSourceError as e:
            log_error("data_aggregator", e, "Fetching Sleep values")
            values = []
    """
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    log_parts = [
        f"[{timestamp}]",
        f"[{module}]",
        f"{type(error).__name__}: {error}",
    ]
    if context:
        log_parts.append(f"Context: {context}")
    log_message = " ".join(log_parts)

    logger.error(log_message)

    target = log_file or _default_log_file()
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        _rotate_log_if_needed(target)
        with open(target, "a") as f:
            f.write(log_message + "\n")
    except OSError as e:
        print(f"[error_logger] Failed to write log file: {e}", file=sys.stderr)

    if reraise:
        raise error

    return log_message


def log_warning(module: str, message: str) -> None:
    """
    Log a warning message.

    Args:
        module: Module name
        message: Warning message
    """
    logger.warning("[%s] %s", module, message)
