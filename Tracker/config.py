#!/usr/bin/env python3
"""
Configuration for the Tracker insights engine.

Settings come from environment variables, optionally loaded from a `.env`
file in the project root.

Usage:
    from Tracker.config import load_settings

    settings = load_settings()
    print(settings.db_path, settings.heatmap_window)
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

PROJECT_ROOT = Path(__file__).resolve().parent.parent

DEFAULT_DB_PATH = PROJECT_ROOT / "State" / "lifelog.db"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Settings:
    """Runtime settings for a computation pass."""
    db_path: Path = DEFAULT_DB_PATH
    log_level: str = "WARNING"
    lookback_days: int = 365  # history loaded for pattern discovery
    weekday_window: int = 30
    heatmap_window: int = 84
    pattern_delay_seconds: float = 0.0
    pairwise_patterns: bool = False
    error_log: Optional[Path] = None


def _get_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}", variable=name)
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}", variable=name)
    return value


def _get_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}", variable=name)
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative", variable=name)
    return value


def _get_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    lowered = raw.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}", variable=name)


def load_settings(env_path: Optional[Path] = None) -> Settings:
    """
    Load settings from the environment.

    Args:
        env_path: Optional path to a .env file. Defaults to PROJECT_ROOT/.env.
                  Variables already set in the process environment win.

    Returns:
        Settings instance

    Raises:
        ConfigurationError: If a variable holds an invalid value
    """
    env_file = env_path or PROJECT_ROOT / ".env"
    if env_file.exists():
        load_dotenv(env_file, override=False)

    log_level = os.environ.get("TRACKER_LOG_LEVEL", "WARNING").strip().upper()
    if log_level not in LOG_LEVELS:
        raise ConfigurationError(
            f"TRACKER_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}",
            variable="TRACKER_LOG_LEVEL",
        )

    db_path = os.environ.get("TRACKER_DB_PATH")
    error_log = os.environ.get("TRACKER_ERROR_LOG")

    return Settings(
        db_path=Path(db_path).expanduser() if db_path else DEFAULT_DB_PATH,
        log_level=log_level,
        lookback_days=_get_int("TRACKER_LOOKBACK_DAYS", 365),
        weekday_window=_get_int("TRACKER_WEEKDAY_WINDOW", 30),
        heatmap_window=_get_int("TRACKER_HEATMAP_WINDOW", 84),
        pattern_delay_seconds=_get_float("TRACKER_PATTERN_DELAY", 0.0),
        pairwise_patterns=_get_bool("TRACKER_PAIRWISE_PATTERNS", False),
        error_log=Path(error_log).expanduser() if error_log else None,
    )
