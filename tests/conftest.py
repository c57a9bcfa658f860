"""
Pytest configuration and shared fixtures for Tracker tests.
"""

from pathlib import Path
import sys

import pytest


# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from Tracker.config import Settings  # noqa: E402
from Tracker.state_store.store import EventStore  # noqa: E402


@pytest.fixture
def project_root_path():
    """Return the project root directory path."""
    return project_root


@pytest.fixture
def temp_db_path(tmp_path):
    """Create a temporary database path."""
    return tmp_path / "test_lifelog.db"


@pytest.fixture
def store(temp_db_path):
    """Create an EventStore instance with a temporary database."""
    return EventStore(db_path=temp_db_path)


@pytest.fixture
def settings(tmp_path):
    """Settings with no artificial delay and a temporary error log."""
    return Settings(
        db_path=tmp_path / "test_lifelog.db",
        error_log=tmp_path / "logs" / "errors.log",
    )


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every TRACKER_* variable from the environment."""
    import os

    for key in list(os.environ):
        if key.startswith("TRACKER_"):
            monkeypatch.delenv(key, raising=False)
    return monkeypatch
