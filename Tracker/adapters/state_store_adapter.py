"""
Value source backed by the SQLite EventStore.

sqlite3 calls block, so each read runs in a worker thread; a dashboard pass
can then fan out all per-event reads concurrently.
"""

import asyncio
import logging
import sqlite3
from pathlib import Path
from typing import Any, List, Optional

from ..errors import DataSourceError
from ..pattern_recognition.models import EventType, EventValue
from ..state_store.store import EventStore
from .base import DateLike, ValueSourceAdapter

logger = logging.getLogger(__name__)


class StateStoreAdapter(ValueSourceAdapter):
    """Adapter exposing EventStore reads through the async interface."""

    def __init__(self, store: Optional[EventStore] = None, db_path: Optional[Path] = None):
        """
        Initialize adapter.

        Args:
            store: Existing store instance (takes precedence)
            db_path: Database path used when no store is given
        """
        self.store = store or EventStore(db_path)

    @property
    def name(self) -> str:
        return "state_store"

    async def _run(self, description: str, func, *args, event_id: Optional[int] = None):
        try:
            return await asyncio.to_thread(func, *args)
        except sqlite3.Error as e:
            logger.debug("%s failed: %s", description, e)
            raise DataSourceError(
                f"{description} failed: {e}",
                event_id=event_id,
                retryable=isinstance(e, sqlite3.OperationalError),
            ) from e

    async def get_values_for_range(
        self, event_id: int, start_date: DateLike, end_date: DateLike
    ) -> List[EventValue]:
        return await self._run(
            "Reading values", self.store.get_values_for_range,
            event_id, start_date, end_date, event_id=event_id,
        )

    async def get_values_for_range_complete(
        self,
        event_id: int,
        start_date: DateLike,
        end_date: DateLike,
        event_type: EventType,
    ) -> List[EventValue]:
        return await self._run(
            "Reading complete range", self.store.get_values_for_range_complete,
            event_id, start_date, end_date, event_type, event_id=event_id,
        )

    async def get_all_values(self) -> List[EventValue]:
        return await self._run("Reading all values", self.store.get_all_values)

    async def health_check(self) -> dict[str, Any]:
        summary = await self._run("Health check", self.store.export_summary)
        return {"status": "ok", "adapter": self.name, **summary}
