"""
Base adapter interface for value sources.

The insights engine reads historical values through this async interface so
persistence can be swapped (SQLite store, remote API, in-memory fixtures)
without touching the analyzers.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, List, Union

from ..pattern_recognition.models import EventType, EventValue
from ..pattern_recognition.normalizer import fill_gaps

DateLike = Union[str, date]


class ValueSourceAdapter(ABC):
    """Abstract base class for all value sources."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Adapter identifier used in logs."""
        pass

    @abstractmethod
    async def get_values_for_range(
        self, event_id: int, start_date: DateLike, end_date: DateLike
    ) -> List[EventValue]:
        """
        Return stored values of an event within [start_date, end_date].

        Args:
            event_id: Event to read
            start_date: First day (inclusive)
            end_date: Last day (inclusive)

        Returns:
            Raw values, no gap filling

        Raises:
            DataSourceError: If the source cannot be read
        """
        pass

    @abstractmethod
    async def get_all_values(self) -> List[EventValue]:
        """Return every stored value of every event."""
        pass

    async def get_values_for_range_complete(
        self,
        event_id: int,
        start_date: DateLike,
        end_date: DateLike,
        event_type: EventType,
    ) -> List[EventValue]:
        """
        Same as get_values_for_range, with one entry per day.

        Missing days carry the type default and the placeholder id. Override
        when the source can fill gaps itself.
        """
        values = await self.get_values_for_range(event_id, start_date, end_date)
        return fill_gaps(values, start_date, end_date, event_type, event_id)

    async def close(self):
        """
        Close any open connections.

        Override in subclasses that maintain persistent connections.
        """
        pass  # noqa: B027

    async def health_check(self) -> dict[str, Any]:
        """
        Check source health/connectivity.

        Override in subclasses to provide meaningful health checks.
        """
        return {"status": "ok", "adapter": self.name}
