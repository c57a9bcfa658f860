"""
SQLite event store.

Persists tracked events and their daily values. Values are stored as text
and interpreted by the insights engine according to the event's type.

Usage:
    from Tracker.state_store.store import EventStore

    store = EventStore()
    sleep = store.create_event(name="Sleep", type="number", unit="hours")
    store.set_event_value(sleep.id, "2024-01-02", "7.5")
    values = store.get_values_for_range(sleep.id, "2024-01-01", "2024-01-31")
"""

import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from ..errors import EventNotFoundError
from ..pattern_recognition.models import Event, EventType, EventValue
from ..pattern_recognition.normalizer import fill_gaps

DEFAULT_DB_PATH = Path(__file__).parent.parent.parent / "State" / "lifelog.db"

DateLike = Union[str, date]


def _iso(day: DateLike) -> str:
    return day.isoformat() if isinstance(day, date) else day


class EventStore:
    """SQLite store for events, their values and app settings."""

    SCHEMA_VERSION = 1

    def __init__(self, db_path: Optional[Path] = None):
        """Initialize event store.

        Args:
            db_path: Path to SQLite database. Defaults to State/lifelog.db
        """
        if db_path is None:
            db_path = DEFAULT_DB_PATH

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

    @contextmanager
    def _get_connection(self):
        """Get database connection with proper handling."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_database(self):
        """Initialize database schema."""
        with self._get_connection() as conn:
            conn.executescript('''
                -- Schema version tracking
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY,
                    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                );

                -- Tracked events
                CREATE TABLE IF NOT EXISTS events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    type TEXT NOT NULL CHECK (type IN ('boolean', 'number', 'string')),
                    unit TEXT,
                    color TEXT NOT NULL DEFAULT '#3b82f6',
                    icon TEXT,
                    "order" INTEGER NOT NULL DEFAULT 0,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                );

                -- One value per event per day, stored as text
                CREATE TABLE IF NOT EXISTS event_values (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    event_id INTEGER NOT NULL,
                    date TEXT NOT NULL,
                    value TEXT NOT NULL,
                    timestamp TIMESTAMP,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    UNIQUE(event_id, date),
                    FOREIGN KEY (event_id) REFERENCES events(id) ON DELETE CASCADE
                );

                -- App settings (color scheme etc.)
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT
                );

                -- Indexes
                CREATE INDEX IF NOT EXISTS idx_events_order ON events("order");
                CREATE INDEX IF NOT EXISTS idx_values_date ON event_values(date);
                CREATE INDEX IF NOT EXISTS idx_values_event_date ON event_values(event_id, date);

                -- Record schema version
                INSERT OR IGNORE INTO schema_version (version) VALUES (1);
            ''')

    def _now_iso(self) -> str:
        """Get current timestamp in ISO format."""
        return datetime.now().isoformat()

    # =========================================================================
    # Event Operations
    # =========================================================================

    def create_event(
        self,
        name: str,
        type: Union[str, EventType],
        unit: Optional[str] = None,
        color: str = "#3b82f6",
        icon: Optional[str] = None,
    ) -> Event:
        """Create an event, appended after the current last one.

        Args:
            name: Display name
            type: boolean, number or string
            unit: Optional unit shown next to numbers
            color: Display color
            icon: Optional icon identifier

        Returns:
            The created Event
        """
        event_type = EventType(type) if isinstance(type, str) else type
        with self._get_connection() as conn:
            row = conn.execute('SELECT MAX("order") AS max_order FROM events').fetchone()
            order = (row["max_order"] if row["max_order"] is not None else -1) + 1
            cursor = conn.execute('''
                INSERT INTO events (name, type, unit, color, icon, "order")
                VALUES (?, ?, ?, ?, ?, ?)
            ''', (name, event_type.value, unit, color, icon, order))
            event_id = cursor.lastrowid

        return Event(
            id=event_id, name=name, type=event_type, unit=unit,
            color=color, order=order, icon=icon,
        )

    def get_event(self, event_id: int) -> Optional[Event]:
        """Get an event by id."""
        with self._get_connection() as conn:
            row = conn.execute('SELECT * FROM events WHERE id = ?', (event_id,)).fetchone()
            return self._row_to_event(row) if row else None

    def get_events(self) -> List[Event]:
        """All events in display order."""
        with self._get_connection() as conn:
            rows = conn.execute('SELECT * FROM events ORDER BY "order" ASC, id ASC').fetchall()
            return [self._row_to_event(row) for row in rows]

    def update_event(self, event_id: int, **updates) -> Event:
        """Update an event.

        Args:
            event_id: Event to update
            **updates: Any of name, type, unit, color, icon, order

        Returns:
            The updated Event

        Raises:
            EventNotFoundError: If the event does not exist
        """
        allowed = {'name', 'type', 'unit', 'color', 'icon', 'order'}
        fields = {k: v for k, v in updates.items() if k in allowed}
        if 'type' in fields and isinstance(fields['type'], EventType):
            fields['type'] = fields['type'].value

        if fields:
            assignments = ', '.join(f'"{k}" = ?' for k in fields)
            with self._get_connection() as conn:
                conn.execute(
                    f'UPDATE events SET {assignments}, updated_at = ? WHERE id = ?',
                    list(fields.values()) + [self._now_iso(), event_id]
                )

        event = self.get_event(event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    def delete_event(self, event_id: int) -> bool:
        """Delete an event and all its values.

        Returns:
            True if an event was deleted
        """
        with self._get_connection() as conn:
            cursor = conn.execute('DELETE FROM events WHERE id = ?', (event_id,))
            return cursor.rowcount > 0

    def reorder_events(self, event_ids: Sequence[int]) -> None:
        """Set display order to the position of each id in event_ids."""
        now = self._now_iso()
        with self._get_connection() as conn:
            conn.executemany(
                'UPDATE events SET "order" = ?, updated_at = ? WHERE id = ?',
                [(index, now, event_id) for index, event_id in enumerate(event_ids)]
            )

    def _row_to_event(self, row: sqlite3.Row) -> Event:
        """Convert database row to Event object."""
        return Event(
            id=row['id'],
            name=row['name'],
            type=EventType(row['type']),
            unit=row['unit'],
            color=row['color'],
            order=row['order'],
            icon=row['icon'],
        )

    # =========================================================================
    # Value Operations
    # =========================================================================

    def set_event_value(self, event_id: int, day: DateLike, value: str) -> EventValue:
        """Insert or replace the value of an event on a day.

        Raises:
            EventNotFoundError: If the event does not exist
        """
        now = self._now_iso()
        try:
            with self._get_connection() as conn:
                conn.execute('''
                    INSERT INTO event_values (event_id, date, value, timestamp)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(event_id, date) DO UPDATE SET
                        value = excluded.value,
                        timestamp = excluded.timestamp,
                        updated_at = excluded.timestamp
                ''', (event_id, _iso(day), str(value), now))
        except sqlite3.IntegrityError as e:
            raise EventNotFoundError(event_id) from e

        return self.get_event_value(event_id, day)

    def get_event_value(self, event_id: int, day: DateLike) -> Optional[EventValue]:
        """Get the stored value of an event on a day."""
        with self._get_connection() as conn:
            row = conn.execute(
                'SELECT * FROM event_values WHERE event_id = ? AND date = ?',
                (event_id, _iso(day))
            ).fetchone()
            return self._row_to_value(row) if row else None

    def delete_event_value(self, event_id: int, day: DateLike) -> bool:
        """Remove the value of an event on a day."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                'DELETE FROM event_values WHERE event_id = ? AND date = ?',
                (event_id, _iso(day))
            )
            return cursor.rowcount > 0

    def get_values_for_range(
        self, event_id: int, start_date: DateLike, end_date: DateLike
    ) -> List[EventValue]:
        """Stored values of an event within [start_date, end_date], oldest first."""
        with self._get_connection() as conn:
            rows = conn.execute('''
                SELECT * FROM event_values
                WHERE event_id = ? AND date >= ? AND date <= ?
                ORDER BY date ASC
            ''', (event_id, _iso(start_date), _iso(end_date))).fetchall()
            return [self._row_to_value(row) for row in rows]

    def get_values_for_range_complete(
        self,
        event_id: int,
        start_date: DateLike,
        end_date: DateLike,
        event_type: Union[str, EventType],
    ) -> List[EventValue]:
        """One value per day of [start_date, end_date].

        Days without a stored value carry the type default and the
        placeholder id (-1).
        """
        if isinstance(event_type, str):
            event_type = EventType(event_type)
        stored = self.get_values_for_range(event_id, start_date, end_date)
        return fill_gaps(stored, start_date, end_date, event_type, event_id)

    def get_values_for_date(self, day: DateLike) -> List[EventValue]:
        """Every event's value on a day."""
        with self._get_connection() as conn:
            rows = conn.execute(
                'SELECT * FROM event_values WHERE date = ? ORDER BY event_id ASC',
                (_iso(day),)
            ).fetchall()
            return [self._row_to_value(row) for row in rows]

    def get_all_values(self) -> List[EventValue]:
        """Unfiltered dump of every stored value."""
        with self._get_connection() as conn:
            rows = conn.execute(
                'SELECT * FROM event_values ORDER BY event_id ASC, date ASC'
            ).fetchall()
            return [self._row_to_value(row) for row in rows]

    def _row_to_value(self, row: sqlite3.Row) -> EventValue:
        """Convert database row to EventValue object."""
        return EventValue(
            id=row['id'],
            event_id=row['event_id'],
            date=row['date'],
            value=row['value'],
            timestamp=row['timestamp'],
        )

    # =========================================================================
    # Settings
    # =========================================================================

    def get_settings(self) -> Dict[str, str]:
        """All stored settings."""
        with self._get_connection() as conn:
            rows = conn.execute('SELECT key, value FROM settings').fetchall()
            return {row['key']: row['value'] for row in rows}

    def set_setting(self, key: str, value: str) -> None:
        with self._get_connection() as conn:
            conn.execute(
                'INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)',
                (key, value)
            )

    # =========================================================================
    # Summary
    # =========================================================================

    def export_summary(self) -> Dict[str, int]:
        """Row counts, for status output."""
        with self._get_connection() as conn:
            events = conn.execute('SELECT COUNT(*) FROM events').fetchone()[0]
            values = conn.execute('SELECT COUNT(*) FROM event_values').fetchone()[0]
            days = conn.execute('SELECT COUNT(DISTINCT date) FROM event_values').fetchone()[0]
        return {"events": events, "values": values, "days": days}
