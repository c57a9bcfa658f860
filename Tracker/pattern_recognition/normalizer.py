"""
Value normalization for the insights engine.

Converts raw stored values (always strings) into typed data points:
- boolean → 0/1
- number → int or float (integers stay integers)
- string → trimmed lowercase token

Optionally fills calendar gaps in a date range with placeholder values so
every per-day aggregation sees one entry per day.
"""

import logging
import math
import re
from datetime import date, timedelta
from typing import Iterable, List, Optional, Tuple, Union

from .models import (
    PLACEHOLDER_ID,
    Event,
    EventDataPoint,
    EventType,
    EventValue,
    Value,
)

logger = logging.getLogger(__name__)

# Leading numeric prefix, the way JavaScript's parseFloat reads "7.5h" as 7.5
_NUMBER_PREFIX = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

TYPE_DEFAULTS = {
    EventType.BOOLEAN: "false",
    EventType.NUMBER: "0",
    EventType.STRING: "",
}

DateLike = Union[str, date]


def to_date(value: DateLike) -> date:
    """Parse an ISO YYYY-MM-DD string (or pass a date through)."""
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def days_between(start: DateLike, end: DateLike) -> List[str]:
    """Every ISO date in the closed range [start, end], oldest first."""
    current = to_date(start)
    last = to_date(end)
    days = []
    while current <= last:
        days.append(current.isoformat())
        current += timedelta(days=1)
    return days


def parse_number(raw: Optional[str]) -> Union[int, float]:
    """
    Parse a numeric literal, falling back to 0 for anything unparseable.

    Integer-valued results are returned as int so downstream formatting
    never shows "7.0".
    """
    if raw is None:
        return 0
    match = _NUMBER_PREFIX.match(str(raw))
    if not match:
        if str(raw).strip():
            logger.debug("Unparseable number %r coerced to 0", raw)
        return 0
    number = float(match.group(0))
    if math.isnan(number) or math.isinf(number):
        return 0
    if number.is_integer():
        return int(number)
    return number


def normalize_value(event_type: EventType, raw: Optional[str]) -> Value:
    """
    Convert a raw stored value to its typed representation.

    Args:
        event_type: Type of the owning event
        raw: Value as stored by persistence

    Returns:
        0/1 for booleans, int/float for numbers, lowercase token for strings
    """
    if event_type == EventType.BOOLEAN:
        return 1 if str(raw or "").strip().lower() in ("true", "1") else 0
    if event_type == EventType.NUMBER:
        return parse_number(raw)
    return str(raw or "").strip().lower()


def is_placeholder(record: Union[EventValue, EventDataPoint]) -> bool:
    """True when a record was synthesized to fill a gap, not recorded."""
    if isinstance(record, EventDataPoint):
        return record.placeholder
    return record.id == PLACEHOLDER_ID


def fill_gaps(
    values: Iterable[EventValue],
    start: DateLike,
    end: DateLike,
    event_type: EventType,
    event_id: int,
) -> List[EventValue]:
    """
    Return a dense daily list over [start, end].

    Days without a stored value get the type default and PLACEHOLDER_ID.
    Values outside the range are dropped.
    """
    by_date = {v.date: v for v in values}
    default = TYPE_DEFAULTS[event_type]

    filled = []
    for day in days_between(start, end):
        existing = by_date.get(day)
        if existing is not None:
            filled.append(existing)
        else:
            filled.append(EventValue(event_id=event_id, date=day, value=default, id=PLACEHOLDER_ID))
    return filled


def normalize(
    event: Event,
    raw_values: Iterable[EventValue],
    date_range: Optional[Tuple[DateLike, DateLike]] = None,
) -> List[EventDataPoint]:
    """
    Normalize one event's raw values into data points.

    Args:
        event: Event the values belong to
        raw_values: Stored values for the event
        date_range: Optional (start, end); when given, gaps are filled first

    Returns:
        Data points sorted oldest to newest
    """
    values = list(raw_values)
    if date_range is not None:
        values = fill_gaps(values, date_range[0], date_range[1], event.type, event.id)

    points = [
        EventDataPoint(
            date=v.date,
            value=normalize_value(event.type, v.value),
            placeholder=v.id == PLACEHOLDER_ID,
        )
        for v in values
    ]
    points.sort(key=lambda p: p.date)
    return points


def is_tracked(point: EventDataPoint, event_type: EventType) -> bool:
    """
    Whether a point holds a real recorded value for its type.

    Boolean false and number 0 are meaningful recorded values; only
    placeholders and empty strings count as untracked.
    """
    if point.placeholder:
        return False
    if event_type == EventType.STRING:
        return str(point.value).strip() != ""
    if event_type == EventType.NUMBER:
        return isinstance(point.value, (int, float)) and not math.isnan(point.value)
    return point.value in (0, 1)


def is_completed(point: EventDataPoint, event_type: EventType) -> bool:
    """Whether a point counts as "done": true, positive, or non-empty."""
    if point.placeholder:
        return False
    if event_type == EventType.BOOLEAN:
        return point.value == 1
    if event_type == EventType.NUMBER:
        return isinstance(point.value, (int, float)) and point.value > 0
    return str(point.value).strip() != ""


def value_is_tracked(raw: EventValue) -> bool:
    """Raw-value variant of is_tracked, used on unfiltered dumps."""
    return not raw.is_placeholder and (raw.value or "").strip() != ""
