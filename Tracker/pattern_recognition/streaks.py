"""
Streak and consistency calculator.

Computes, per event:
- Current and best streaks of consecutive true days (boolean events)
- Consistency: share of the window with a real recorded value
- Completion rate: share of the window where the event counts as done

And across all events, the global tracking streak: consecutive days,
counting back from today, on which every event has a real value.
"""

from collections import Counter, defaultdict
from datetime import date, timedelta
from typing import Callable, Dict, Iterable, Optional, Sequence

from .models import Event, EventDataPoint, EventType, EventValue, StreakResult, SummaryStats
from .normalizer import is_completed, is_tracked, to_date, value_is_tracked


def _is_true(point: EventDataPoint) -> bool:
    return not point.placeholder and point.value == 1


def _percentage(count: int, total: int) -> float:
    """count / total as a percentage in [0, 100]; 0 for an empty window."""
    if total <= 0:
        return 0.0
    return max(0.0, min(100.0, count / total * 100))


def compute_streaks(points: Sequence[EventDataPoint]) -> StreakResult:
    """
    Calculate current and best streaks for a boolean series.

    A false value, a placeholder, or a missing calendar day breaks a run.

    Args:
        points: Data points in any order

    Returns:
        StreakResult with current_streak (ending at the most recent point)
        and best_streak (longest run anywhere)

    Example:
        [T, T, F, T, T, T] (oldest → newest) → current 3, best 3
    """
    if not points:
        return StreakResult()

    ordered = sorted(points, key=lambda p: p.date)

    best = 0
    run = 0
    previous_day: Optional[date] = None
    for point in ordered:
        day = to_date(point.date)
        contiguous = previous_day is not None and day - previous_day == timedelta(days=1)
        if _is_true(point):
            run = run + 1 if contiguous else 1
        else:
            run = 0
        best = max(best, run)
        previous_day = day

    current = 0
    next_day: Optional[date] = None
    for point in reversed(ordered):
        day = to_date(point.date)
        if next_day is not None and next_day - day != timedelta(days=1):
            break
        if not _is_true(point):
            break
        current += 1
        next_day = day

    return StreakResult(current_streak=current, best_streak=best)


def compute_consistency(
    points: Sequence[EventDataPoint],
    event_type: EventType,
    window_days: Optional[int] = None,
    is_tracked_predicate: Optional[Callable[[EventDataPoint, EventType], bool]] = None,
) -> float:
    """
    Percentage of the window holding a real recorded value.

    Args:
        points: Data points for the window
        event_type: Type of the event
        window_days: Window length; defaults to len(points)
        is_tracked_predicate: Override for the "really recorded" rule

    Returns:
        Consistency between 0 and 100 (0 for a zero-length window)
    """
    predicate = is_tracked_predicate or is_tracked
    window = len(points) if window_days is None else window_days
    tracked = sum(1 for p in points if predicate(p, event_type))
    return _percentage(tracked, window)


def compute_completion_rate(
    points: Sequence[EventDataPoint],
    event_type: EventType,
    window_days: Optional[int] = None,
) -> float:
    """Percentage of the window where the event counts as done."""
    window = len(points) if window_days is None else window_days
    completed = sum(1 for p in points if is_completed(p, event_type))
    return _percentage(completed, window)


def compute_tracking_streak(
    events: Iterable[Event],
    all_values: Iterable[EventValue],
    today: Optional[date] = None,
) -> int:
    """
    Count consecutive days, back from today, on which every event was tracked.

    Args:
        events: All tracked events
        all_values: Unfiltered value dump (placeholders are ignored)
        today: Reference day (defaults to date.today())

    Returns:
        Streak length in days; 0 if today is incomplete or there are no events
    """
    event_ids = {event.id for event in events}
    if not event_ids:
        return 0

    tracked_by_date: Dict[str, set] = defaultdict(set)
    for value in all_values:
        if value.event_id in event_ids and value_is_tracked(value):
            tracked_by_date[value.date].add(value.event_id)

    day = today or date.today()
    streak = 0
    while tracked_by_date.get(day.isoformat(), set()) >= event_ids:
        streak += 1
        day -= timedelta(days=1)
    return streak


def build_summary_stats(
    event: Event,
    points: Sequence[EventDataPoint],
    window_days: Optional[int] = None,
) -> SummaryStats:
    """
    Build the rolling statistics card for one event.

    Args:
        event: Event being summarized
        points: Dense (gap-filled) series for the window
        window_days: Window length; defaults to len(points)

    Returns:
        SummaryStats for the event
    """
    window = len(points) if window_days is None else window_days
    tracked = [p for p in points if is_tracked(p, event.type)]
    completed_days = sum(1 for p in points if is_completed(p, event.type))

    stats = SummaryStats(
        event=event,
        window_days=window,
        tracked_days=len(tracked),
        completed_days=completed_days,
        completion_rate=_percentage(completed_days, window),
        consistency=compute_consistency(points, event.type, window),
    )

    if event.type == EventType.BOOLEAN:
        streaks = compute_streaks(points)
        stats.current_streak = streaks.current_streak
        stats.best_streak = streaks.best_streak
    elif event.type == EventType.NUMBER:
        positive = [p.value for p in tracked if p.value > 0]
        if positive:
            stats.average = sum(positive) / len(positive)
            stats.minimum = min(positive)
            stats.maximum = max(positive)
    else:
        counts = Counter(str(p.value) for p in tracked)
        if counts:
            stats.top_value = counts.most_common(1)[0][0]

    return stats


def global_consistency(summaries: Sequence[SummaryStats]) -> float:
    """Mean consistency across events (0 when there are none)."""
    if not summaries:
        return 0.0
    return sum(s.consistency for s in summaries) / len(summaries)


def count_tracked_days(events: Iterable[Event], all_values: Iterable[EventValue]) -> int:
    """Number of distinct days on which at least one event was tracked."""
    event_ids = {event.id for event in events}
    return len({v.date for v in all_values if v.event_id in event_ids and value_is_tracked(v)})
