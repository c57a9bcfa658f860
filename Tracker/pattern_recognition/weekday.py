"""
Day-of-week and heatmap aggregation.

Buckets recent history by weekday to rank days by completion rate, and by
calendar day to produce a fixed-length activity series for a heatmap.
"""

from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence

from .models import DAY_NAMES, DayOfWeekStats, EventSeries, HeatmapCell
from .normalizer import is_completed

HEATMAP_TIERS = 5


def weekday_index(day: date) -> int:
    """Weekday with 0=Sunday … 6=Saturday."""
    return (day.weekday() + 1) % 7


def _window_days(window_days: int, today: Optional[date]) -> List[date]:
    end = today or date.today()
    return [end - timedelta(days=offset) for offset in range(window_days - 1, -1, -1)]


def _completed_lookup(series: EventSeries) -> Dict[str, bool]:
    return {p.date: is_completed(p, series.event.type) for p in series.data_points}


def by_weekday(
    all_series: Sequence[EventSeries],
    window_days: int = 30,
    today: Optional[date] = None,
) -> List[DayOfWeekStats]:
    """
    Rank weekdays by completion rate over the last N days.

    Every (event, day) pair adds one to that weekday's total; it also adds
    one to completed when the event counts as done that day.

    Args:
        all_series: Series for every tracked event
        window_days: Number of days to look back (inclusive of today)
        today: Reference day (defaults to date.today())

    Returns:
        Seven DayOfWeekStats sorted by completion rate, highest first;
        ties keep Sunday-first weekday order
    """
    stats = [DayOfWeekStats(day_index=i, day_name=DAY_NAMES[i]) for i in range(7)]
    lookups = [_completed_lookup(s) for s in all_series]

    for day in _window_days(window_days, today):
        bucket = stats[weekday_index(day)]
        key = day.isoformat()
        for lookup in lookups:
            bucket.total += 1
            if lookup.get(key, False):
                bucket.completed += 1

    return sorted(stats, key=lambda s: s.completion_rate, reverse=True)


def heatmap(
    all_series: Sequence[EventSeries],
    window_days: int = 84,
    today: Optional[date] = None,
) -> List[HeatmapCell]:
    """
    Daily count of completed events, oldest day first.

    Returns:
        Exactly window_days cells with count in 0..len(all_series)
    """
    lookups = [_completed_lookup(s) for s in all_series]
    cells = []
    for day in _window_days(window_days, today):
        key = day.isoformat()
        cells.append(HeatmapCell(date=key, count=sum(1 for lookup in lookups if lookup.get(key, False))))
    return cells


def intensity_tier(count: int, total_events: int) -> int:
    """Map a heatmap count onto one of five visual tiers (0-4)."""
    if total_events <= 0 or count <= 0:
        return 0
    ratio = min(1.0, count / total_events)
    return max(1, min(HEATMAP_TIERS - 1, round(ratio * (HEATMAP_TIERS - 1))))
