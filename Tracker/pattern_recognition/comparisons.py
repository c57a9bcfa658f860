"""
Period comparator.

Compares an event's aggregate over two adjacent windows (this week vs last
week, this month vs last month) and classifies the change as up, down or
stable. String events have no meaningful average and are skipped.
"""

from datetime import date, timedelta
from typing import List, Optional, Sequence, Tuple

from .models import (
    Event,
    EventDataPoint,
    EventSeries,
    EventType,
    PeriodComparison,
    TrendDirection,
)
from .normalizer import to_date

# Changes smaller than this are floating-point noise, not a trend
TREND_EPSILON = 0.01


def period_average(points: Sequence[EventDataPoint], event_type: EventType) -> Optional[float]:
    """
    Aggregate one window of points.

    Returns:
        Boolean: percentage of true values (0.0 for an empty window)
        Number: mean of values > 0, or None when there are none
        String: None
    """
    if event_type == EventType.BOOLEAN:
        if not points:
            return 0.0
        true_count = sum(1 for p in points if not p.placeholder and p.value == 1)
        return true_count / len(points) * 100

    if event_type == EventType.NUMBER:
        values = [p.value for p in points if not p.placeholder and p.value > 0]
        if not values:
            return None
        return sum(values) / len(values)

    return None


def classify_trend(change: float) -> TrendDirection:
    """Three-way trend classification with a fixed epsilon."""
    if abs(change) < TREND_EPSILON:
        return TrendDirection.STABLE
    return TrendDirection.UP if change > 0 else TrendDirection.DOWN


def compare_averages(previous: float, current: float) -> Tuple[float, float, TrendDirection]:
    """
    Derive change, percent change and trend from two averages.

    Example:
        compare_averages(50, 50.005) → (0.005, 0.01, STABLE)
    """
    change = current - previous
    change_percent = change / previous * 100 if previous > 0 else 0.0
    return change, change_percent, classify_trend(change)


def compare_periods(
    event: Event,
    previous: Sequence[EventDataPoint],
    current: Sequence[EventDataPoint],
    period: str = "week",
) -> Optional[PeriodComparison]:
    """
    Compare an event across two windows.

    Args:
        event: Event being compared
        previous: Points of the earlier window
        current: Points of the later window
        period: Label for the comparison ("week" or "month")

    Returns:
        PeriodComparison, or None for string events. When either window has
        no qualifying numeric value, both averages are left as None.
    """
    if event.type == EventType.STRING:
        return None

    previous_avg = period_average(previous, event.type)
    current_avg = period_average(current, event.type)

    if previous_avg is None or current_avg is None:
        return PeriodComparison(
            event=event,
            period=period,
            previous_average=None,
            current_average=None,
            change=0.0,
            change_percent=0.0,
            trend=TrendDirection.STABLE,
        )

    change, change_percent, trend = compare_averages(previous_avg, current_avg)
    return PeriodComparison(
        event=event,
        period=period,
        previous_average=previous_avg,
        current_average=current_avg,
        change=change,
        change_percent=change_percent,
        trend=trend,
    )


def _slice(points: Sequence[EventDataPoint], start: date, end: date) -> List[EventDataPoint]:
    return [p for p in points if start <= to_date(p.date) <= end]


def _compare_windows(
    series: Sequence[EventSeries],
    previous_window: Tuple[date, date],
    current_window: Tuple[date, date],
    period: str,
) -> List[PeriodComparison]:
    comparisons = []
    for item in series:
        comparison = compare_periods(
            item.event,
            _slice(item.data_points, *previous_window),
            _slice(item.data_points, *current_window),
            period,
        )
        if comparison is None:
            continue
        comparison.previous_start = previous_window[0].isoformat()
        comparison.previous_end = previous_window[1].isoformat()
        comparison.current_start = current_window[0].isoformat()
        comparison.current_end = current_window[1].isoformat()
        comparisons.append(comparison)
    return comparisons


def week_windows(today: date) -> Tuple[Tuple[date, date], Tuple[date, date]]:
    """Rolling 7-day window ending today and the 7 days before it."""
    current_start = today - timedelta(days=6)
    previous_end = current_start - timedelta(days=1)
    return (previous_end - timedelta(days=6), previous_end), (current_start, today)


def month_windows(today: date) -> Tuple[Tuple[date, date], Tuple[date, date]]:
    """Current calendar month to date and the whole previous calendar month."""
    current_start = today.replace(day=1)
    previous_end = current_start - timedelta(days=1)
    return (previous_end.replace(day=1), previous_end), (current_start, today)


def compare_weeks(series: Sequence[EventSeries], today: Optional[date] = None) -> List[PeriodComparison]:
    """This week vs last week for every non-string event."""
    previous, current = week_windows(today or date.today())
    return _compare_windows(series, previous, current, "week")


def compare_months(series: Sequence[EventSeries], today: Optional[date] = None) -> List[PeriodComparison]:
    """This month vs last month for every non-string event."""
    previous, current = month_windows(today or date.today())
    return _compare_windows(series, previous, current, "month")
