"""Insights Engine

Derive statistics, comparisons, milestones and heuristic patterns from a
user's daily event history.
"""

from .models import (
    DAY_NAMES,
    PLACEHOLDER_ID,
    DayOfWeekStats,
    Event,
    EventDataPoint,
    EventSeries,
    EventType,
    EventValue,
    HeatmapCell,
    Milestone,
    MonthComparison,
    Pattern,
    PatternStrength,
    PatternType,
    PeriodComparison,
    RecommendedAction,
    StreakResult,
    SummaryStats,
    TrendDirection,
    WeekComparison,
)

from .normalizer import (
    fill_gaps,
    is_completed,
    is_placeholder,
    is_tracked,
    normalize,
    normalize_value,
    parse_number,
)

from .streaks import (
    build_summary_stats,
    compute_completion_rate,
    compute_consistency,
    compute_streaks,
    compute_tracking_streak,
    count_tracked_days,
    global_consistency,
)

from .comparisons import (
    compare_averages,
    compare_months,
    compare_periods,
    compare_weeks,
)

from .weekday import by_weekday, heatmap, intensity_tier

from .discovery import discover_patterns

from .milestones import generate_milestones, generate_recommendations

from .data_aggregator import (
    DashboardSnapshot,
    InsightsAggregator,
    SnapshotCache,
    TimeRange,
    filter_series_to_range,
    select_time_range,
)

__all__ = [
    # Models
    "DAY_NAMES",
    "PLACEHOLDER_ID",
    "DayOfWeekStats",
    "Event",
    "EventDataPoint",
    "EventSeries",
    "EventType",
    "EventValue",
    "HeatmapCell",
    "Milestone",
    "MonthComparison",
    "Pattern",
    "PatternStrength",
    "PatternType",
    "PeriodComparison",
    "RecommendedAction",
    "StreakResult",
    "SummaryStats",
    "TrendDirection",
    "WeekComparison",
    # Normalization
    "fill_gaps",
    "is_completed",
    "is_placeholder",
    "is_tracked",
    "normalize",
    "normalize_value",
    "parse_number",
    # Streaks & consistency
    "build_summary_stats",
    "compute_completion_rate",
    "compute_consistency",
    "compute_streaks",
    "compute_tracking_streak",
    "count_tracked_days",
    "global_consistency",
    # Comparisons
    "compare_averages",
    "compare_months",
    "compare_periods",
    "compare_weeks",
    # Weekday & heatmap
    "by_weekday",
    "heatmap",
    "intensity_tier",
    # Discovery
    "discover_patterns",
    # Milestones
    "generate_milestones",
    "generate_recommendations",
    # Aggregation
    "DashboardSnapshot",
    "InsightsAggregator",
    "SnapshotCache",
    "TimeRange",
    "filter_series_to_range",
    "select_time_range",
]
