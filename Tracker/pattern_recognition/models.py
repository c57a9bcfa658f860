"""Data models for the insights engine.

This module defines the events a user tracks, the raw values read from
persistence, the normalized data points every analyzer consumes, and the
output structures (statistics, comparisons, patterns, milestones) handed to
the presentation layer.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

# Marks a gap-filled value that was never recorded by the user
PLACEHOLDER_ID = -1

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


class EventType(Enum):
    """Value type of a tracked event."""
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"


class PatternType(Enum):
    """Kinds of discovered patterns."""
    CO_OCCURRENCE = "co-occurrence"
    THRESHOLD = "threshold"
    CORRELATION = "correlation"
    SEQUENTIAL = "sequential"
    CONDITIONAL = "conditional"


class PatternStrength(Enum):
    """Qualitative label derived from a pattern's confidence."""
    WEAK = "weak"
    MODERATE = "moderate"
    STRONG = "strong"
    VERY_STRONG = "very-strong"


class TrendDirection(Enum):
    """Direction of a period-over-period change."""
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


@dataclass(frozen=True)
class Event:
    """A user-defined tracked quantity.

    Examples:
        - Event(id=1, name="Sleep", type=EventType.NUMBER, unit="hours")
        - Event(id=2, name="Exercise", type=EventType.BOOLEAN)
    """
    id: int
    name: str
    type: EventType
    unit: Optional[str] = None
    color: str = "#3b82f6"
    order: int = 0
    icon: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.type, str):
            object.__setattr__(self, "type", EventType(self.type))


@dataclass
class EventValue:
    """One stored observation, exactly as persistence returns it."""
    event_id: int
    date: str  # YYYY-MM-DD
    value: str
    id: int = 0
    timestamp: Optional[str] = None  # last write, ISO format

    @property
    def is_placeholder(self) -> bool:
        return self.id == PLACEHOLDER_ID


Value = Union[int, float, str]


@dataclass
class EventDataPoint:
    """Normalized per-day value exchanged between analyzers."""
    date: str
    value: Value
    placeholder: bool = False


@dataclass
class EventSeries:
    """All data points of one event for a computation pass."""
    event: Event
    data_points: List[EventDataPoint] = field(default_factory=list)


@dataclass
class StreakResult:
    """Current and best run of consecutive true days."""
    current_streak: int = 0
    best_streak: int = 0


@dataclass
class SummaryStats:
    """Rolling statistics for a single event over the loaded window."""
    event: Event
    window_days: int
    tracked_days: int
    completed_days: int
    completion_rate: float  # 0-100
    consistency: float  # 0-100
    current_streak: int = 0
    best_streak: int = 0
    average: Optional[float] = None  # numeric events only, values > 0
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    top_value: Optional[str] = None  # string events only

    def __post_init__(self):
        """Validate percentages."""
        for name, value in [("completion_rate", self.completion_rate), ("consistency", self.consistency)]:
            if not 0.0 <= value <= 100.0:
                raise ValueError(f"{name} must be between 0 and 100")


@dataclass
class PeriodComparison:
    """Aggregate of one event over two adjacent windows.

    Examples:
        - "Exercise: 43% → 71% this week (up)"
        - "Sleep: 7.4 → 7.1 hours this month (down)"
    """
    event: Event
    period: str  # "week" or "month"
    previous_average: Optional[float]
    current_average: Optional[float]
    change: float
    change_percent: float
    trend: TrendDirection
    previous_start: Optional[str] = None
    previous_end: Optional[str] = None
    current_start: Optional[str] = None
    current_end: Optional[str] = None

    @property
    def has_data(self) -> bool:
        return self.previous_average is not None and self.current_average is not None


WeekComparison = PeriodComparison
MonthComparison = PeriodComparison


@dataclass
class DayOfWeekStats:
    """Completion counters for one weekday (0=Sunday)."""
    day_index: int
    day_name: str
    total: int = 0
    completed: int = 0

    @property
    def completion_rate(self) -> float:
        if self.total == 0:
            return 0.0
        return self.completed / self.total * 100


@dataclass
class HeatmapCell:
    """Number of events completed on a single day."""
    date: str
    count: int


@dataclass
class Pattern:
    """A discovered, heuristically-scored association between events.

    Examples:
        - "Sleep 7-9 hours → Exercise 80% → Mood 6-9"
        - "NOT Exercise → Sleep 5-7 hours → No Meditation 75%"
    """
    description: str
    confidence: int  # 0-100
    type: PatternType
    events: List[Event]
    strength: PatternStrength
    sample_size: int
    details: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Validate confidence."""
        if not 0 <= self.confidence <= 100:
            raise ValueError("Confidence must be between 0 and 100")

    @property
    def event_ids(self) -> set:
        return {event.id for event in self.events}


@dataclass
class Milestone:
    """An achievement tier and whether the user has reached it."""
    id: str
    category: str  # streak, consistency, total_days, tracking_streak
    title: str
    description: str
    threshold: int
    current_value: float
    achieved: bool

    @property
    def progress(self) -> float:
        """Fraction of the threshold reached, capped at 1.0."""
        if self.threshold <= 0:
            return 1.0
        return min(1.0, self.current_value / self.threshold)


@dataclass
class RecommendedAction:
    """Free-text nudge derived from the computed statistics."""
    kind: str  # best_weekday, improve_consistency, keep_streak
    title: str
    message: str
    priority: int = 2  # 1 = highest
    event: Optional[Event] = None
