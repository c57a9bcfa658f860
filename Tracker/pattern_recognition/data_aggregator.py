"""
Data aggregator for the insights engine.

Loads every tracked event's history from a value source and assembles the
dashboard snapshot:
- Summary statistics, week/month comparisons
- Weekday ranking and activity heatmap
- Tracking streak, milestones and recommendations
- Discovered patterns (CPU-bound, run on a worker thread and optionally
  deferred so the rest of the snapshot is available first)

Per-event reads are independent, so they are fanned out concurrently and
awaited together. A read failure degrades that event to "no data" instead of
failing the whole pass.
"""

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Hashable, List, Optional, Sequence, Tuple

from ..config import Settings
from ..error_logger import log_error, log_warning
from ..errors import is_retryable_error
from .analyzers.bucket_patterns import active_dates
from .comparisons import compare_months, compare_weeks
from .discovery import discover_patterns
from .milestones import generate_milestones, generate_recommendations
from .models import (
    DayOfWeekStats,
    Event,
    EventSeries,
    EventValue,
    HeatmapCell,
    Milestone,
    Pattern,
    PeriodComparison,
    RecommendedAction,
    SummaryStats,
)
from .normalizer import normalize, to_date
from .streaks import build_summary_stats, compute_tracking_streak, count_tracked_days, global_consistency
from .weekday import by_weekday, heatmap

if TYPE_CHECKING:
    from ..adapters.base import ValueSourceAdapter

logger = logging.getLogger(__name__)

FETCH_ATTEMPTS = 2


class TimeRange(Enum):
    """Selectable history windows."""
    WEEK = "7d"
    MONTH = "30d"
    QUARTER = "90d"
    YEAR = "365d"

    @property
    def days(self) -> int:
        return int(self.value[:-1])


def select_time_range(all_series: Sequence[EventSeries]) -> TimeRange:
    """
    Smallest range covering the span of dates with real data.

    Spans up to 7 days → 7d, up to 30 → 30d, up to 90 → 90d, else 365d.
    Without any data the 30-day default is returned.
    """
    dates = sorted(active_dates(all_series))
    if not dates:
        return TimeRange.MONTH

    span = (to_date(dates[-1]) - to_date(dates[0])).days
    for time_range in (TimeRange.WEEK, TimeRange.MONTH, TimeRange.QUARTER):
        if span <= time_range.days:
            return time_range
    return TimeRange.YEAR


def filter_series_to_range(
    all_series: Sequence[EventSeries],
    time_range: TimeRange,
) -> List[EventSeries]:
    """
    Restrict every series to the last `time_range` days of real data.

    The window ends at the newest active date, never starts before the
    oldest one, and keeps only active dates (days on which at least one
    event was really tracked).
    """
    dates = active_dates(all_series)
    if not dates:
        return [EventSeries(event=s.event, data_points=[]) for s in all_series]

    oldest, newest = min(dates), max(dates)
    cutoff = (to_date(newest) - timedelta(days=time_range.days - 1)).isoformat()
    cutoff = max(cutoff, oldest)

    return [
        EventSeries(
            event=s.event,
            data_points=[p for p in s.data_points if p.date >= cutoff and p.date in dates],
        )
        for s in all_series
    ]


def event_set_version(events: Sequence[Event]) -> Tuple:
    """Hashable identity of an event set, used as a cache key component."""
    return tuple(sorted((e.id, e.type.value, e.order, e.name, e.unit or "") for e in events))


@dataclass
class DashboardSnapshot:
    """Everything the presentation layer renders for one pass."""
    request_id: int
    today: str
    events: List[Event]
    series: List[EventSeries]
    summary_stats: List[SummaryStats] = field(default_factory=list)
    week_comparisons: List[PeriodComparison] = field(default_factory=list)
    month_comparisons: List[PeriodComparison] = field(default_factory=list)
    weekday_stats: List[DayOfWeekStats] = field(default_factory=list)
    heatmap: List[HeatmapCell] = field(default_factory=list)
    tracking_streak: int = 0
    total_tracked_days: int = 0
    global_consistency: float = 0.0
    milestones: List[Milestone] = field(default_factory=list)
    recommendations: List[RecommendedAction] = field(default_factory=list)
    patterns: List[Pattern] = field(default_factory=list)
    patterns_task: Optional["asyncio.Task"] = None
    time_range: Optional[TimeRange] = None
    failed_event_ids: List[int] = field(default_factory=list)

    @property
    def patterns_ready(self) -> bool:
        return self.patterns_task is None or self.patterns_task.done()


class SnapshotCache:
    """
    Memoises snapshots by (event set version, time range, reference day).

    Least recently used entries are evicted beyond max_entries.
    """

    def __init__(self, max_entries: int = 8):
        self.max_entries = max_entries
        self._entries: "OrderedDict[Tuple[Hashable, Optional[TimeRange], Optional[date]], DashboardSnapshot]" = OrderedDict()

    def get(
        self,
        version: Hashable,
        time_range: Optional[TimeRange],
        today: Optional[date] = None,
    ) -> Optional[DashboardSnapshot]:
        key = (version, time_range, today)
        snapshot = self._entries.get(key)
        if snapshot is not None:
            self._entries.move_to_end(key)
        return snapshot

    def put(
        self,
        version: Hashable,
        time_range: Optional[TimeRange],
        snapshot: DashboardSnapshot,
        today: Optional[date] = None,
    ):
        key = (version, time_range, today)
        self._entries[key] = snapshot
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def invalidate(self):
        """Drop every entry (values changed)."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def _window(series: EventSeries, today: date, days: int) -> List:
    start = (today - timedelta(days=days - 1)).isoformat()
    end = today.isoformat()
    return [p for p in series.data_points if start <= p.date <= end]


class InsightsAggregator:
    """
    Builds dashboard snapshots from a value source.

    Each call to build_snapshot gets a monotonically increasing request id;
    only the newest pass may commit `latest_snapshot`, so a slow older pass
    can never overwrite a newer one.
    """

    def __init__(self, adapter: "ValueSourceAdapter", settings: Optional[Settings] = None):
        """
        Initialize the aggregator.

        Args:
            adapter: Source of stored values
            settings: Runtime settings (defaults to Settings())
        """
        self.adapter = adapter
        self.settings = settings or Settings()
        self.cache = SnapshotCache()
        self.latest_snapshot: Optional[DashboardSnapshot] = None
        self._request_counter = 0

    def _next_request_id(self) -> int:
        self._request_counter += 1
        return self._request_counter

    def is_current(self, request_id: int) -> bool:
        """Whether no newer pass has started since request_id."""
        return request_id == self._request_counter

    async def _read_values(
        self, event: Event, start: date, end: date, complete: bool
    ) -> List[EventValue]:
        if complete:
            return await self.adapter.get_values_for_range_complete(
                event.id, start.isoformat(), end.isoformat(), event.type
            )
        return await self.adapter.get_values_for_range(
            event.id, start.isoformat(), end.isoformat()
        )

    async def _fetch_series(
        self, event: Event, start: date, end: date, complete: bool
    ) -> Tuple[EventSeries, bool]:
        """Read one event's values, retrying transient failures once."""
        for attempt in range(1, FETCH_ATTEMPTS + 1):
            try:
                raw = await self._read_values(event, start, end, complete)
            except Exception as e:
                if attempt < FETCH_ATTEMPTS and is_retryable_error(e):
                    log_warning(
                        "data_aggregator",
                        f"Retrying {event.name} (id={event.id}) after attempt {attempt}: {e}",
                    )
                    continue
                log_error(
                    "data_aggregator", e, f"Fetching values for {event.name} (id={event.id})",
                    log_file=self.settings.error_log,
                )
                return EventSeries(event=event, data_points=[]), False
            return EventSeries(event=event, data_points=normalize(event, raw)), True

    async def load_series(
        self,
        events: Sequence[Event],
        start: date,
        end: date,
        complete: bool = True,
    ) -> List[EventSeries]:
        """
        Fetch and normalize every event's values concurrently.

        Args:
            events: Events to load
            start: First day (inclusive)
            end: Last day (inclusive)
            complete: Fill gaps with placeholders

        Returns:
            One series per event, in input order; failed reads yield empty series
        """
        results = await asyncio.gather(
            *(self._fetch_series(event, start, end, complete) for event in events)
        )
        return [series for series, _ in results]

    async def _load_all_values(self) -> List[EventValue]:
        try:
            return await self.adapter.get_all_values()
        except Exception as e:
            log_error(
                "data_aggregator", e, "Fetching all values for tracking streak",
                log_file=self.settings.error_log,
            )
            return []

    async def discover(self, all_series: Sequence[EventSeries]) -> List[Pattern]:
        """
        Run pattern discovery on a worker thread.

        Waits pattern_delay_seconds first so quicker results render before
        the CPU-bound scan starts.
        """
        if self.settings.pattern_delay_seconds > 0:
            await asyncio.sleep(self.settings.pattern_delay_seconds)
        return await asyncio.to_thread(
            discover_patterns, list(all_series), self.settings.pairwise_patterns
        )

    async def _complete_patterns(
        self, snapshot: DashboardSnapshot, all_series: Sequence[EventSeries]
    ) -> List[Pattern]:
        try:
            patterns = await self.discover(all_series)
        except Exception as e:
            log_error(
                "data_aggregator", e, "Discovering patterns",
                log_file=self.settings.error_log,
            )
            patterns = []
        snapshot.patterns = patterns
        return patterns

    def _commit(self, snapshot: DashboardSnapshot) -> bool:
        if not self.is_current(snapshot.request_id):
            logger.debug(
                "Dropping stale snapshot %d (latest request %d)",
                snapshot.request_id, self._request_counter,
            )
            return False
        self.latest_snapshot = snapshot
        return True

    async def build_snapshot(
        self,
        events: Sequence[Event],
        today: Optional[date] = None,
        defer_patterns: bool = False,
        time_range: Optional[TimeRange] = None,
    ) -> DashboardSnapshot:
        """
        Run one full computation pass.

        Args:
            events: Tracked events
            today: Reference day (defaults to date.today())
            defer_patterns: Return before discovery finishes; await
                snapshot.patterns_task for the patterns
            time_range: Window for summary statistics and pattern discovery;
                None uses weekday_window for statistics and the whole
                lookback for discovery

        Returns:
            DashboardSnapshot (committed as latest_snapshot unless a newer
            pass started meanwhile)
        """
        request_id = self._next_request_id()
        today = today or date.today()
        ordered = sorted(events, key=lambda e: e.order)
        start = today - timedelta(days=self.settings.lookback_days - 1)

        fetched, all_values = await asyncio.gather(
            asyncio.gather(*(self._fetch_series(e, start, today, True) for e in ordered)),
            self._load_all_values(),
        )
        series = [s for s, _ in fetched]
        failed = [s.event.id for s, ok in fetched if not ok]

        stats_days = time_range.days if time_range else self.settings.weekday_window
        summary_stats = [
            build_summary_stats(s.event, _window(s, today, stats_days), stats_days)
            for s in series
        ]

        tracking_streak = compute_tracking_streak(ordered, all_values, today)
        total_days = count_tracked_days(ordered, all_values)
        weekday_stats = by_weekday(series, self.settings.weekday_window, today)

        snapshot = DashboardSnapshot(
            request_id=request_id,
            today=today.isoformat(),
            events=list(ordered),
            series=series,
            summary_stats=summary_stats,
            week_comparisons=compare_weeks(series, today),
            month_comparisons=compare_months(series, today),
            weekday_stats=weekday_stats,
            heatmap=heatmap(series, self.settings.heatmap_window, today),
            tracking_streak=tracking_streak,
            total_tracked_days=total_days,
            global_consistency=global_consistency(summary_stats),
            milestones=generate_milestones(summary_stats, tracking_streak, total_days),
            recommendations=generate_recommendations(summary_stats, weekday_stats),
            time_range=time_range,
            failed_event_ids=failed,
        )

        pattern_series = filter_series_to_range(series, time_range) if time_range else series
        if defer_patterns:
            snapshot.patterns_task = asyncio.create_task(
                self._complete_patterns(snapshot, pattern_series)
            )
        else:
            await self._complete_patterns(snapshot, pattern_series)

        self._commit(snapshot)
        logger.info(
            "Snapshot %d: %d events, %d failed, %d patterns%s",
            request_id, len(ordered), len(failed), len(snapshot.patterns),
            " (deferred)" if defer_patterns else "",
        )
        return snapshot

    async def get_snapshot(
        self,
        events: Sequence[Event],
        time_range: Optional[TimeRange] = None,
        today: Optional[date] = None,
    ) -> DashboardSnapshot:
        """Cached build_snapshot keyed by (event set version, time range, day)."""
        today = today or date.today()
        version = event_set_version(events)
        cached = self.cache.get(version, time_range, today)
        if cached is not None:
            return cached
        snapshot = await self.build_snapshot(events, today=today, time_range=time_range)
        self.cache.put(version, time_range, snapshot, today)
        return snapshot

    async def close(self):
        """Close the underlying value source."""
        await self.adapter.close()
