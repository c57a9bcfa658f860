#!/usr/bin/env python3
"""
Tests for the dashboard aggregator: concurrent loading, degradation,
deferred discovery, stale-pass protection and snapshot caching.
"""

import asyncio
import dataclasses
import logging
from datetime import date

import pytest

from Tracker.errors import DataSourceError
from Tracker.pattern_recognition.data_aggregator import (
    InsightsAggregator,
    SnapshotCache,
    TimeRange,
    event_set_version,
    filter_series_to_range,
    select_time_range,
)
from tests.fixtures.event_fixtures import (
    EXERCISE,
    SCENARIO_EXERCISE,
    SCENARIO_SLEEP,
    SLEEP,
    InMemoryAdapter,
    make_series,
    make_values,
    sleep_exercise_series,
)

TODAY = date(2024, 1, 15)
EVENTS = [EXERCISE, SLEEP]


def scenario_values():
    return (
        make_values(SLEEP, [str(v) for v in SCENARIO_SLEEP])
        + make_values(EXERCISE, ["true" if v else "false" for v in SCENARIO_EXERCISE])
    )


class FailingAdapter(InMemoryAdapter):
    """Raises for the listed event ids and, optionally, for the full dump."""

    def __init__(self, values, failing_ids=(), fail_all=False):
        super().__init__(values)
        self.failing_ids = set(failing_ids)
        self.fail_all = fail_all

    async def get_values_for_range(self, event_id, start_date, end_date):
        if event_id in self.failing_ids:
            raise DataSourceError("disk on fire", event_id=event_id)
        return await super().get_values_for_range(event_id, start_date, end_date)

    async def get_all_values(self):
        if self.fail_all:
            raise DataSourceError("dump unavailable")
        return await super().get_all_values()


class FlakyAdapter(InMemoryAdapter):
    """Fails the first read of each listed event id, then recovers."""

    def __init__(self, values, flaky_ids=(), retryable=True):
        super().__init__(values)
        self.flaky_ids = set(flaky_ids)
        self.retryable = retryable
        self.attempts = {}

    async def get_values_for_range(self, event_id, start_date, end_date):
        self.attempts[event_id] = self.attempts.get(event_id, 0) + 1
        if event_id in self.flaky_ids and self.attempts[event_id] == 1:
            raise DataSourceError("busy", event_id=event_id, retryable=self.retryable)
        return await super().get_values_for_range(event_id, start_date, end_date)


class GatedAdapter(InMemoryAdapter):
    """Blocks the first get_all_values call until the gate opens."""

    def __init__(self, values):
        super().__init__(values)
        self.entered = asyncio.Event()
        self.gate = asyncio.Event()

    async def get_all_values(self):
        self.calls["all"] += 1
        if self.calls["all"] == 1:
            self.entered.set()
            await self.gate.wait()
        return list(self.values)


@pytest.fixture
def aggregator(settings):
    return InsightsAggregator(InMemoryAdapter(scenario_values()), settings)


# ============================================================================
# Time ranges
# ============================================================================


class TestTimeRange:
    """Tests for range selection and filtering."""

    def test_days(self):
        assert [r.days for r in TimeRange] == [7, 30, 90, 365]

    def test_select_smallest_covering_range(self):
        assert select_time_range(sleep_exercise_series()) == TimeRange.MONTH
        assert select_time_range([make_series(SLEEP, [7] * 8)]) == TimeRange.WEEK
        assert select_time_range([make_series(SLEEP, [7] * 60)]) == TimeRange.QUARTER
        assert select_time_range([make_series(SLEEP, [7] * 120)]) == TimeRange.YEAR

    def test_select_without_data(self):
        assert select_time_range([make_series(SLEEP, [None, None])]) == TimeRange.MONTH

    def test_filter_to_last_week(self):
        filtered = filter_series_to_range(sleep_exercise_series(), TimeRange.WEEK)

        for series in filtered:
            assert [p.date for p in series.data_points][0] == "2024-01-09"
            assert len(series.data_points) == 7

    def test_filter_drops_inactive_days(self):
        series = [make_series(SLEEP, [7, None, 8]), make_series(EXERCISE, [1, None, 0])]

        filtered = filter_series_to_range(series, TimeRange.YEAR)

        assert [p.date for p in filtered[0].data_points] == ["2024-01-01", "2024-01-03"]

    def test_filter_without_data(self):
        filtered = filter_series_to_range([make_series(SLEEP, [None])], TimeRange.WEEK)
        assert filtered[0].data_points == []


# ============================================================================
# Snapshot cache
# ============================================================================


class TestSnapshotCache:
    """Tests for the LRU snapshot cache."""

    def test_evicts_least_recently_used(self):
        cache = SnapshotCache(max_entries=2)
        cache.put("a", None, "snap-a")
        cache.put("b", None, "snap-b")
        cache.get("a", None)
        cache.put("c", None, "snap-c")

        assert cache.get("b", None) is None
        assert cache.get("a", None) == "snap-a"
        assert len(cache) == 2

    def test_time_range_is_part_of_key(self):
        cache = SnapshotCache()
        cache.put("v", TimeRange.WEEK, "week")

        assert cache.get("v", TimeRange.MONTH) is None
        assert cache.get("v", TimeRange.WEEK) == "week"

    def test_keyed_by_reference_day(self):
        cache = SnapshotCache()
        cache.put("v", None, "monday", date(2024, 1, 15))

        assert cache.get("v", None, date(2024, 1, 16)) is None
        assert cache.get("v", None, date(2024, 1, 15)) == "monday"

    def test_invalidate(self):
        cache = SnapshotCache()
        cache.put("v", None, "x")
        cache.invalidate()
        assert len(cache) == 0

    def test_event_set_version_ignores_order_of_list(self):
        assert event_set_version([SLEEP, EXERCISE]) == event_set_version([EXERCISE, SLEEP])
        renamed = dataclasses.replace(SLEEP, name="Rest")
        assert event_set_version([renamed, EXERCISE]) != event_set_version([SLEEP, EXERCISE])


# ============================================================================
# Snapshot building
# ============================================================================


class TestBuildSnapshot:
    """Tests for a full computation pass."""

    @pytest.mark.asyncio
    async def test_full_snapshot(self, aggregator):
        snapshot = await aggregator.build_snapshot(EVENTS, today=TODAY)

        assert [e.name for e in snapshot.events] == ["Sleep", "Exercise"]
        assert snapshot.failed_event_ids == []
        assert snapshot.tracking_streak == 15
        assert snapshot.total_tracked_days == 15
        assert len(snapshot.heatmap) == 84
        assert len(snapshot.weekday_stats) == 7
        assert [p.description for p in snapshot.patterns] == ["Sleep 8-9 hours → Exercise 80%"]
        assert aggregator.latest_snapshot is snapshot
        assert snapshot.patterns_ready

    @pytest.mark.asyncio
    async def test_summary_window_defaults_to_weekday_window(self, aggregator):
        snapshot = await aggregator.build_snapshot(EVENTS, today=TODAY)

        exercise = next(s for s in snapshot.summary_stats if s.event.id == EXERCISE.id)
        assert exercise.window_days == 30
        assert exercise.completed_days == 9
        assert exercise.consistency == 50.0
        assert snapshot.global_consistency == 50.0

    @pytest.mark.asyncio
    async def test_time_range_window(self, aggregator):
        snapshot = await aggregator.build_snapshot(EVENTS, today=TODAY, time_range=TimeRange.WEEK)

        exercise = next(s for s in snapshot.summary_stats if s.event.id == EXERCISE.id)
        assert snapshot.time_range == TimeRange.WEEK
        assert exercise.window_days == 7
        assert exercise.completed_days == 1

    @pytest.mark.asyncio
    async def test_failed_event_degrades_to_no_data(self, settings):
        adapter = FailingAdapter(scenario_values(), failing_ids=[EXERCISE.id])
        aggregator = InsightsAggregator(adapter, settings)

        snapshot = await aggregator.build_snapshot(EVENTS, today=TODAY)

        assert snapshot.failed_event_ids == [EXERCISE.id]
        exercise_series = next(s for s in snapshot.series if s.event.id == EXERCISE.id)
        assert exercise_series.data_points == []
        sleep_stats = next(s for s in snapshot.summary_stats if s.event.id == SLEEP.id)
        assert sleep_stats.tracked_days == 15
        assert "DataSourceError" in settings.error_log.read_text()

    @pytest.mark.asyncio
    async def test_transient_failure_retried(self, settings, caplog):
        adapter = FlakyAdapter(scenario_values(), flaky_ids=[EXERCISE.id])
        aggregator = InsightsAggregator(adapter, settings)

        with caplog.at_level(logging.WARNING):
            snapshot = await aggregator.build_snapshot(EVENTS, today=TODAY)

        assert snapshot.failed_event_ids == []
        assert adapter.attempts[EXERCISE.id] == 2
        assert "Retrying Exercise" in caplog.text
        assert not settings.error_log.exists()

    @pytest.mark.asyncio
    async def test_permanent_failure_not_retried(self, settings):
        adapter = FlakyAdapter(scenario_values(), flaky_ids=[EXERCISE.id], retryable=False)
        aggregator = InsightsAggregator(adapter, settings)

        snapshot = await aggregator.build_snapshot(EVENTS, today=TODAY)

        assert snapshot.failed_event_ids == [EXERCISE.id]
        assert adapter.attempts[EXERCISE.id] == 1

    @pytest.mark.asyncio
    async def test_failed_dump_zeroes_tracking_streak(self, settings):
        aggregator = InsightsAggregator(FailingAdapter(scenario_values(), fail_all=True), settings)

        snapshot = await aggregator.build_snapshot(EVENTS, today=TODAY)

        assert snapshot.tracking_streak == 0
        assert snapshot.total_tracked_days == 0
        assert snapshot.summary_stats

    @pytest.mark.asyncio
    async def test_discovery_failure_yields_no_patterns(self, aggregator, mocker):
        mocker.patch(
            "Tracker.pattern_recognition.data_aggregator.discover_patterns",
            side_effect=RuntimeError("boom"),
        )

        snapshot = await aggregator.build_snapshot(EVENTS, today=TODAY)

        assert snapshot.patterns == []
        assert snapshot.summary_stats

    @pytest.mark.asyncio
    async def test_deferred_patterns(self, aggregator):
        snapshot = await aggregator.build_snapshot(EVENTS, today=TODAY, defer_patterns=True)

        assert snapshot.patterns_task is not None
        assert snapshot.summary_stats

        patterns = await snapshot.patterns_task

        assert snapshot.patterns_ready
        assert snapshot.patterns is patterns
        assert len(patterns) == 1

    @pytest.mark.asyncio
    async def test_pairwise_setting(self, settings):
        aggregator = InsightsAggregator(
            InMemoryAdapter(scenario_values()),
            dataclasses.replace(settings, pairwise_patterns=True),
        )

        snapshot = await aggregator.build_snapshot(EVENTS, today=TODAY)

        assert snapshot.patterns[0].confidence == 95

    @pytest.mark.asyncio
    async def test_pattern_delay(self, settings, mocker):
        sleep = mocker.patch(
            "Tracker.pattern_recognition.data_aggregator.asyncio.sleep",
            new=mocker.AsyncMock(),
        )
        aggregator = InsightsAggregator(
            InMemoryAdapter(scenario_values()),
            dataclasses.replace(settings, pattern_delay_seconds=0.5),
        )

        await aggregator.build_snapshot(EVENTS, today=TODAY)

        sleep.assert_awaited_once_with(0.5)

    @pytest.mark.asyncio
    async def test_stale_pass_does_not_commit(self, settings):
        adapter = GatedAdapter(scenario_values())
        aggregator = InsightsAggregator(adapter, settings)

        first_task = asyncio.create_task(aggregator.build_snapshot(EVENTS, today=TODAY))
        await adapter.entered.wait()

        second = await aggregator.build_snapshot(EVENTS, today=TODAY)
        adapter.gate.set()
        first = await first_task

        assert first.request_id == 1
        assert second.request_id == 2
        assert aggregator.latest_snapshot is second
        assert not aggregator.is_current(first.request_id)

    @pytest.mark.asyncio
    async def test_load_series_without_gap_filling(self, aggregator):
        series = await aggregator.load_series(EVENTS, date(2023, 12, 25), TODAY, complete=False)

        assert [s.event.id for s in series] == [EXERCISE.id, SLEEP.id]
        assert all(not p.placeholder for s in series for p in s.data_points)
        assert len(series[0].data_points) == 15

    @pytest.mark.asyncio
    async def test_close(self, aggregator):
        await aggregator.close()
        assert aggregator.adapter.closed


# ============================================================================
# Cached snapshots
# ============================================================================


class TestGetSnapshot:
    """Tests for snapshot memoisation."""

    @pytest.mark.asyncio
    async def test_cached_per_version_and_range(self, aggregator):
        first = await aggregator.get_snapshot(EVENTS, today=TODAY)
        again = await aggregator.get_snapshot(EVENTS, today=TODAY)
        week = await aggregator.get_snapshot(EVENTS, time_range=TimeRange.WEEK, today=TODAY)

        assert again is first
        assert week is not first
        assert aggregator.adapter.calls["all"] == 2

    @pytest.mark.asyncio
    async def test_new_reference_day_rebuilds(self, aggregator):
        first = await aggregator.get_snapshot(EVENTS, time_range=TimeRange.WEEK, today=TODAY)
        later = await aggregator.get_snapshot(
            EVENTS, time_range=TimeRange.WEEK, today=date(2024, 3, 1)
        )

        assert later is not first
        assert first.today == "2024-01-15"
        assert later.today == "2024-03-01"
        assert later.tracking_streak == 0

    @pytest.mark.asyncio
    async def test_invalidate_forces_rebuild(self, aggregator):
        first = await aggregator.get_snapshot(EVENTS, today=TODAY)
        aggregator.cache.invalidate()

        second = await aggregator.get_snapshot(EVENTS, today=TODAY)

        assert second is not first
        assert second.request_id == first.request_id + 1
