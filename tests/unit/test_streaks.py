#!/usr/bin/env python3
"""
Tests for streaks, consistency, completion and tracking streak.
"""

from datetime import date

import pytest

from Tracker.pattern_recognition.models import (
    PLACEHOLDER_ID,
    EventDataPoint,
    EventType,
    EventValue,
    SummaryStats,
)
from Tracker.pattern_recognition.streaks import (
    build_summary_stats,
    compute_completion_rate,
    compute_consistency,
    compute_streaks,
    compute_tracking_streak,
    count_tracked_days,
    global_consistency,
)
from tests.fixtures.event_fixtures import EXERCISE, MOOD, SLEEP, make_points


# ============================================================================
# Streaks
# ============================================================================


class TestComputeStreaks:
    """Tests for current and best streak calculation."""

    def test_current_and_best(self):
        """Test [T,T,F,T,T,T] oldest to newest."""
        result = compute_streaks(make_points([1, 1, 0, 1, 1, 1]))

        assert result.current_streak == 3
        assert result.best_streak == 3

    def test_best_longer_than_current(self):
        result = compute_streaks(make_points([1, 1, 1, 1, 0, 1]))

        assert result.current_streak == 1
        assert result.best_streak == 4

    def test_ends_with_false(self):
        result = compute_streaks(make_points([1, 1, 0]))

        assert result.current_streak == 0
        assert result.best_streak == 2

    def test_empty(self):
        result = compute_streaks([])
        assert result.current_streak == 0
        assert result.best_streak == 0

    def test_placeholder_breaks_run(self):
        result = compute_streaks(make_points([1, 1, None, 1]))

        assert result.current_streak == 1
        assert result.best_streak == 2

    def test_missing_calendar_day_breaks_run(self):
        """Test that sparse input with a skipped day does not count as contiguous."""
        points = [
            EventDataPoint(date="2024-01-01", value=1),
            EventDataPoint(date="2024-01-02", value=1),
            EventDataPoint(date="2024-01-04", value=1),
        ]

        result = compute_streaks(points)

        assert result.current_streak == 1
        assert result.best_streak == 2

    def test_unsorted_input(self):
        points = list(reversed(make_points([1, 1, 0, 1, 1, 1])))
        result = compute_streaks(points)
        assert (result.current_streak, result.best_streak) == (3, 3)


# ============================================================================
# Consistency & completion
# ============================================================================


class TestConsistency:
    """Tests for consistency and completion percentages."""

    def test_all_placeholders_is_zero(self):
        points = make_points([None, None, None])
        assert compute_consistency(points, EventType.BOOLEAN) == 0.0

    def test_false_counts_as_tracked(self):
        points = make_points([1, 0, None, 1])
        assert compute_consistency(points, EventType.BOOLEAN) == 75.0

    def test_explicit_window(self):
        points = make_points([1, 1])
        assert compute_consistency(points, EventType.BOOLEAN, window_days=4) == 50.0

    def test_zero_window_is_zero(self):
        assert compute_consistency([], EventType.NUMBER) == 0.0
        assert compute_consistency([], EventType.NUMBER, window_days=0) == 0.0

    def test_bounded_when_window_smaller_than_points(self):
        points = make_points([1, 1, 1, 1])
        assert compute_consistency(points, EventType.BOOLEAN, window_days=2) == 100.0

    def test_custom_predicate(self):
        points = make_points([1, 0, 1, 0])
        result = compute_consistency(
            points, EventType.BOOLEAN,
            is_tracked_predicate=lambda p, t: p.value == 1,
        )
        assert result == 50.0

    def test_completion_rate_number(self):
        points = make_points([7, 0, None, 8])
        assert compute_completion_rate(points, EventType.NUMBER) == 50.0


# ============================================================================
# Summary stats
# ============================================================================


class TestBuildSummaryStats:
    """Tests for per-event summary cards."""

    def test_boolean(self):
        stats = build_summary_stats(EXERCISE, make_points([1, 1, 0, 1, 1, 1, None]))

        assert stats.window_days == 7
        assert stats.tracked_days == 6
        assert stats.completed_days == 5
        assert stats.current_streak == 0
        assert stats.best_streak == 3
        assert stats.average is None

    def test_number_ignores_non_positive(self):
        stats = build_summary_stats(SLEEP, make_points([6, 0, 8, None]))

        assert stats.average == 7
        assert stats.minimum == 6
        assert stats.maximum == 8
        assert stats.completion_rate == 50.0
        assert stats.consistency == 75.0

    def test_string_top_value(self):
        stats = build_summary_stats(MOOD, make_points(["happy", "tired", "happy", ""]))

        assert stats.top_value == "happy"
        assert stats.tracked_days == 3

    def test_invalid_percentage_rejected(self):
        with pytest.raises(ValueError):
            SummaryStats(
                event=SLEEP, window_days=1, tracked_days=1, completed_days=1,
                completion_rate=120.0, consistency=50.0,
            )

    def test_global_consistency(self):
        a = build_summary_stats(EXERCISE, make_points([1, 1, 1, 1]))
        b = build_summary_stats(SLEEP, make_points([7, None, None, None]))

        assert global_consistency([a, b]) == 62.5
        assert global_consistency([]) == 0.0


# ============================================================================
# Tracking streak
# ============================================================================


def _value(event, day, value="true", value_id=1):
    return EventValue(event_id=event.id, date=day, value=value, id=value_id)


class TestTrackingStreak:
    """Tests for the all-events tracking streak."""

    def test_consecutive_complete_days(self):
        values = [
            _value(EXERCISE, "2024-01-03"), _value(SLEEP, "2024-01-03", "7"),
            _value(EXERCISE, "2024-01-02", "false"), _value(SLEEP, "2024-01-02", "6"),
            _value(EXERCISE, "2024-01-01"),
        ]

        streak = compute_tracking_streak([EXERCISE, SLEEP], values, today=date(2024, 1, 3))

        assert streak == 2

    def test_incomplete_today_is_zero(self):
        values = [_value(EXERCISE, "2024-01-03")]
        assert compute_tracking_streak([EXERCISE, SLEEP], values, today=date(2024, 1, 3)) == 0

    def test_placeholders_and_empty_values_ignored(self):
        values = [
            _value(EXERCISE, "2024-01-03", value_id=PLACEHOLDER_ID),
            _value(SLEEP, "2024-01-03", ""),
        ]
        assert compute_tracking_streak([EXERCISE, SLEEP], values, today=date(2024, 1, 3)) == 0

    def test_no_events(self):
        assert compute_tracking_streak([], [], today=date(2024, 1, 3)) == 0

    def test_count_tracked_days(self):
        values = [
            _value(EXERCISE, "2024-01-01"),
            _value(SLEEP, "2024-01-01", "7"),
            _value(SLEEP, "2024-01-02", "7"),
            _value(SLEEP, "2024-01-05", ""),
            _value(MOOD, "2024-01-09", "ok"),
        ]
        assert count_tracked_days([EXERCISE, SLEEP], values) == 2
