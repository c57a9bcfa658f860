#!/usr/bin/env python3
"""
Tests for the pattern discovery entry point.
"""

from Tracker.pattern_recognition.discovery import discover_patterns
from Tracker.pattern_recognition.models import PatternStrength, PatternType
from tests.fixtures.event_fixtures import (
    EXERCISE,
    MEDITATION,
    MOOD,
    SCENARIO_EXERCISE,
    SLEEP,
    make_series,
    sleep_exercise_series,
)


class TestDiscoverPatterns:
    """Tests for end-to-end discovery over in-memory series."""

    def test_sleep_exercise_scenario(self):
        """Test that overlapping bucket patterns reduce to the strongest story."""
        patterns = discover_patterns(sleep_exercise_series())

        assert len(patterns) == 1
        pattern = patterns[0]
        assert pattern.description == "Sleep 8-9 hours → Exercise 80%"
        assert pattern.confidence == 70
        assert pattern.strength == PatternStrength.MODERATE
        assert pattern.type == PatternType.THRESHOLD
        assert pattern.sample_size == 10

    def test_pairwise_opt_in(self):
        patterns = discover_patterns(sleep_exercise_series(), include_pairwise=True)

        assert len(patterns) == 1
        assert patterns[0].confidence == 95
        assert patterns[0].description.startswith("When Sleep > 7.5 hours, Exercise is higher")

    def test_confidence_bounds(self):
        series = sleep_exercise_series() + [
            make_series(MEDITATION, [1, 0, 1, 1, 1, 1, 0, 1, 1, 0, 0, 0, 1, 0, 0]),
            make_series(MOOD, ["happy"] * 10 + ["tired"] * 5),
        ]

        patterns = discover_patterns(series, include_pairwise=True)

        assert patterns
        assert all(65 <= p.confidence <= 95 for p in patterns)

    def test_certain_pairwise_rate_stays_below_certainty(self):
        series = sleep_exercise_series() + [
            make_series(MEDITATION, SCENARIO_EXERCISE),
        ]

        patterns = discover_patterns(series, include_pairwise=True)

        assert patterns
        assert patterns[0].confidence == 95
        assert all(65 <= p.confidence <= 95 for p in patterns)

    def test_limit(self):
        series = sleep_exercise_series() + [
            make_series(MOOD, ["happy"] * 10 + ["tired"] * 5),
        ]
        assert len(discover_patterns(series, limit=1)) <= 1

    def test_not_enough_events(self):
        assert discover_patterns([make_series(SLEEP, [5, 7, 9])]) == []
        assert discover_patterns([]) == []

    def test_no_numeric_anchor(self):
        series = [make_series(EXERCISE, [1, 1, 0]), make_series(MEDITATION, [1, 0, 0])]
        assert discover_patterns(series) == []
