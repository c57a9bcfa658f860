"""
Pairwise pattern analyzer.

Scans every ordered pair of boolean/number events for:
- Threshold effects: "When Sleep > 7.2 hours, Mood is higher (7.5 vs 5.1)"
- Co-occurrence: "When Exercise happens, Meditation happens 80% of the time"

This is the lighter-weight scan; the bucket analyzer is the primary source
of patterns. Results share the same confidence floor and deduplication.
"""

from typing import Dict, List, Optional, Sequence

from ..models import Event, EventSeries, EventType, Pattern, PatternType
from .pattern_merger import MAX_CONFIDENCE, BASE_CONFIDENCE, calculate_strength, half_up, unit_suffix


class PairwisePatternAnalyzer:
    """Finds threshold and co-occurrence relationships between event pairs."""

    def __init__(
        self,
        min_data_points: int = 5,
        min_split_points: int = 3,
        min_percent_difference: float = 20.0,
        min_confidence: int = BASE_CONFIDENCE,
    ):
        """
        Initialize analyzer.

        Args:
            min_data_points: Minimum observations per event and common dates per pair
            min_split_points: Minimum days on each side of a threshold
            min_percent_difference: Smallest effect (relative to the mean) worth reporting
            min_confidence: Patterns below this confidence are dropped
        """
        self.min_data_points = min_data_points
        self.min_split_points = min_split_points
        self.min_percent_difference = min_percent_difference
        self.min_confidence = min_confidence

    def analyze(self, all_series: Sequence[EventSeries]) -> List[Pattern]:
        """
        Run both scans.

        Args:
            all_series: Series for every tracked event

        Returns:
            Patterns sorted by confidence (highest first)
        """
        numeric = [s for s in all_series if s.event.type != EventType.STRING]
        if len(numeric) < 2:
            return []

        values = {s.event.id: self._observations(s) for s in numeric}
        patterns: List[Pattern] = []

        for first in numeric:
            first_values = values[first.event.id]
            if len(first_values) < self.min_data_points:
                continue
            for threshold in self._thresholds(first.event, first_values):
                for second in numeric:
                    if second.event.id == first.event.id:
                        continue
                    second_values = values[second.event.id]
                    if len(second_values) < self.min_data_points:
                        continue
                    pattern = self._analyze_threshold(
                        first.event, first_values, threshold, second.event, second_values
                    )
                    if pattern:
                        patterns.append(pattern)

        for i, first in enumerate(numeric):
            for second in numeric[i + 1:]:
                pattern = self._analyze_co_occurrence(
                    first.event, values[first.event.id], second.event, values[second.event.id]
                )
                if pattern:
                    patterns.append(pattern)

        patterns = [p for p in patterns if p.confidence >= self.min_confidence]
        patterns.sort(key=lambda p: p.confidence, reverse=True)
        return patterns

    def _observations(self, series: EventSeries) -> Dict[str, float]:
        """Real values by date; numbers must be positive to count."""
        observations = {}
        for point in series.data_points:
            if point.placeholder:
                continue
            if series.event.type == EventType.NUMBER and point.value <= 0:
                continue
            observations[point.date] = point.value
        return observations

    def _thresholds(self, event: Event, observations: Dict[str, float]) -> List[float]:
        if event.type == EventType.BOOLEAN:
            return [0.5]
        average = sum(observations.values()) / len(observations)
        return [average, average * 0.7, average * 1.3]

    def _analyze_threshold(
        self,
        event1: Event,
        values1: Dict[str, float],
        threshold: float,
        event2: Event,
        values2: Dict[str, float],
    ) -> Optional[Pattern]:
        """
        Compare event2's mean on days event1 is above vs at-or-below threshold.

        Confidence is the percent difference relative to event2's overall
        mean, capped at 95.
        """
        common = [day for day in values1 if day in values2]
        if len(common) < self.min_data_points:
            return None

        above = [day for day in common if values1[day] > threshold]
        below = [day for day in common if values1[day] <= threshold]
        if len(above) < self.min_split_points or len(below) < self.min_split_points:
            return None

        avg_above = sum(values2[day] for day in above) / len(above)
        avg_below = sum(values2[day] for day in below) / len(below)
        overall = sum(values2.values()) / len(values2)
        if overall == 0:
            return None

        percent_difference = abs(avg_above - avg_below) / overall * 100
        if percent_difference < self.min_percent_difference:
            return None

        confidence = int(round(min(MAX_CONFIDENCE, percent_difference)))
        unit2 = unit_suffix(event2.unit)
        if event1.type == EventType.BOOLEAN:
            condition = "happens"
        else:
            condition = f"> {threshold:.1f}{unit_suffix(event1.unit)}"
        direction = "higher" if avg_above > avg_below else "lower"

        return Pattern(
            description=(
                f"When {event1.name} {condition}, {event2.name} is {direction} "
                f"({avg_above:.1f}{unit2} vs {avg_below:.1f}{unit2})"
            ),
            confidence=confidence,
            type=PatternType.THRESHOLD,
            events=[event1, event2],
            strength=calculate_strength(confidence),
            sample_size=len(common),
            details=f"{len(above)} days above, {len(below)} days at or below",
            metadata={"threshold": threshold, "avg_above": avg_above, "avg_below": avg_below},
        )

    def _analyze_co_occurrence(
        self,
        event1: Event,
        values1: Dict[str, float],
        event2: Event,
        values2: Dict[str, float],
    ) -> Optional[Pattern]:
        """
        Rate at which event2 happens on days event1 happens.

        Only pairs involving a boolean event are considered; rates between
        40% and 60% carry no signal and are skipped.
        """
        if EventType.BOOLEAN not in (event1.type, event2.type):
            return None

        common = [day for day in values1 if day in values2]
        if len(common) < self.min_data_points:
            return None

        happens = [day for day in common if values1[day] > 0.5]
        if len(happens) < self.min_split_points:
            return None

        both = [day for day in happens if values2[day] > 0.5]
        rate = len(both) / len(happens) * 100
        if 40 < rate < 60:
            return None

        confidence = int(round(min(MAX_CONFIDENCE, abs(rate - 50) + 50)))
        return Pattern(
            description=(
                f"When {event1.name} happens, {event2.name} happens {half_up(rate)}% of the time"
            ),
            confidence=confidence,
            type=PatternType.CO_OCCURRENCE,
            events=[event1, event2],
            strength=calculate_strength(confidence),
            sample_size=len(happens),
            details=f"Both on {len(both)} of {len(happens)} days",
            metadata={"rate": rate},
        )
