"""
Bucketed-range pattern analyzer.

Anchors analysis on conditions and summarizes every other event under each
condition:
- Numeric anchor: the first number event (by order) split into three
  equal-width value buckets (low / mid / high)
- Boolean anchors: every boolean event split into its true and false days

An outcome is kept only when it tells a clear story (strongly skewed boolean
rate, meaningful numeric values, dominant string values). The raw bucket
patterns produced here are merged and deduplicated by pattern_merger.
"""

import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from ..models import Event, EventDataPoint, EventSeries, EventType, PatternType
from ..normalizer import is_tracked

MIN_PRIMARY_POINTS = 3
MIN_BUCKET_DAYS = 2
MIN_BUCKET_RANGE = 1.0

BOOLEAN_HIGH_RATE = 70.0
BOOLEAN_LOW_RATE = 30.0

NUMBER_NOISE_SPREAD = 0.5
NUMBER_MIN_MEAN = 0.1

STRING_MIN_SHARE = 15.0
STRING_TOP_VALUES = 3


@dataclass
class PatternPart:
    """One segment of a pattern chain: the anchor or a single outcome."""
    event: Event
    direction: str  # "yes", "no", "number", or the top string value
    rate: Optional[float] = None  # boolean true-rate, 0-100
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    average: Optional[float] = None
    shares: Dict[str, float] = field(default_factory=dict)  # string value -> share %

    @property
    def signature(self) -> str:
        return f"{self.event.id}:{self.direction}"


@dataclass
class BucketPattern:
    """Anchor condition plus the outcomes observed on its days."""
    anchor: PatternPart
    outcomes: List[PatternPart]
    sample_size: int
    pattern_type: PatternType
    label: str  # low / mid / high / true / false

    @property
    def signature(self) -> str:
        """Ordered (event, direction) sequence shared by patterns telling the same story."""
        return "→".join(part.signature for part in [self.anchor, *self.outcomes])


@dataclass
class Bucket:
    """Value range of the numeric anchor and the dates falling in it."""
    name: str
    minimum: float
    maximum: float
    dates: List[str] = field(default_factory=list)


def _lookup(series: EventSeries) -> Dict[str, EventDataPoint]:
    return {p.date: p for p in series.data_points}


def active_dates(all_series: Sequence[EventSeries]) -> set:
    """Dates on which at least one event holds a real tracked value."""
    dates = set()
    for series in all_series:
        for point in series.data_points:
            if is_tracked(point, series.event.type):
                dates.add(point.date)
    return dates


def select_primary(all_series: Sequence[EventSeries]) -> Optional[EventSeries]:
    """First number event by display order."""
    for series in sorted(all_series, key=lambda s: s.event.order):
        if series.event.type == EventType.NUMBER:
            return series
    return None


def positive_observations(series: EventSeries) -> List[Tuple[str, float]]:
    """(date, value) pairs of real values greater than zero, oldest first."""
    return [
        (p.date, p.value)
        for p in sorted(series.data_points, key=lambda p: p.date)
        if not p.placeholder and isinstance(p.value, (int, float)) and p.value > 0
    ]


def build_buckets(observations: Sequence[Tuple[str, float]]) -> List[Bucket]:
    """
    Split observations into three equal-width value buckets.

    Integer-valued series get integer boundaries so a naturally discrete
    quantity is never presented with fractional thresholds.

    Returns:
        [low, mid, high] buckets, or [] when the range spans less than one unit
    """
    if not observations:
        return []

    values = [value for _, value in observations]
    low, high = min(values), max(values)
    span = high - low
    if span < MIN_BUCKET_RANGE:
        return []

    width = span / 3
    if all(float(v).is_integer() for v in values):
        bounds = [
            math.floor(low),
            math.ceil(low + width),
            math.ceil(low + width * 2),
            math.ceil(high),
        ]
    else:
        bounds = [low, low + width, low + width * 2, high]

    buckets = [
        Bucket("low", bounds[0], bounds[1]),
        Bucket("mid", bounds[1], bounds[2]),
        Bucket("high", bounds[2], bounds[3]),
    ]
    for day, value in observations:
        if value < buckets[0].maximum:
            buckets[0].dates.append(day)
        elif value < buckets[1].maximum:
            buckets[1].dates.append(day)
        else:
            buckets[2].dates.append(day)
    return buckets


def _split_tokens(value: str) -> List[str]:
    return [token.strip().lower() for token in str(value).split(",") if token.strip()]


def summarize_outcome(
    event: Event,
    lookup: Dict[str, EventDataPoint],
    dates: Sequence[str],
) -> Optional[PatternPart]:
    """
    Summarize one event over a set of dates.

    Boolean: kept when the true-rate is >= 70% ("yes") or <= 30% ("no");
        a missing day counts as false.
    Number: min / mean / max of positive values; kept when the spread is
        above the noise level or the mean is meaningfully positive.
    String: share of each comma-separated token; the top three values with a
        share of at least 15% are kept.

    Returns:
        PatternPart, or None when the event does not qualify as an outcome
    """
    if not dates:
        return None

    if event.type == EventType.BOOLEAN:
        true_count = 0
        for day in dates:
            point = lookup.get(day)
            if point is not None and not point.placeholder and point.value == 1:
                true_count += 1
        rate = true_count / len(dates) * 100
        if rate >= BOOLEAN_HIGH_RATE:
            return PatternPart(event=event, direction="yes", rate=rate)
        if rate <= BOOLEAN_LOW_RATE:
            return PatternPart(event=event, direction="no", rate=rate)
        return None

    if event.type == EventType.NUMBER:
        values = [
            lookup[day].value for day in dates
            if day in lookup and not lookup[day].placeholder and lookup[day].value > 0
        ]
        if not values:
            return None
        mean = sum(values) / len(values)
        spread = max(values) - min(values)
        if spread <= NUMBER_NOISE_SPREAD and mean < NUMBER_MIN_MEAN:
            return None
        return PatternPart(
            event=event,
            direction="number",
            minimum=min(values),
            maximum=max(values),
            average=mean,
        )

    tokens = []
    for day in dates:
        point = lookup.get(day)
        if point is not None and not point.placeholder:
            tokens.extend(_split_tokens(point.value))
    if not tokens:
        return None

    counts = Counter(tokens)
    total = len(tokens)
    shares = {}
    for value, count in counts.most_common():
        share = count / total * 100
        if share < STRING_MIN_SHARE or len(shares) >= STRING_TOP_VALUES:
            break
        shares[value] = share
    if not shares:
        return None
    return PatternPart(event=event, direction=next(iter(shares)), shares=shares)


def _collect_outcomes(
    anchor_event: Event,
    ordered_series: Sequence[EventSeries],
    lookups: Dict[int, Dict[str, EventDataPoint]],
    dates: Sequence[str],
) -> List[PatternPart]:
    outcomes = []
    for series in ordered_series:
        if series.event.id == anchor_event.id:
            continue
        part = summarize_outcome(series.event, lookups[series.event.id], dates)
        if part is not None:
            outcomes.append(part)
    return outcomes


def find_numeric_bucket_patterns(all_series: Sequence[EventSeries]) -> List[BucketPattern]:
    """
    Bucket the primary numeric event and summarize the others per bucket.

    Returns:
        One BucketPattern per bucket with at least two days and one outcome
    """
    primary = select_primary(all_series)
    if primary is None:
        return []

    observations = positive_observations(primary)
    if len(observations) < MIN_PRIMARY_POINTS:
        return []

    ordered = sorted(all_series, key=lambda s: s.event.order)
    lookups = {s.event.id: _lookup(s) for s in ordered}
    values_by_date = dict(observations)

    patterns = []
    for bucket in build_buckets(observations):
        if len(bucket.dates) < MIN_BUCKET_DAYS:
            continue

        outcomes = _collect_outcomes(primary.event, ordered, lookups, bucket.dates)
        if not outcomes:
            continue

        bucket_values = [values_by_date[day] for day in bucket.dates]
        anchor = PatternPart(
            event=primary.event,
            direction="number",
            minimum=min(bucket_values),
            maximum=max(bucket_values),
            average=sum(bucket_values) / len(bucket_values),
        )
        patterns.append(BucketPattern(
            anchor=anchor,
            outcomes=outcomes,
            sample_size=len(bucket.dates),
            pattern_type=PatternType.THRESHOLD,
            label=bucket.name,
        ))

    return patterns


def find_boolean_anchor_patterns(all_series: Sequence[EventSeries]) -> List[BucketPattern]:
    """
    Split active dates on every boolean event's true/false state.

    Produces "{event} → …" patterns for the true days and
    "NOT {event} → …" patterns for the false days.
    """
    dates = sorted(active_dates(all_series))
    if not dates:
        return []

    ordered = sorted(all_series, key=lambda s: s.event.order)
    lookups = {s.event.id: _lookup(s) for s in ordered}

    patterns = []
    for series in ordered:
        if series.event.type != EventType.BOOLEAN:
            continue

        lookup = lookups[series.event.id]
        true_dates = [
            day for day in dates
            if day in lookup and not lookup[day].placeholder and lookup[day].value == 1
        ]
        true_set = set(true_dates)
        false_dates = [day for day in dates if day not in true_set]

        for direction, label, split in (("yes", "true", true_dates), ("no", "false", false_dates)):
            if len(split) < MIN_BUCKET_DAYS:
                continue
            outcomes = _collect_outcomes(series.event, ordered, lookups, split)
            if not outcomes:
                continue
            patterns.append(BucketPattern(
                anchor=PatternPart(
                    event=series.event,
                    direction=direction,
                    rate=100.0 if direction == "yes" else 0.0,
                ),
                outcomes=outcomes,
                sample_size=len(split),
                pattern_type=PatternType.CO_OCCURRENCE,
                label=label,
            ))

    return patterns


def find_bucket_patterns(all_series: Sequence[EventSeries]) -> List[BucketPattern]:
    """
    Run the numeric bucket pass and the boolean anchor pass.

    Requires at least two events and a numeric event with three or more
    positive observations; otherwise nothing is found.
    """
    if len(all_series) < 2:
        return []

    primary = select_primary(all_series)
    if primary is None or len(positive_observations(primary)) < MIN_PRIMARY_POINTS:
        return []

    return find_numeric_bucket_patterns(all_series) + find_boolean_anchor_patterns(all_series)
