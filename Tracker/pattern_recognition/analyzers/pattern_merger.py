"""
Pattern merging, scoring and deduplication.

Bucket patterns that tell the same story (same ordered sequence of event and
direction) are merged into one Pattern whose numeric outcomes span the
group's overall range and whose percentages become a range. Merged patterns
from every analyzer are then deduplicated by event-set overlap and ranked.
"""

import math
from collections import OrderedDict
from typing import Dict, List, Optional, Sequence

from ..models import Pattern, PatternStrength, PatternType
from .bucket_patterns import BucketPattern, PatternPart

BASE_CONFIDENCE = 65
CONFIDENCE_PER_OUTCOME = 5
MAX_CONFIDENCE = 95

DUPLICATE_OVERLAP = 0.7

# Below this spread a numeric range is shown as a single approximate value
RANGE_DISPLAY_MIN_SPREAD = 0.1


def calculate_confidence(outcome_count: int) -> int:
    """More corroborating outcomes raise confidence, capped below certainty."""
    return min(MAX_CONFIDENCE, BASE_CONFIDENCE + CONFIDENCE_PER_OUTCOME * outcome_count)


def calculate_strength(confidence: float) -> PatternStrength:
    """
    Map confidence to a qualitative label.

    Thresholds:
    - >= 90: very-strong
    - >= 80: strong
    - >= 65: moderate
    - below: weak
    """
    if confidence >= 90:
        return PatternStrength.VERY_STRONG
    if confidence >= 80:
        return PatternStrength.STRONG
    if confidence >= 65:
        return PatternStrength.MODERATE
    return PatternStrength.WEAK


def format_number(value: float) -> str:
    """Whole numbers without decimals, everything else with one."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.1f}"


def unit_suffix(unit: Optional[str]) -> str:
    """" hours" for word units, "/10" or "%" glued on for symbol units."""
    if not unit:
        return ""
    if unit[0].isalnum():
        return f" {unit}"
    return unit


def format_span(minimum: float, maximum: float, average: float, unit: Optional[str] = None) -> str:
    if maximum - minimum > RANGE_DISPLAY_MIN_SPREAD:
        text = f"{format_number(minimum)}-{format_number(maximum)}"
    else:
        text = f"~{format_number(average)}"
    return text + unit_suffix(unit)


def half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (82.5 -> 83)."""
    return int(math.floor(value + 0.5))


def format_percent_range(rates: Sequence[float]) -> str:
    """Render rates as "a-b%", collapsing to "a%" when the range is degenerate."""
    low = half_up(min(rates))
    high = half_up(max(rates))
    if low == high:
        return f"{low}%"
    return f"{low}-{high}%"


def _merge_shares(parts: Sequence[PatternPart]) -> "OrderedDict[str, List[float]]":
    collected: Dict[str, List[float]] = {}
    for part in parts:
        for value, share in part.shares.items():
            collected.setdefault(value, []).append(share)
    ranked = sorted(collected.items(), key=lambda item: max(item[1]), reverse=True)
    return OrderedDict(ranked[:3])


def describe_parts(parts: Sequence[PatternPart], anchor: bool = False) -> str:
    """
    Render one chain segment from the corresponding part of every group member.

    Examples:
        - "Sleep 7-9 hours" (number)
        - "Exercise 75-80%" / "No Meditation 90%" (boolean outcome)
        - "NOT Exercise" (boolean anchor, false days)
        - "Mood: happy (40-50%), tired (25%)" (string)
    """
    first = parts[0]
    event = first.event
    name = event.name

    if first.direction == "number":
        minimum = min(p.minimum for p in parts)
        maximum = max(p.maximum for p in parts)
        average = sum(p.average for p in parts) / len(parts)
        return f"{name} {format_span(minimum, maximum, average, event.unit)}"

    if anchor and first.direction in ("yes", "no"):
        return name if first.direction == "yes" else f"NOT {name}"

    if first.direction == "yes":
        return f"{name} {format_percent_range([p.rate for p in parts])}"
    if first.direction == "no":
        return f"No {name} {format_percent_range([100 - p.rate for p in parts])}"

    shares = _merge_shares(parts)
    rendered = ", ".join(
        f"{value} ({format_percent_range(values)})" for value, values in shares.items()
    )
    return f"{name}: {rendered}"


def _details(members: Sequence[BucketPattern]) -> str:
    first = members[0]
    days = sum(m.sample_size for m in members)
    if first.pattern_type == PatternType.THRESHOLD:
        labels = ", ".join(m.label for m in members)
        return f"{first.anchor.event.name} {labels} range, {days} days"
    state = "done" if first.anchor.direction == "yes" else "not done"
    return f"Days {first.anchor.event.name} was {state}, {days} days"


def merge_bucket_patterns(bucket_patterns: Sequence[BucketPattern]) -> List[Pattern]:
    """
    Group bucket patterns by signature and merge each group into one Pattern.

    Args:
        bucket_patterns: Raw patterns from the bucket analyzer

    Returns:
        One Pattern per signature, in first-seen order
    """
    groups: "OrderedDict[str, List[BucketPattern]]" = OrderedDict()
    for bucket_pattern in bucket_patterns:
        groups.setdefault(bucket_pattern.signature, []).append(bucket_pattern)

    patterns = []
    for signature, members in groups.items():
        first = members[0]
        chain = [describe_parts([m.anchor for m in members], anchor=True)]
        for index in range(len(first.outcomes)):
            chain.append(describe_parts([m.outcomes[index] for m in members]))

        confidence = calculate_confidence(len(first.outcomes))
        patterns.append(Pattern(
            description=" → ".join(chain),
            confidence=confidence,
            type=first.pattern_type,
            events=[first.anchor.event] + [o.event for o in first.outcomes],
            strength=calculate_strength(confidence),
            sample_size=sum(m.sample_size for m in members),
            details=_details(members),
            metadata={"signature": signature, "buckets": [m.label for m in members]},
        ))

    return patterns


def event_overlap(a: Pattern, b: Pattern) -> float:
    """|A ∩ B| / min(|A|, |B|) over the patterns' event ids."""
    ids_a, ids_b = a.event_ids, b.event_ids
    smaller = min(len(ids_a), len(ids_b))
    if smaller == 0:
        return 0.0
    return len(ids_a & ids_b) / smaller


def rank_patterns(patterns: Sequence[Pattern]) -> List[Pattern]:
    """Confidence descending, larger sample first on ties (stable)."""
    return sorted(patterns, key=lambda p: (-p.confidence, -p.sample_size))


def deduplicate_patterns(
    patterns: Sequence[Pattern],
    threshold: float = DUPLICATE_OVERLAP,
) -> List[Pattern]:
    """
    Drop patterns describing an overlapping event set.

    Candidates are visited best first (confidence, then sample size, then
    input order); a candidate is kept only if its overlap with every pattern
    already kept is at most `threshold`. Applying this to its own output
    returns the same list.

    Returns:
        Surviving patterns, ranked
    """
    kept: List[Pattern] = []
    for pattern in rank_patterns(patterns):
        if all(event_overlap(pattern, other) <= threshold for other in kept):
            kept.append(pattern)
    return kept
