"""Pattern analyzers for discovering relationships between tracked events."""

from .bucket_patterns import BucketPattern, PatternPart, find_bucket_patterns
from .pairwise_patterns import PairwisePatternAnalyzer
from .pattern_merger import (
    calculate_confidence,
    calculate_strength,
    deduplicate_patterns,
    merge_bucket_patterns,
    rank_patterns,
)

__all__ = [
    "BucketPattern",
    "PatternPart",
    "find_bucket_patterns",
    "PairwisePatternAnalyzer",
    "calculate_confidence",
    "calculate_strength",
    "deduplicate_patterns",
    "merge_bucket_patterns",
    "rank_patterns",
]
