"""
Pattern discovery entry point.

Combines the bucket analyzer (always) with the pairwise scan (opt-in),
then deduplicates and ranks the result. Pure function of its input; the
caller decides whether to run it inline or on a worker thread.
"""

import logging
from typing import List, Optional, Sequence

from .analyzers.bucket_patterns import find_bucket_patterns
from .analyzers.pairwise_patterns import PairwisePatternAnalyzer
from .analyzers.pattern_merger import deduplicate_patterns, merge_bucket_patterns
from .models import EventSeries, Pattern

logger = logging.getLogger(__name__)


def discover_patterns(
    all_series: Sequence[EventSeries],
    include_pairwise: bool = False,
    limit: Optional[int] = None,
) -> List[Pattern]:
    """
    Discover patterns across every tracked event.

    Args:
        all_series: One series per tracked event
        include_pairwise: Also run the pairwise threshold/co-occurrence scan
        limit: Keep at most this many patterns

    Returns:
        Deduplicated patterns, highest confidence first; [] when there is
        too little data
    """
    if len(all_series) < 2:
        return []

    patterns = merge_bucket_patterns(find_bucket_patterns(all_series))
    if include_pairwise:
        patterns.extend(PairwisePatternAnalyzer().analyze(all_series))

    candidates = len(patterns)
    patterns = deduplicate_patterns(patterns)
    logger.debug("Discovered %d patterns (%d before dedupe)", len(patterns), candidates)

    if limit is not None:
        patterns = patterns[:limit]
    return patterns
