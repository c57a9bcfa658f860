"""
Milestone and recommendation generator.

Pure threshold comparisons over already-computed statistics:
- Milestones: fixed catalog of streak, consistency, tracked-days and
  tracking-streak tiers
- Recommendations: short nudges derived from weekday ranking, consistency
  and streaks about to be broken
"""

from typing import List, Optional, Sequence

from .models import DayOfWeekStats, EventType, Milestone, RecommendedAction, SummaryStats
from .streaks import global_consistency

STREAK_TIERS = [3, 7, 14, 30, 90, 180, 365]
CONSISTENCY_TIERS = [50, 70, 80, 90, 95]
TOTAL_DAYS_TIERS = [50, 100, 250, 500, 1000]
TRACKING_STREAK_TIERS = [1, 7, 14, 30]

BEST_WEEKDAY_MIN_RATE = 70.0
CONSISTENCY_TARGET = 80.0
KEEP_STREAK_MIN = 3


def _day_word(count: int) -> str:
    return "day" if count == 1 else "days"


def _streak_milestone(threshold: int, best_streak: int) -> Milestone:
    achieved = best_streak >= threshold
    if achieved:
        description = f"You kept a habit going for {threshold} {_day_word(threshold)} in a row"
    else:
        remaining = threshold - best_streak
        description = f"Keep a habit going {remaining} more {_day_word(remaining)} to reach {threshold}"
    return Milestone(
        id=f"streak-{threshold}",
        category="streak",
        title=f"{threshold}-Day Streak",
        description=description,
        threshold=threshold,
        current_value=best_streak,
        achieved=achieved,
    )


def _consistency_milestone(threshold: int, consistency: float) -> Milestone:
    achieved = consistency >= threshold
    if achieved:
        description = f"You track {threshold}% or more of your days"
    else:
        description = f"Reach {threshold}% consistency (currently {consistency:.0f}%)"
    return Milestone(
        id=f"consistency-{threshold}",
        category="consistency",
        title=f"{threshold}% Consistent",
        description=description,
        threshold=threshold,
        current_value=consistency,
        achieved=achieved,
    )


def _total_days_milestone(threshold: int, total_days: int) -> Milestone:
    achieved = total_days >= threshold
    if achieved:
        description = f"You have tracked {threshold} days"
    else:
        description = f"{threshold - total_days} more tracked days to go"
    return Milestone(
        id=f"total-days-{threshold}",
        category="total_days",
        title=f"{threshold} Days Tracked",
        description=description,
        threshold=threshold,
        current_value=total_days,
        achieved=achieved,
    )


def _tracking_streak_milestone(threshold: int, tracking_streak: int) -> Milestone:
    achieved = tracking_streak >= threshold
    if achieved:
        description = f"Every event tracked for {threshold} {_day_word(threshold)} straight"
    else:
        description = f"Track every event for {threshold} {_day_word(threshold)} in a row"
    return Milestone(
        id=f"tracking-streak-{threshold}",
        category="tracking_streak",
        title=f"Tracked {threshold} {_day_word(threshold).capitalize()} Straight",
        description=description,
        threshold=threshold,
        current_value=tracking_streak,
        achieved=achieved,
    )


def generate_milestones(
    summary_stats: Sequence[SummaryStats],
    tracking_streak: int,
    total_tracked_days: int,
) -> List[Milestone]:
    """
    Evaluate the full milestone catalog.

    Args:
        summary_stats: Per-event statistics (best streak and consistency are read)
        tracking_streak: Global tracking streak in days
        total_tracked_days: Distinct days with at least one tracked value

    Returns:
        Every milestone in catalog order, achieved or not
    """
    best_streak = max(
        (s.best_streak for s in summary_stats if s.event.type == EventType.BOOLEAN),
        default=0,
    )
    consistency = global_consistency(summary_stats)

    milestones = [_streak_milestone(t, best_streak) for t in STREAK_TIERS]
    milestones += [_consistency_milestone(t, consistency) for t in CONSISTENCY_TIERS]
    milestones += [_total_days_milestone(t, total_tracked_days) for t in TOTAL_DAYS_TIERS]
    milestones += [_tracking_streak_milestone(t, tracking_streak) for t in TRACKING_STREAK_TIERS]
    return milestones


def next_milestone(milestones: Sequence[Milestone], category: str) -> Optional[Milestone]:
    """Lowest unachieved tier of a category, or None when all are reached."""
    for milestone in milestones:
        if milestone.category == category and not milestone.achieved:
            return milestone
    return None


def generate_recommendations(
    summary_stats: Sequence[SummaryStats],
    weekday_stats: Sequence[DayOfWeekStats],
) -> List[RecommendedAction]:
    """
    Derive nudges from the computed statistics.

    - Best weekday, when its completion rate is above 70%
    - Improve consistency, when mean consistency is below 80%
    - Keep a streak going, per event whose current streak is at least 3
      but still below its personal best
    """
    actions = []

    if weekday_stats:
        best = max(weekday_stats, key=lambda d: d.completion_rate)
        if best.completion_rate > BEST_WEEKDAY_MIN_RATE:
            actions.append(RecommendedAction(
                kind="best_weekday",
                title=f"{best.day_name} is your best day",
                message=(
                    f"You complete {best.completion_rate:.0f}% of your events on "
                    f"{best.day_name}s. Plan important habits for that day."
                ),
                priority=3,
            ))

    if summary_stats:
        consistency = global_consistency(summary_stats)
        if consistency < CONSISTENCY_TARGET:
            actions.append(RecommendedAction(
                kind="improve_consistency",
                title="Track more consistently",
                message=(
                    f"You track {consistency:.0f}% of your days. "
                    f"Aim for {CONSISTENCY_TARGET:.0f}% to get more reliable patterns."
                ),
                priority=1,
            ))

    for stats in summary_stats:
        if KEEP_STREAK_MIN <= stats.current_streak < stats.best_streak:
            remaining = stats.best_streak - stats.current_streak
            actions.append(RecommendedAction(
                kind="keep_streak",
                title=f"Keep your {stats.event.name} streak going",
                message=(
                    f"{stats.current_streak} days in a row. {remaining} more "
                    f"{_day_word(remaining)} to beat your best of {stats.best_streak}."
                ),
                priority=2,
                event=stats.event,
            ))

    actions.sort(key=lambda a: a.priority)
    return actions
