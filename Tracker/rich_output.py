#!/usr/bin/env python3
"""
Rich formatting for Tracker CLI output.

Renders the dashboard snapshot as terminal tables: per-event summary,
week/month comparisons, weekday ranking, milestones, recommendations and
discovered patterns.

Usage:
    from Tracker.rich_output import summary_table, pattern_table

    summary_table(snapshot.summary_stats)
    text = pattern_table(snapshot.patterns, return_string=True)
"""

from contextlib import contextmanager
from io import StringIO
from typing import Optional, Sequence

from rich.box import ROUNDED, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .pattern_recognition.analyzers.pattern_merger import format_number, unit_suffix
from .pattern_recognition.models import (
    DayOfWeekStats,
    EventType,
    HeatmapCell,
    Milestone,
    Pattern,
    PatternStrength,
    PeriodComparison,
    RecommendedAction,
    SummaryStats,
    TrendDirection,
)
from .pattern_recognition.weekday import intensity_tier

# Global console instance
console = Console()

TREND_MARKERS = {
    TrendDirection.UP: "[green]▲ up[/green]",
    TrendDirection.DOWN: "[red]▼ down[/red]",
    TrendDirection.STABLE: "[dim]= stable[/dim]",
}

STRENGTH_STYLES = {
    PatternStrength.VERY_STRONG: "bold green",
    PatternStrength.STRONG: "green",
    PatternStrength.MODERATE: "yellow",
    PatternStrength.WEAK: "dim",
}

HEATMAP_GLYPHS = ["·", "░", "▒", "▓", "█"]


def get_score_style(score: float, thresholds: tuple = (50, 80)) -> str:
    """
    Get color style based on score thresholds.

    Args:
        score: Percentage to evaluate
        thresholds: Tuple of (low_threshold, high_threshold)
                   - score >= high_threshold = green
                   - low_threshold <= score < high_threshold = yellow
                   - score < low_threshold = red

    Returns:
        Style string for Rich
    """
    low, high = thresholds
    if score >= high:
        return "green"
    elif score >= low:
        return "yellow"
    else:
        return "red"


def _render(renderable, return_string: bool, width: int = 100) -> Optional[str]:
    if return_string:
        buffer = StringIO()
        temp_console = Console(file=buffer, force_terminal=False, width=width)
        temp_console.print(renderable)
        return buffer.getvalue()
    console.print(renderable)
    return None


def _percent(value: float) -> str:
    style = get_score_style(value)
    return f"[{style}]{value:.0f}%[/{style}]"


def _average(value: Optional[float], stats_unit: Optional[str], event_type: EventType) -> str:
    if value is None:
        return "-"
    if event_type == EventType.BOOLEAN:
        return f"{value:.0f}%"
    return f"{format_number(round(value, 1))}{unit_suffix(stats_unit)}"


def summary_table(stats: Sequence[SummaryStats], return_string: bool = False) -> Optional[str]:
    """Per-event completion, consistency, streaks and value summary."""
    table = Table(
        title="[bold]Event Summary[/bold]",
        box=ROUNDED,
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Event", style="cyan", no_wrap=True)
    table.add_column("Done", justify="right")
    table.add_column("Consistency", justify="right")
    table.add_column("Streak", justify="right")
    table.add_column("Best", justify="right")
    table.add_column("Value", justify="right")

    for s in stats:
        if s.event.type == EventType.NUMBER:
            value = _average(s.average, s.event.unit, s.event.type)
        elif s.event.type == EventType.STRING:
            value = s.top_value or "-"
        else:
            value = "-"
        streak = str(s.current_streak) if s.event.type == EventType.BOOLEAN else "-"
        best = str(s.best_streak) if s.event.type == EventType.BOOLEAN else "-"
        table.add_row(
            s.event.name,
            _percent(s.completion_rate),
            _percent(s.consistency),
            streak,
            best,
            value,
        )

    return _render(table, return_string)


def comparison_table(
    comparisons: Sequence[PeriodComparison],
    title: str = "This Week vs Last Week",
    return_string: bool = False,
) -> Optional[str]:
    """Previous vs current average and trend per event."""
    table = Table(title=f"[bold]{title}[/bold]", box=SIMPLE, header_style="bold cyan")
    table.add_column("Event", style="cyan", no_wrap=True)
    table.add_column("Previous", justify="right")
    table.add_column("Current", justify="right")
    table.add_column("Change", justify="right")
    table.add_column("Trend", justify="center")

    for c in comparisons:
        if not c.has_data:
            table.add_row(c.event.name, "-", "-", "-", "[dim]not enough data[/dim]")
            continue
        change = f"{c.change_percent:+.0f}%" if c.previous_average else f"{c.change:+.1f}"
        table.add_row(
            c.event.name,
            _average(c.previous_average, c.event.unit, c.event.type),
            _average(c.current_average, c.event.unit, c.event.type),
            change,
            TREND_MARKERS[c.trend],
        )

    return _render(table, return_string)


def weekday_table(days: Sequence[DayOfWeekStats], return_string: bool = False) -> Optional[str]:
    """Weekdays ranked by completion rate."""
    table = Table(title="[bold]Best Days[/bold]", box=SIMPLE, header_style="bold cyan")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Day", style="cyan")
    table.add_column("Completed", justify="right")
    table.add_column("Rate", justify="right")

    for rank, day in enumerate(days, start=1):
        table.add_row(str(rank), day.day_name, f"{day.completed}/{day.total}", _percent(day.completion_rate))

    return _render(table, return_string)


def heatmap_strip(
    cells: Sequence[HeatmapCell],
    total_events: int,
    return_string: bool = False,
) -> Optional[str]:
    """One glyph per day, darker for more completed events, oldest first."""
    glyphs = "".join(HEATMAP_GLYPHS[intensity_tier(c.count, total_events)] for c in cells)
    lines = [glyphs[i:i + 7] for i in range(0, len(glyphs), 7)]
    panel = Panel("\n".join(lines) or "-", title="Activity", expand=False)
    return _render(panel, return_string)


def milestone_table(
    milestones: Sequence[Milestone],
    show_pending: bool = True,
    return_string: bool = False,
) -> Optional[str]:
    """Achieved milestones and, optionally, progress toward pending ones."""
    table = Table(title="[bold]Milestones[/bold]", box=SIMPLE, header_style="bold cyan")
    table.add_column("", justify="center")
    table.add_column("Milestone", style="cyan")
    table.add_column("Progress", justify="right")
    table.add_column("Details")

    for m in milestones:
        if not m.achieved and not show_pending:
            continue
        marker = "[green]✓[/green]" if m.achieved else "[dim]○[/dim]"
        table.add_row(marker, m.title, f"{m.progress * 100:.0f}%", m.description)

    return _render(table, return_string)


def recommendation_panel(
    actions: Sequence[RecommendedAction],
    return_string: bool = False,
) -> Optional[str]:
    """Recommendations as a bulleted panel."""
    if not actions:
        body = "[dim]Nothing to suggest right now.[/dim]"
    else:
        body = "\n".join(f"[bold]{a.title}[/bold]\n  {a.message}" for a in actions)
    panel = Panel(body, title="Recommendations", border_style="blue", expand=False)
    return _render(panel, return_string)


def pattern_table(
    patterns: Sequence[Pattern],
    limit: Optional[int] = None,
    return_string: bool = False,
) -> Optional[str]:
    """Ranked patterns with confidence, strength and sample size."""
    table = Table(
        title="[bold]Discovered Patterns[/bold]",
        box=ROUNDED,
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Pattern", style="white")
    table.add_column("Confidence", justify="right")
    table.add_column("Strength", justify="center")
    table.add_column("Days", justify="right")

    shown = patterns[:limit] if limit else patterns
    for p in shown:
        style = STRENGTH_STYLES[p.strength]
        table.add_row(
            p.description,
            f"{p.confidence}%",
            f"[{style}]{p.strength.value}[/{style}]",
            str(p.sample_size),
        )
    if not shown:
        table.add_row("[dim]Not enough data to find patterns yet[/dim]", "", "", "")

    return _render(table, return_string)


@contextmanager
def progress_spinner(description: str = "Processing..."):
    """
    Context manager for showing a progress spinner during long operations.

    Usage:
        with progress_spinner("Discovering patterns..."):
            patterns = discover_patterns(series)
    """
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        transient=True,
        console=console
    ) as progress:
        task = progress.add_task(description, total=None)
        try:
            yield progress
        finally:
            progress.update(task, completed=True)
