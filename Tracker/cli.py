#!/usr/bin/env python3
"""
Command line interface for the life-events insights engine.

Usage:
    lifelog-insights import backup.json [--clear]
    lifelog-insights export [backup.json]
    lifelog-insights report [--today 2024-05-01] [--range 30d]
    lifelog-insights patterns [--pairwise] [--limit 10]
"""

import argparse
import asyncio
import dataclasses
import logging
import sys
from datetime import date, timedelta
from pathlib import Path
from typing import List, Optional

from .adapters.state_store_adapter import StateStoreAdapter
from .config import Settings, load_settings
from .errors import TrackerError
from .pattern_recognition.data_aggregator import InsightsAggregator, TimeRange, select_time_range
from .rich_output import (
    comparison_table,
    console,
    heatmap_strip,
    milestone_table,
    pattern_table,
    progress_spinner,
    recommendation_panel,
    summary_table,
    weekday_table,
)
from .state_store.import_export import export_data, import_data, load_export_file, save_export_file
from .state_store.store import EventStore

logger = logging.getLogger(__name__)


def _parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected YYYY-MM-DD, got {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lifelog-insights",
        description="Statistics and pattern discovery for tracked life events",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Restore a backup exported from the app
  lifelog-insights import life-events-backup-2024-05-01.json

  # Dashboard as of a given day, statistics over the last 30 days
  lifelog-insights report --today 2024-05-01 --range 30d

  # Patterns including the pairwise threshold/co-occurrence scan
  lifelog-insights patterns --pairwise
"""
    )
    parser.add_argument('--db', type=Path, help='SQLite database path (overrides TRACKER_DB_PATH)')
    parser.add_argument('--env', type=Path, help='.env file to load')

    subparsers = parser.add_subparsers(dest='command')

    import_parser = subparsers.add_parser('import', help='Import a JSON backup')
    import_parser.add_argument('file', type=Path)
    import_parser.add_argument('--clear', action='store_true',
                               help='Delete existing events before importing')

    export_parser = subparsers.add_parser('export', help='Write a JSON backup')
    export_parser.add_argument('file', type=Path, nargs='?')

    ranges = [r.value for r in TimeRange]

    report_parser = subparsers.add_parser('report', help='Show the insights dashboard')
    report_parser.add_argument('--today', type=_parse_day, help='Reference day (YYYY-MM-DD)')
    report_parser.add_argument('--range', choices=ranges, dest='time_range',
                               help='Statistics window (default: weekday window)')
    report_parser.add_argument('--all-milestones', action='store_true',
                               help='Also list milestones not reached yet')

    patterns_parser = subparsers.add_parser('patterns', help='Discover patterns')
    patterns_parser.add_argument('--today', type=_parse_day, help='Reference day (YYYY-MM-DD)')
    patterns_parser.add_argument('--pairwise', action='store_true',
                                 help='Include pairwise threshold/co-occurrence patterns')
    patterns_parser.add_argument('--range', choices=ranges + ['auto'], dest='time_range',
                                 help="History window; 'auto' picks the smallest covering range")
    patterns_parser.add_argument('--limit', type=int, default=10)

    return parser


def _settings_from_args(args: argparse.Namespace) -> Settings:
    settings = load_settings(args.env)
    overrides = {}
    if args.db:
        overrides["db_path"] = args.db
    if getattr(args, "pairwise", False):
        overrides["pairwise_patterns"] = True
    return dataclasses.replace(settings, **overrides) if overrides else settings


def cmd_import(args: argparse.Namespace, settings: Settings) -> int:
    store = EventStore(settings.db_path)
    data = load_export_file(args.file)
    with progress_spinner("Importing backup..."):
        result = import_data(store, data, clear_existing=args.clear)
    console.print(
        f"[green]Imported {result['events']} events and {result['values']} values[/green]"
    )
    if result["skipped"]:
        console.print(f"[yellow]Skipped {result['skipped']} values of unknown events[/yellow]")
    return 0


def cmd_export(args: argparse.Namespace, settings: Settings) -> int:
    store = EventStore(settings.db_path)
    path = save_export_file(export_data(store), args.file)
    console.print(f"[green]Backup written to {path}[/green]")
    return 0


async def _report(args: argparse.Namespace, settings: Settings) -> int:
    store = EventStore(settings.db_path)
    events = store.get_events()
    if not events:
        console.print("[yellow]No events tracked yet.[/yellow]")
        return 0

    aggregator = InsightsAggregator(StateStoreAdapter(store), settings)
    health = await aggregator.adapter.health_check()
    console.print(
        f"[dim]{health['adapter']}: {health['values']} values over {health['days']} days[/dim]"
    )
    time_range = TimeRange(args.time_range) if args.time_range else None
    with progress_spinner("Crunching your history..."):
        snapshot = await aggregator.build_snapshot(events, today=args.today, time_range=time_range)
    await aggregator.close()

    console.print(
        f"\n[bold]Tracking streak:[/bold] {snapshot.tracking_streak} days   "
        f"[bold]Days tracked:[/bold] {snapshot.total_tracked_days}   "
        f"[bold]Consistency:[/bold] {snapshot.global_consistency:.0f}%\n"
    )
    summary_table(snapshot.summary_stats)
    comparison_table(snapshot.week_comparisons, "This Week vs Last Week")
    comparison_table(snapshot.month_comparisons, "This Month vs Last Month")
    weekday_table(snapshot.weekday_stats)
    heatmap_strip(snapshot.heatmap, len(events))
    milestone_table(snapshot.milestones, show_pending=args.all_milestones)
    recommendation_panel(snapshot.recommendations)
    pattern_table(snapshot.patterns, limit=5)
    return 0


async def _patterns(args: argparse.Namespace, settings: Settings) -> int:
    store = EventStore(settings.db_path)
    events = store.get_events()
    if len(events) < 2:
        console.print("[yellow]Track at least two events to discover patterns.[/yellow]")
        return 0

    aggregator = InsightsAggregator(StateStoreAdapter(store), settings)
    today = args.today or date.today()
    with progress_spinner("Discovering patterns..."):
        if args.time_range == 'auto':
            start = today - timedelta(days=settings.lookback_days - 1)
            time_range = select_time_range(await aggregator.load_series(events, start, today))
        elif args.time_range:
            time_range = TimeRange(args.time_range)
        else:
            time_range = None
        snapshot = await aggregator.build_snapshot(events, today=today, time_range=time_range)
    await aggregator.close()

    if time_range:
        console.print(f"[dim]History window: {time_range.value}[/dim]")
    pattern_table(snapshot.patterns, limit=args.limit)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        settings = _settings_from_args(args)
    except TrackerError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        return 2

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == 'import':
            return cmd_import(args, settings)
        if args.command == 'export':
            return cmd_export(args, settings)
        if args.command == 'report':
            return asyncio.run(_report(args, settings))
        if args.command == 'patterns':
            return asyncio.run(_patterns(args, settings))
    except TrackerError as e:
        logger.debug("Command failed", exc_info=True)
        console.print(f"[red]{e.message}[/red]")
        return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
