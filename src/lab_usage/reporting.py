"""Simple reporting utilities for CLI output."""

from __future__ import annotations

from typing import Any, Iterable, Optional

from .analysis import AnalysisResult
from .queries import daily_max, hourly_average
from .timeline import Timeline


class SummaryPrinter:
    """Render human-readable summaries in the console."""

    def __init__(self, result: AnalysisResult) -> None:
        self.result = result

    def print_summary(self) -> None:
        result = self.result
        rejected = result.normalization.rejected_count
        print(f"Sessions: {len(result.normalization.sessions)} ({rejected} rejected)")
        if not result.has_data:
            print("No sessions with a non-zero duration; nothing to summarize.")
            return

        grid = result.timelines.grid
        print(f"Period:   {grid.start:%Y-%m-%d %H:%M} to {grid.end:%Y-%m-%d %H:%M}")
        print(f"Open minutes per day: {result.settings.open_minutes_per_day}")
        print()

        print("Areas:")
        print(f"  {'area':<14} {'cap':>5} {'peak':>5} {'peak %':>8} {'daily %':>8}  busiest day")
        for row in result.area_summary():
            print(_format_row(row["area"], row))

        print()
        print("Buildings:")
        for row in result.building_summary():
            print(_format_row(row["building"], row))

    def print_timeline(self, timeline: Timeline, *, include_idle: bool = False) -> None:
        print(f"Timeline for {timeline.label} (capacity {timeline.capacity})")
        print("-" * 40)
        for minute, count in timeline.iter_minutes():
            if count or include_idle:
                print(f"  {minute:%Y-%m-%d %H:%M}  {count:>4}  {'#' * min(count, 60)}")
        print()
        print("Daily peaks:")
        for day, peak in sorted(daily_max(timeline).items()):
            print(f"  {day.isoformat()}  {peak:>4}")
        print()
        print("Average in use by hour:")
        for hour, mean in hourly_average(timeline).items():
            print(f"  {hour:02d}:00  {mean:6.2f}")


def print_rejections(rows: Iterable[Any], limit: int = 10) -> None:
    shown = 0
    for rejected in rows:
        if shown >= limit:
            print("  ...")
            break
        print(f"  record {rejected.index}: {rejected.reason}")
        shown += 1


def format_percent(value: Optional[float]) -> str:
    if value is None:
        return "n/a"
    return f"{value:.1f}%"


def _format_row(label: str, row: dict[str, Any]) -> str:
    return (
        f"  {label:<14} {row['capacity']:>5} {row['peak']:>5} "
        f"{format_percent(row['peak_percent']):>8} "
        f"{format_percent(row['mean_daily_percent']):>8}  {row['busiest_day'] or '-'}"
    )
