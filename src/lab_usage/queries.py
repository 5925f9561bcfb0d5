"""Read-only summary queries over completed timelines."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from fractions import Fraction
from typing import Callable, Hashable, Iterable, Optional, TypeVar, Union

from .errors import UNDEFINED_PERCENTAGE, InconsistentGrid, UndefinedPercentage
from .models import Session
from .registry import AreaRegistry
from .timeline import Timeline, TimelineSet

K = TypeVar("K", bound=Hashable)

Percentage = Union[Fraction, UndefinedPercentage]


def overall_max(timeline: Timeline) -> int:
    """Peak concurrency over a whole ``Timeline`` (an area or a building rollup)."""
    return max(timeline.counts)


def partition_max(timeline: Timeline, partition: Callable[[datetime], K]) -> dict[K, int]:
    """Maximum concurrency within each partition of the timeline's minutes.

    ``partition`` maps a minute to an opaque key (a calendar date, an exam-week
    flag, ...). Keys without any minute in the grid never appear, and neither
    do dates on which no session of the dataset was running.
    """
    maxima: dict[K, int] = {}
    for minute, count in timeline.iter_observed_minutes():
        key = partition(minute)
        current = maxima.get(key)
        if current is None or count > current:
            maxima[key] = count
    return maxima


def daily_max(
    timeline: Timeline, partition: Optional[Callable[[datetime], date]] = None
) -> dict[date, int]:
    return partition_max(timeline, partition or _calendar_date)


def daily_minutes(timeline: Timeline) -> dict[date, int]:
    """Occupied computer-minutes per calendar date."""
    totals: defaultdict[date, int] = defaultdict(int)
    for minute, count in timeline.iter_observed_minutes():
        totals[minute.date()] += count
    return dict(totals)


def percentage_of_capacity(
    capacity: int, count: int, *, open_minutes_per_day: Optional[int] = None
) -> Percentage:
    """Usage as a percentage of ``capacity``, a computer count (not an ``Area``).

    Without ``open_minutes_per_day`` the count is an instantaneous concurrency;
    with it, the count is a day's occupied computer-minutes.
    """
    if count < 0:
        raise ValueError("count must be non-negative")
    if open_minutes_per_day is not None and open_minutes_per_day <= 0:
        raise ValueError("open_minutes_per_day must be positive")
    if capacity == 0:
        return UNDEFINED_PERCENTAGE
    denominator = capacity * (open_minutes_per_day or 1)
    return Fraction(100 * count, denominator)


def daily_utilization(timeline: Timeline, open_minutes_per_day: int) -> dict[date, Percentage]:
    return {
        day: percentage_of_capacity(
            timeline.capacity, minutes, open_minutes_per_day=open_minutes_per_day
        )
        for day, minutes in daily_minutes(timeline).items()
    }


def hourly_average(timeline: Timeline) -> dict[int, float]:
    """Mean concurrency for each hour of the day over the observed dates."""
    sums: defaultdict[int, int] = defaultdict(int)
    samples: defaultdict[int, int] = defaultdict(int)
    for minute, count in timeline.iter_observed_minutes():
        sums[minute.hour] += count
        samples[minute.hour] += 1
    return {hour: sums[hour] / samples[hour] for hour in sorted(sums)}


def building_rollup(
    area_timelines: Union[TimelineSet, Iterable[Timeline]], registry: AreaRegistry
) -> dict[str, Timeline]:
    """Sum area timelines into one timeline per building."""
    if isinstance(area_timelines, TimelineSet):
        area_timelines = area_timelines.values()
    grouped: defaultdict[str, list[Timeline]] = defaultdict(list)
    grid = None
    for timeline in area_timelines:
        if grid is None:
            grid = timeline.grid
        elif timeline.grid != grid:
            raise InconsistentGrid(
                f"Timeline {timeline.label!r} covers {timeline.grid.start}..{timeline.grid.end}, "
                f"expected {grid.start}..{grid.end}"
            )
        grouped[registry.get(timeline.label).building].append(timeline)

    rollups: dict[str, Timeline] = {}
    for building, members in sorted(grouped.items()):
        counts = tuple(sum(column) for column in zip(*(member.counts for member in members)))
        rollups[building] = Timeline(
            label=building,
            grid=members[0].grid,
            counts=counts,
            capacity=sum(member.capacity for member in members),
            observed_dates=members[0].observed_dates,
        )
    return rollups


@dataclass(frozen=True, slots=True)
class SessionStats:
    sessions: int
    zero_duration: int
    total_minutes: int

    @property
    def mean_minutes(self) -> float:
        if not self.sessions:
            return 0.0
        return self.total_minutes / self.sessions


def session_statistics(sessions: Iterable[Session]) -> dict[str, SessionStats]:
    """Session counts and durations per area, zero-length sessions included."""
    counts: defaultdict[str, list[int]] = defaultdict(lambda: [0, 0, 0])
    for session in sessions:
        bucket = counts[session.area]
        bucket[0] += 1
        if not session.occupies_timeline:
            bucket[1] += 1
        bucket[2] += session.duration_minutes
    return {
        area: SessionStats(sessions=values[0], zero_duration=values[1], total_minutes=values[2])
        for area, values in sorted(counts.items())
    }


def _calendar_date(minute: datetime) -> date:
    return minute.date()
