"""Per-area, per-minute concurrency timelines built with a delta sweep."""

from __future__ import annotations

import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime
from itertools import accumulate
from typing import Callable, Collection, Iterable, Iterator, Mapping, Optional, Sequence

from .errors import NoData, UnknownArea
from .models import ONE_MINUTE, Session
from .registry import AreaRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GridRange:
    """Inclusive range of whole minutes shared by every timeline of a run."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError("grid start must not be after grid end")

    @property
    def minutes(self) -> int:
        return (self.end - self.start) // ONE_MINUTE + 1

    def offset_of(self, moment: datetime) -> int:
        return (moment - self.start) // ONE_MINUTE

    def minute_at(self, offset: int) -> datetime:
        return self.start + offset * ONE_MINUTE

    def __contains__(self, moment: object) -> bool:
        return isinstance(moment, datetime) and self.start <= moment <= self.end

    def iter_minutes(self) -> Iterator[datetime]:
        for offset in range(self.minutes):
            yield self.minute_at(offset)


@dataclass(frozen=True, slots=True)
class Timeline:
    """Concurrency count for every minute of a grid, for one area or building.

    ``observed_dates`` lists the dates on which any session of the dataset was
    running; ``None`` treats every date of the grid as observed.
    """

    label: str
    grid: GridRange
    counts: tuple[int, ...]
    capacity: int
    observed_dates: Optional[frozenset[date]] = None

    def __post_init__(self) -> None:
        if len(self.counts) != self.grid.minutes:
            raise ValueError(
                f"Timeline {self.label!r} has {len(self.counts)} counts "
                f"for a grid of {self.grid.minutes} minutes"
            )

    def __len__(self) -> int:
        return len(self.counts)

    def count_at(self, moment: datetime) -> int:
        """Sessions in progress at ``moment``; zero outside the grid."""
        minute = moment.replace(second=0, microsecond=0)
        if minute not in self.grid:
            return 0
        return self.counts[self.grid.offset_of(minute)]

    def iter_minutes(self) -> Iterator[tuple[datetime, int]]:
        for offset, count in enumerate(self.counts):
            yield self.grid.minute_at(offset), count

    def iter_observed_minutes(self) -> Iterator[tuple[datetime, int]]:
        """Like ``iter_minutes``, skipping dates with no session anywhere."""
        if self.observed_dates is None:
            yield from self.iter_minutes()
            return
        for minute, count in self.iter_minutes():
            if minute.date() in self.observed_dates:
                yield minute, count


class TimelineSet:
    """Read-only collection of area timelines sharing one grid."""

    def __init__(self, grid: Optional[GridRange], timelines: Mapping[str, Timeline]) -> None:
        self.grid = grid
        self._timelines = dict(timelines)

    @classmethod
    def empty(cls) -> "TimelineSet":
        return cls(None, {})

    @property
    def is_empty(self) -> bool:
        return self.grid is None

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._timelines))

    def __len__(self) -> int:
        return len(self._timelines)

    def __contains__(self, label: object) -> bool:
        return label in self._timelines

    def get(self, label: str) -> Timeline:
        if self.is_empty:
            raise NoData("No session occupies any minute; there are no timelines")
        try:
            return self._timelines[label]
        except KeyError:
            raise UnknownArea(label) from None

    def values(self) -> list[Timeline]:
        return [self._timelines[label] for label in self]


def compute_grid(sessions: Iterable[Session]) -> Optional[GridRange]:
    """Global minute range over every session that occupies a minute."""
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    for session in sessions:
        session_end = session.end
        if session_end is None:
            continue
        if start is None or session.start < start:
            start = session.start
        if end is None or session_end > end:
            end = session_end
    if start is None or end is None:
        return None
    return GridRange(start=start, end=end)


def build_timelines(
    sessions: Sequence[Session],
    registry: AreaRegistry,
    *,
    grid: Optional[GridRange] = None,
    workers: int = 1,
) -> TimelineSet:
    """Build concurrency timelines for every registered area.

    Every session is validated against the registry before any work happens,
    so an unknown area aborts the run without producing partial timelines.
    Each area owns its own delta list, which lets ``workers > 1`` build areas
    concurrently without locking.
    """
    registry.validate_sessions(sessions)
    grid = grid or compute_grid(sessions)
    if grid is None:
        logger.info("No sessions with a non-zero duration; timelines are empty.")
        return TimelineSet.empty()

    intervals = _intervals_by_area(sessions, grid)
    labels = registry.labels()
    logger.info(
        "Building %d area timelines over %d minutes (%s to %s).",
        len(labels),
        grid.minutes,
        grid.start,
        grid.end,
    )

    def build(label: str) -> tuple[int, ...]:
        return sweep(intervals.get(label, ()), grid.minutes)

    if workers > 1 and len(labels) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            built = list(pool.map(build, labels))
    else:
        built = [build(label) for label in labels]
    counts_by_label = dict(zip(labels, built))
    return assemble_timelines(grid, counts_by_label, registry.capacity_of)


def assemble_timelines(
    grid: GridRange,
    counts_by_label: Mapping[str, tuple[int, ...]],
    capacity_of: Callable[[str], int],
) -> TimelineSet:
    """Wrap finished count series into a ``TimelineSet`` sharing observed dates."""
    dates = observed_dates(grid, counts_by_label.values())
    return TimelineSet(
        grid,
        {
            label: Timeline(
                label=label,
                grid=grid,
                counts=counts,
                capacity=capacity_of(label),
                observed_dates=dates,
            )
            for label, counts in counts_by_label.items()
        },
    )


def observed_dates(grid: GridRange, count_rows: Iterable[Collection[int]]) -> frozenset[date]:
    """Dates holding at least one occupied minute in any of ``count_rows``."""
    occupied = [False] * grid.minutes
    for counts in count_rows:
        for offset, count in enumerate(counts):
            if count:
                occupied[offset] = True
    return frozenset(
        grid.minute_at(offset).date() for offset, flag in enumerate(occupied) if flag
    )


def sweep(intervals: Iterable[tuple[int, int]], length: int) -> tuple[int, ...]:
    """Concurrency per offset for half-open ``[first, stop)`` offset intervals."""
    deltas = [0] * (length + 1)
    for first, stop in intervals:
        deltas[first] += 1
        deltas[stop] -= 1
    deltas.pop()
    return tuple(accumulate(deltas))


def _intervals_by_area(
    sessions: Iterable[Session], grid: GridRange
) -> dict[str, list[tuple[int, int]]]:
    intervals: defaultdict[str, list[tuple[int, int]]] = defaultdict(list)
    length = grid.minutes
    for session in sessions:
        if not session.occupies_timeline:
            continue
        first = grid.offset_of(session.start)
        stop = first + session.duration_minutes
        # Clip to the grid; only an explicit grid can cut sessions.
        first = max(first, 0)
        stop = min(stop, length)
        if first >= stop:
            continue
        intervals[session.area].append((first, stop))
    return intervals
