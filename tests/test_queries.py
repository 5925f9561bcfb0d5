from __future__ import annotations

from datetime import date
from fractions import Fraction

import pytest

from lab_usage.errors import UNDEFINED_PERCENTAGE, InconsistentGrid, UndefinedPercentage
from lab_usage.models import Session
from lab_usage.queries import (
    building_rollup,
    daily_max,
    daily_minutes,
    daily_utilization,
    hourly_average,
    overall_max,
    partition_max,
    percentage_of_capacity,
    session_statistics,
)
from lab_usage.timeline import GridRange, Timeline, build_timelines


@pytest.fixture
def timelines(registry, sessions):
    return build_timelines(sessions, registry)


def test_daily_max_per_calendar_date(timelines):
    annex = daily_max(timelines.get("ANNEX-1"))
    main = daily_max(timelines.get("MAIN-1"))

    assert annex == {date(2024, 3, 4): 1, date(2024, 3, 5): 1}
    assert main == {date(2024, 3, 4): 2, date(2024, 3, 5): 0}


def test_daily_max_never_exceeds_overall_max(timelines):
    for label in timelines:
        timeline = timelines.get(label)
        assert max(daily_max(timeline).values()) <= overall_max(timeline)


def test_dates_outside_grid_are_absent(registry, clock):
    sessions = [Session("MAIN-1", clock(9), 10), Session("MAIN-2", clock(9, day=2), 10)]
    timeline = build_timelines(sessions, registry).get("MAIN-1")

    peaks = daily_max(timeline)

    # 3/5 lies inside the grid but no session of any area ran that day.
    assert peaks == {date(2024, 3, 4): 1, date(2024, 3, 6): 0}
    assert date(2024, 3, 5) not in daily_minutes(timeline)
    assert date(2024, 3, 7) not in peaks


def test_explicit_grid_dates_without_sessions_are_absent(registry, clock):
    grid = GridRange(clock(0), clock(23, 59, day=2))
    timeline = build_timelines([Session("MAIN-1", clock(9, day=1), 10)], registry, grid=grid).get(
        "MAIN-1"
    )

    assert daily_max(timeline) == {date(2024, 3, 5): 1}
    assert daily_utilization(timeline, 60) == {date(2024, 3, 5): Fraction(100 * 10, 2 * 60)}


def test_partition_max_with_caller_supplied_calendar(timelines):
    def exam_week(minute):
        return minute.date() >= date(2024, 3, 5)

    peaks = partition_max(timelines.get("ANNEX-1"), exam_week)

    assert peaks == {False: 1, True: 1}
    assert daily_max(timelines.get("MAIN-1"), partition=exam_week) == {False: 2, True: 0}


def test_daily_minutes_sums_occupied_minutes(timelines):
    assert daily_minutes(timelines.get("MAIN-1")) == {
        date(2024, 3, 4): 60,
        date(2024, 3, 5): 0,
    }
    assert daily_minutes(timelines.get("ANNEX-1")) == {
        date(2024, 3, 4): 10,
        date(2024, 3, 5): 10,
    }


def test_instantaneous_percentage():
    assert percentage_of_capacity(2, 2) == 100
    assert percentage_of_capacity(3, 1) == Fraction(100, 3)
    assert percentage_of_capacity(2, 5) == 250


def test_daily_percentage_is_exactly_one_hundred_at_full_use():
    assert percentage_of_capacity(4, 4 * 600, open_minutes_per_day=600) == 100


def test_percentage_is_monotonic_in_count():
    values = [percentage_of_capacity(7, count, open_minutes_per_day=480) for count in range(0, 5000, 37)]

    assert values == sorted(values)


def test_zero_capacity_is_undefined():
    result = percentage_of_capacity(0, 3)

    assert result is UNDEFINED_PERCENTAGE
    assert isinstance(result, UndefinedPercentage)
    assert str(result) == "n/a"


@pytest.mark.parametrize(
    "count, open_minutes",
    [(-1, None), (5, 0), (5, -10)],
)
def test_percentage_rejects_invalid_arguments(count, open_minutes):
    with pytest.raises(ValueError):
        percentage_of_capacity(3, count, open_minutes_per_day=open_minutes)


def test_daily_utilization(timelines):
    utilization = daily_utilization(timelines.get("MAIN-1"), open_minutes_per_day=60)

    assert utilization[date(2024, 3, 4)] == 50
    assert utilization[date(2024, 3, 5)] == 0
    assert set(daily_utilization(timelines.get("ANNEX-2"), 60).values()) == {UNDEFINED_PERCENTAGE}


def test_hourly_average(clock, registry):
    sessions = [Session("MAIN-1", clock(9, 0), 30), Session("MAIN-1", clock(10, 0), 60)]
    timeline = build_timelines(sessions, registry).get("MAIN-1")

    assert hourly_average(timeline) == {9: 0.5, 10: 1.0}


def test_building_rollup_is_additive(timelines, registry):
    rollups = building_rollup(timelines, registry)

    assert set(rollups) == {"ANNEX", "MAIN"}
    main = rollups["MAIN"]
    assert main.capacity == 5
    assert main.grid == timelines.grid
    for offset, count in enumerate(main.counts):
        assert count == (
            timelines.get("MAIN-1").counts[offset] + timelines.get("MAIN-2").counts[offset]
        )
    assert overall_max(main) == 2


def test_building_rollup_rejects_mismatched_grids(clock, registry):
    first = Timeline("MAIN-1", GridRange(clock(9), clock(9, 4)), (1, 1, 1, 1, 1), 2)
    second = Timeline("MAIN-2", GridRange(clock(9), clock(9, 5)), (0,) * 6, 3)

    with pytest.raises(InconsistentGrid):
        building_rollup([first, second], registry)


def test_session_statistics_include_zero_duration(sessions):
    stats = session_statistics(sessions)

    assert stats["ANNEX-1"].sessions == 2
    assert stats["ANNEX-1"].zero_duration == 1
    assert stats["ANNEX-1"].total_minutes == 20
    assert stats["ANNEX-1"].mean_minutes == 10
    assert stats["MAIN-1"].mean_minutes == 30
