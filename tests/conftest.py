from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from lab_usage.models import Session
from lab_usage.registry import AreaRegistry

DAY = datetime(2024, 3, 4)


def at(hour: int, minute: int = 0, day: int = 0) -> datetime:
    return DAY + timedelta(days=day, hours=hour, minutes=minute)


@pytest.fixture
def clock():
    return at


@pytest.fixture
def registry() -> AreaRegistry:
    return AreaRegistry.from_capacities(
        {"MAIN-1": 2, "MAIN-2": 3, "ANNEX-1": 4, "ANNEX-2": 0}
    )


@pytest.fixture
def sessions() -> list[Session]:
    return [
        Session("MAIN-1", at(9, 0), 30),
        Session("MAIN-1", at(9, 15), 30),
        Session("MAIN-2", at(9, 10), 5),
        Session("ANNEX-1", at(23, 50), 20),
        Session("ANNEX-1", at(10, 0), 0),
    ]
