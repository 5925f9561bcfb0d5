"""Exceptions raised while analyzing lab sessions."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class LabUsageError(Exception):
    """Base class for all analysis errors."""


class MalformedRecord(LabUsageError, ValueError):
    """A single input record could not be turned into a session."""


class InvalidArea(LabUsageError, ValueError):
    """The area registry was given inconsistent input."""


class UnknownArea(LabUsageError, KeyError):
    """A session or query referenced an area missing from the registry."""

    def __init__(self, area: object, *, index: Optional[int] = None) -> None:
        self.area = area
        self.index = index
        if index is None:
            message = f"Unknown area {area!r}"
        else:
            message = f"Unknown area {area!r} (record {index})"
        super().__init__(message)

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message.
        return str(self.args[0])


class NoData(LabUsageError):
    """The session set has no minute with a non-zero duration session."""


class InconsistentGrid(LabUsageError):
    """Timelines combined together do not share the same minute range."""


class UndefinedPercentage(Enum):
    """Marker returned instead of a percentage when capacity is zero."""

    ZERO_CAPACITY = "undefined"

    def __str__(self) -> str:
        return "n/a"


UNDEFINED_PERCENTAGE = UndefinedPercentage.ZERO_CAPACITY
