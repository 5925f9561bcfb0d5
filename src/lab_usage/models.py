"""Domain models for recorded lab sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, Union

ONE_MINUTE = timedelta(minutes=1)


def truncate_to_minute(value: datetime) -> datetime:
    return value.replace(second=0, microsecond=0)


@dataclass(frozen=True, slots=True)
class RawRecord:
    """A session row as delivered by ingestion, before any validation."""

    area: Optional[str]
    start: Union[datetime, str, None]
    duration_minutes: Union[int, float, str, None]


@dataclass(frozen=True, slots=True)
class Session:
    """A contiguous logged-in period on one computer of an area."""

    area: str
    start: datetime
    duration_minutes: int

    def __post_init__(self) -> None:
        if self.duration_minutes < 0:
            raise ValueError("duration_minutes must be non-negative")
        if self.start.second or self.start.microsecond:
            object.__setattr__(self, "start", truncate_to_minute(self.start))

    @property
    def occupies_timeline(self) -> bool:
        return self.duration_minutes > 0

    @property
    def end(self) -> Optional[datetime]:
        """Last occupied minute (inclusive), ``None`` for zero-length sessions."""
        if not self.occupies_timeline:
            return None
        return self.start + (self.duration_minutes - 1) * ONE_MINUTE


@dataclass(frozen=True, slots=True)
class RejectedRecord:
    """A raw record excluded from the analysis, with the reason why."""

    index: int
    raw: RawRecord
    reason: str


@dataclass(slots=True)
class NormalizationResult:
    sessions: list[Session] = field(default_factory=list)
    rejected: list[RejectedRecord] = field(default_factory=list)
    # Input position of each entry in ``sessions``.
    indexes: list[int] = field(default_factory=list)

    @property
    def rejected_count(self) -> int:
        return len(self.rejected)

    @property
    def timeline_sessions(self) -> list[Session]:
        return [session for session in self.sessions if session.occupies_timeline]
