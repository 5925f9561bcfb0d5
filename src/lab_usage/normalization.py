"""Utilities to turn raw ingestion rows into validated sessions."""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Iterable, Union

from .errors import MalformedRecord
from .models import NormalizationResult, RawRecord, RejectedRecord, Session, truncate_to_minute

logger = logging.getLogger(__name__)

_START_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
)


def normalize(raw: RawRecord, index: int = 0) -> Union[Session, RejectedRecord]:
    """Validate one raw row; problems produce a ``RejectedRecord``."""
    try:
        area = parse_area(raw.area)
        start = parse_start(raw.start)
        duration = parse_duration(raw.duration_minutes)
    except MalformedRecord as exc:
        logger.debug("Rejected record %d: %s", index, exc)
        return RejectedRecord(index=index, raw=raw, reason=str(exc))
    return Session(area=area, start=start, duration_minutes=duration)


def normalize_records(raws: Iterable[RawRecord]) -> NormalizationResult:
    result = NormalizationResult()
    for index, raw in enumerate(raws):
        outcome = normalize(raw, index)
        if isinstance(outcome, RejectedRecord):
            result.rejected.append(outcome)
        else:
            result.sessions.append(outcome)
            result.indexes.append(index)
    if result.rejected:
        logger.warning(
            "Excluded %d of %d records as malformed.",
            result.rejected_count,
            result.rejected_count + len(result.sessions),
        )
    return result


def parse_area(value: object) -> str:
    if value is None:
        raise MalformedRecord("area is unresolved")
    if not isinstance(value, str):
        raise MalformedRecord(f"area must be a string, got {type(value).__name__}")
    area = value.strip()
    if not area:
        raise MalformedRecord("area is unresolved")
    return area


def parse_start(value: object) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        parsed = _parse_start_text(value.strip())
    else:
        raise MalformedRecord(f"start time is missing or unparseable: {value!r}")
    if parsed.tzinfo is not None:
        raise MalformedRecord("timezone-aware start times are not supported")
    return truncate_to_minute(parsed)


def _parse_start_text(text: str) -> datetime:
    for fmt in _START_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise MalformedRecord(f"start time is unparseable: {text!r}") from exc


def parse_duration(value: object) -> int:
    if isinstance(value, bool) or value is None:
        raise MalformedRecord(f"duration is not an integer: {value!r}")
    if isinstance(value, int):
        duration = value
    elif isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            raise MalformedRecord(f"duration is not an integer: {value!r}")
        duration = int(value)
    elif isinstance(value, str):
        duration = _parse_duration_text(value.strip())
    else:
        raise MalformedRecord(f"duration is not an integer: {value!r}")
    if duration < 0:
        raise MalformedRecord(f"duration is negative: {duration}")
    return duration


def _parse_duration_text(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError as exc:
        raise MalformedRecord(f"duration is not an integer: {text!r}") from exc
    if not math.isfinite(number) or not number.is_integer():
        raise MalformedRecord(f"duration is not an integer: {text!r}")
    return int(number)
