"""End-to-end analysis run: normalize, build timelines, summarize."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Optional

from .config import AnalysisSettings
from .db import database_connection, fingerprint, load_timelines, store_timelines
from .errors import UndefinedPercentage
from .models import NormalizationResult, RawRecord
from .normalization import normalize_records
from .queries import (
    Percentage,
    building_rollup,
    daily_max,
    daily_utilization,
    overall_max,
    percentage_of_capacity,
    session_statistics,
)
from .registry import AreaRegistry
from .timeline import Timeline, TimelineSet, build_timelines

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AnalysisResult:
    registry: AreaRegistry
    normalization: NormalizationResult
    timelines: TimelineSet
    settings: AnalysisSettings = field(default_factory=AnalysisSettings)
    buildings: dict[str, Timeline] = field(default_factory=dict)

    @property
    def has_data(self) -> bool:
        return not self.timelines.is_empty

    def area_summary(self) -> list[dict[str, Any]]:
        stats = session_statistics(self.normalization.sessions)
        rows = []
        for area in sorted(self.registry, key=lambda item: item.label):
            row = summarize_timeline(
                self.timelines.get(area.label) if self.has_data else None,
                capacity=area.capacity,
                open_minutes_per_day=self.settings.open_minutes_per_day,
            )
            area_stats = stats.get(area.label)
            row.update(
                area=area.label,
                building=area.building,
                floor=area.floor,
                sessions=area_stats.sessions if area_stats else 0,
            )
            rows.append(row)
        return rows

    def building_summary(self) -> list[dict[str, Any]]:
        rows = []
        for building, members in self.registry.buildings().items():
            row = summarize_timeline(
                self.buildings.get(building),
                capacity=sum(area.capacity for area in members),
                open_minutes_per_day=self.settings.open_minutes_per_day,
            )
            row.update(building=building, areas=[area.label for area in members])
            rows.append(row)
        return rows


def summarize_timeline(
    timeline: Optional[Timeline], *, capacity: int, open_minutes_per_day: int
) -> dict[str, Any]:
    if timeline is None:
        return {
            "capacity": capacity,
            "peak": 0,
            "peak_percent": percent_value(percentage_of_capacity(capacity, 0)),
            "busiest_day": None,
            "mean_daily_percent": None,
        }
    peak = overall_max(timeline)
    per_day = daily_max(timeline)
    busiest_day = (
        max(per_day, key=lambda day: (per_day[day], -day.toordinal())) if per_day else None
    )
    utilization = [
        value
        for value in daily_utilization(timeline, open_minutes_per_day).values()
        if not isinstance(value, UndefinedPercentage)
    ]
    mean_daily = float(sum(utilization) / len(utilization)) if utilization else None
    return {
        "capacity": capacity,
        "peak": peak,
        "peak_percent": percent_value(percentage_of_capacity(capacity, peak)),
        "busiest_day": busiest_day.isoformat() if busiest_day else None,
        "mean_daily_percent": round(mean_daily, 2) if mean_daily is not None else None,
    }


def percent_value(value: Percentage) -> Optional[float]:
    """Plain float for reports, ``None`` for an undefined percentage."""
    if isinstance(value, UndefinedPercentage):
        return None
    return round(float(value), 2)


def run_analysis(
    raws: Iterable[RawRecord],
    registry: AreaRegistry,
    settings: Optional[AnalysisSettings] = None,
    *,
    cache_path: Optional[Path] = None,
) -> AnalysisResult:
    settings = settings or AnalysisSettings()
    normalization = normalize_records(raws)
    sessions = normalization.sessions
    registry.validate_sessions(sessions, normalization.indexes)

    timelines: Optional[TimelineSet] = None
    key: Optional[str] = None
    if settings.use_cache and cache_path is not None:
        key = fingerprint(sessions, registry)
        with database_connection(cache_path) as conn:
            timelines = load_timelines(conn, key)
    if timelines is None:
        timelines = build_timelines(sessions, registry, workers=settings.workers)
        if key is not None and cache_path is not None:
            with database_connection(cache_path) as conn:
                store_timelines(conn, key, timelines)

    buildings = building_rollup(timelines, registry) if not timelines.is_empty else {}
    logger.info(
        "Analyzed %d sessions across %d areas (%d rejected).",
        len(sessions),
        len(registry),
        normalization.rejected_count,
    )
    return AnalysisResult(
        registry=registry,
        normalization=normalization,
        timelines=timelines,
        settings=settings,
        buildings=buildings,
    )
