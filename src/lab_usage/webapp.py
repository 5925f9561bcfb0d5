"""FastAPI application exposing computed lab usage as a read-only JSON API."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from .analysis import AnalysisResult, percent_value, run_analysis
from .config import AnalysisSettings
from .errors import InvalidArea, UnknownArea
from .models import RawRecord
from .queries import daily_max, daily_minutes, daily_utilization
from .registry import Area, AreaRegistry, split_label

logger = logging.getLogger(__name__)


class ResultHolder:
    """Hold the analysis result currently served by the API."""

    def __init__(self, result: Optional[AnalysisResult]) -> None:
        self._lock = threading.Lock()
        self._result = result

    def get(self) -> AnalysisResult:
        with self._lock:
            result = self._result
        if result is None:
            raise HTTPException(status_code=404, detail="No analysis loaded")
        return result

    def replace(self, result: AnalysisResult) -> None:
        with self._lock:
            self._result = result


class RecordPayload(BaseModel):
    area: Optional[str] = None
    start: Optional[str] = None
    duration_minutes: Optional[Union[int, float, str]] = None

    model_config = ConfigDict(extra="forbid")


class AreaPayload(BaseModel):
    area: str
    capacity: int
    building: Optional[str] = None
    floor: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class AnalyzePayload(BaseModel):
    records: list[RecordPayload] = Field(default_factory=list)
    areas: list[AreaPayload]
    open_minutes_per_day: Optional[int] = None

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    result: Optional[AnalysisResult] = None,
    settings: Optional[AnalysisSettings] = None,
    cache_path: Optional[Path] = None,
) -> FastAPI:
    """Instantiate the FastAPI application."""
    resolved_settings = settings or (result.settings if result else AnalysisSettings())
    holder = ResultHolder(result)

    app = FastAPI(title="Lab Usage", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.results = holder

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        current = request.app.state.results.get()
        grid = current.timelines.grid
        return {
            "has_data": current.has_data,
            "sessions": len(current.normalization.sessions),
            "rejected": current.normalization.rejected_count,
            "areas": len(current.registry),
            "open_minutes_per_day": current.settings.open_minutes_per_day,
            "grid": (
                {
                    "start": grid.start.isoformat(),
                    "end": grid.end.isoformat(),
                    "minutes": grid.minutes,
                }
                if grid
                else None
            ),
        }

    @app.get("/api/areas")
    def areas(request: Request) -> Dict[str, Any]:
        current = request.app.state.results.get()
        return {"areas": current.area_summary()}

    @app.get("/api/buildings")
    def buildings(request: Request) -> Dict[str, Any]:
        current = request.app.state.results.get()
        return {"buildings": current.building_summary()}

    @app.get("/api/areas/{area}/daily")
    def area_daily(area: str, request: Request) -> Dict[str, Any]:
        current = request.app.state.results.get()
        capacity = _capacity_or_404(current, area)
        days: list[Dict[str, Any]] = []
        if current.has_data:
            timeline = current.timelines.get(area)
            peaks = daily_max(timeline)
            minutes = daily_minutes(timeline)
            utilization = daily_utilization(timeline, current.settings.open_minutes_per_day)
            days = [
                {
                    "date": day.isoformat(),
                    "peak": peaks[day],
                    "occupied_minutes": minutes[day],
                    "percent": percent_value(utilization[day]),
                }
                for day in sorted(peaks)
            ]
        return {"area": area, "capacity": capacity, "days": days}

    @app.get("/api/areas/{area}/timeline")
    def area_timeline(
        area: str,
        request: Request,
        start: Optional[str] = Query(
            default=None,
            description="First minute to include, YYYY-MM-DDTHH:MM.",
        ),
        end: Optional[str] = Query(
            default=None,
            description="Last minute to include, YYYY-MM-DDTHH:MM.",
        ),
        nonzero: bool = Query(default=False, description="Only minutes with sessions."),
    ) -> Dict[str, Any]:
        current = request.app.state.results.get()
        capacity = _capacity_or_404(current, area)
        start_minute = _parse_minute(start)
        end_minute = _parse_minute(end)
        if start_minute and end_minute and end_minute < start_minute:
            raise HTTPException(status_code=400, detail="end must be on or after start")
        points: list[Dict[str, Any]] = []
        if current.has_data:
            for minute, count in current.timelines.get(area).iter_minutes():
                if start_minute and minute < start_minute:
                    continue
                if end_minute and minute > end_minute:
                    break
                if nonzero and not count:
                    continue
                points.append({"minute": minute.isoformat(), "count": count})
        return {"area": area, "capacity": capacity, "points": points}

    @app.post("/api/analyze")
    def analyze(payload: AnalyzePayload, request: Request) -> Dict[str, Any]:
        settings_for_run = resolved_settings
        if payload.open_minutes_per_day is not None:
            try:
                settings_for_run = AnalysisSettings.from_options(
                    payload.open_minutes_per_day,
                    workers=resolved_settings.workers,
                    use_cache=resolved_settings.use_cache,
                )
            except ValueError as exc:
                raise HTTPException(status_code=400, detail=str(exc)) from exc
        try:
            registry = AreaRegistry(_area_from_payload(item) for item in payload.areas)
            new_result = run_analysis(
                (
                    RawRecord(
                        area=item.area,
                        start=item.start,
                        duration_minutes=item.duration_minutes,
                    )
                    for item in payload.records
                ),
                registry,
                settings_for_run,
                cache_path=cache_path,
            )
        except InvalidArea as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except UnknownArea as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        request.app.state.results.replace(new_result)
        logger.info("Loaded analysis of %d records.", len(payload.records))
        return {
            "sessions": len(new_result.normalization.sessions),
            "rejected": [
                {"index": rejected.index, "reason": rejected.reason}
                for rejected in new_result.normalization.rejected
            ],
            "has_data": new_result.has_data,
        }

    return app


def _capacity_or_404(result: AnalysisResult, area: str) -> int:
    try:
        return result.registry.capacity_of(area)
    except UnknownArea as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


def _parse_minute(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid minute format") from exc
    if parsed.tzinfo is not None:
        raise HTTPException(status_code=400, detail="Timezone-aware minutes are not supported")
    return parsed.replace(second=0, microsecond=0)


def _area_from_payload(item: AreaPayload) -> Area:
    building, floor = split_label(item.area)
    return Area(
        label=item.area,
        building=item.building or building,
        floor=item.floor if item.floor is not None else floor,
        capacity=item.capacity,
    )
