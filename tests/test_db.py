from __future__ import annotations

import pytest

from lab_usage import analysis
from lab_usage.config import AnalysisSettings
from lab_usage.db import (
    clear_cache,
    database_connection,
    fingerprint,
    load_timelines,
    store_timelines,
)
from lab_usage.models import RawRecord, Session
from lab_usage.registry import AreaRegistry
from lab_usage.timeline import build_timelines


def test_fingerprint_tracks_input_changes(registry, sessions, clock):
    key = fingerprint(sessions, registry)

    assert key == fingerprint(list(reversed(sessions)), registry)
    assert key != fingerprint(sessions + [Session("MAIN-1", clock(12), 5)], registry)
    assert key != fingerprint(
        sessions, AreaRegistry.from_capacities({"MAIN-1": 2, "MAIN-2": 3, "ANNEX-1": 5, "ANNEX-2": 0})
    )


def test_store_and_load_timelines(tmp_path, registry, sessions):
    timelines = build_timelines(sessions, registry)
    key = fingerprint(sessions, registry)

    with database_connection(tmp_path / "cache.sqlite3") as conn:
        assert load_timelines(conn, key) is None
        store_timelines(conn, key, timelines)
        loaded = load_timelines(conn, key)

    assert loaded.grid == timelines.grid
    assert list(loaded) == list(timelines)
    for label in timelines:
        assert loaded.get(label) == timelines.get(label)


def test_empty_result_is_cached(tmp_path, registry, clock):
    empty = build_timelines([Session("MAIN-1", clock(9), 0)], registry)

    with database_connection(tmp_path / "cache.sqlite3") as conn:
        store_timelines(conn, "empty", empty)
        assert load_timelines(conn, "empty").is_empty
        assert clear_cache(conn) == 1
        assert load_timelines(conn, "empty") is None


def test_run_analysis_reuses_cache(tmp_path, registry, monkeypatch):
    raws = [
        RawRecord("MAIN-1", "2024-03-04 09:00", 30),
        RawRecord("MAIN-2", "2024-03-04 09:10", 15),
    ]
    cache_path = tmp_path / "cache.sqlite3"
    settings = AnalysisSettings()

    first = analysis.run_analysis(raws, registry, settings, cache_path=cache_path)

    def fail(*args, **kwargs):
        raise AssertionError("timelines should come from the cache")

    monkeypatch.setattr(analysis, "build_timelines", fail)
    second = analysis.run_analysis(raws, registry, settings, cache_path=cache_path)

    assert second.timelines.get("MAIN-1") == first.timelines.get("MAIN-1")
    assert second.area_summary() == first.area_summary()

    with pytest.raises(AssertionError):
        analysis.run_analysis(raws[:1], registry, settings, cache_path=cache_path)
