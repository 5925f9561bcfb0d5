from __future__ import annotations

import pytest
from typer.testing import CliRunner

from lab_usage.cli import app

runner = CliRunner()


@pytest.fixture
def inputs(tmp_path):
    sessions = tmp_path / "sessions.csv"
    sessions.write_text(
        "area,start,duration_minutes\n"
        "A-1,2024-03-04 09:00,30\n"
        "A-1,2024-03-04 09:15,30\n"
        "A-2,2024-03-04 09:05,3\n"
        ",2024-03-04 09:00,3\n",
        encoding="utf-8",
    )
    areas = tmp_path / "areas.csv"
    areas.write_text("area,capacity\nA-1,2\nA-2,0\n", encoding="utf-8")
    return sessions, areas


def test_summary_prints_areas_and_buildings(inputs, tmp_path):
    sessions, areas = inputs

    result = runner.invoke(
        app,
        [
            "summary",
            "--sessions",
            str(sessions),
            "--areas",
            str(areas),
            "--cache-db",
            str(tmp_path / "cache.sqlite3"),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Sessions: 3 (1 rejected)" in result.output
    assert "A-1" in result.output
    assert "100.0%" in result.output
    assert "n/a" in result.output
    assert "record 3: area is unresolved" in result.output


def test_timeline_prints_busy_minutes(inputs):
    sessions, areas = inputs

    result = runner.invoke(
        app, ["timeline", "A-1", "--sessions", str(sessions), "--areas", str(areas)]
    )

    assert result.exit_code == 0, result.output
    assert "2024-03-04 09:20     2" in result.output
    assert "2024-03-04  " in result.output


def test_timeline_for_unknown_area_fails(inputs):
    sessions, areas = inputs

    result = runner.invoke(
        app, ["timeline", "Z", "--sessions", str(sessions), "--areas", str(areas)]
    )

    assert result.exit_code == 1


def test_unknown_area_in_sessions_aborts(inputs, tmp_path):
    sessions, _ = inputs
    areas = tmp_path / "partial.csv"
    areas.write_text("area,capacity\nA-1,2\n", encoding="utf-8")

    result = runner.invoke(
        app, ["summary", "--sessions", str(sessions), "--areas", str(areas), "--no-cache"]
    )

    assert result.exit_code == 1
    assert "Unknown area 'A-2'" in result.output


def test_clear_cache(tmp_path):
    result = runner.invoke(app, ["clear-cache", "--cache-db", str(tmp_path / "cache.sqlite3")])

    assert result.exit_code == 0
    assert "Removed 0 cached result(s)." in result.output


@pytest.fixture
def served(monkeypatch):
    calls = []
    monkeypatch.setattr(
        "lab_usage.server_runner.run_server", lambda **kwargs: calls.append(kwargs)
    )
    return calls


def test_serve_without_inputs_keeps_open_minutes(served, tmp_path):
    cache_db = tmp_path / "cache.sqlite3"

    result = runner.invoke(app, ["serve", "--open-minutes", "480", "--cache-db", str(cache_db)])

    assert result.exit_code == 0, result.output
    (call,) = served
    assert call["result"] is None
    assert call["settings"].open_minutes_per_day == 480
    assert call["cache_path"] == cache_db


def test_serve_analyzes_startup_files(served, inputs):
    sessions, areas = inputs

    result = runner.invoke(
        app,
        ["serve", "-s", str(sessions), "-a", str(areas), "--open-minutes", "60", "--no-cache"],
    )

    assert result.exit_code == 0, result.output
    (call,) = served
    assert call["result"].settings.open_minutes_per_day == 60
    assert call["settings"] is call["result"].settings
    assert call["cache_path"] is None


def test_serve_requires_both_inputs(served, inputs):
    sessions, _ = inputs

    result = runner.invoke(app, ["serve", "-s", str(sessions)])

    assert result.exit_code == 2
    assert served == []
