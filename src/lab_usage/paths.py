"""Helpers for locating application directories."""

from __future__ import annotations

from pathlib import Path

from platformdirs import PlatformDirs


APP_NAME = "LabUsage"
APP_AUTHOR = "LabUsage"


def get_cache_dir() -> Path:
    """Return the directory holding cached timelines, creating it if needed."""
    dirs = PlatformDirs(appname=APP_NAME, appauthor=APP_AUTHOR)
    path = Path(dirs.user_cache_path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_path() -> Path:
    return get_cache_dir() / "timelines.sqlite3"
