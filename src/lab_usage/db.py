"""SQLite cache for computed timelines, keyed by a content hash of the input."""

from __future__ import annotations

import hashlib
import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .models import Session
from .registry import AreaRegistry
from .timeline import GridRange, TimelineSet, assemble_timelines

logger = logging.getLogger(__name__)

DATETIME_FMT = "%Y-%m-%d %H:%M"

# Bump when the cached payload or timeline semantics change.
CACHE_VERSION = 1


def open_database(path: Path, *, check_same_thread: bool = True) -> sqlite3.Connection:
    """Open (and initialize) the cache database."""
    conn = sqlite3.connect(
        path,
        isolation_level=None,
        check_same_thread=check_same_thread,
    )
    conn.row_factory = sqlite3.Row
    initialize_schema(conn)
    return conn


@contextmanager
def database_connection(
    path: Path, *, check_same_thread: bool = True
) -> Iterator[sqlite3.Connection]:
    conn = open_database(path, check_same_thread=check_same_thread)
    try:
        yield conn
    finally:
        conn.close()


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS timeline_cache (
            key TEXT PRIMARY KEY,
            created_at TEXT NOT NULL,
            grid_start TEXT,
            grid_end TEXT,
            payload TEXT NOT NULL
        );
        """
    )


def fingerprint(
    sessions: Iterable[Session],
    registry: AreaRegistry,
    grid: Optional[GridRange] = None,
) -> str:
    """Content hash of everything a timeline build depends on."""
    digest = hashlib.sha256()
    digest.update(f"v{CACHE_VERSION}\n".encode())
    for area in sorted(registry, key=lambda item: item.label):
        digest.update(
            json.dumps([area.label, area.building, area.floor, area.capacity]).encode()
        )
    digest.update(b"\n--\n")
    rows = sorted(
        (session.area, session.start.strftime(DATETIME_FMT), session.duration_minutes)
        for session in sessions
        if session.occupies_timeline
    )
    for row in rows:
        digest.update(json.dumps(row).encode())
    if grid is not None:
        digest.update(
            f"\n{grid.start.strftime(DATETIME_FMT)}..{grid.end.strftime(DATETIME_FMT)}".encode()
        )
    return digest.hexdigest()


def store_timelines(conn: sqlite3.Connection, key: str, timelines: TimelineSet) -> None:
    grid = timelines.grid
    payload = {
        timeline.label: {"capacity": timeline.capacity, "counts": list(timeline.counts)}
        for timeline in timelines.values()
    }
    conn.execute(
        """
        INSERT OR REPLACE INTO timeline_cache (key, created_at, grid_start, grid_end, payload)
        VALUES (?, ?, ?, ?, ?)
        """,
        (
            key,
            datetime.now().isoformat(timespec="seconds"),
            grid.start.strftime(DATETIME_FMT) if grid else None,
            grid.end.strftime(DATETIME_FMT) if grid else None,
            json.dumps(payload),
        ),
    )
    logger.debug("Cached %d timelines under %s", len(timelines), key[:12])


def load_timelines(conn: sqlite3.Connection, key: str) -> Optional[TimelineSet]:
    row = conn.execute(
        "SELECT grid_start, grid_end, payload FROM timeline_cache WHERE key = ?",
        (key,),
    ).fetchone()
    if row is None:
        logger.debug("Cache miss for %s", key[:12])
        return None
    logger.debug("Cache hit for %s", key[:12])
    if row["grid_start"] is None:
        return TimelineSet.empty()
    grid = GridRange(
        start=datetime.strptime(row["grid_start"], DATETIME_FMT),
        end=datetime.strptime(row["grid_end"], DATETIME_FMT),
    )
    payload = json.loads(row["payload"])
    capacities = {label: entry["capacity"] for label, entry in payload.items()}
    return assemble_timelines(
        grid,
        {label: tuple(entry["counts"]) for label, entry in payload.items()},
        capacities.__getitem__,
    )


def clear_cache(conn: sqlite3.Connection) -> int:
    cur = conn.execute("DELETE FROM timeline_cache")
    return cur.rowcount
