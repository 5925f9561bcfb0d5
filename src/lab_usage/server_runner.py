"""Helpers to launch the local JSON API."""

from __future__ import annotations

import logging
import threading
import time
import webbrowser
from pathlib import Path
from typing import Optional

import uvicorn

from .analysis import AnalysisResult
from .config import AnalysisSettings
from .webapp import create_app


def run_server(
    *,
    result: Optional[AnalysisResult] = None,
    settings: Optional[AnalysisSettings] = None,
    host: str = "127.0.0.1",
    port: int = 8766,
    cache_path: Optional[Path] = None,
    open_browser: bool = False,
    log_level: str = "info",
) -> None:
    """Start the FastAPI app serving ``result`` and an optional browser tab.

    ``settings`` and ``cache_path`` also govern analyses posted to the API.
    """
    app = create_app(result=result, settings=settings, cache_path=cache_path)

    if open_browser:
        url = f"http://{host}:{port}/docs"
        threading.Thread(
            target=_launch_browser_after_delay, args=(url,), daemon=True
        ).start()

    logging.getLogger("uvicorn.error").setLevel(log_level.upper())
    uvicorn.run(app, host=host, port=port, log_level=log_level)


def _launch_browser_after_delay(url: str) -> None:
    time.sleep(1.0)
    try:
        webbrowser.open(url)
    except Exception:
        logging.getLogger(__name__).exception("Failed to launch browser for %s", url)
