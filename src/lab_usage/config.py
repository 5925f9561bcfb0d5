"""Configuration models and helpers for lab usage analysis."""

from __future__ import annotations

from dataclasses import dataclass

MINUTES_PER_DAY = 24 * 60


@dataclass(slots=True)
class AnalysisSettings:
    """Runtime configuration for an analysis run."""

    open_minutes_per_day: int = 720
    workers: int = 1
    use_cache: bool = True

    @classmethod
    def from_options(
        cls,
        open_minutes_per_day: int,
        workers: int | None = None,
        use_cache: bool = True,
    ) -> "AnalysisSettings":
        if not 1 <= open_minutes_per_day <= MINUTES_PER_DAY:
            raise ValueError(
                f"open_minutes_per_day must be between 1 and {MINUTES_PER_DAY}"
            )
        resolved_workers = workers if workers is not None else 1
        if resolved_workers < 1:
            raise ValueError("workers must be at least 1")
        return cls(
            open_minutes_per_day=open_minutes_per_day,
            workers=resolved_workers,
            use_cache=use_cache,
        )
