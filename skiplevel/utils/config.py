"""Environment-driven runtime settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    app_name: str = "Skip Level Scheduler"
    app_version: str = "1.0.0"
    log_level: str = "INFO"

    database_path: Path = Path("data/skiplevel.db")
    calendar_database_path: Path = Path("data/calendar.db")

    meeting_title_marker: str = "Skip Level:"
    lookup_window_months: int = 6
    sweep_window_months: int = 12

    calendar_link_template: str = (
        "https://calendar.google.com/calendar/u/0/r/day/{year}/{month}/{day}"
    )
    next_occurrence_format: str = "%m/%d/%Y %I:%M %p"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings once per process from environment variables."""
    defaults = Settings()
    return Settings(
        app_name=os.getenv("SKIPLEVEL_APP_NAME", defaults.app_name),
        app_version=os.getenv("SKIPLEVEL_APP_VERSION", defaults.app_version),
        log_level=os.getenv("LOG_LEVEL", defaults.log_level),
        database_path=Path(
            os.getenv("SKIPLEVEL_DATABASE_PATH", str(defaults.database_path))
        ),
        calendar_database_path=Path(
            os.getenv(
                "SKIPLEVEL_CALENDAR_DATABASE_PATH",
                str(defaults.calendar_database_path),
            )
        ),
        meeting_title_marker=os.getenv(
            "SKIPLEVEL_MEETING_TITLE_MARKER",
            defaults.meeting_title_marker,
        ),
        lookup_window_months=_env_int(
            "SKIPLEVEL_LOOKUP_WINDOW_MONTHS",
            defaults.lookup_window_months,
        ),
        sweep_window_months=_env_int(
            "SKIPLEVEL_SWEEP_WINDOW_MONTHS",
            defaults.sweep_window_months,
        ),
    )
