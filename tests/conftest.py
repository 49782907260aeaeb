from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
from itertools import count
from typing import Optional

import pytest

from skiplevel.domain.models import BusyInterval, Commitment
from skiplevel.repository.data_repository import DataRepository
from skiplevel.utils.config import get_settings


# Sunday; week 0 holds Mon 2026-10-19 and Wed 2026-10-21.
FIXED_NOW = datetime(2026, 10, 18, 8, 0)

MONDAY_MORNING = {"day_of_week": "Monday", "time": "09:00", "duration": 30}
WEDNESDAY_AFTERNOON = {"day_of_week": "Wednesday", "time": "2:00 PM", "duration": "30"}


def fixed_clock() -> datetime:
    return FIXED_NOW


class FakeCalendar:
    """In-memory CalendarStore with weekly series expansion and failure switches."""

    def __init__(self) -> None:
        self.series: dict[str, dict] = {}
        self.events: dict[str, dict] = {}
        self.busy: list[BusyInterval] = []
        self.fail_create_for: set[str] = set()
        self.fail_delete_for: set[str] = set()
        self.fail_search = False
        self.calls: list[str] = []
        self._ids = count(1)

    def add_series(self, title: str, start: datetime, minutes: int, interval_weeks: int) -> str:
        return self.create_recurring_series(
            title,
            start,
            start + timedelta(minutes=minutes),
            interval_weeks,
        )

    def add_event(self, title: str, start: datetime, minutes: int) -> str:
        event_id = f"event-{next(self._ids)}"
        self.events[event_id] = {
            "title": title,
            "start": start,
            "end": start + timedelta(minutes=minutes),
        }
        return event_id

    def _commitments(self, start: datetime, end: datetime) -> list[Commitment]:
        found: list[Commitment] = []
        for event_id, event in self.events.items():
            if event["start"] < end and event["end"] > start:
                found.append(Commitment(event_id, event["title"], event["start"], event["end"]))
        for series_id, series in self.series.items():
            duration = series["end"] - series["start"]
            step = timedelta(weeks=series["interval"])
            occurrence = series["start"]
            while occurrence < end:
                if occurrence + duration > start:
                    found.append(
                        Commitment(
                            event_id=f"{series_id}@{occurrence.isoformat()}",
                            title=series["title"],
                            start=occurrence,
                            end=occurrence + duration,
                            series_id=series_id,
                        )
                    )
                occurrence += step
        found.sort(key=lambda item: item.start)
        return found

    def query_busy_intervals(self, start: datetime, end: datetime) -> list[BusyInterval]:
        self.calls.append("query_busy_intervals")
        intervals = [item for item in self.busy if item.start < end and item.end > start]
        intervals.extend(
            BusyInterval(item.start, item.end, item.title) for item in self._commitments(start, end)
        )
        return intervals

    def create_recurring_series(
        self,
        title: str,
        start: datetime,
        end: datetime,
        interval_weeks: int,
    ) -> str:
        self.calls.append("create_recurring_series")
        if any(name in title for name in self.fail_create_for):
            raise RuntimeError("calendar unavailable")
        series_id = f"series-{next(self._ids)}"
        self.series[series_id] = {
            "title": title,
            "start": start,
            "end": end,
            "interval": interval_weeks,
        }
        return series_id

    def find_commitments_by_title_contains(
        self,
        marker: str,
        start: datetime,
        end: datetime,
    ) -> list[Commitment]:
        self.calls.append("find_commitments_by_title_contains")
        if self.fail_search:
            raise RuntimeError("calendar search unavailable")
        return [item for item in self._commitments(start, end) if marker in item.title]

    def delete_series(self, series_id: str) -> None:
        self.calls.append("delete_series")
        series = self.series.get(series_id)
        if series is None:
            raise KeyError(series_id)
        if any(name in series["title"] for name in self.fail_delete_for):
            raise RuntimeError("delete rejected")
        del self.series[series_id]

    def delete_single_event(self, event_id: str) -> None:
        self.calls.append("delete_single_event")
        del self.events[event_id]

    def series_for(self, name: str) -> Optional[dict]:
        for series in self.series.values():
            if series["title"] == f"Skip Level: {name}":
                return series
        return None


@pytest.fixture
def settings(tmp_path):
    get_settings.cache_clear()
    return replace(
        get_settings(),
        database_path=tmp_path / "skiplevel.db",
        calendar_database_path=tmp_path / "calendar.db",
    )


@pytest.fixture
def repository(settings) -> DataRepository:
    repo = DataRepository(settings)
    repo.initialize_database()
    return repo


@pytest.fixture
def calendar() -> FakeCalendar:
    return FakeCalendar()
