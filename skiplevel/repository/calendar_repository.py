"""Local SQLite calendar used as the default CalendarStore.

Recurring series are stored once as weekly rules and expanded with
``dateutil.rrule`` on every query; single events are stored as plain rows.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Optional
from uuid import uuid4

from dateutil.rrule import WEEKLY, rrule

from skiplevel.domain.errors import ExternalStoreError
from skiplevel.domain.models import BusyInterval, Commitment
from skiplevel.utils.config import Settings, get_settings
from skiplevel.utils.logger import get_logger


logger = get_logger(__name__)


class CalendarRepository:
    """Encapsulates calendar persistence behind the CalendarStore contract."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.calendar_database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._db_path)
        connection.row_factory = sqlite3.Row
        return connection

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Cursor]:
        connection = self._connect()
        try:
            with connection:
                yield connection.cursor()
        except sqlite3.Error as exc:
            raise ExternalStoreError(f"Calendar store failure: {exc}") from exc
        finally:
            connection.close()

    def initialize_database(self) -> None:
        with self._session() as cursor:
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS EventSeries (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    start_time TEXT NOT NULL,
                    end_time TEXT NOT NULL,
                    interval_weeks INTEGER NOT NULL CHECK (interval_weeks > 0),
                    created_at TEXT NOT NULL
                );
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS Events (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    start_time TEXT NOT NULL,
                    end_time TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );
                """
            )
            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_events_start
                ON Events(start_time);
                """
            )
        logger.info("Calendar database initialized at %s", self._db_path)

    def _load_commitments(
        self,
        start: datetime,
        end: datetime,
        title_marker: Optional[str] = None,
    ) -> list[Commitment]:
        title_clause = "WHERE instr(title, ?) > 0" if title_marker else ""
        params: tuple[str, ...] = (title_marker,) if title_marker else ()
        with self._session() as cursor:
            cursor.execute(
                f"SELECT id, title, start_time, end_time FROM Events {title_clause};",
                params,
            )
            event_rows = cursor.fetchall()
            cursor.execute(
                f"""
                SELECT id, title, start_time, end_time, interval_weeks
                FROM EventSeries {title_clause};
                """,
                params,
            )
            series_rows = cursor.fetchall()

        commitments: list[Commitment] = []
        for row in event_rows:
            event_start = datetime.fromisoformat(row["start_time"])
            event_end = datetime.fromisoformat(row["end_time"])
            if event_start < end and event_end > start:
                commitments.append(
                    Commitment(
                        event_id=str(row["id"]),
                        title=str(row["title"]),
                        start=event_start,
                        end=event_end,
                    )
                )

        for row in series_rows:
            anchor_start = datetime.fromisoformat(row["start_time"])
            duration = datetime.fromisoformat(row["end_time"]) - anchor_start
            rule = rrule(
                WEEKLY,
                interval=int(row["interval_weeks"]),
                dtstart=anchor_start,
                until=end,
            )
            for occurrence_start in rule.between(start - duration, end, inc=True):
                occurrence_end = occurrence_start + duration
                if not (occurrence_start < end and occurrence_end > start):
                    continue
                commitments.append(
                    Commitment(
                        event_id=f"{row['id']}@{occurrence_start.isoformat()}",
                        title=str(row["title"]),
                        start=occurrence_start,
                        end=occurrence_end,
                        series_id=str(row["id"]),
                    )
                )

        commitments.sort(key=lambda item: (item.start, item.event_id))
        return commitments

    def query_busy_intervals(self, start: datetime, end: datetime) -> list[BusyInterval]:
        return [
            BusyInterval(start=item.start, end=item.end, label=item.title)
            for item in self._load_commitments(start, end)
        ]

    def find_commitments_by_title_contains(
        self,
        marker: str,
        start: datetime,
        end: datetime,
    ) -> list[Commitment]:
        return self._load_commitments(start, end, title_marker=marker)

    def create_recurring_series(
        self,
        title: str,
        start: datetime,
        end: datetime,
        interval_weeks: int,
    ) -> str:
        series_id = f"series-{uuid4().hex}"
        with self._session() as cursor:
            cursor.execute(
                """
                INSERT INTO EventSeries (id, title, start_time, end_time, interval_weeks, created_at)
                VALUES (?, ?, ?, ?, ?, ?);
                """,
                (
                    series_id,
                    title,
                    start.isoformat(),
                    end.isoformat(),
                    interval_weeks,
                    datetime.now().isoformat(timespec="seconds"),
                ),
            )
        logger.debug(
            "Series created | series_id=%s | title=%s | interval_weeks=%s",
            series_id,
            title,
            interval_weeks,
        )
        return series_id

    def create_single_event(self, title: str, start: datetime, end: datetime) -> str:
        event_id = f"event-{uuid4().hex}"
        with self._session() as cursor:
            cursor.execute(
                """
                INSERT INTO Events (id, title, start_time, end_time, created_at)
                VALUES (?, ?, ?, ?, ?);
                """,
                (
                    event_id,
                    title,
                    start.isoformat(),
                    end.isoformat(),
                    datetime.now().isoformat(timespec="seconds"),
                ),
            )
        return event_id

    def delete_series(self, series_id: str) -> None:
        with self._session() as cursor:
            cursor.execute("DELETE FROM EventSeries WHERE id = ?;", (series_id,))
            deleted = cursor.rowcount
        if deleted == 0:
            raise ExternalStoreError(f"Series {series_id} does not exist")

    def delete_single_event(self, event_id: str) -> None:
        with self._session() as cursor:
            cursor.execute("DELETE FROM Events WHERE id = ?;", (event_id,))
            deleted = cursor.rowcount
        if deleted == 0:
            raise ExternalStoreError(f"Event {event_id} does not exist")

    def count_series(self) -> int:
        with self._session() as cursor:
            cursor.execute("SELECT COUNT(*) AS count FROM EventSeries;")
            return int(cursor.fetchone()["count"])
