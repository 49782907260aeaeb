"""Repository layer for roster, slot catalog and policy persistence."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from skiplevel.domain.constraints import DEFAULT_INTERVAL_WEEKS
from skiplevel.domain.errors import ExternalStoreError
from skiplevel.domain.models import RosterEntry, RosterState, SeriesMetadata
from skiplevel.utils.config import Settings, get_settings
from skiplevel.utils.logger import get_logger


logger = get_logger(__name__)

RECURRING_INTERVAL_PROPERTY = "Recurring Interval"
RECURRING_INTERVAL_DESCRIPTION = "Meeting recurrence interval in weeks (1-26)"


def _now_text() -> str:
    return datetime.now().isoformat(timespec="seconds")


class DataRepository:
    """SQLite-backed roster, slot template and policy store."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
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
            raise ExternalStoreError(f"Roster store failure: {exc}") from exc
        finally:
            connection.close()

    def initialize_database(self) -> None:
        """Create tables and seed the default recurring interval."""
        with self._session() as cursor:
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS Names (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    name_key TEXT NOT NULL UNIQUE,
                    date_added TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'Unscheduled',
                    series_id TEXT,
                    event_title TEXT,
                    calendar_link TEXT,
                    next_occurrence TEXT
                );
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS MeetingSlots (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    day_of_week TEXT NOT NULL,
                    time TEXT NOT NULL,
                    duration TEXT NOT NULL,
                    date_added TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'Active'
                );
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS Properties (
                    name TEXT PRIMARY KEY,
                    value TEXT,
                    description TEXT,
                    last_updated TEXT NOT NULL
                );
                """
            )
            cursor.execute(
                """
                INSERT OR IGNORE INTO Properties (name, value, description, last_updated)
                VALUES (?, ?, ?, ?);
                """,
                (
                    RECURRING_INTERVAL_PROPERTY,
                    str(DEFAULT_INTERVAL_WEEKS),
                    RECURRING_INTERVAL_DESCRIPTION,
                    _now_text(),
                ),
            )
        logger.info("Database initialized at %s", self._db_path)

    # Roster

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> RosterEntry:
        scheduled = str(row["status"]) == RosterState.SCHEDULED.value and bool(row["series_id"])
        if not scheduled:
            return RosterEntry(name=str(row["name"]))
        return RosterEntry(
            name=str(row["name"]),
            state=RosterState.SCHEDULED,
            series_ref=str(row["series_id"]),
            event_title=row["event_title"],
            next_occurrence=row["next_occurrence"],
            display_link=row["calendar_link"],
        )

    def list_names(self) -> list[str]:
        with self._session() as cursor:
            cursor.execute("SELECT name FROM Names ORDER BY id ASC;")
            return [str(row["name"]) for row in cursor.fetchall()]

    def list_entries(self) -> list[RosterEntry]:
        with self._session() as cursor:
            cursor.execute(
                """
                SELECT name, status, series_id, event_title, calendar_link, next_occurrence
                FROM Names
                ORDER BY id ASC;
                """
            )
            return [self._row_to_entry(row) for row in cursor.fetchall()]

    def get_entry(self, name: str) -> Optional[RosterEntry]:
        with self._session() as cursor:
            cursor.execute(
                """
                SELECT name, status, series_id, event_title, calendar_link, next_occurrence
                FROM Names
                WHERE name_key = ?;
                """,
                (name.strip().lower(),),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            return self._row_to_entry(row)

    def persist_names(self, names: Sequence[str]) -> None:
        added_at = _now_text()
        with self._session() as cursor:
            cursor.execute("DELETE FROM Names;")
            cursor.executemany(
                """
                INSERT INTO Names (name, name_key, date_added, status)
                VALUES (?, ?, ?, ?);
                """,
                [
                    (name, name.lower(), added_at, RosterState.UNSCHEDULED.value)
                    for name in names
                ],
            )

    def add_names(self, names: Sequence[str]) -> None:
        if not names:
            return
        added_at = _now_text()
        with self._session() as cursor:
            cursor.executemany(
                """
                INSERT OR IGNORE INTO Names (name, name_key, date_added, status)
                VALUES (?, ?, ?, ?);
                """,
                [
                    (name, name.lower(), added_at, RosterState.UNSCHEDULED.value)
                    for name in names
                ],
            )

    def mark_scheduled(self, name: str, metadata: SeriesMetadata) -> None:
        with self._session() as cursor:
            cursor.execute(
                """
                UPDATE Names
                SET status = ?,
                    series_id = ?,
                    event_title = ?,
                    calendar_link = ?,
                    next_occurrence = ?
                WHERE name_key = ?;
                """,
                (
                    RosterState.SCHEDULED.value,
                    metadata.series_ref,
                    metadata.event_title,
                    metadata.display_link,
                    metadata.next_occurrence,
                    name.strip().lower(),
                ),
            )
            if cursor.rowcount == 0:
                raise ExternalStoreError(f'Name "{name}" not found in Names table')

    def mark_unscheduled(self, name: str) -> None:
        with self._session() as cursor:
            cursor.execute(
                """
                UPDATE Names
                SET status = ?,
                    series_id = NULL,
                    event_title = NULL,
                    calendar_link = NULL,
                    next_occurrence = NULL
                WHERE name_key = ?;
                """,
                (RosterState.UNSCHEDULED.value, name.strip().lower()),
            )

    def delete_name(self, name: str) -> bool:
        with self._session() as cursor:
            cursor.execute("DELETE FROM Names WHERE name_key = ?;", (name.strip().lower(),))
            return cursor.rowcount > 0

    def clear_names(self) -> int:
        with self._session() as cursor:
            cursor.execute("DELETE FROM Names;")
            return int(cursor.rowcount)

    # Slot catalog

    def list_templates(self) -> list[dict[str, Any]]:
        with self._session() as cursor:
            cursor.execute(
                """
                SELECT day_of_week, time, duration
                FROM MeetingSlots
                ORDER BY id ASC;
                """
            )
            return [
                {
                    "day_of_week": row["day_of_week"],
                    "time": row["time"],
                    "duration": row["duration"],
                }
                for row in cursor.fetchall()
            ]

    def persist_templates(self, rows: Sequence[Mapping[str, Any]]) -> None:
        added_at = _now_text()
        with self._session() as cursor:
            cursor.execute("DELETE FROM MeetingSlots;")
            cursor.executemany(
                """
                INSERT INTO MeetingSlots (day_of_week, time, duration, date_added)
                VALUES (?, ?, ?, ?);
                """,
                [
                    (
                        str(row["day_of_week"]),
                        str(row["time"]),
                        str(row["duration"]),
                        added_at,
                    )
                    for row in rows
                ],
            )

    # Policy

    def get_property(self, name: str) -> Optional[str]:
        with self._session() as cursor:
            cursor.execute("SELECT value FROM Properties WHERE name = ?;", (name,))
            row = cursor.fetchone()
            if row is None or row["value"] is None:
                return None
            return str(row["value"])

    def save_property(self, name: str, value: str, description: str = "") -> None:
        with self._session() as cursor:
            cursor.execute(
                """
                INSERT INTO Properties (name, value, description, last_updated)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(name) DO UPDATE SET
                    value = excluded.value,
                    last_updated = excluded.last_updated;
                """,
                (name, value, description, _now_text()),
            )

    def get_interval_weeks(self) -> Optional[str]:
        return self.get_property(RECURRING_INTERVAL_PROPERTY)

    def set_interval_weeks(self, interval_weeks: int) -> None:
        self.save_property(
            RECURRING_INTERVAL_PROPERTY,
            str(interval_weeks),
            RECURRING_INTERVAL_DESCRIPTION,
        )
