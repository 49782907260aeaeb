"""Collaborator contracts consumed by the scheduling services."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, Optional, Protocol

from skiplevel.domain.models import BusyInterval, Commitment, RosterEntry, SeriesMetadata


class CalendarStore(Protocol):
    """Calendar provider holding busy time and recurring series."""

    def query_busy_intervals(self, start: datetime, end: datetime) -> list[BusyInterval]:
        ...

    def create_recurring_series(
        self,
        title: str,
        start: datetime,
        end: datetime,
        interval_weeks: int,
    ) -> str:
        """Create an open-ended weekly series and return its id."""
        ...

    def find_commitments_by_title_contains(
        self,
        marker: str,
        start: datetime,
        end: datetime,
    ) -> list[Commitment]:
        ...

    def delete_series(self, series_id: str) -> None:
        ...

    def delete_single_event(self, event_id: str) -> None:
        ...


class RosterStore(Protocol):
    def list_names(self) -> list[str]:
        ...

    def persist_names(self, names: Sequence[str]) -> None:
        """Replace the roster; metadata of names kept by the caller is reset."""
        ...

    def add_names(self, names: Sequence[str]) -> None:
        ...

    def list_entries(self) -> list[RosterEntry]:
        ...

    def get_entry(self, name: str) -> Optional[RosterEntry]:
        """Case-insensitive lookup."""
        ...

    def mark_scheduled(self, name: str, metadata: SeriesMetadata) -> None:
        ...

    def mark_unscheduled(self, name: str) -> None:
        ...

    def delete_name(self, name: str) -> bool:
        ...


class SlotTemplateStore(Protocol):
    def list_templates(self) -> list[dict[str, Any]]:
        ...

    def persist_templates(self, rows: Sequence[Mapping[str, Any]]) -> None:
        ...


class PolicyStore(Protocol):
    def get_interval_weeks(self) -> Optional[str]:
        """Raw stored value, or None when the property was never set."""
        ...

    def set_interval_weeks(self, interval_weeks: int) -> None:
        ...
