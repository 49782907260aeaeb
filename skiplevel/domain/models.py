"""Domain models for recurring one-on-one allocation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from skiplevel.domain.errors import ItemFailure


class Weekday(Enum):
    SUNDAY = "Sunday"
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"

    @property
    def iso_index(self) -> int:
        """Index compatible with ``date.weekday()`` (Monday is 0)."""
        return _ISO_INDEX[self]


_ISO_INDEX = {
    Weekday.MONDAY: 0,
    Weekday.TUESDAY: 1,
    Weekday.WEDNESDAY: 2,
    Weekday.THURSDAY: 3,
    Weekday.FRIDAY: 4,
    Weekday.SATURDAY: 5,
    Weekday.SUNDAY: 6,
}


class RosterState(Enum):
    UNSCHEDULED = "Unscheduled"
    SCHEDULED = "Scheduled"


@dataclass(frozen=True)
class SlotTemplate:
    day_of_week: Weekday
    hour: int
    minute: int
    duration_minutes: int

    @property
    def time_label(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"

    def to_row(self) -> dict[str, str | int]:
        return {
            "day_of_week": self.day_of_week.value,
            "time": self.time_label,
            "duration": self.duration_minutes,
        }


@dataclass(frozen=True)
class Occurrence:
    template_index: int
    week_offset: int
    start: datetime
    end: datetime

    @property
    def slot_key(self) -> tuple[int, int]:
        return (self.template_index, self.week_offset)


@dataclass(frozen=True)
class BusyInterval:
    start: datetime
    end: datetime
    label: str = ""


@dataclass(frozen=True)
class Commitment:
    """Calendar entry as seen by the lifecycle manager."""

    event_id: str
    title: str
    start: datetime
    end: datetime
    series_id: Optional[str] = None

    @property
    def is_recurring(self) -> bool:
        return self.series_id is not None


@dataclass(frozen=True)
class RosterEntry:
    name: str
    state: RosterState = RosterState.UNSCHEDULED
    series_ref: Optional[str] = None
    event_title: Optional[str] = None
    next_occurrence: Optional[str] = None
    display_link: Optional[str] = None

    @property
    def is_scheduled(self) -> bool:
        return self.state is RosterState.SCHEDULED

    def to_dict(self) -> dict[str, str | None]:
        return {
            "name": self.name,
            "state": self.state.value,
            "series_ref": self.series_ref,
            "event_title": self.event_title,
            "next_occurrence": self.next_occurrence,
            "display_link": self.display_link,
        }


@dataclass(frozen=True)
class SeriesMetadata:
    """Calendar columns written onto a Scheduled roster row."""

    series_ref: str
    event_title: str
    next_occurrence: str
    display_link: str


@dataclass(frozen=True)
class LookupResult:
    name: str
    series: Optional[SeriesMetadata] = None
    series_ids: tuple[str, ...] = ()
    single_event_ids: tuple[str, ...] = ()

    @property
    def found(self) -> bool:
        return self.series is not None

    @property
    def has_commitments(self) -> bool:
        return bool(self.series_ids or self.single_event_ids)


@dataclass(frozen=True)
class Assignment:
    name: str
    occurrence: Optional[Occurrence]
    series_ref: Optional[str] = None

    @property
    def assigned(self) -> bool:
        return self.occurrence is not None

    def to_dict(self) -> dict[str, object]:
        if self.occurrence is None:
            return {"name": self.name, "assigned": False}
        return {
            "name": self.name,
            "assigned": True,
            "template_index": self.occurrence.template_index,
            "week_offset": self.occurrence.week_offset,
            "start": self.occurrence.start.isoformat(),
            "end": self.occurrence.end.isoformat(),
            "series_ref": self.series_ref,
        }


@dataclass(frozen=True)
class AllocationPlan:
    """Pure engine output before any series is materialized."""

    weeks_to_search: int
    assignments: list[Assignment]

    @property
    def unassigned_names(self) -> list[str]:
        return [item.name for item in self.assignments if not item.assigned]


@dataclass(frozen=True)
class BatchResult:
    processed: int
    created: int
    unassigned_count: int
    weeks_used: int
    assignments: list[Assignment] = field(default_factory=list)
    errors: list[ItemFailure] = field(default_factory=list)
    already_scheduled: int = 0
    total_names: int = 0

    @property
    def success(self) -> bool:
        return True

    def to_dict(self) -> dict[str, object]:
        return {
            "success": self.success,
            "processed": self.processed,
            "created": self.created,
            "unassigned_count": self.unassigned_count,
            "weeks_used": self.weeks_used,
            "already_scheduled": self.already_scheduled,
            "total_names": self.total_names,
            "assignments": [item.to_dict() for item in self.assignments],
            "errors": [error.to_dict() for error in self.errors],
        }


@dataclass(frozen=True)
class RetractResult:
    name: str
    series_deleted: bool
    series_count: int
    single_events_deleted: int


@dataclass(frozen=True)
class RemovalResult:
    name: str
    removed: bool
    deleted_commitments: int


@dataclass(frozen=True)
class BulkDeleteResult:
    total_names: int
    meetings_deleted: int
    names_without_meetings: int
    errors: list[ItemFailure] = field(default_factory=list)


@dataclass(frozen=True)
class RosterSaveResult:
    count: int
    names: list[str]
    duplicates_removed: int
    scheduled: int
    errors: list[ItemFailure] = field(default_factory=list)


@dataclass(frozen=True)
class IntervalSuggestion:
    value: int
    total_names: int
    total_slots: int

    @property
    def formula(self) -> str:
        if self.total_slots == 0:
            return f"no slots configured, default {self.value}"
        return f"ceil({self.total_names} / {self.total_slots}) = {self.value}"


@dataclass(frozen=True)
class OccurrencePreview:
    template: SlotTemplate
    occurrence: Occurrence
    available: bool


@dataclass(frozen=True)
class RosterClearResult:
    names_removed: int
    meetings_deleted: int
    errors: list[ItemFailure] = field(default_factory=list)
