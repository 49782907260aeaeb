"""Series lifecycle: lookup, materialization and retraction of recurring meetings.

A calendar commitment belongs to a roster name when its title contains both
the configured marker (``Skip Level:``) and the name as a plain substring.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from dateutil.relativedelta import relativedelta

from skiplevel.domain.errors import (
    ItemFailure,
    NotFoundError,
    translate_store_errors,
)
from skiplevel.domain.models import (
    BulkDeleteResult,
    LookupResult,
    Occurrence,
    RemovalResult,
    RetractResult,
    RosterEntry,
    SeriesMetadata,
)
from skiplevel.domain.roster import normalize_name
from skiplevel.repository.stores import CalendarStore, RosterStore
from skiplevel.utils.config import Settings, get_settings
from skiplevel.utils.logger import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class _DeletionCounts:
    series: int
    single_events: int

    @property
    def total(self) -> int:
        return self.series + self.single_events


class SeriesLifecycleService:
    """Moves roster entries between Unscheduled and Scheduled."""

    def __init__(
        self,
        calendar: CalendarStore,
        roster: RosterStore,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._calendar = calendar
        self._roster = roster
        self._settings = settings or get_settings()
        self._clock = clock

    def meeting_title(self, name: str) -> str:
        return f"{self._settings.meeting_title_marker} {name}"

    def display_link(self, start: datetime) -> str:
        return self._settings.calendar_link_template.format(
            year=start.year,
            month=start.month,
            day=start.day,
        )

    def describe_occurrence(self, start: datetime) -> str:
        return start.strftime(self._settings.next_occurrence_format)

    def build_metadata(self, series_ref: str, title: str, start: datetime) -> SeriesMetadata:
        return SeriesMetadata(
            series_ref=series_ref,
            event_title=title,
            next_occurrence=self.describe_occurrence(start),
            display_link=self.display_link(start),
        )

    def require_entry(self, name: object) -> RosterEntry:
        normalized = normalize_name(name)
        with translate_store_errors("Roster lookup"):
            entry = self._roster.get_entry(normalized)
        if entry is None:
            raise NotFoundError(f'Name "{normalized}" not found in the stored names list')
        return entry

    def lookup_window_end(self, now: datetime) -> datetime:
        return now + relativedelta(months=self._settings.lookup_window_months)

    def sweep_window_end(self, now: datetime) -> datetime:
        return now + relativedelta(months=self._settings.sweep_window_months)

    def lookup(self, name: str, window_end: Optional[datetime] = None) -> LookupResult:
        """Find the recurring series and stray single events carrying ``name``."""
        now = self._clock()
        end = window_end or self.lookup_window_end(now)
        with translate_store_errors("Calendar search"):
            commitments = self._calendar.find_commitments_by_title_contains(
                self._settings.meeting_title_marker,
                now,
                end,
            )

        matching = [item for item in commitments if name in item.title]
        series_matches = [item for item in matching if item.is_recurring]
        series_ids = tuple(dict.fromkeys(str(item.series_id) for item in series_matches))
        single_event_ids = tuple(item.event_id for item in matching if not item.is_recurring)

        if not series_matches:
            logger.debug("No calendar series found | name=%s", name)
            return LookupResult(name=name, single_event_ids=single_event_ids)

        upcoming = [item for item in series_matches if item.start >= now] or series_matches
        soonest = min(upcoming, key=lambda item: item.start)
        logger.debug(
            "Calendar series found | name=%s | series_id=%s | next=%s",
            name,
            soonest.series_id,
            soonest.start.isoformat(),
        )
        return LookupResult(
            name=name,
            series=self.build_metadata(str(soonest.series_id), soonest.title, soonest.start),
            series_ids=series_ids,
            single_event_ids=single_event_ids,
        )

    def materialize(self, name: str, occurrence: Occurrence, interval_weeks: int) -> SeriesMetadata:
        """Create the open-ended series anchored at ``occurrence``."""
        title = self.meeting_title(name)
        with translate_store_errors("Series creation"):
            series_ref = self._calendar.create_recurring_series(
                title,
                occurrence.start,
                occurrence.end,
                interval_weeks,
            )
        logger.info(
            "Recurring series created | name=%s | series_id=%s | start=%s | interval_weeks=%s",
            name,
            series_ref,
            occurrence.start.isoformat(),
            interval_weeks,
        )
        return self.build_metadata(series_ref, title, occurrence.start)

    def _delete_commitments(
        self,
        lookup: LookupResult,
        already_deleted: Optional[set[str]] = None,
    ) -> _DeletionCounts:
        deleted_series = 0
        for series_id in lookup.series_ids:
            if already_deleted is not None and series_id in already_deleted:
                continue
            with translate_store_errors("Series deletion"):
                self._calendar.delete_series(series_id)
            deleted_series += 1
            if already_deleted is not None:
                already_deleted.add(series_id)
        for event_id in lookup.single_event_ids:
            with translate_store_errors("Event deletion"):
                self._calendar.delete_single_event(event_id)
        return _DeletionCounts(series=deleted_series, single_events=len(lookup.single_event_ids))

    def retract_series(self, name: object) -> RetractResult:
        """Delete a name's meetings but keep the roster row."""
        entry = self.require_entry(name)
        lookup = self.lookup(entry.name, self.sweep_window_end(self._clock()))
        counts = self._delete_commitments(lookup)
        with translate_store_errors("Roster update"):
            self._roster.mark_unscheduled(entry.name)
        logger.info(
            "Series retracted | name=%s | series_deleted=%s | single_events_deleted=%s",
            entry.name,
            counts.series,
            counts.single_events,
        )
        return RetractResult(
            name=entry.name,
            series_deleted=counts.series > 0,
            series_count=counts.series,
            single_events_deleted=counts.single_events,
        )

    def remove_name(self, name: object) -> RemovalResult:
        """Delete a name's meetings, then its roster row."""
        entry = self.require_entry(name)
        lookup = self.lookup(entry.name, self.sweep_window_end(self._clock()))
        counts = self._delete_commitments(lookup)
        with translate_store_errors("Roster update"):
            removed = self._roster.delete_name(entry.name)
        logger.info(
            "Name removed | name=%s | deleted_commitments=%s",
            entry.name,
            counts.total,
        )
        return RemovalResult(name=entry.name, removed=removed, deleted_commitments=counts.total)

    def delete_all_series(self) -> BulkDeleteResult:
        """Retract every roster name's meetings; failures are collected per name."""
        with translate_store_errors("Roster listing"):
            entries = self._roster.list_entries()
        if not entries:
            return BulkDeleteResult(total_names=0, meetings_deleted=0, names_without_meetings=0)

        window_end = self.sweep_window_end(self._clock())
        deleted_series: set[str] = set()
        meetings_deleted = 0
        names_without_meetings = 0
        errors: list[ItemFailure] = []

        for entry in entries:
            try:
                lookup = self.lookup(entry.name, window_end)
                if not lookup.has_commitments:
                    names_without_meetings += 1
                    if entry.is_scheduled:
                        self._roster.mark_unscheduled(entry.name)
                    continue
                counts = self._delete_commitments(lookup, already_deleted=deleted_series)
                meetings_deleted += counts.total
                self._roster.mark_unscheduled(entry.name)
            except Exception as exc:
                logger.warning("Series deletion failed | name=%s | error=%s", entry.name, exc)
                errors.append(ItemFailure(name=entry.name, stage="delete_series", message=str(exc)))

        logger.info(
            "Bulk deletion completed | names=%s | meetings_deleted=%s | without_meetings=%s | errors=%s",
            len(entries),
            meetings_deleted,
            names_without_meetings,
            len(errors),
        )
        return BulkDeleteResult(
            total_names=len(entries),
            meetings_deleted=meetings_deleted,
            names_without_meetings=names_without_meetings,
            errors=errors,
        )
