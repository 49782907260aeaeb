"""Greedy first-fit allocation of roster names to recurring slot occurrences."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import replace
from datetime import datetime
from typing import Optional

from skiplevel.domain.conflicts import has_conflict
from skiplevel.domain.constraints import compute_weeks_to_search, resolve_stored_interval
from skiplevel.domain.errors import (
    ConfigurationError,
    ItemFailure,
    ValidationError,
    translate_store_errors,
)
from skiplevel.domain.models import (
    AllocationPlan,
    Assignment,
    BatchResult,
    BusyInterval,
    Occurrence,
    RosterEntry,
    SlotTemplate,
)
from skiplevel.domain.occurrences import generate_occurrences, window_end
from skiplevel.domain.roster import collapse_duplicates, normalize_name
from skiplevel.domain.slots import build_slot_catalog
from skiplevel.repository.calendar_repository import CalendarRepository
from skiplevel.repository.data_repository import DataRepository
from skiplevel.repository.stores import CalendarStore
from skiplevel.services.series_service import SeriesLifecycleService
from skiplevel.utils.config import Settings, get_settings
from skiplevel.utils.logger import get_logger


logger = get_logger(__name__)


def allocate(
    names: Sequence[str],
    occurrences: Sequence[Occurrence],
    snapshot: Sequence[BusyInterval],
) -> list[Assignment]:
    """Assign each name the earliest free, conflict-free occurrence.

    ``occurrences`` must already be sorted chronologically. A
    ``(template_index, week_offset)`` pair is granted at most once per call;
    the busy snapshot is never updated with the meetings granted here.
    """
    reserved: set[tuple[int, int]] = set()
    assignments: list[Assignment] = []
    for name in names:
        winner: Optional[Occurrence] = None
        for occurrence in occurrences:
            if occurrence.slot_key in reserved:
                continue
            if has_conflict(occurrence.start, occurrence.end, snapshot):
                continue
            winner = occurrence
            break
        if winner is not None:
            reserved.add(winner.slot_key)
        assignments.append(Assignment(name=name, occurrence=winner))
    return assignments


def plan_allocation(
    *,
    names: Sequence[str],
    catalog: Sequence[SlotTemplate],
    snapshot: Sequence[BusyInterval],
    now: datetime,
    weeks_to_search: int,
) -> AllocationPlan:
    occurrences = generate_occurrences(catalog, now, weeks_to_search)
    logger.debug(
        "Candidate window built | weeks=%s | occurrences=%s | busy_intervals=%s",
        weeks_to_search,
        len(occurrences),
        len(snapshot),
    )
    return AllocationPlan(
        weeks_to_search=weeks_to_search,
        assignments=allocate(names, occurrences, snapshot),
    )


def _empty_batch(
    errors: Optional[list[ItemFailure]] = None,
    already_scheduled: int = 0,
    total_names: int = 0,
) -> BatchResult:
    return BatchResult(
        processed=0,
        created=0,
        unassigned_count=0,
        weeks_used=0,
        errors=errors or [],
        already_scheduled=already_scheduled,
        total_names=total_names,
    )


class AllocationService:
    """Runs allocation batches and materializes the winning occurrences."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        calendar: Optional[CalendarStore] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = datetime.now,
        lifecycle: Optional[SeriesLifecycleService] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._calendar = calendar or CalendarRepository(self._settings)
        self._clock = clock
        self._lifecycle = lifecycle or SeriesLifecycleService(
            self._calendar,
            self._repository,
            settings=self._settings,
            clock=clock,
        )

    def _load_batch_configuration(self) -> tuple[list[SlotTemplate], int]:
        with translate_store_errors("Slot catalog read"):
            rows = self._repository.list_templates()
        catalog = build_slot_catalog(rows)
        if not catalog:
            raise ConfigurationError(
                "No meeting slots configured. Please configure meeting slots first."
            )
        with translate_store_errors("Recurring interval read"):
            raw_interval = self._repository.get_interval_weeks()
        return catalog, resolve_stored_interval(raw_interval)

    def allocate_for_names(self, names: object, reassign: bool = False) -> BatchResult:
        """Allocate the given roster names; Scheduled names are skipped unless ``reassign``."""
        if isinstance(names, str) or not isinstance(names, Sequence):
            raise ValidationError("Names must be provided as a list")
        requested, _ = collapse_duplicates(normalize_name(name) for name in names)
        if not requested:
            return _empty_batch()

        entries: list[RosterEntry] = [self._lifecycle.require_entry(name) for name in requested]
        catalog, interval_weeks = self._load_batch_configuration()

        errors: list[ItemFailure] = []
        to_process: list[str] = []
        already_scheduled = 0
        for entry in entries:
            if not entry.is_scheduled:
                to_process.append(entry.name)
                continue
            if not reassign:
                already_scheduled += 1
                continue
            try:
                self._lifecycle.retract_series(entry.name)
            except Exception as exc:
                logger.warning("Reassignment retract failed | name=%s | error=%s", entry.name, exc)
                errors.append(ItemFailure(name=entry.name, stage="retract_series", message=str(exc)))
                continue
            to_process.append(entry.name)

        if not to_process:
            return _empty_batch(errors, already_scheduled, len(entries))

        return self._run_batch(
            to_process,
            catalog=catalog,
            interval_weeks=interval_weeks,
            errors=errors,
            already_scheduled=already_scheduled,
            total_names=len(entries),
        )

    def allocate_for_all_unscheduled(self) -> BatchResult:
        """Classify every roster name by calendar lookup, then allocate the unscheduled ones."""
        with translate_store_errors("Roster listing"):
            entries = self._repository.list_entries()
        if not entries:
            return _empty_batch()

        catalog, interval_weeks = self._load_batch_configuration()
        now = self._clock()
        batch_weeks = compute_weeks_to_search(len(entries), len(catalog), interval_weeks)
        lookup_end = max(self._lifecycle.lookup_window_end(now), window_end(now, batch_weeks))

        errors: list[ItemFailure] = []
        to_process: list[str] = []
        already_scheduled = 0
        for entry in entries:
            try:
                lookup = self._lifecycle.lookup(entry.name, lookup_end)
            except Exception as exc:
                logger.warning("Calendar lookup failed | name=%s | error=%s", entry.name, exc)
                errors.append(ItemFailure(name=entry.name, stage="lookup", message=str(exc)))
                continue

            try:
                if lookup.series is not None:
                    self._repository.mark_scheduled(entry.name, lookup.series)
                    already_scheduled += 1
                    continue
                if entry.is_scheduled:
                    logger.info("Clearing stale schedule | name=%s", entry.name)
                    self._repository.mark_unscheduled(entry.name)
            except Exception as exc:
                logger.warning("Roster refresh failed | name=%s | error=%s", entry.name, exc)
                errors.append(ItemFailure(name=entry.name, stage="update_roster", message=str(exc)))
                continue
            to_process.append(entry.name)

        logger.info(
            "Roster classified | total=%s | already_scheduled=%s | to_process=%s",
            len(entries),
            already_scheduled,
            len(to_process),
        )
        if not to_process:
            return _empty_batch(errors, already_scheduled, len(entries))

        return self._run_batch(
            to_process,
            catalog=catalog,
            interval_weeks=interval_weeks,
            errors=errors,
            already_scheduled=already_scheduled,
            total_names=len(entries),
        )

    def _run_batch(
        self,
        names: Sequence[str],
        *,
        catalog: Sequence[SlotTemplate],
        interval_weeks: int,
        errors: list[ItemFailure],
        already_scheduled: int,
        total_names: int,
    ) -> BatchResult:
        now = self._clock()
        weeks_to_search = compute_weeks_to_search(len(names), len(catalog), interval_weeks)
        with translate_store_errors("Busy interval query"):
            snapshot = self._calendar.query_busy_intervals(now, window_end(now, weeks_to_search))

        plan = plan_allocation(
            names=names,
            catalog=catalog,
            snapshot=snapshot,
            now=now,
            weeks_to_search=weeks_to_search,
        )

        created = 0
        assignments: list[Assignment] = []
        for assignment in plan.assignments:
            if assignment.occurrence is None:
                logger.info("No slot found | name=%s | weeks=%s", assignment.name, weeks_to_search)
                assignments.append(assignment)
                continue
            try:
                metadata = self._lifecycle.materialize(
                    assignment.name,
                    assignment.occurrence,
                    interval_weeks,
                )
            except Exception as exc:
                # The planned slot stays reserved; the name is not rescanned.
                logger.warning(
                    "Series creation failed | name=%s | start=%s | error=%s",
                    assignment.name,
                    assignment.occurrence.start.isoformat(),
                    exc,
                )
                errors.append(
                    ItemFailure(name=assignment.name, stage="create_series", message=str(exc))
                )
                assignments.append(assignment)
                continue

            created += 1
            assignments.append(replace(assignment, series_ref=metadata.series_ref))
            try:
                self._repository.mark_scheduled(assignment.name, metadata)
            except Exception as exc:
                logger.error(
                    "Roster update failed after series creation | name=%s | series_id=%s | error=%s",
                    assignment.name,
                    metadata.series_ref,
                    exc,
                )
                errors.append(
                    ItemFailure(name=assignment.name, stage="update_roster", message=str(exc))
                )

        result = BatchResult(
            processed=len(names),
            created=created,
            unassigned_count=len(plan.unassigned_names),
            weeks_used=weeks_to_search,
            assignments=assignments,
            errors=errors,
            already_scheduled=already_scheduled,
            total_names=total_names,
        )
        logger.info(
            "Allocation batch completed | processed=%s | created=%s | unassigned=%s | weeks=%s | errors=%s",
            result.processed,
            result.created,
            result.unassigned_count,
            result.weeks_used,
            len(result.errors),
        )
        return result
