"""Roster maintenance: saving, appending, refreshing and clearing names."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Optional

from skiplevel.domain.errors import ItemFailure, translate_store_errors
from skiplevel.domain.models import RosterClearResult, RosterEntry, RosterSaveResult
from skiplevel.domain.roster import clean_roster_input
from skiplevel.repository.data_repository import DataRepository
from skiplevel.services.series_service import SeriesLifecycleService
from skiplevel.utils.config import Settings, get_settings
from skiplevel.utils.logger import get_logger


logger = get_logger(__name__)


class RosterService:
    def __init__(
        self,
        lifecycle: SeriesLifecycleService,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._lifecycle = lifecycle

    def list_roster(self) -> list[RosterEntry]:
        with translate_store_errors("Roster listing"):
            return self._repository.list_entries()

    def _attach_existing_series(self, names: Sequence[str]) -> tuple[int, list[ItemFailure]]:
        """Re-link names whose meetings already exist on the calendar."""
        scheduled = 0
        errors: list[ItemFailure] = []
        for name in names:
            try:
                lookup = self._lifecycle.lookup(name)
                if lookup.series is not None:
                    self._repository.mark_scheduled(name, lookup.series)
                    scheduled += 1
                else:
                    self._repository.mark_unscheduled(name)
            except Exception as exc:
                logger.warning("Calendar lookup failed | name=%s | error=%s", name, exc)
                errors.append(ItemFailure(name=name, stage="lookup", message=str(exc)))
        return scheduled, errors

    def save_names(self, values: object) -> RosterSaveResult:
        """Replace the roster with ``values``."""
        names, duplicates = clean_roster_input(values)
        with translate_store_errors("Roster write"):
            self._repository.persist_names(names)
        scheduled, errors = self._attach_existing_series(names)
        logger.info(
            "Roster saved | count=%s | duplicates_removed=%s | scheduled=%s",
            len(names),
            len(duplicates),
            scheduled,
        )
        return RosterSaveResult(
            count=len(names),
            names=names,
            duplicates_removed=len(duplicates),
            scheduled=scheduled,
            errors=errors,
        )

    def add_names(self, values: object) -> RosterSaveResult:
        """Append names; ones already on the roster count as duplicates."""
        names, duplicates = clean_roster_input(values)
        with translate_store_errors("Roster listing"):
            existing = {name.lower() for name in self._repository.list_names()}
        new_names = [name for name in names if name.lower() not in existing]
        skipped = len(duplicates) + len(names) - len(new_names)
        with translate_store_errors("Roster write"):
            self._repository.add_names(new_names)
        scheduled, errors = self._attach_existing_series(new_names)
        logger.info(
            "Names added | added=%s | duplicates_removed=%s | scheduled=%s",
            len(new_names),
            skipped,
            scheduled,
        )
        return RosterSaveResult(
            count=len(new_names),
            names=new_names,
            duplicates_removed=skipped,
            scheduled=scheduled,
            errors=errors,
        )

    def refresh_roster(self) -> RosterSaveResult:
        """Rewrite every row's calendar metadata from a fresh lookup."""
        with translate_store_errors("Roster listing"):
            names = self._repository.list_names()
        scheduled, errors = self._attach_existing_series(names)
        logger.info("Roster refreshed | count=%s | scheduled=%s", len(names), scheduled)
        return RosterSaveResult(
            count=len(names),
            names=names,
            duplicates_removed=0,
            scheduled=scheduled,
            errors=errors,
        )

    def clear_roster(self, delete_meetings: bool = False) -> RosterClearResult:
        meetings_deleted = 0
        errors: list[ItemFailure] = []
        if delete_meetings:
            bulk = self._lifecycle.delete_all_series()
            meetings_deleted = bulk.meetings_deleted
            errors = bulk.errors
        with translate_store_errors("Roster write"):
            removed = self._repository.clear_names()
        logger.info(
            "Roster cleared | names_removed=%s | meetings_deleted=%s",
            removed,
            meetings_deleted,
        )
        return RosterClearResult(
            names_removed=removed,
            meetings_deleted=meetings_deleted,
            errors=errors,
        )
