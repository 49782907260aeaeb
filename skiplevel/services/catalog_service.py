"""Slot catalog and recurrence policy management."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from datetime import datetime
from typing import Any, Optional

from skiplevel.domain.conflicts import has_conflict
from skiplevel.domain.constraints import (
    DEFAULT_INTERVAL_WEEKS,
    parse_interval_weeks,
    suggest_interval,
)
from skiplevel.domain.errors import ValidationError, translate_store_errors
from skiplevel.domain.models import IntervalSuggestion, OccurrencePreview, SlotTemplate
from skiplevel.domain.occurrences import generate_occurrences, window_end
from skiplevel.domain.slots import build_slot_catalog, validate_slot_rows
from skiplevel.repository.calendar_repository import CalendarRepository
from skiplevel.repository.data_repository import DataRepository
from skiplevel.repository.stores import CalendarStore
from skiplevel.utils.config import Settings, get_settings
from skiplevel.utils.logger import get_logger


logger = get_logger(__name__)


class CatalogService:
    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        calendar: Optional[CalendarStore] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._calendar = calendar or CalendarRepository(self._settings)
        self._clock = clock

    # Slot templates

    def list_slot_templates(self) -> list[SlotTemplate]:
        """Usable catalog in stored order; malformed rows are skipped."""
        with translate_store_errors("Slot catalog read"):
            rows = self._repository.list_templates()
        return build_slot_catalog(rows)

    def save_slot_templates(self, rows: Sequence[Mapping[str, Any]]) -> list[SlotTemplate]:
        if isinstance(rows, (str, bytes)) or not isinstance(rows, Sequence):
            raise ValidationError("Meeting slots must be provided as a list")
        templates = validate_slot_rows(rows)
        with translate_store_errors("Slot catalog write"):
            self._repository.persist_templates([template.to_row() for template in templates])
        logger.info("Meeting slots saved | count=%s", len(templates))
        return templates

    def clear_slot_templates(self) -> int:
        with translate_store_errors("Slot catalog write"):
            previous = len(self._repository.list_templates())
            self._repository.persist_templates([])
        logger.info("Meeting slots cleared | count=%s", previous)
        return previous

    # Recurrence policy

    def get_interval_weeks(self) -> int:
        with translate_store_errors("Recurring interval read"):
            raw_value = self._repository.get_interval_weeks()
        if raw_value is None:
            return DEFAULT_INTERVAL_WEEKS
        try:
            return parse_interval_weeks(raw_value)
        except ValidationError:
            logger.warning(
                "Invalid stored recurring interval, using default | value=%r | default=%s",
                raw_value,
                DEFAULT_INTERVAL_WEEKS,
            )
            return DEFAULT_INTERVAL_WEEKS

    def set_interval_weeks(self, value: object) -> int:
        interval_weeks = parse_interval_weeks(value)
        with translate_store_errors("Recurring interval write"):
            self._repository.set_interval_weeks(interval_weeks)
        logger.info("Recurring interval updated | interval_weeks=%s", interval_weeks)
        return interval_weeks

    def suggest_interval(self) -> IntervalSuggestion:
        """Advisory interval that cycles the whole roster through the catalog once."""
        with translate_store_errors("Roster listing"):
            total_names = len(self._repository.list_names())
        total_slots = len(self.list_slot_templates())
        return suggest_interval(total_names, total_slots)

    def apply_suggested_interval(self) -> IntervalSuggestion:
        suggestion = self.suggest_interval()
        self.set_interval_weeks(suggestion.value)
        return suggestion

    # Preview

    def preview_occurrences(self) -> list[OccurrencePreview]:
        """Occurrences over the configured interval, flagged against current busy time."""
        catalog = self.list_slot_templates()
        if not catalog:
            return []
        interval_weeks = self.get_interval_weeks()
        now = self._clock()
        occurrences = generate_occurrences(catalog, now, interval_weeks)
        with translate_store_errors("Busy interval query"):
            snapshot = self._calendar.query_busy_intervals(now, window_end(now, interval_weeks))
        return [
            OccurrencePreview(
                template=catalog[occurrence.template_index],
                occurrence=occurrence,
                available=not has_conflict(occurrence.start, occurrence.end, snapshot),
            )
            for occurrence in occurrences
        ]
