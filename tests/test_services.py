"""Roster and catalog service behaviour."""

from __future__ import annotations

import logging
from datetime import datetime

import pytest

from conftest import MONDAY_MORNING, WEDNESDAY_AFTERNOON, fixed_clock
from skiplevel.domain.errors import ValidationError
from skiplevel.domain.models import BusyInterval, RosterState, Weekday
from skiplevel.services.catalog_service import CatalogService
from skiplevel.services.roster_service import RosterService
from skiplevel.services.series_service import SeriesLifecycleService


@pytest.fixture
def lifecycle(repository, calendar, settings) -> SeriesLifecycleService:
    return SeriesLifecycleService(calendar, repository, settings=settings, clock=fixed_clock)


@pytest.fixture
def roster_service(lifecycle, repository, settings) -> RosterService:
    return RosterService(lifecycle, repository=repository, settings=settings)


@pytest.fixture
def catalog_service(repository, calendar, settings) -> CatalogService:
    return CatalogService(repository=repository, calendar=calendar, settings=settings, clock=fixed_clock)


# --- roster ---

def test_save_names_trims_and_collapses_duplicates(roster_service, repository) -> None:
    result = roster_service.save_names([" Alice ", "bob", "", "ALICE", "Bob", "Carol"])

    assert result.names == ["Alice", "bob", "Carol"]
    assert result.count == 3
    assert result.duplicates_removed == 2
    assert repository.list_names() == ["Alice", "bob", "Carol"]


def test_save_names_reattaches_existing_meetings(roster_service, calendar, repository) -> None:
    calendar.add_series("Skip Level: Carol", datetime(2026, 10, 23, 16, 0), 30, 8)

    result = roster_service.save_names(["Alice", "Carol"])

    assert result.scheduled == 1
    assert repository.get_entry("Carol").state is RosterState.SCHEDULED
    assert repository.get_entry("Alice").state is RosterState.UNSCHEDULED


def test_save_names_rejects_non_list_input(roster_service) -> None:
    with pytest.raises(ValidationError):
        roster_service.save_names("Alice, Bob")


def test_add_names_skips_names_already_present(roster_service, repository) -> None:
    roster_service.save_names(["Alice"])

    result = roster_service.add_names(["alice", "Dana", "dana"])

    assert result.names == ["Dana"]
    assert result.duplicates_removed == 2
    assert repository.list_names() == ["Alice", "Dana"]


def test_refresh_roster_clears_metadata_for_deleted_meetings(
    roster_service,
    calendar,
    repository,
) -> None:
    series_id = calendar.add_series("Skip Level: Alice", datetime(2026, 10, 20, 9, 0), 30, 8)
    roster_service.save_names(["Alice"])
    calendar.delete_series(series_id)

    result = roster_service.refresh_roster()

    assert result.scheduled == 0
    assert repository.get_entry("Alice").state is RosterState.UNSCHEDULED


def test_refresh_roster_collects_lookup_failures(roster_service, calendar) -> None:
    roster_service.save_names(["Alice", "Bob"])
    calendar.fail_search = True

    result = roster_service.refresh_roster()

    assert [error.stage for error in result.errors] == ["lookup", "lookup"]


def test_clear_roster_can_delete_meetings_first(roster_service, calendar, repository) -> None:
    calendar.add_series("Skip Level: Alice", datetime(2026, 10, 20, 9, 0), 30, 8)
    roster_service.save_names(["Alice", "Bob"])

    result = roster_service.clear_roster(delete_meetings=True)

    assert (result.names_removed, result.meetings_deleted) == (2, 1)
    assert calendar.series == {}
    assert repository.list_names() == []


def test_clear_roster_keeps_meetings_by_default(roster_service, calendar) -> None:
    calendar.add_series("Skip Level: Alice", datetime(2026, 10, 20, 9, 0), 30, 8)
    roster_service.save_names(["Alice"])

    result = roster_service.clear_roster()

    assert result.meetings_deleted == 0
    assert len(calendar.series) == 1


# --- catalog and policy ---

def test_save_slot_templates_stores_canonical_rows(catalog_service, repository) -> None:
    templates = catalog_service.save_slot_templates(
        [{"dayOfWeek": "wednesday", "time": "2:00 PM", "duration": 45}]
    )

    assert templates[0].day_of_week is Weekday.WEDNESDAY
    assert repository.list_templates() == [
        {"day_of_week": "Wednesday", "time": "14:00", "duration": "45"}
    ]


def test_save_slot_templates_rejects_whole_batch_on_bad_row(catalog_service, repository) -> None:
    repository.persist_templates([MONDAY_MORNING])

    with pytest.raises(ValidationError):
        catalog_service.save_slot_templates([WEDNESDAY_AFTERNOON, {"day_of_week": "Monday"}])
    assert len(repository.list_templates()) == 1


def test_clear_slot_templates_reports_count(catalog_service, repository) -> None:
    repository.persist_templates([MONDAY_MORNING, WEDNESDAY_AFTERNOON])

    assert catalog_service.clear_slot_templates() == 2
    assert catalog_service.list_slot_templates() == []


def test_interval_round_trip_and_validation(catalog_service) -> None:
    assert catalog_service.get_interval_weeks() == 8
    assert catalog_service.set_interval_weeks("12") == 12
    assert catalog_service.get_interval_weeks() == 12

    for bad in (0, 27, "weekly"):
        with pytest.raises(ValidationError):
            catalog_service.set_interval_weeks(bad)
    assert catalog_service.get_interval_weeks() == 12


def test_corrupt_interval_reads_as_default_with_warning(catalog_service, repository, caplog) -> None:
    repository.save_property("Recurring Interval", "40")

    with caplog.at_level(logging.WARNING, logger="skiplevel"):
        assert catalog_service.get_interval_weeks() == 8
    assert "Invalid stored recurring interval" in caplog.text


def test_suggested_interval_is_advisory_until_applied(catalog_service, repository) -> None:
    repository.persist_names([f"Person {index}" for index in range(10)])
    repository.persist_templates(
        [
            MONDAY_MORNING,
            WEDNESDAY_AFTERNOON,
            {"day_of_week": "Friday", "time": "11:00", "duration": 30},
        ]
    )

    suggestion = catalog_service.suggest_interval()
    assert (suggestion.value, suggestion.total_names, suggestion.total_slots) == (4, 10, 3)
    assert catalog_service.get_interval_weeks() == 8

    catalog_service.apply_suggested_interval()
    assert catalog_service.get_interval_weeks() == 4


def test_preview_flags_busy_occurrences(catalog_service, repository, calendar) -> None:
    repository.persist_templates([MONDAY_MORNING, WEDNESDAY_AFTERNOON])
    repository.set_interval_weeks(2)
    calendar.busy.append(
        BusyInterval(datetime(2026, 10, 21, 13, 45), datetime(2026, 10, 21, 14, 15), "review")
    )

    previews = catalog_service.preview_occurrences()

    assert [(item.occurrence.start, item.available) for item in previews] == [
        (datetime(2026, 10, 19, 9, 0), True),
        (datetime(2026, 10, 21, 14, 0), False),
        (datetime(2026, 10, 26, 9, 0), True),
        (datetime(2026, 10, 28, 14, 0), True),
    ]
    assert previews[1].template.day_of_week is Weekday.WEDNESDAY


def test_preview_without_catalog_is_empty(catalog_service, calendar) -> None:
    assert catalog_service.preview_occurrences() == []
    assert calendar.calls == []
