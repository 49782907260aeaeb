from __future__ import annotations

from datetime import datetime

import pytest

from conftest import FIXED_NOW, MONDAY_MORNING, fixed_clock
from skiplevel.domain.errors import ExternalStoreError, NotFoundError
from skiplevel.domain.models import Occurrence, RosterState
from skiplevel.services.allocation_service import AllocationService
from skiplevel.services.series_service import SeriesLifecycleService


def _lifecycle(repository, calendar, settings) -> SeriesLifecycleService:
    return SeriesLifecycleService(calendar, repository, settings=settings, clock=fixed_clock)


def test_lookup_prefers_soonest_future_series_occurrence(repository, calendar, settings) -> None:
    calendar.add_series("Skip Level: Alice", datetime(2026, 9, 1, 10, 0), 30, 8)
    calendar.add_event("Skip Level: Alice", datetime(2026, 10, 20, 15, 0), 30)
    calendar.add_event("Lunch with Alice", datetime(2026, 10, 20, 12, 0), 60)

    result = _lifecycle(repository, calendar, settings).lookup("Alice")

    assert result.found
    # 2026-09-01 + 8 weeks
    assert result.series.next_occurrence == "10/27/2026 10:00 AM"
    assert result.series.display_link.endswith("/r/day/2026/10/27")
    assert len(result.series_ids) == 1
    assert len(result.single_event_ids) == 1


def test_lookup_without_series_reports_single_events_only(repository, calendar, settings) -> None:
    event_id = calendar.add_event("Skip Level: Bob", datetime(2026, 11, 2, 9, 0), 30)

    result = _lifecycle(repository, calendar, settings).lookup("Bob")

    assert not result.found
    assert result.single_event_ids == (event_id,)
    assert result.has_commitments


def test_lookup_ignores_series_beyond_window(repository, calendar, settings) -> None:
    calendar.add_series("Skip Level: Carol", datetime(2027, 6, 1, 9, 0), 30, 8)

    assert not _lifecycle(repository, calendar, settings).lookup("Carol").found


def test_lookup_matches_names_by_substring(repository, calendar, settings) -> None:
    calendar.add_series("Skip Level: Anna", datetime(2026, 10, 20, 9, 0), 30, 8)

    result = _lifecycle(repository, calendar, settings).lookup("Ann")

    assert result.found
    assert result.series.event_title == "Skip Level: Anna"


def test_materialize_creates_open_ended_series(repository, calendar, settings) -> None:
    occurrence = Occurrence(0, 0, datetime(2026, 10, 19, 9, 0), datetime(2026, 10, 19, 9, 30))

    metadata = _lifecycle(repository, calendar, settings).materialize("Alice", occurrence, 6)

    assert metadata.event_title == "Skip Level: Alice"
    assert calendar.series[metadata.series_ref]["interval"] == 6
    assert calendar.series[metadata.series_ref]["start"] == occurrence.start


def test_retract_deletes_series_and_stray_events(repository, calendar, settings) -> None:
    repository.persist_names(["Alice"])
    repository.persist_templates([MONDAY_MORNING])
    AllocationService(
        repository=repository,
        calendar=calendar,
        settings=settings,
        clock=fixed_clock,
    ).allocate_for_names(["Alice"])
    calendar.add_event("Skip Level: Alice", datetime(2026, 12, 1, 9, 0), 30)

    result = _lifecycle(repository, calendar, settings).retract_series("alice")

    assert result.name == "Alice"
    assert result.series_deleted
    assert result.series_count == 1
    assert result.single_events_deleted == 1
    assert calendar.series == {}
    assert calendar.events == {}
    entry = repository.get_entry("Alice")
    assert entry.state is RosterState.UNSCHEDULED
    assert entry.series_ref is None
    assert entry.next_occurrence is None


def test_retract_then_allocate_round_trip(repository, calendar, settings) -> None:
    repository.persist_names(["Alice"])
    repository.persist_templates([MONDAY_MORNING])
    service = AllocationService(
        repository=repository,
        calendar=calendar,
        settings=settings,
        clock=fixed_clock,
    )
    service.allocate_for_names(["Alice"])

    _lifecycle(repository, calendar, settings).retract_series("Alice")
    result = service.allocate_for_names(["Alice"])

    assert result.created == 1
    assert repository.get_entry("Alice").state is RosterState.SCHEDULED


def test_retract_unknown_name_is_not_found(repository, calendar, settings) -> None:
    with pytest.raises(NotFoundError):
        _lifecycle(repository, calendar, settings).retract_series("Nobody")


def test_single_item_store_failure_propagates(repository, calendar, settings) -> None:
    repository.persist_names(["Alice"])
    calendar.add_series("Skip Level: Alice", FIXED_NOW.replace(day=20), 30, 8)
    calendar.fail_delete_for = {"Alice"}

    with pytest.raises(ExternalStoreError):
        _lifecycle(repository, calendar, settings).retract_series("Alice")
    assert repository.get_entry("Alice") is not None


def test_remove_name_deletes_meetings_and_row(repository, calendar, settings) -> None:
    repository.persist_names(["Alice", "Bob"])
    calendar.add_series("Skip Level: Alice", datetime(2026, 10, 20, 9, 0), 30, 8)

    result = _lifecycle(repository, calendar, settings).remove_name("Alice")

    assert result.removed
    assert result.deleted_commitments == 1
    assert repository.list_names() == ["Bob"]
    assert repository.get_entry("Alice") is None
    assert {entry.state for entry in repository.list_entries()} == {RosterState.UNSCHEDULED}
    assert calendar.series == {}


def test_remove_unscheduled_name_only_drops_row(repository, calendar, settings) -> None:
    repository.persist_names(["Alice"])

    result = _lifecycle(repository, calendar, settings).remove_name("Alice")

    assert (result.removed, result.deleted_commitments) == (True, 0)
    assert repository.list_names() == []


def test_delete_all_series_collects_per_name_failures(repository, calendar, settings) -> None:
    repository.persist_names(["Alice", "Bob", "Carol"])
    calendar.add_series("Skip Level: Alice", datetime(2026, 10, 20, 9, 0), 30, 8)
    calendar.add_series("Skip Level: Bob", datetime(2026, 10, 21, 9, 0), 30, 8)
    calendar.fail_delete_for = {"Bob"}

    result = _lifecycle(repository, calendar, settings).delete_all_series()

    assert result.total_names == 3
    assert result.meetings_deleted == 1
    assert result.names_without_meetings == 1
    assert [(error.name, error.stage) for error in result.errors] == [("Bob", "delete_series")]
    assert calendar.series_for("Alice") is None
    assert calendar.series_for("Bob") is not None


def test_delete_all_series_on_empty_roster(repository, calendar, settings) -> None:
    result = _lifecycle(repository, calendar, settings).delete_all_series()

    assert (result.total_names, result.meetings_deleted, result.names_without_meetings) == (0, 0, 0)
    assert calendar.calls == []
