from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from conftest import MONDAY_MORNING, WEDNESDAY_AFTERNOON
from skiplevel.domain.errors import ExternalStoreError
from skiplevel.domain.models import RosterState, SeriesMetadata
from skiplevel.repository.calendar_repository import CalendarRepository
from skiplevel.repository.data_repository import DataRepository


METADATA = SeriesMetadata(
    series_ref="series-1",
    event_title="Skip Level: Alice",
    next_occurrence="10/19/2026 09:00 AM",
    display_link="https://calendar.google.com/calendar/u/0/r/day/2026/10/19",
)


@pytest.fixture
def calendar_repository(settings) -> CalendarRepository:
    repo = CalendarRepository(settings)
    repo.initialize_database()
    return repo


def test_initialize_seeds_interval_once(settings) -> None:
    repository = DataRepository(settings)
    repository.initialize_database()
    assert repository.get_interval_weeks() == "8"

    repository.set_interval_weeks(12)
    repository.initialize_database()
    assert repository.get_interval_weeks() == "12"


def test_roster_lookup_is_case_insensitive(repository) -> None:
    repository.persist_names(["Alice", "Bob"])

    entry = repository.get_entry("  ALICE ")

    assert entry is not None
    assert entry.name == "Alice"
    assert entry.state is RosterState.UNSCHEDULED
    assert repository.get_entry("Carol") is None


def test_persist_names_replaces_roster(repository) -> None:
    repository.persist_names(["Alice", "Bob"])
    repository.mark_scheduled("Alice", METADATA)

    repository.persist_names(["Carol", "Alice"])

    assert repository.list_names() == ["Carol", "Alice"]
    assert not repository.get_entry("Alice").is_scheduled


def test_add_names_ignores_existing_names(repository) -> None:
    repository.persist_names(["Alice"])

    repository.add_names(["alice", "Bob"])

    assert repository.list_names() == ["Alice", "Bob"]


def test_schedule_metadata_round_trip(repository) -> None:
    repository.persist_names(["Alice"])

    repository.mark_scheduled("alice", METADATA)
    scheduled = repository.get_entry("Alice")
    repository.mark_unscheduled("Alice")
    cleared = repository.get_entry("Alice")

    assert scheduled.state is RosterState.SCHEDULED
    assert scheduled.series_ref == "series-1"
    assert scheduled.display_link == METADATA.display_link
    assert cleared.state is RosterState.UNSCHEDULED
    assert cleared.to_dict()["series_ref"] is None


def test_mark_scheduled_for_missing_name_fails(repository) -> None:
    with pytest.raises(ExternalStoreError):
        repository.mark_scheduled("Ghost", METADATA)


def test_delete_and_clear_names(repository) -> None:
    repository.persist_names(["Alice", "Bob", "Carol"])

    assert repository.delete_name("bob") is True
    assert repository.delete_name("bob") is False
    assert repository.clear_names() == 2
    assert repository.list_entries() == []


def test_slot_templates_keep_order(repository) -> None:
    repository.persist_templates([WEDNESDAY_AFTERNOON, MONDAY_MORNING])

    rows = repository.list_templates()

    assert [row["day_of_week"] for row in rows] == ["Wednesday", "Monday"]
    assert rows[0] == {"day_of_week": "Wednesday", "time": "2:00 PM", "duration": "30"}

    repository.persist_templates([])
    assert repository.list_templates() == []


def test_calendar_expands_series_on_interval(calendar_repository) -> None:
    series_id = calendar_repository.create_recurring_series(
        "Skip Level: Alice",
        datetime(2026, 10, 19, 9, 0),
        datetime(2026, 10, 19, 9, 30),
        2,
    )

    busy = calendar_repository.query_busy_intervals(
        datetime(2026, 10, 18, 8, 0),
        datetime(2026, 11, 20, 0, 0),
    )

    assert [item.start for item in busy] == [
        datetime(2026, 10, 19, 9, 0),
        datetime(2026, 11, 2, 9, 0),
        datetime(2026, 11, 16, 9, 0),
    ]
    assert all(item.end - item.start == timedelta(minutes=30) for item in busy)
    commitments = calendar_repository.find_commitments_by_title_contains(
        "Skip Level:",
        datetime(2026, 10, 18, 8, 0),
        datetime(2026, 11, 20, 0, 0),
    )
    assert {item.series_id for item in commitments} == {series_id}


def test_calendar_search_filters_on_marker(calendar_repository) -> None:
    calendar_repository.create_single_event(
        "Quarterly review",
        datetime(2026, 10, 20, 10, 0),
        datetime(2026, 10, 20, 11, 0),
    )
    event_id = calendar_repository.create_single_event(
        "Skip Level: Bob",
        datetime(2026, 10, 21, 10, 0),
        datetime(2026, 10, 21, 10, 30),
    )
    start, end = datetime(2026, 10, 18), datetime(2026, 11, 1)

    commitments = calendar_repository.find_commitments_by_title_contains("Skip Level:", start, end)

    assert [(item.event_id, item.is_recurring) for item in commitments] == [(event_id, False)]
    assert len(calendar_repository.query_busy_intervals(start, end)) == 2


def test_calendar_delete_missing_series_fails(calendar_repository) -> None:
    series_id = calendar_repository.create_recurring_series(
        "Skip Level: Alice",
        datetime(2026, 10, 19, 9, 0),
        datetime(2026, 10, 19, 9, 30),
        8,
    )

    calendar_repository.delete_series(series_id)

    assert calendar_repository.count_series() == 0
    with pytest.raises(ExternalStoreError):
        calendar_repository.delete_series(series_id)
    with pytest.raises(ExternalStoreError):
        calendar_repository.delete_single_event("event-missing")
