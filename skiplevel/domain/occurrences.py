"""Expansion of weekly slot templates into concrete future occurrences."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime, time, timedelta

from skiplevel.domain.models import Occurrence, SlotTemplate


def window_end(now: datetime, weeks_to_search: int) -> datetime:
    return now + timedelta(days=7 * weeks_to_search)


def occurrence_date(week_start: date, template: SlotTemplate) -> date:
    """First date on or after ``week_start`` that falls on the template's weekday."""
    days_ahead = (template.day_of_week.iso_index - week_start.weekday()) % 7
    return week_start + timedelta(days=days_ahead)


def generate_occurrences(
    catalog: Sequence[SlotTemplate],
    now: datetime,
    weeks_to_search: int,
) -> list[Occurrence]:
    """Return every future occurrence inside the window, earliest first.

    Week ``n`` is the seven-day run starting ``7 * n`` days after today. Equal
    start instants keep catalog order.
    """
    limit = window_end(now, weeks_to_search)
    today = now.date()
    occurrences: list[Occurrence] = []
    for week_offset in range(weeks_to_search):
        week_start = today + timedelta(days=7 * week_offset)
        for template_index, template in enumerate(catalog):
            start = datetime.combine(
                occurrence_date(week_start, template),
                time(template.hour, template.minute),
                tzinfo=now.tzinfo,
            )
            if start <= now or start > limit:
                continue
            occurrences.append(
                Occurrence(
                    template_index=template_index,
                    week_offset=week_offset,
                    start=start,
                    end=start + timedelta(minutes=template.duration_minutes),
                )
            )
    occurrences.sort(key=lambda item: (item.start, item.template_index, item.week_offset))
    return occurrences
