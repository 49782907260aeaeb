"""Slot template parsing and catalog construction.

Raw rows arrive from the slot store or the HTTP layer with free-form strings.
Everything past this module works on canonical ``SlotTemplate`` values: a
``Weekday``, an (hour, minute) pair and a positive duration in minutes.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from datetime import datetime, time
from typing import Any

from skiplevel.domain.errors import ValidationError
from skiplevel.domain.models import SlotTemplate, Weekday
from skiplevel.utils.logger import get_logger


logger = get_logger(__name__)

_TIME_PATTERN = re.compile(
    r"^(?P<hour>\d{1,2}):(?P<minute>\d{2})(?::\d{2})?\s*(?P<meridiem>[AaPp]\.?[Mm]\.?)?$"
)
_DAY_LOOKUP = {day.value.lower(): day for day in Weekday}


def _field(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def parse_day_of_week(value: Any) -> Weekday:
    if isinstance(value, Weekday):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("dayOfWeek is required")
    day = _DAY_LOOKUP.get(value.strip().lower())
    if day is None:
        raise ValidationError(f"Invalid day of week: {value!r}")
    return day


def parse_time_of_day(value: Any) -> tuple[int, int]:
    """Return (hour, minute) from 24-hour, 12-hour or wall-clock input."""
    if isinstance(value, datetime):
        return value.hour, value.minute
    if isinstance(value, time):
        return value.hour, value.minute
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("time is required")

    match = _TIME_PATTERN.match(value.strip())
    if match is None:
        raise ValidationError(f"Invalid time format: {value!r}")
    hour = int(match.group("hour"))
    minute = int(match.group("minute"))
    meridiem = match.group("meridiem")

    if not 0 <= minute <= 59:
        raise ValidationError(f"Invalid minute in time: {value!r}")
    if meridiem is None:
        if not 0 <= hour <= 23:
            raise ValidationError(f"Invalid hour in time: {value!r}")
        return hour, minute

    if not 1 <= hour <= 12:
        raise ValidationError(f"Invalid 12-hour time: {value!r}")
    is_pm = meridiem.lower().startswith("p")
    if hour == 12:
        hour = 0
    if is_pm:
        hour += 12
    return hour, minute


def parse_duration(value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError("duration must be a positive number of minutes")
    if isinstance(value, int):
        minutes = value
    elif isinstance(value, float) and value.is_integer():
        minutes = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        minutes = int(value.strip())
    else:
        raise ValidationError(f"Invalid duration: {value!r}")
    if minutes <= 0:
        raise ValidationError("duration must be a positive number of minutes")
    return minutes


def build_slot_template(raw: Mapping[str, Any]) -> SlotTemplate:
    day = parse_day_of_week(_field(raw, "day_of_week", "dayOfWeek"))
    hour, minute = parse_time_of_day(_field(raw, "time"))
    duration = parse_duration(_field(raw, "duration", "duration_minutes"))
    return SlotTemplate(
        day_of_week=day,
        hour=hour,
        minute=minute,
        duration_minutes=duration,
    )


def build_slot_catalog(rows: Iterable[Mapping[str, Any]]) -> list[SlotTemplate]:
    """Build the ordered catalog, dropping rows that fail any field check."""
    catalog: list[SlotTemplate] = []
    for position, raw in enumerate(rows, start=1):
        try:
            catalog.append(build_slot_template(raw))
        except ValidationError as exc:
            logger.warning("Dropping invalid slot row | row=%s | reason=%s", position, exc)
    return catalog


def validate_slot_rows(rows: Iterable[Mapping[str, Any]]) -> list[SlotTemplate]:
    """Strict variant used when saving: every row must parse."""
    templates: list[SlotTemplate] = []
    problems: list[str] = []
    for position, raw in enumerate(rows, start=1):
        try:
            templates.append(build_slot_template(raw))
        except ValidationError as exc:
            problems.append(f"row {position}: {exc}")
    if problems:
        raise ValidationError("Invalid meeting slots: " + "; ".join(problems))
    return templates
