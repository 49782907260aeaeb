"""Recurrence policy rules for the search window and series period."""

from __future__ import annotations

import math
from dataclasses import dataclass

from skiplevel.domain.errors import ConfigurationError, ValidationError
from skiplevel.domain.models import IntervalSuggestion


MIN_INTERVAL_WEEKS = 1
MAX_INTERVAL_WEEKS = 26
DEFAULT_INTERVAL_WEEKS = 8


@dataclass(frozen=True)
class RecurrencePolicy:
    interval_weeks: int = DEFAULT_INTERVAL_WEEKS

    def __post_init__(self) -> None:
        validate_interval_weeks(self.interval_weeks)


def parse_interval_weeks(value: object) -> int:
    """Coerce raw input into an interval, raising ValidationError when malformed."""
    if isinstance(value, bool):
        raise ValidationError("Recurring interval must be a number")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise ValidationError("Recurring interval must be a whole number of weeks")
        parsed = int(value)
    elif isinstance(value, str):
        try:
            parsed = int(value.strip())
        except ValueError as exc:
            raise ValidationError("Recurring interval must be a number") from exc
    else:
        raise ValidationError("Recurring interval must be a number")
    validate_interval_weeks(parsed)
    return parsed


def validate_interval_weeks(interval_weeks: int) -> None:
    if not MIN_INTERVAL_WEEKS <= interval_weeks <= MAX_INTERVAL_WEEKS:
        raise ValidationError(
            f"Recurring interval must be between {MIN_INTERVAL_WEEKS} "
            f"and {MAX_INTERVAL_WEEKS} weeks"
        )


def resolve_stored_interval(raw_value: object) -> int:
    """Interval for a batch: absent means the default, corrupt is fatal."""
    if raw_value is None:
        return DEFAULT_INTERVAL_WEEKS
    try:
        return parse_interval_weeks(raw_value)
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid recurring interval value: {raw_value!r}. "
            f"Must be between {MIN_INTERVAL_WEEKS} and {MAX_INTERVAL_WEEKS} weeks."
        ) from exc


def compute_weeks_to_search(name_count: int, slot_count: int, interval_weeks: int) -> int:
    if slot_count < 1:
        raise ConfigurationError(
            "No meeting slots configured. Please configure meeting slots first."
        )
    validate_interval_weeks(interval_weeks)
    needed_weeks = math.ceil(max(0, name_count) / slot_count)
    return max(interval_weeks, needed_weeks, 1)


def suggest_interval(total_names: int, total_slots: int) -> IntervalSuggestion:
    """Advisory interval; callers decide whether to apply it."""
    if total_slots <= 0:
        return IntervalSuggestion(
            value=DEFAULT_INTERVAL_WEEKS,
            total_names=total_names,
            total_slots=0,
        )
    raw = math.ceil(total_names / total_slots)
    value = max(MIN_INTERVAL_WEEKS, min(MAX_INTERVAL_WEEKS, raw))
    return IntervalSuggestion(value=value, total_names=total_names, total_slots=total_slots)
