"""Roster name normalization rules."""

from __future__ import annotations

from collections.abc import Iterable

from skiplevel.domain.errors import ValidationError


def normalize_name(value: object) -> str:
    if not isinstance(value, str):
        raise ValidationError("Name must be provided as a string")
    trimmed = value.strip()
    if not trimmed:
        raise ValidationError("Name cannot be empty")
    return trimmed


def collapse_duplicates(names: Iterable[str]) -> tuple[list[str], list[str]]:
    """Split names into (unique, duplicates); the earliest spelling wins."""
    unique: list[str] = []
    duplicates: list[str] = []
    seen: set[str] = set()
    for name in names:
        key = name.lower()
        if key in seen:
            duplicates.append(name)
            continue
        seen.add(key)
        unique.append(name)
    return unique, duplicates


def clean_roster_input(values: object) -> tuple[list[str], list[str]]:
    """Trim, drop blanks and collapse duplicates from a submitted name list."""
    if isinstance(values, str) or not isinstance(values, Iterable):
        raise ValidationError("Names must be provided as a list")
    cleaned: list[str] = []
    for value in values:
        if not isinstance(value, str):
            raise ValidationError("Name must be provided as a string")
        trimmed = value.strip()
        if trimmed:
            cleaned.append(trimmed)
    return collapse_duplicates(cleaned)
