"""Half-open interval overlap checks against a busy snapshot."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Optional

from skiplevel.domain.models import BusyInterval


def overlaps(start: datetime, end: datetime, busy: BusyInterval) -> bool:
    # Back-to-back intervals share an endpoint and do not overlap.
    return start < busy.end and end > busy.start


def find_conflict(
    start: datetime,
    end: datetime,
    snapshot: Iterable[BusyInterval],
) -> Optional[BusyInterval]:
    for busy in snapshot:
        if overlaps(start, end, busy):
            return busy
    return None


def has_conflict(start: datetime, end: datetime, snapshot: Iterable[BusyInterval]) -> bool:
    return find_conflict(start, end, snapshot) is not None
