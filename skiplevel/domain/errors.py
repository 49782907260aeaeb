"""Error taxonomy shared by the scheduling services."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass


class SchedulerError(Exception):
    """Base class for scheduling failures surfaced to callers."""


class ConfigurationError(SchedulerError):
    """Raised when the slot catalog or recurrence policy cannot support a batch."""


class ValidationError(SchedulerError):
    """Raised when a name, slot template field or interval is malformed."""


class NotFoundError(SchedulerError):
    """Raised when an operation targets a name absent from the roster."""


class ExternalStoreError(SchedulerError):
    """Raised when a calendar or roster store call fails."""


@dataclass(frozen=True)
class ItemFailure:
    """One name's failure inside a batch; collected, never raised."""

    name: str
    stage: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {
            "name": self.name,
            "stage": self.stage,
            "message": self.message,
        }


@contextmanager
def translate_store_errors(operation: str) -> Iterator[None]:
    """Re-raise collaborator failures as ExternalStoreError."""
    try:
        yield
    except SchedulerError:
        raise
    except Exception as exc:
        raise ExternalStoreError(f"{operation} failed: {exc}") from exc
