"""HTTP controller layer for roster, slot catalog, policy and allocation endpoints."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from skiplevel.controllers.dependencies import (
    get_allocation_service,
    get_catalog_service,
    get_lifecycle_service,
    get_roster_service,
)
from skiplevel.domain.errors import (
    ConfigurationError,
    ExternalStoreError,
    ItemFailure,
    NotFoundError,
    ValidationError,
)
from skiplevel.domain.models import (
    Assignment,
    BatchResult,
    IntervalSuggestion,
    RosterEntry,
    RosterSaveResult,
    SlotTemplate,
)
from skiplevel.services.allocation_service import AllocationService
from skiplevel.services.catalog_service import CatalogService
from skiplevel.services.roster_service import RosterService
from skiplevel.services.series_service import SeriesLifecycleService
from skiplevel.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["scheduling"])


class ItemFailureResponse(BaseModel):
    name: str
    stage: str
    message: str


class RosterEntryResponse(BaseModel):
    name: str
    state: str
    series_ref: Optional[str] = None
    event_title: Optional[str] = None
    next_occurrence: Optional[str] = None
    display_link: Optional[str] = None


class NamesRequest(BaseModel):
    names: list[str]


class RosterSaveResponse(BaseModel):
    count: int = Field(ge=0)
    names: list[str]
    duplicates_removed: int = Field(ge=0)
    scheduled: int = Field(ge=0)
    errors: list[ItemFailureResponse]


class RosterClearResponse(BaseModel):
    names_removed: int = Field(ge=0)
    meetings_deleted: int = Field(ge=0)
    errors: list[ItemFailureResponse]


class RemovalResponse(BaseModel):
    name: str
    removed: bool
    deleted_commitments: int = Field(ge=0)


class RetractResponse(BaseModel):
    name: str
    series_deleted: bool
    series_count: int = Field(ge=0)
    single_events_deleted: int = Field(ge=0)


class SlotsRequest(BaseModel):
    """Raw rows; field-level checks happen in the slot template model."""

    slots: list[dict[str, Any]]


class SlotTemplateResponse(BaseModel):
    day_of_week: str
    time: str
    duration: int = Field(gt=0)


class SlotsClearResponse(BaseModel):
    cleared: int = Field(ge=0)


class OccurrencePreviewResponse(BaseModel):
    template_index: int = Field(ge=0)
    week_offset: int = Field(ge=0)
    day_of_week: str
    start: datetime
    end: datetime
    available: bool


class IntervalRequest(BaseModel):
    # Raw value; booleans and fractional weeks are rejected by the service.
    interval_weeks: Any


class IntervalResponse(BaseModel):
    interval_weeks: int = Field(ge=1, le=26)


class IntervalSuggestionResponse(BaseModel):
    value: int = Field(ge=1, le=26)
    total_names: int = Field(ge=0)
    total_slots: int = Field(ge=0)
    formula: str


class AllocateRequest(BaseModel):
    names: list[str]
    reassign: bool = False


class AssignmentResponse(BaseModel):
    name: str
    assigned: bool
    template_index: Optional[int] = None
    week_offset: Optional[int] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    series_ref: Optional[str] = None


class BatchResponse(BaseModel):
    success: bool
    processed: int = Field(ge=0)
    created: int = Field(ge=0)
    unassigned_count: int = Field(ge=0)
    weeks_used: int = Field(ge=0)
    already_scheduled: int = Field(ge=0)
    total_names: int = Field(ge=0)
    assignments: list[AssignmentResponse]
    errors: list[ItemFailureResponse]


class BulkDeleteResponse(BaseModel):
    total_names: int = Field(ge=0)
    meetings_deleted: int = Field(ge=0)
    names_without_meetings: int = Field(ge=0)
    errors: list[ItemFailureResponse]


@contextmanager
def _service_errors(action: str) -> Iterator[None]:
    try:
        yield
    except HTTPException:
        raise
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except ExternalStoreError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected failure | action=%s", action)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {action}",
        ) from exc


def _failures(errors: list[ItemFailure]) -> list[ItemFailureResponse]:
    return [ItemFailureResponse(**error.to_dict()) for error in errors]


def _entry_response(entry: RosterEntry) -> RosterEntryResponse:
    return RosterEntryResponse(**entry.to_dict())


def _save_response(result: RosterSaveResult) -> RosterSaveResponse:
    return RosterSaveResponse(
        count=result.count,
        names=result.names,
        duplicates_removed=result.duplicates_removed,
        scheduled=result.scheduled,
        errors=_failures(result.errors),
    )


def _slot_response(template: SlotTemplate) -> SlotTemplateResponse:
    return SlotTemplateResponse(**template.to_row())


def _suggestion_response(suggestion: IntervalSuggestion) -> IntervalSuggestionResponse:
    return IntervalSuggestionResponse(
        value=suggestion.value,
        total_names=suggestion.total_names,
        total_slots=suggestion.total_slots,
        formula=suggestion.formula,
    )


def _assignment_response(assignment: Assignment) -> AssignmentResponse:
    occurrence = assignment.occurrence
    if occurrence is None:
        return AssignmentResponse(name=assignment.name, assigned=False)
    return AssignmentResponse(
        name=assignment.name,
        assigned=True,
        template_index=occurrence.template_index,
        week_offset=occurrence.week_offset,
        start=occurrence.start,
        end=occurrence.end,
        series_ref=assignment.series_ref,
    )


def _batch_response(result: BatchResult) -> BatchResponse:
    return BatchResponse(
        success=result.success,
        processed=result.processed,
        created=result.created,
        unassigned_count=result.unassigned_count,
        weeks_used=result.weeks_used,
        already_scheduled=result.already_scheduled,
        total_names=result.total_names,
        assignments=[_assignment_response(item) for item in result.assignments],
        errors=_failures(result.errors),
    )


# Roster


@router.get("/names", response_model=list[RosterEntryResponse])
async def list_names(
    service: RosterService = Depends(get_roster_service),
) -> list[RosterEntryResponse]:
    with _service_errors("list names"):
        return [_entry_response(entry) for entry in service.list_roster()]


@router.put("/names", response_model=RosterSaveResponse)
async def save_names(
    payload: NamesRequest,
    service: RosterService = Depends(get_roster_service),
) -> RosterSaveResponse:
    """Replace the roster, re-linking any meetings already on the calendar."""
    with _service_errors("save names"):
        return _save_response(service.save_names(payload.names))


@router.post("/names", response_model=RosterSaveResponse)
async def add_names(
    payload: NamesRequest,
    service: RosterService = Depends(get_roster_service),
) -> RosterSaveResponse:
    with _service_errors("add names"):
        return _save_response(service.add_names(payload.names))


@router.post("/names/refresh", response_model=RosterSaveResponse)
async def refresh_names(
    service: RosterService = Depends(get_roster_service),
) -> RosterSaveResponse:
    with _service_errors("refresh names"):
        return _save_response(service.refresh_roster())


@router.delete("/names", response_model=RosterClearResponse)
async def clear_names(
    delete_meetings: bool = Query(default=False),
    service: RosterService = Depends(get_roster_service),
) -> RosterClearResponse:
    with _service_errors("clear names"):
        result = service.clear_roster(delete_meetings=delete_meetings)
        return RosterClearResponse(
            names_removed=result.names_removed,
            meetings_deleted=result.meetings_deleted,
            errors=_failures(result.errors),
        )


@router.delete("/names/{name}", response_model=RemovalResponse)
async def remove_name(
    name: str,
    service: SeriesLifecycleService = Depends(get_lifecycle_service),
) -> RemovalResponse:
    """Delete the name's meetings and its roster row."""
    with _service_errors("remove name"):
        result = service.remove_name(name)
        return RemovalResponse(
            name=result.name,
            removed=result.removed,
            deleted_commitments=result.deleted_commitments,
        )


@router.delete("/names/{name}/meeting", response_model=RetractResponse)
async def retract_meeting(
    name: str,
    service: SeriesLifecycleService = Depends(get_lifecycle_service),
) -> RetractResponse:
    """Delete the name's meetings but keep it on the roster."""
    with _service_errors("remove meeting"):
        result = service.retract_series(name)
        return RetractResponse(
            name=result.name,
            series_deleted=result.series_deleted,
            series_count=result.series_count,
            single_events_deleted=result.single_events_deleted,
        )


# Slot catalog


@router.get("/slots", response_model=list[SlotTemplateResponse])
async def list_slots(
    service: CatalogService = Depends(get_catalog_service),
) -> list[SlotTemplateResponse]:
    with _service_errors("list meeting slots"):
        return [_slot_response(template) for template in service.list_slot_templates()]


@router.put("/slots", response_model=list[SlotTemplateResponse])
async def save_slots(
    payload: SlotsRequest,
    service: CatalogService = Depends(get_catalog_service),
) -> list[SlotTemplateResponse]:
    with _service_errors("save meeting slots"):
        return [_slot_response(template) for template in service.save_slot_templates(payload.slots)]


@router.delete("/slots", response_model=SlotsClearResponse)
async def clear_slots(
    service: CatalogService = Depends(get_catalog_service),
) -> SlotsClearResponse:
    with _service_errors("clear meeting slots"):
        return SlotsClearResponse(cleared=service.clear_slot_templates())


@router.get("/slots/occurrences", response_model=list[OccurrencePreviewResponse])
async def preview_occurrences(
    service: CatalogService = Depends(get_catalog_service),
) -> list[OccurrencePreviewResponse]:
    with _service_errors("preview meeting slots"):
        return [
            OccurrencePreviewResponse(
                template_index=item.occurrence.template_index,
                week_offset=item.occurrence.week_offset,
                day_of_week=item.template.day_of_week.value,
                start=item.occurrence.start,
                end=item.occurrence.end,
                available=item.available,
            )
            for item in service.preview_occurrences()
        ]


# Recurrence policy


@router.get("/settings/interval", response_model=IntervalResponse)
async def get_interval(
    service: CatalogService = Depends(get_catalog_service),
) -> IntervalResponse:
    with _service_errors("read recurring interval"):
        return IntervalResponse(interval_weeks=service.get_interval_weeks())


@router.put("/settings/interval", response_model=IntervalResponse)
async def set_interval(
    payload: IntervalRequest,
    service: CatalogService = Depends(get_catalog_service),
) -> IntervalResponse:
    with _service_errors("update recurring interval"):
        return IntervalResponse(interval_weeks=service.set_interval_weeks(payload.interval_weeks))


@router.get("/settings/interval/suggested", response_model=IntervalSuggestionResponse)
async def suggested_interval(
    service: CatalogService = Depends(get_catalog_service),
) -> IntervalSuggestionResponse:
    with _service_errors("suggest recurring interval"):
        return _suggestion_response(service.suggest_interval())


@router.post("/settings/interval/apply_suggested", response_model=IntervalSuggestionResponse)
async def apply_suggested_interval(
    service: CatalogService = Depends(get_catalog_service),
) -> IntervalSuggestionResponse:
    with _service_errors("apply suggested interval"):
        return _suggestion_response(service.apply_suggested_interval())


# Meetings


@router.post("/meetings/allocate", response_model=BatchResponse)
async def allocate_meetings(
    payload: AllocateRequest,
    service: AllocationService = Depends(get_allocation_service),
) -> BatchResponse:
    """Allocate recurring meetings for the named roster entries."""
    with _service_errors("allocate meetings"):
        return _batch_response(service.allocate_for_names(payload.names, reassign=payload.reassign))


@router.post("/meetings/allocate_all", response_model=BatchResponse)
async def allocate_all_meetings(
    service: AllocationService = Depends(get_allocation_service),
) -> BatchResponse:
    with _service_errors("allocate meetings"):
        return _batch_response(service.allocate_for_all_unscheduled())


@router.delete("/meetings", response_model=BulkDeleteResponse)
async def delete_all_meetings(
    service: SeriesLifecycleService = Depends(get_lifecycle_service),
) -> BulkDeleteResponse:
    with _service_errors("delete meetings"):
        result = service.delete_all_series()
        return BulkDeleteResponse(
            total_names=result.total_names,
            meetings_deleted=result.meetings_deleted,
            names_without_meetings=result.names_without_meetings,
            errors=_failures(result.errors),
        )
