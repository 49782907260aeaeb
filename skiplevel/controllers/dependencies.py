"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Request, status

from skiplevel.services.allocation_service import AllocationService
from skiplevel.services.catalog_service import CatalogService
from skiplevel.services.roster_service import RosterService
from skiplevel.services.series_service import SeriesLifecycleService


def _resolve(request: Request, attribute: str, label: str) -> Any:
    service = getattr(request.app.state, attribute, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} service is not initialized",
        )
    return service


def get_allocation_service(request: Request) -> AllocationService:
    return _resolve(request, "allocation_service", "Allocation")


def get_catalog_service(request: Request) -> CatalogService:
    return _resolve(request, "catalog_service", "Catalog")


def get_roster_service(request: Request) -> RosterService:
    return _resolve(request, "roster_service", "Roster")


def get_lifecycle_service(request: Request) -> SeriesLifecycleService:
    return _resolve(request, "lifecycle_service", "Series lifecycle")
