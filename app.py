"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires the stores and services, registers the router, and runs startup
initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI

from skiplevel.controllers.scheduling_controller import router as scheduling_router
from skiplevel.repository.calendar_repository import CalendarRepository
from skiplevel.repository.data_repository import DataRepository
from skiplevel.repository.stores import CalendarStore
from skiplevel.services.allocation_service import AllocationService
from skiplevel.services.catalog_service import CatalogService
from skiplevel.services.roster_service import RosterService
from skiplevel.services.series_service import SeriesLifecycleService
from skiplevel.utils.config import Settings, get_settings
from skiplevel.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    calendar: Optional[CalendarStore] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Every service receives the same repository, calendar handle and clock
    through app.state, so tests can substitute any of them.
    """
    settings = settings or get_settings()
    clock = clock or datetime.now

    # --- Stores ---
    repository = DataRepository(settings)
    calendar_store = calendar if calendar is not None else CalendarRepository(settings)

    # --- Services ---
    lifecycle_service = SeriesLifecycleService(
        calendar_store,
        repository,
        settings=settings,
        clock=clock,
    )
    allocation_service = AllocationService(
        repository=repository,
        calendar=calendar_store,
        settings=settings,
        clock=clock,
        lifecycle=lifecycle_service,
    )
    catalog_service = CatalogService(
        repository=repository,
        calendar=calendar_store,
        settings=settings,
        clock=clock,
    )
    roster_service = RosterService(
        lifecycle_service,
        repository=repository,
        settings=settings,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.include_router(scheduling_router)

    app.state.repository = repository
    app.state.calendar = calendar_store
    app.state.lifecycle_service = lifecycle_service
    app.state.allocation_service = allocation_service
    app.state.catalog_service = catalog_service
    app.state.roster_service = roster_service

    return app


def _startup(app: FastAPI) -> None:
    """Idempotent schema setup; the interval property is seeded only when absent."""
    repository: DataRepository = app.state.repository

    logger.info("Startup: initializing roster database")
    repository.initialize_database()

    calendar = app.state.calendar
    if isinstance(calendar, CalendarRepository):
        logger.info("Startup: initializing local calendar database")
        calendar.initialize_database()

    logger.info("Startup complete | app=%s | version=%s", app.title, app.version)


# Module-level app object for uvicorn
app = create_app()
