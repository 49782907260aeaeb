#!/usr/bin/env python3
"""Validate local Skip Level scheduler environment readiness."""

from __future__ import annotations

import importlib
import shutil
import sys
import tempfile
from dataclasses import replace
from datetime import datetime
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from skiplevel.repository.calendar_repository import CalendarRepository
from skiplevel.repository.data_repository import DataRepository
from skiplevel.services.allocation_service import AllocationService
from skiplevel.utils.config import get_settings

SEPARATOR_LINE = "=" * 44

# Sunday morning, so both sample slots fall in the first search week.
VALIDATION_NOW = datetime(2026, 10, 18, 8, 0)
SAMPLE_SLOTS = [
    {"day_of_week": "Monday", "time": "09:00", "duration": 30},
    {"day_of_week": "Wednesday", "time": "2:00 PM", "duration": 30},
]
SAMPLE_NAMES = ["Alice", "Bob", "Carol"]


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True
    temp_dir = tempfile.mkdtemp(prefix="skiplevel-env-")

    # CHECK 1: Python version >= 3.10
    if sys.version_info >= (3, 10):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.10",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2: Required packages importable
    package_specs = [
        ("fastapi", "fastapi"),
        ("uvicorn", "uvicorn"),
        ("pydantic", "pydantic"),
        ("dateutil", "python-dateutil"),
        ("httpx", "httpx"),
        ("pytest", "pytest"),
    ]
    from importlib.metadata import PackageNotFoundError, version

    import_errors: list[str] = []
    for module_name, dist_name in package_specs:
        try:
            importlib.import_module(module_name)
            version(dist_name)
        except (ImportError, PackageNotFoundError) as exc:
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    try:
        validation_settings = replace(
            get_settings(),
            database_path=Path(temp_dir) / "skiplevel_validation.db",
            calendar_database_path=Path(temp_dir) / "calendar_validation.db",
        )
        repository = DataRepository(validation_settings)
        calendar = CalendarRepository(validation_settings)

        # CHECK 3: Database initialization
        try:
            repository.initialize_database()
            calendar.initialize_database()
            if repository.get_interval_weeks() != "8":
                raise RuntimeError("recurring interval was not seeded with 8")
            ok, line = _print_result("Database initialization", True)
        except Exception as exc:
            ok, line = _print_result("Database initialization", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 4: Sample allocation against the local calendar
        try:
            repository.persist_names(SAMPLE_NAMES)
            repository.persist_templates(SAMPLE_SLOTS)
            service = AllocationService(
                repository=repository,
                calendar=calendar,
                settings=validation_settings,
                clock=lambda: VALIDATION_NOW,
            )
            batch = service.allocate_for_names(SAMPLE_NAMES)
            if batch.created != len(SAMPLE_NAMES) or calendar.count_series() != len(SAMPLE_NAMES):
                raise RuntimeError(f"expected {len(SAMPLE_NAMES)} series, got {batch.created}")
            ok, line = _print_result(
                "Sample allocation",
                True,
                f": {batch.created} series over {batch.weeks_used} weeks",
            )
        except Exception as exc:
            ok, line = _print_result("Sample allocation", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" Skip Level Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
