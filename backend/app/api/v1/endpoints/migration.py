"""Legacy data migration.

The legacy store predates per-user ownership and is shared by every account,
so these routes are limited to `migration_admin_ids` when that list is set.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.v1.errors import to_http_exception
from app.api.v1.schemas.thing import ImportResult
from app.core.errors import ThingsError
from app.core.repositories.thing_repository import ThingRepository
from app.core.schemas.auth import AuthUser
from app.core.schemas.migration import MigrationStatus
from app.core.services.archive_service import ArchiveService
from app.core.services.migration_service import (
    cleanup_legacy_data,
    export_legacy_data,
    get_migration_status,
)
from app.dependencies import get_admin_thing_repository, get_archive_service, get_migration_admin

router = APIRouter()


@router.get("/status", response_model=MigrationStatus)
async def migration_status(current_user: AuthUser = Depends(get_migration_admin)):
    return get_migration_status()


@router.post("/export", response_model=MigrationStatus)
async def export_legacy(
    current_user: AuthUser = Depends(get_migration_admin),
    repo: ThingRepository = Depends(get_admin_thing_repository),
):
    """Pack legacy notes into a bundle ready for import."""
    try:
        return await export_legacy_data(repo)
    except ThingsError as err:
        raise to_http_exception(err) from err


@router.post("/import", response_model=ImportResult)
async def import_legacy(
    current_user: AuthUser = Depends(get_migration_admin),
    service: ArchiveService = Depends(get_archive_service),
):
    """Import the legacy bundle into the authenticated user's notes.

    The bundle is consumed, so the status reports no legacy data afterwards.
    """
    current = get_migration_status()
    if not current.legacy_data_present or not current.export_path:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No legacy data to import")
    try:
        ids = await service.import_archive(current_user.id, current.export_path)
    except ThingsError as err:
        raise to_http_exception(err) from err
    return ImportResult(imported=len(ids), ids=ids)


@router.post("/cleanup", response_model=MigrationStatus)
async def cleanup_legacy(
    current_user: AuthUser = Depends(get_migration_admin),
    repo: ThingRepository = Depends(get_admin_thing_repository),
):
    """Discard legacy data without importing it."""
    return await cleanup_legacy_data(repo)
