from __future__ import annotations

import asyncio
import os
import shutil
import tempfile
from pathlib import Path

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import FileResponse
from starlette.background import BackgroundTask

from app.api.v1.errors import to_http_exception
from app.api.v1.schemas.thing import ImportResult
from app.config import settings
from app.core.errors import ThingsError
from app.core.schemas.auth import AuthUser
from app.core.services.archive_service import ArchiveService, remove_quietly
from app.dependencies import get_archive_service, get_current_user
from app.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


async def _save_upload(upload: UploadFile) -> str:
    """Spool an uploaded bundle to disk; the archive import deletes it afterwards."""
    if settings.scratch_dir:
        Path(settings.scratch_dir).mkdir(parents=True, exist_ok=True)
    fd, path = tempfile.mkstemp(prefix="things-upload-", suffix=".tar", dir=settings.scratch_dir)

    def _copy() -> None:
        with os.fdopen(fd, "wb") as out:
            shutil.copyfileobj(upload.file, out)

    try:
        await asyncio.to_thread(_copy)
    except Exception:
        remove_quietly(path)
        raise
    return path


@router.get("/export")
async def export_things(
    current_user: AuthUser = Depends(get_current_user),
    service: ArchiveService = Depends(get_archive_service),
):
    """Download every note and attachment of the user as one tar bundle."""
    try:
        path = await service.export_archive(current_user.id)
    except ThingsError as err:
        raise to_http_exception(err) from err
    return FileResponse(
        path,
        media_type="application/x-tar",
        filename="things.tar",
        background=BackgroundTask(remove_quietly, path),
    )


@router.post("/import", response_model=ImportResult)
async def import_things(
    file: UploadFile = File(...),
    current_user: AuthUser = Depends(get_current_user),
    service: ArchiveService = Depends(get_archive_service),
):
    """Restore notes and attachments from a bundle produced by export."""
    try:
        path = await _save_upload(file)
    finally:
        await file.close()

    try:
        ids = await service.import_archive(current_user.id, path)
    except ThingsError as err:
        raise to_http_exception(err) from err
    return ImportResult(imported=len(ids), ids=ids)
