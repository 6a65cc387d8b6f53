from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import FileResponse

from app.api.v1.errors import to_http_exception
from app.core.errors import ThingsError
from app.core.models.thing import AttachmentRef
from app.core.schemas.auth import AuthUser
from app.core.services.attachment_service import AttachmentService
from app.dependencies import get_attachment_service, get_current_user

router = APIRouter()


@router.post("/", response_model=AttachmentRef, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(...),
    current_user: AuthUser = Depends(get_current_user),
    service: AttachmentService = Depends(get_attachment_service),
):
    """Store an attachment; reference it from note content as `[file name]`."""
    try:
        return await service.store(current_user.id, file.filename or "", file.file, file.content_type)
    except ThingsError as err:
        raise to_http_exception(err) from err
    finally:
        await file.close()


@router.get("/{user_id}/{identifier}")
async def get_file(
    user_id: str,
    identifier: str,
    service: AttachmentService = Depends(get_attachment_service),
):
    """Serve a stored attachment. Identifiers are random, so rendered notes can embed them directly."""
    try:
        path = service.resolve(user_id, identifier)
    except ThingsError as err:
        raise to_http_exception(err) from err
    return FileResponse(path)
