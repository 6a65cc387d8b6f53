from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.v1.errors import to_http_exception
from app.core.errors import ThingsError
from app.core.models.thing import Tag
from app.core.repositories.tag_repository import TagRepository
from app.core.schemas.auth import AuthUser
from app.dependencies import get_current_user, get_tag_repository

router = APIRouter()


@router.get("/", response_model=list[Tag])
async def list_tags(
    current_user: AuthUser = Depends(get_current_user),
    tags: TagRepository = Depends(get_tag_repository),
):
    """Return the tag index of the authenticated user."""
    try:
        return list(await tags.get(current_user.id))
    except ThingsError as err:
        raise to_http_exception(err) from err
