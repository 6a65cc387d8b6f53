from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.v1.errors import to_http_exception
from app.core.errors import ThingsError
from app.core.models.profile import Profile
from app.core.repositories.profile_directory import ProfileDirectory
from app.core.schemas.auth import AuthUser
from app.dependencies import get_current_user, get_profile_directory

router = APIRouter()


@router.get("/{identifier}", response_model=Profile)
async def get_profile(
    identifier: str,
    current_user: AuthUser = Depends(get_current_user),
    directory: ProfileDirectory = Depends(get_profile_directory),
):
    """Resolve a user id, email or username, e.g. before adding it to a note's acl."""
    try:
        return await directory.get_profile_by_identifier(identifier)
    except ThingsError as err:
        raise to_http_exception(err) from err
