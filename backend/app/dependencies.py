from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import settings
from app.core.repositories.implementations.supabase.profile_directory import (
    SupabaseProfileDirectory,
)
from app.core.repositories.implementations.supabase.tag_repository import SupabaseTagRepository
from app.core.repositories.implementations.supabase.thing_repository import (
    SupabaseThingRepository,
)
from app.core.schemas.auth import AuthUser
from app.core.services.archive_service import ArchiveService
from app.core.services.attachment_service import AttachmentService
from app.core.services.link_classifier import LinkClassifier
from app.core.services.thing_service import ThingService
from app.db.base import create_request_supabase_client, get_supabase_admin_client
from app.utils.logging import get_logger

logger = get_logger(__name__)

# Use auto_error=False to handle missing tokens gracefully
http_bearer = HTTPBearer(auto_error=False)

if TYPE_CHECKING:
    from supabase import Client

    from app.core.repositories.profile_directory import ProfileDirectory
    from app.core.repositories.tag_repository import TagRepository
    from app.core.repositories.thing_repository import ThingRepository


async def _run_blocking(func):
    """Run blocking functions in a thread pool."""
    import asyncio
    return await asyncio.to_thread(func)


def get_request_supabase_client(request: Request) -> Client:
    """Create a request-scoped Supabase client and set PostgREST bearer.

    Extracts the Authorization: Bearer <jwt> header if present and configures
    PostgREST to enforce RLS for the user.
    """
    auth_header = request.headers.get("authorization") or request.headers.get("Authorization")
    jwt: str | None = None
    if auth_header and auth_header.lower().startswith("bearer "):
        jwt = auth_header.split(" ", 1)[1].strip()
    return create_request_supabase_client(jwt)


def get_thing_repository(client: Client = Depends(get_request_supabase_client)) -> ThingRepository:
    """Get a request-scoped note repository instance using request client."""
    return SupabaseThingRepository(
        client,
        table_name=settings.things_table,
        legacy_table_name=settings.legacy_things_table,
    )


def get_tag_repository(client: Client = Depends(get_request_supabase_client)) -> TagRepository:
    """Get a request-scoped tag index instance using request client."""
    return SupabaseTagRepository(client, table_name=settings.tags_table)


def get_admin_thing_repository() -> ThingRepository:
    """Note repository on the admin client, for legacy migration across users."""
    return SupabaseThingRepository(
        get_supabase_admin_client(),
        table_name=settings.things_table,
        legacy_table_name=settings.legacy_things_table,
    )


def get_profile_directory(client: Client = Depends(get_request_supabase_client)) -> ProfileDirectory:
    return SupabaseProfileDirectory(client, table_name=settings.profiles_table)


def get_link_classifier() -> LinkClassifier:
    return LinkClassifier()


def get_thing_service(
    things: ThingRepository = Depends(get_thing_repository),
    tags: TagRepository = Depends(get_tag_repository),
    classifier: LinkClassifier = Depends(get_link_classifier),
) -> ThingService:
    """Get a request-scoped note service instance."""
    return ThingService(things, tags, classifier, files_path=settings.files_path)


def get_archive_service(
    things: ThingRepository = Depends(get_thing_repository),
    tags: TagRepository = Depends(get_tag_repository),
) -> ArchiveService:
    """Get a request-scoped archive import/export service instance."""
    return ArchiveService(things, tags)


def get_attachment_service() -> AttachmentService:
    return AttachmentService()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(http_bearer),
) -> AuthUser:
    """Validate JWT via Supabase and return authenticated user."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    jwt = credentials.credentials
    if not jwt or len(jwt.split(".")) != 3:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token format",
            headers={"WWW-Authenticate": "Bearer"},
        )
    supabase = create_request_supabase_client(jwt)
    try:
        resp = await _run_blocking(lambda: supabase.auth.get_user(jwt))
    except Exception as err:
        error_msg = str(err).lower()
        logger.warning(
            "JWT validation failed",
            extra={
                "error_type": type(err).__name__,
                "error_summary": error_msg[:100] if error_msg else "Unknown error",
            }
        )
        detail = "Token is invalid or expired" if ("invalid" in error_msg or "expired" in error_msg) else "Authentication failed"
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        ) from err
    user = getattr(resp, "user", None)
    user_id = getattr(user, "id", None) if user else None
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user data",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return AuthUser(
        id=str(user_id),
        email=getattr(user, "email", None) or "",
        role=getattr(user, "role", None),
    )


async def get_migration_admin(current_user: AuthUser = Depends(get_current_user)) -> AuthUser:
    """Authenticated user allowed to touch the shared legacy store."""
    allowed = settings.migration_admin_ids
    if allowed and current_user.id not in allowed:
        logger.warning("Migration access refused", extra={"user_id": current_user.id})
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Migration is restricted to administrators",
        )
    return current_user
