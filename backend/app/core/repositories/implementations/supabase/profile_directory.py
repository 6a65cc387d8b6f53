from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from app.core.errors import DuplicateProfile, NotFound, UpstreamUnavailable
from app.core.models.profile import Profile
from app.core.repositories.profile_directory import ProfileDirectory
from app.utils.logging import get_logger

logger = get_logger(__name__)

if TYPE_CHECKING:
    from supabase import Client


class SupabaseProfileDirectory(ProfileDirectory):
    """Directory lookup against a `profiles` table (`id`, `username`, `display_name`, `email`)."""

    def __init__(self, client: Client, *, table_name: str = "profiles") -> None:
        self._client: Client = client
        self._table = table_name

    async def get_profile_by_identifier(self, identifier: str) -> Profile:
        identifier = identifier.strip()
        if not identifier or any(c in identifier for c in ",()"):
            # these would break out of the PostgREST or-filter
            raise NotFound(f"no profile for {identifier!r}")

        def _search() -> Any:
            return (
                self._client.table(self._table)
                .select("id, username, display_name, email")
                .or_(f"id.eq.{identifier},email.eq.{identifier},username.eq.{identifier}")
                .limit(2)
                .execute()
            )

        try:
            resp = await asyncio.to_thread(_search)
        except Exception as err:
            logger.error("Directory lookup failed for %s: %s", identifier, err)
            raise UpstreamUnavailable(str(err)) from err

        rows: list[dict[str, Any]] = resp.data or []
        if not rows:
            raise NotFound(f"no profile for {identifier!r}")
        if len(rows) > 1:
            raise DuplicateProfile(f"duplicate entries found for {identifier!r}")
        return Profile.model_validate(rows[0])
