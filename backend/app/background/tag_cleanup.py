from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from app.config import settings
from app.core.repositories.implementations.supabase.tag_repository import SupabaseTagRepository
from app.core.repositories.implementations.supabase.thing_repository import (
    SupabaseThingRepository,
)
from app.core.services.extraction import extract_tags
from app.db.base import get_supabase_admin_client
from app.utils.logging import get_logger

logger = get_logger(__name__)

if TYPE_CHECKING:
    from app.core.repositories.tag_repository import TagRepository
    from app.core.repositories.thing_repository import ThingRepository


async def cleanup_user_tags(things: ThingRepository, tags: TagRepository, user_id: str) -> list[str]:
    """Delete tag records of one user that no note extracts anymore.

    Returns the names of the deleted tags.
    """
    active: set[str] = set()
    for thing in await things.get_all_lean(user_id):
        active.update(extract_tags(thing.content))

    removed: list[str] = []
    for tag in await tags.get(user_id):
        if tag.name in active:
            continue
        logger.info("Cleanup tag %s for %s", tag.name, user_id)
        await tags.delete(user_id, tag.id)
        removed.append(tag.name)
    return removed


async def cleanup_tags(things: ThingRepository, tags: TagRepository) -> dict[str, list[str]]:
    """Run tag cleanup for every active user.

    Users are processed concurrently. A failure for one user is logged and
    reported as no removals for that user.
    """
    user_ids = list(await things.get_all_active_user_ids())

    async def _safe(user_id: str) -> list[str]:
        try:
            return await cleanup_user_tags(things, tags, user_id)
        except Exception as err:
            logger.error("Cleanup tags failed for %s: %s", user_id, err)
            return []

    results = await asyncio.gather(*(_safe(uid) for uid in user_ids))
    return dict(zip(user_ids, results, strict=True))


async def run_periodic_tag_cleanup(interval: int | None = None) -> None:
    """Background loop sweeping stale tags every `interval` seconds until cancelled.

    Uses the admin client so that the sweep sees every user's rows.
    """
    interval = interval or settings.tag_cleanup_interval
    while True:
        await asyncio.sleep(interval)
        try:
            client = get_supabase_admin_client()
            things = SupabaseThingRepository(
                client,
                table_name=settings.things_table,
                legacy_table_name=settings.legacy_things_table,
            )
            tags = SupabaseTagRepository(client, table_name=settings.tags_table)
            removed = await cleanup_tags(things, tags)
            logger.info("Tag cleanup removed %d tags", sum(len(v) for v in removed.values()))
        except Exception as err:  # pragma: no cover - network/db errors
            logger.error("Tag cleanup sweep failed: %s", err)
