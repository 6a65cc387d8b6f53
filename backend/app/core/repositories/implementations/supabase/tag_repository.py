from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import uuid4

from app.core.errors import UpstreamUnavailable
from app.core.models.base import now_ms
from app.core.models.thing import Tag
from app.core.repositories.tag_repository import TagRepository
from app.utils.logging import get_logger

logger = get_logger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from supabase import Client


class SupabaseTagRepository(TagRepository):
    """Supabase implementation of the tag index.

    Assumes a `tags` table with columns `id`, `user_id`, `name`, `usage` (int)
    and `last_used_at` (bigint epoch ms), unique on (`user_id`, `name`).
    """

    PAGE_SIZE = 1000

    def __init__(self, client: Client, *, table_name: str = "tags") -> None:
        self._client: Client = client
        self._table = table_name

    async def update(self, user_id: str, name: str) -> None:
        resp = await self._run(
            lambda: self._client.table(self._table)
            .select("id, usage")
            .eq("user_id", user_id)
            .eq("name", name)
            .limit(1)
            .execute()
        )
        items = resp.data or []
        now = now_ms()

        if items:
            existing = items[0]
            await self._run(
                lambda: self._client.table(self._table)
                .update({"usage": int(existing.get("usage") or 0) + 1, "last_used_at": now})
                .eq("id", existing["id"])
                .execute()
            )
            return

        row = {"id": uuid4().hex, "user_id": user_id, "name": name, "usage": 1, "last_used_at": now}
        await self._run(
            lambda: self._client.table(self._table)
            .upsert(row, on_conflict="user_id,name")
            .execute()
        )

    async def get(self, user_id: str) -> Sequence[Tag]:
        # PostgREST caps a single response, so walk the index page by page
        tags: list[Tag] = []
        offset = 0
        while True:
            resp = await self._run(
                lambda: self._client.table(self._table)
                .select("*")
                .eq("user_id", user_id)
                .order("name")
                .range(offset, offset + self.PAGE_SIZE - 1)
                .execute()
            )
            page = resp.data or []
            tags.extend(Tag.model_validate(r) for r in page)
            if len(page) < self.PAGE_SIZE:
                return tags
            offset += self.PAGE_SIZE

    async def delete(self, user_id: str, tag_id: str) -> None:
        await self._run(
            lambda: self._client.table(self._table)
            .delete()
            .eq("user_id", user_id)
            .eq("id", tag_id)
            .execute()
        )

    @staticmethod
    async def _run(func: Callable[[], Any]) -> Any:
        import asyncio
        try:
            return await asyncio.to_thread(func)
        except Exception as err:
            logger.error("Supabase tag request failed: %s", err)
            raise UpstreamUnavailable(str(err)) from err
