from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import uuid4

from app.core.errors import NotFound, UpstreamUnavailable
from app.core.models.base import now_ms
from app.core.models.thing import Thing
from app.core.repositories.thing_repository import ThingRepository
from app.utils.logging import get_logger

logger = get_logger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from supabase import Client

    from app.core.models.thing import AttachmentRef, ExternalLink


class SupabaseThingRepository(ThingRepository):
    """Supabase implementation of the ThingRepository.

    Assumes a `things` table with columns `id`, `user_id`, `content`,
    `created_at` and `modified_at` (bigint epoch ms), `tags` and `acl` (text[]),
    and `external_content` and `attachments` (jsonb, camelCase objects).
    `external_content` is NULL for rows stored before link classification.
    """

    PAGE_SIZE = 1000

    def __init__(
        self,
        client: Client,
        *,
        table_name: str = "things",
        legacy_table_name: str = "legacy_things",
    ) -> None:
        self._client: Client = client
        self._table = table_name
        self._legacy_table = legacy_table_name

    async def get_all(
        self, user_id: str, *, query: str | None = None, skip: int = 0, limit: int = 50
    ) -> Sequence[Thing]:
        def _query():
            q = self._client.table(self._table).select("*").eq("user_id", user_id)
            if query:
                q = q.ilike("content", f"%{query}%")
            return (
                q
                .order("modified_at", desc=True)
                .range(skip, skip + limit - 1)
                .execute()
            )

        resp = await self._run(_query)
        return [self._row_to_thing(r) for r in resp.data or []]

    async def get_all_lean(self, user_id: str) -> Sequence[Thing]:
        rows = await self._fetch_all(
            lambda start, end: self._client.table(self._table)
            .select("*")
            .eq("user_id", user_id)
            .order("created_at")
            .range(start, end)
            .execute()
        )
        return [self._row_to_thing(r) for r in rows]

    async def get(self, user_id: str, thing_id: str) -> Thing | None:
        resp = await self._run(
            lambda: self._client.table(self._table)
            .select("*")
            .eq("user_id", user_id)
            .eq("id", thing_id)
            .limit(1)
            .execute()
        )
        items = resp.data or []
        if not items:
            return None
        return self._row_to_thing(items[0])

    async def add(
        self,
        user_id: str,
        content: str,
        tags: list[str],
        attachments: list[AttachmentRef],
        external_content: list[ExternalLink],
    ) -> Thing:
        now = now_ms()
        return await self.add_full(user_id, content, tags, attachments, external_content, now, now)

    async def add_full(
        self,
        user_id: str,
        content: str,
        tags: list[str],
        attachments: list[AttachmentRef],
        external_content: list[ExternalLink],
        created_at: int,
        modified_at: int,
    ) -> Thing:
        thing = Thing(
            id=uuid4().hex,
            user_id=user_id,
            content=content,
            created_at=created_at,
            modified_at=modified_at,
            tags=tags,
            attachments=attachments,
            external_content=external_content,
            acl=[user_id],
        )
        resp = await self._run(
            lambda: self._client.table(self._table)
            .insert(self._thing_to_row(thing))
            .execute()
        )
        data = resp.data or []
        if not data:
            raise UpstreamUnavailable("insert returned no row")
        return self._row_to_thing(data[0])

    async def put(
        self,
        user_id: str,
        thing_id: str,
        content: str,
        tags: list[str],
        attachments: list[AttachmentRef],
        external_content: list[ExternalLink],
        acl: list[str] | None = None,
    ) -> None:
        changes: dict[str, Any] = {
            "content": content,
            "tags": tags,
            "attachments": [a.model_dump(by_alias=True) for a in attachments],
            "external_content": [e.model_dump(mode="json", by_alias=True) for e in external_content],
            "modified_at": now_ms(),
        }
        if acl is not None:
            changes["acl"] = acl

        resp = await self._run(
            lambda: self._client.table(self._table)
            .update(changes)
            .eq("user_id", user_id)
            .eq("id", thing_id)
            .execute()
        )
        if not resp.data:
            raise NotFound(f"thing {thing_id} not found")

    async def delete(self, user_id: str, thing_id: str) -> None:
        resp = await self._run(
            lambda: self._client.table(self._table)
            .delete()
            .eq("user_id", user_id)
            .eq("id", thing_id)
            .execute()
        )
        if not resp.data:
            raise NotFound(f"thing {thing_id} not found")

    async def get_all_active_user_ids(self) -> Sequence[str]:
        rows = await self._fetch_all(
            lambda start, end: self._client.table(self._table)
            .select("user_id")
            .order("user_id")
            .range(start, end)
            .execute()
        )
        user_ids: list[str] = []
        for row in rows:
            uid = row.get("user_id")
            if uid and uid not in user_ids:
                user_ids.append(uid)
        return user_ids

    async def get_all_legacy(self) -> Sequence[dict[str, Any]]:
        return await self._fetch_all(
            lambda start, end: self._client.table(self._legacy_table)
            .select("*")
            .range(start, end)
            .execute()
        )

    async def drop_legacy(self) -> None:
        # PostgREST cannot drop tables; the rpc is expected to be installed with the schema
        await self._run(lambda: self._client.rpc("drop_legacy_things", params={}).execute())

    async def _fetch_all(self, fetch_page: Callable[[int, int], Any]) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        offset = 0
        while True:
            resp = await self._run(lambda: fetch_page(offset, offset + self.PAGE_SIZE - 1))
            page: list[dict[str, Any]] = resp.data or []
            rows.extend(page)
            if len(page) < self.PAGE_SIZE:
                return rows
            offset += self.PAGE_SIZE

    @staticmethod
    async def _run(func: Callable[[], Any]) -> Any:
        import asyncio
        try:
            return await asyncio.to_thread(func)
        except Exception as err:
            logger.error("Supabase request failed: %s", err)
            raise UpstreamUnavailable(str(err)) from err

    @staticmethod
    def _row_to_thing(row: dict[str, Any]) -> Thing:
        known = set(Thing.model_fields)
        normalized = {k: v for k, v in row.items() if k in known}
        return Thing.model_validate(normalized)

    @staticmethod
    def _thing_to_row(thing: Thing) -> dict[str, Any]:
        data = thing.model_dump(mode="json", exclude={"rich_content"})
        # jsonb columns keep the camelCase shape used in archives
        data["attachments"] = [a.model_dump(by_alias=True) for a in thing.attachments]
        if thing.external_content is not None:
            data["external_content"] = [
                e.model_dump(mode="json", by_alias=True) for e in thing.external_content
            ]
        return data
