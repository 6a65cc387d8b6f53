from __future__ import annotations

from typing import TYPE_CHECKING

from app.core.errors import AccessDenied, NotFound
from app.core.services.extraction import extract_tags, extract_urls, unique
from app.core.services.renderer import facelift
from app.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from app.core.models.thing import AttachmentRef, ExternalLink, Thing
    from app.core.repositories.tag_repository import TagRepository
    from app.core.repositories.thing_repository import ThingRepository
    from app.core.services.link_classifier import LinkClassifier

logger = get_logger(__name__)


class ThingService:
    """Service for adding, updating and reading notes of a single owner.

    Every write re-extracts tags and links from the new content so that the
    stored tag list and external link list always match it. Tags are pushed to
    the tag index one at a time before the note itself is written.
    """

    def __init__(
        self,
        things: ThingRepository,
        tags: TagRepository,
        classifier: LinkClassifier,
        *,
        files_path: str | None = None,
    ) -> None:
        self._things = things
        self._tags = tags
        self._classifier = classifier
        self._files_path = files_path

    async def add_thing(self, user_id: str, content: str, attachments: list[AttachmentRef]) -> Thing:
        """Create a note and return it rendered."""
        external_content = await self._classifier.classify(extract_urls(content))
        tags = unique(extract_tags(content))

        await self._update_tags(user_id, tags)

        thing = await self._things.add(user_id, content, tags, attachments, external_content)
        return await self.get_thing(user_id, thing.id, user_id)

    async def update_thing(
        self,
        user_id: str,
        thing_id: str,
        content: str,
        attachments: list[AttachmentRef],
        acl: list[str],
    ) -> Thing:
        """Overwrite a note's content, attachments and acl and return it rendered.

        The owner always stays on the acl. A failed classification does not block
        the write; the note is stored without external links instead.
        """
        tags = unique(extract_tags(content))
        await self._update_tags(user_id, tags)

        try:
            external_content = await self._classifier.classify(extract_urls(content))
        except Exception as err:
            logger.error("Failed to extract external content for %s: %s", thing_id, err)
            external_content = []

        acl = unique([user_id, *acl])
        await self._things.put(user_id, thing_id, content, tags, attachments, external_content, acl)
        return await self.get_thing(user_id, thing_id, user_id)

    async def get_thing(self, user_id: str, thing_id: str, access: str | None) -> Thing:
        """Return a rendered note if `access` is on its acl.

        Raises:
            AccessDenied: if `access` is empty or not on the acl
            NotFound: if the note does not exist
        """
        if not access:
            raise AccessDenied("not allowed")

        thing = await self._things.get(user_id, thing_id)
        if thing is None:
            raise NotFound(f"thing {thing_id} not found")
        if access not in thing.acl:
            raise AccessDenied("not allowed")

        return await self._render_or_raw(user_id, thing)

    async def list_things(
        self, user_id: str, *, query: str | None = None, skip: int = 0, limit: int = 50
    ) -> list[Thing]:
        """List a page of notes, each rendered; a note that fails to render shows its raw content."""
        things = await self._things.get_all(user_id, query=query, skip=skip, limit=limit)
        return [await self._render_or_raw(user_id, thing) for thing in things]

    async def list_things_lean(self, user_id: str) -> Sequence[Thing]:
        """Every note of the user, unrendered."""
        return await self._things.get_all_lean(user_id)

    async def delete_thing(self, user_id: str, thing_id: str) -> None:
        await self._things.delete(user_id, thing_id)

    async def render(self, user_id: str, thing: Thing) -> Thing:
        """Return a copy of `thing` with `rich_content` filled in.

        Notes stored before links were classified get classified now and the
        result is written back once. A failed write back is only logged.
        """
        external_content = thing.external_content
        if external_content is None:
            external_content = await self._backfill_external_content(user_id, thing)

        rich = facelift(
            user_id,
            thing.content,
            thing.tags,
            external_content,
            thing.attachments,
            files_path=self._files_path,
        )
        return thing.model_copy(update={"external_content": external_content, "rich_content": rich})

    async def _backfill_external_content(self, user_id: str, thing: Thing) -> list[ExternalLink]:
        try:
            external_content = await self._classifier.classify(extract_urls(thing.content))
        except Exception as err:
            logger.error("Failed to extract external content for %s: %s", thing.id, err)
            return []

        logger.info("Update %s with new external content", thing.id)
        try:
            await self._things.put(
                user_id, thing.id, thing.content, thing.tags, thing.attachments, external_content
            )
        except Exception as err:
            logger.error("Failed to update external content for %s: %s", thing.id, err)
        return external_content

    async def _render_or_raw(self, user_id: str, thing: Thing) -> Thing:
        try:
            return await self.render(user_id, thing)
        except Exception as err:
            logger.error("Failed to facelift %s: %s", thing.id, err)
            return thing.model_copy(update={"rich_content": thing.content})

    async def _update_tags(self, user_id: str, tags: Sequence[str]) -> None:
        # one at a time, in extraction order; the first failure aborts
        for tag in tags:
            await self._tags.update(user_id, tag)
