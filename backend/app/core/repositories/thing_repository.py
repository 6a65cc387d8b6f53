from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence

    from app.core.models.thing import AttachmentRef, ExternalLink, Thing


class ThingRepository(ABC):
    """Abstract repository interface for notes ("things").

    Every call is scoped to the owning user. Implementations perform I/O and
    therefore expose async methods; transport failures surface as
    `UpstreamUnavailable`.
    """

    @abstractmethod
    async def get_all(
        self, user_id: str, *, query: str | None = None, skip: int = 0, limit: int = 50
    ) -> Sequence[Thing]:  # pragma: no cover - interface only
        """Return a page of the user's notes, most recently modified first.

        Args:
            user_id: Owner of the notes
            query: Optional case-insensitive substring filter on content
            skip: Number of notes to skip
            limit: Maximum number of notes to return
        """

    @abstractmethod
    async def get_all_lean(self, user_id: str) -> Sequence[Thing]:  # pragma: no cover
        """Return every note of the user without paging."""

    @abstractmethod
    async def get(self, user_id: str, thing_id: str) -> Thing | None:  # pragma: no cover
        """Fetch a note by id or return None if not found."""

    @abstractmethod
    async def add(
        self,
        user_id: str,
        content: str,
        tags: list[str],
        attachments: list[AttachmentRef],
        external_content: list[ExternalLink],
    ) -> Thing:  # pragma: no cover
        """Persist a new note stamped with the current time; acl is the owner."""

    @abstractmethod
    async def add_full(
        self,
        user_id: str,
        content: str,
        tags: list[str],
        attachments: list[AttachmentRef],
        external_content: list[ExternalLink],
        created_at: int,
        modified_at: int,
    ) -> Thing:  # pragma: no cover
        """Persist a new note keeping the given timestamps (archive import)."""

    @abstractmethod
    async def put(
        self,
        user_id: str,
        thing_id: str,
        content: str,
        tags: list[str],
        attachments: list[AttachmentRef],
        external_content: list[ExternalLink],
        acl: list[str] | None = None,
    ) -> None:  # pragma: no cover
        """Overwrite note fields and bump `modified_at`. A None acl keeps the stored one.

        Raises:
            NotFound: if the note does not exist
        """

    @abstractmethod
    async def delete(self, user_id: str, thing_id: str) -> None:  # pragma: no cover
        """Delete a note.

        Raises:
            NotFound: if the note does not exist
        """

    @abstractmethod
    async def get_all_active_user_ids(self) -> Sequence[str]:  # pragma: no cover
        """Return ids of every user owning at least one note."""

    @abstractmethod
    async def get_all_legacy(self) -> Sequence[dict[str, Any]]:  # pragma: no cover
        """Return raw rows of the pre-multi-user notes store, empty when migrated."""

    @abstractmethod
    async def drop_legacy(self) -> None:  # pragma: no cover
        """Remove the pre-multi-user notes store."""
