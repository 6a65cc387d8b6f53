from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from app.core.models.thing import Tag


class TagRepository(ABC):
    """Per-user index of tag names in use."""

    @abstractmethod
    async def update(self, user_id: str, name: str) -> None:  # pragma: no cover - interface only
        """Create the tag if missing, otherwise bump its usage metadata."""

    @abstractmethod
    async def get(self, user_id: str) -> Sequence[Tag]:  # pragma: no cover
        """Return every tag record of the user."""

    @abstractmethod
    async def delete(self, user_id: str, tag_id: str) -> None:  # pragma: no cover
        """Delete a tag record by id."""
