from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.core.models.profile import Profile


class ProfileDirectory(ABC):
    """User directory lookup."""

    @abstractmethod
    async def get_profile_by_identifier(self, identifier: str) -> Profile:  # pragma: no cover
        """Resolve a user id, email or username to a canonical profile.

        Raises:
            NotFound: if nothing matches
            DuplicateProfile: if more than one entry matches
            UpstreamUnavailable: if the directory cannot be queried
        """
