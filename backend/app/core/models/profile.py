from __future__ import annotations

from .base import AppBaseModel


class Profile(AppBaseModel):
    """Canonical directory entry for a user."""

    id: str
    username: str | None = None
    display_name: str | None = None
    email: str | None = None
