from __future__ import annotations

from app.core.models.base import AppBaseModel


class AuthUser(AppBaseModel):
    """Authenticated user extracted from Supabase JWT."""

    id: str
    email: str
    role: str | None = None
