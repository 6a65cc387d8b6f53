from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import Field, field_validator

from .base import AppBaseModel, CamelModel, now_ms


class ContentType(str, Enum):
    """Best-effort classification of linked or attached content."""

    IMAGE = "image"
    UNKNOWN = "unknown"


class ExternalLink(CamelModel):
    """A URL found in note content together with its probed classification."""

    url: str
    type: ContentType = ContentType.UNKNOWN

    @field_validator("type", mode="before")
    @classmethod
    def coerce_type(cls, v: Any) -> Any:
        # anything we do not render specially is treated as a plain link
        if v not in {t.value for t in ContentType} and not isinstance(v, ContentType):
            return ContentType.UNKNOWN
        return v

    @property
    def is_image(self) -> bool:
        return self.type == ContentType.IMAGE


class AttachmentRef(CamelModel):
    """File attached to a note, referenced from content as `[file_name]`."""

    file_name: str
    identifier: str
    type: str = ContentType.UNKNOWN.value

    @property
    def is_image(self) -> bool:
        return self.type == ContentType.IMAGE.value


class Thing(AppBaseModel):
    """Note domain model ("thing").

    `tags` and `external_content` always mirror what can be extracted from
    `content`. `external_content` is None only for notes stored before links
    were classified; rendering backfills it.
    """

    id: str = Field(description="Unique note identifier")
    user_id: str = Field(description="Owner of the note")
    content: str = Field(default="", description="Raw note text")

    created_at: int = Field(default_factory=now_ms, description="Epoch milliseconds")
    modified_at: int = Field(default_factory=now_ms, description="Epoch milliseconds")

    tags: list[str] = Field(default_factory=list)
    external_content: list[ExternalLink] | None = None
    attachments: list[AttachmentRef] = Field(default_factory=list)
    acl: list[str] = Field(default_factory=list, description="Identities allowed to read")

    # Display markup, computed on read and never persisted
    rich_content: str | None = None

    @field_validator("tags", "attachments", "acl", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return [] if v is None else v


class Tag(AppBaseModel):
    """Tag index record for one user."""

    id: str
    user_id: str
    name: str
    usage: int = 0
    last_used_at: int | None = None
