from __future__ import annotations

from pydantic import Field

from app.core.models.base import CamelModel
from app.core.models.thing import AttachmentRef, ExternalLink


class ThingCreate(CamelModel):
    content: str = Field(max_length=100000, description="Raw note text")
    attachments: list[AttachmentRef] = Field(default_factory=list)


class ThingUpdate(CamelModel):
    content: str = Field(max_length=100000, description="Raw note text")
    attachments: list[AttachmentRef] = Field(default_factory=list)
    acl: list[str] = Field(default_factory=list, description="Identities allowed to read besides the owner")


class ThingRead(CamelModel):
    id: str
    user_id: str
    content: str
    rich_content: str
    created_at: int
    modified_at: int
    tags: list[str]
    external_content: list[ExternalLink]
    attachments: list[AttachmentRef]
    acl: list[str]


class ImportResult(CamelModel):
    imported: int
    ids: list[str]
