from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import Field, field_validator

from app.core.models.base import CamelModel
from app.core.models.thing import AttachmentRef, ExternalLink, Thing

# Fixed entry names inside an archive bundle
ENVELOPE_NAME = "things.json"
ATTACHMENTS_PREFIX = "attachments/"


def _to_epoch_ms(value: str) -> int:
    """Convert an ISO-8601 date string (older exports) to epoch milliseconds."""
    parsed = datetime.fromisoformat(value.strip())
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return int(parsed.timestamp() * 1000)


class ArchivedThing(CamelModel):
    """Snapshot of a single note as exchanged inside an archive envelope.

    Tags are deliberately absent: they are recomputed from `content` on import.
    """

    created_at: int
    modified_at: int | None = None
    content: str
    external_content: list[ExternalLink] = Field(default_factory=list)
    attachments: list[AttachmentRef] = Field(default_factory=list)

    @field_validator("created_at", "modified_at", mode="before")
    @classmethod
    def normalize_timestamp(cls, v: Any) -> Any:
        if isinstance(v, str):
            return _to_epoch_ms(v)
        return v

    @field_validator("external_content", "attachments", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @classmethod
    def from_thing(cls, thing: Thing) -> ArchivedThing:
        return cls(
            created_at=thing.created_at,
            modified_at=thing.modified_at,
            content=thing.content,
            external_content=thing.external_content or [],
            attachments=thing.attachments,
        )


class ThingsEnvelope(CamelModel):
    """Top-level JSON document stored as `things.json` in an archive bundle."""

    things: list[ArchivedThing] = Field(default_factory=list)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=4)
