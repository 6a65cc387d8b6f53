from __future__ import annotations

import time

from pydantic import BaseModel as PydanticBaseModel
from pydantic import ConfigDict
from pydantic.alias_generators import to_camel


def now_ms() -> int:
    """Current time as epoch milliseconds, the timestamp format notes are stored in."""
    return int(time.time() * 1000)


class AppBaseModel(PydanticBaseModel):
    """Base model for all domain models."""

    model_config = ConfigDict(
        from_attributes=True,
        extra="forbid",
        populate_by_name=True,
    )


class CamelModel(AppBaseModel):
    """Model exchanged in camelCase form (stored JSON columns, archive envelopes).

    Unknown keys are dropped so that bundles written by older or newer versions
    still load.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        extra="ignore",
    )
