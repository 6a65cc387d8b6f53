from __future__ import annotations

import asyncio
import mimetypes
import re
import shutil
from pathlib import Path
from typing import BinaryIO
from uuid import uuid4

from app.config import settings
from app.core.errors import NotFound, ValidationError
from app.core.models.thing import AttachmentRef, ContentType
from app.utils.logging import get_logger

logger = get_logger(__name__)

_SAFE_SEGMENT = re.compile(r"^[A-Za-z0-9._-]+$")


def _check_segment(value: str, what: str) -> str:
    if not _SAFE_SEGMENT.match(value) or value in {".", ".."}:
        raise ValidationError(f"invalid {what}: {value!r}")
    return value


class AttachmentService:
    """Stores attachment files under `<attachment_dir>/<user_id>/<identifier>`."""

    def __init__(self, attachment_dir: str | Path | None = None) -> None:
        self._root = Path(attachment_dir or settings.attachment_dir)

    def user_dir(self, user_id: str) -> Path:
        return self._root / _check_segment(user_id, "user id")

    async def store(
        self,
        user_id: str,
        file_name: str,
        stream: BinaryIO,
        media_type: str | None = None,
    ) -> AttachmentRef:
        """Save an uploaded file and return the reference to embed in a note."""
        file_name = Path(file_name or "").name
        if not file_name:
            raise ValidationError("file name is required")

        identifier = uuid4().hex
        folder = self.user_dir(user_id)
        target = folder / identifier

        def _write() -> None:
            folder.mkdir(parents=True, exist_ok=True)
            with target.open("wb") as out:
                shutil.copyfileobj(stream, out)

        await asyncio.to_thread(_write)

        media_type = media_type or mimetypes.guess_type(file_name)[0] or ""
        kind = ContentType.IMAGE if media_type.startswith("image/") else ContentType.UNKNOWN
        logger.info("Stored attachment %s for %s (%s)", identifier, user_id, kind.value)
        return AttachmentRef(file_name=file_name, identifier=identifier, type=kind.value)

    def resolve(self, user_id: str, identifier: str) -> Path:
        """Return the path of a stored attachment.

        Raises:
            ValidationError: if the id contains path separators or similar
            NotFound: if no such file is stored
        """
        path = self.user_dir(user_id) / _check_segment(identifier, "attachment identifier")
        if not path.is_file():
            raise NotFound(f"attachment {identifier} not found")
        return path
