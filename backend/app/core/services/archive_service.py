"""Bulk export and import of a user's notes as a single tar bundle.

A bundle holds one JSON envelope (`things.json`, `{"things": [...]}`) and the
user's attachment files under `attachments/`. Import recomputes tags from
content and never trusts anything but content, timestamps, links and
attachment references from the bundle.
"""
from __future__ import annotations

import asyncio
import contextlib
import io
import json
import os
import tarfile
import tempfile
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from app.config import settings
from app.core.errors import InvalidArchive
from app.core.schemas.archive import (
    ATTACHMENTS_PREFIX,
    ENVELOPE_NAME,
    ArchivedThing,
    ThingsEnvelope,
)
from app.core.services.extraction import extract_tags, unique
from app.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from app.core.repositories.tag_repository import TagRepository
    from app.core.repositories.thing_repository import ThingRepository

logger = get_logger(__name__)


def remove_quietly(path: str | Path) -> None:
    """Best-effort delete of a file; never raises."""
    with contextlib.suppress(OSError):
        os.unlink(path)


def write_bundle(destination: Path, envelope: ThingsEnvelope, attachment_folder: Path) -> Path:
    """Pack `envelope` and every file below `attachment_folder` into a tar at `destination`."""
    payload = envelope.to_json().encode("utf-8")

    with tarfile.open(destination, "w") as tar:
        if attachment_folder.is_dir():
            for path in sorted(attachment_folder.rglob("*")):
                if not path.is_file() or path.name == ENVELOPE_NAME:
                    continue
                rel = path.relative_to(attachment_folder).as_posix()
                tar.add(path, arcname=ATTACHMENTS_PREFIX + rel, recursive=False)

        info = tarfile.TarInfo(name=ENVELOPE_NAME)
        info.size = len(payload)
        info.mtime = int(time.time())
        tar.addfile(info, io.BytesIO(payload))

    return destination


def unpack_bundle(bundle_path: Path, workspace: Path, attachment_folder: Path) -> dict[str, Any]:
    """Unpack a bundle and return the parsed envelope.

    Attachment entries land in `attachment_folder` with the `attachments/` prefix
    stripped; the envelope is extracted into `workspace`. Other entries are ignored.

    Raises:
        InvalidArchive: if the bundle is not a tar file, holds unsafe paths, or the
            envelope is missing, not JSON, or has no `things` array
    """
    attachment_folder.mkdir(parents=True, exist_ok=True)
    envelope_path: Path | None = None

    try:
        with tarfile.open(bundle_path, "r:*") as tar:
            for member in tar.getmembers():
                if not member.isfile():
                    continue
                name = member.name.removeprefix("./")
                if name == ENVELOPE_NAME:
                    tar.extract(member.replace(name=ENVELOPE_NAME), workspace, filter="data")
                    envelope_path = workspace / ENVELOPE_NAME
                elif name.startswith(ATTACHMENTS_PREFIX) and len(name) > len(ATTACHMENTS_PREFIX):
                    stripped = member.replace(name=name[len(ATTACHMENTS_PREFIX):])
                    tar.extract(stripped, attachment_folder, filter="data")
    except (tarfile.TarError, OSError) as err:
        raise InvalidArchive(f"cannot unpack archive: {err}") from err

    if envelope_path is None:
        raise InvalidArchive(f"archive has no {ENVELOPE_NAME}")

    try:
        data = json.loads(envelope_path.read_text(encoding="utf-8"))
    except (ValueError, UnicodeDecodeError) as err:
        raise InvalidArchive("content is not JSON") from err

    if not isinstance(data, dict) or not isinstance(data.get("things"), list):
        raise InvalidArchive('content must have a "things" array')
    return data


class ArchiveService:
    """Exports a user's notes and attachments to a bundle and imports them back."""

    def __init__(
        self,
        things: ThingRepository,
        tags: TagRepository,
        *,
        attachment_dir: str | Path | None = None,
        scratch_dir: str | Path | None = None,
    ) -> None:
        self._things = things
        self._tags = tags
        self._attachment_dir = Path(attachment_dir or settings.attachment_dir)
        scratch = scratch_dir if scratch_dir is not None else settings.scratch_dir
        self._scratch_dir = Path(scratch) if scratch else None

    def attachment_folder(self, user_id: str) -> Path:
        return self._attachment_dir / user_id

    async def export_envelope(self, user_id: str) -> ThingsEnvelope:
        """Project every note of the user to its archive form."""
        things = await self._things.get_all_lean(user_id)
        return ThingsEnvelope(things=[ArchivedThing.from_thing(t) for t in things])

    async def export_archive(self, user_id: str, destination: str | Path | None = None) -> Path:
        """Write the user's bundle and return its path.

        Without a destination a temporary file is created; the caller removes it.
        """
        envelope = await self.export_envelope(user_id)

        if destination is None:
            if self._scratch_dir is not None:
                self._scratch_dir.mkdir(parents=True, exist_ok=True)
            fd, name = tempfile.mkstemp(prefix="things-export-", suffix=".tar", dir=self._scratch_dir)
            os.close(fd)
            destination = name

        path = Path(destination)
        try:
            await asyncio.to_thread(write_bundle, path, envelope, self.attachment_folder(user_id))
        except Exception:
            remove_quietly(path)
            raise

        logger.info("Exported %d things for %s to %s", len(envelope.things), user_id, path)
        return path

    async def import_archive(self, user_id: str, bundle_path: str | Path) -> list[str]:
        """Restore notes and attachments from an uploaded bundle.

        The bundle and the unpacked envelope are removed whatever the outcome.
        Returns ids of the created notes.
        """
        bundle_path = Path(bundle_path)
        try:
            if self._scratch_dir is not None:
                self._scratch_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.TemporaryDirectory(prefix="things-import-", dir=self._scratch_dir) as workspace:
                data = await asyncio.to_thread(
                    unpack_bundle, bundle_path, Path(workspace), self.attachment_folder(user_id)
                )
        finally:
            remove_quietly(bundle_path)

        return await self.import_things(user_id, data)

    async def import_things(self, user_id: str, data: Mapping[str, Any]) -> list[str]:
        """Insert archived notes one by one, stopping at the first failure."""
        items: Sequence[Any] = data.get("things") or []
        created: list[str] = []

        for index, raw in enumerate(items):
            try:
                item = ArchivedThing.model_validate(raw)
            except PydanticValidationError as err:
                raise InvalidArchive(f"entry {index} is invalid: {err}") from err

            tags = unique(extract_tags(item.content))
            for tag in tags:
                await self._tags.update(user_id, tag)

            thing = await self._things.add_full(
                user_id,
                item.content,
                tags,
                item.attachments,
                item.external_content,
                item.created_at,
                item.modified_at if item.modified_at is not None else item.created_at,
            )
            created.append(thing.id)

        logger.info("Imported %d things for %s", len(created), user_id)
        return created
