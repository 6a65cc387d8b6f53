"""Helpers for moving data out of the legacy single-tenant store.

Nothing here is cached: whether legacy data is waiting to be imported is
derived from the filesystem every time it is asked.
"""
from __future__ import annotations

import asyncio
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError as PydanticValidationError

from app.config import settings
from app.core.schemas.archive import ArchivedThing, ThingsEnvelope
from app.core.schemas.migration import MigrationStatus
from app.core.services.archive_service import remove_quietly, write_bundle
from app.utils.logging import get_logger

if TYPE_CHECKING:
    from app.core.repositories.thing_repository import ThingRepository

logger = get_logger(__name__)


def get_migration_status(export_path: str | Path | None = None) -> MigrationStatus:
    """Report whether a legacy export bundle is waiting to be imported."""
    path = Path(export_path or settings.legacy_export_path)
    if path.is_file():
        return MigrationStatus(legacy_data_present=True, export_path=str(path))
    return MigrationStatus()


async def export_legacy_data(
    repo: ThingRepository,
    *,
    legacy_attachment_dir: str | Path | None = None,
    export_path: str | Path | None = None,
) -> MigrationStatus:
    """Pack legacy notes and attachments into the legacy export bundle.

    Rows that cannot be projected are logged and skipped. Does nothing when the
    legacy store is empty.
    """
    export_path = Path(export_path or settings.legacy_export_path)
    attachment_dir = Path(legacy_attachment_dir or settings.legacy_attachment_dir)

    rows = await repo.get_all_legacy()
    if not rows:
        return get_migration_status(export_path)

    logger.info("Old data found, prepare for import")

    things: list[ArchivedThing] = []
    for row in rows:
        try:
            things.append(ArchivedThing.model_validate(row))
        except PydanticValidationError as err:
            logger.error("Skipping legacy row %s: %s", row.get("id", "?"), err)

    # the folder may not exist if nobody ever uploaded a file
    attachment_dir.mkdir(parents=True, exist_ok=True)
    export_path.parent.mkdir(parents=True, exist_ok=True)
    await asyncio.to_thread(write_bundle, export_path, ThingsEnvelope(things=things), attachment_dir)

    logger.info("Old data available at %s", export_path)
    return get_migration_status(export_path)


async def cleanup_legacy_data(
    repo: ThingRepository,
    *,
    legacy_attachment_dir: str | Path | None = None,
    export_path: str | Path | None = None,
) -> MigrationStatus:
    """Remove legacy attachments, the export bundle and the legacy store.

    Each step is attempted even if an earlier one fails.
    """
    export_path = Path(export_path or settings.legacy_export_path)
    attachment_dir = Path(legacy_attachment_dir or settings.legacy_attachment_dir)

    remove_quietly(export_path)

    try:
        await asyncio.to_thread(shutil.rmtree, attachment_dir)
    except FileNotFoundError:
        pass
    except OSError as err:
        logger.error("Failed to remove legacy attachments: %s", err)

    try:
        await repo.drop_legacy()
    except Exception as err:
        logger.error("Failed to drop legacy data: %s", err)

    return get_migration_status(export_path)
