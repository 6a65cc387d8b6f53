from __future__ import annotations

from app.core.models.base import AppBaseModel


class MigrationStatus(AppBaseModel):
    """Whether exported legacy data is waiting to be imported.

    - legacy_data_present: a legacy export bundle exists on disk
    - export_path: location of that bundle when present
    """

    legacy_data_present: bool = False
    export_path: str | None = None
