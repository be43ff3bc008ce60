"""Local storage backup schemas."""

from typing import Any

from pydantic import BaseModel, Field


class BackupDocument(BaseModel):
    """Exported snapshot of the local storage namespace."""

    version: str = Field(...)
    export_date: str | None = Field(None, alias="exportDate")
    application: str = Field(...)
    data_keys: int = Field(0, alias="dataKeys")
    data: dict[str, Any]

    model_config = {"populate_by_name": True}


class BackupImportResult(BaseModel):
    """Outcome of importing a backup."""

    keys_imported: int
    keys_skipped: int
    backup_date: str | None = None


class StorageStats(BaseModel):
    """Local storage usage."""

    total_keys: int
    total_bytes: int
    breakdown: dict[str, int]
