"""Export and import of the local storage namespace."""

import json
from typing import Any

import structlog

from zenmedix.core.clock import Clock, utc_now
from zenmedix.core.exceptions import BadRequestException
from zenmedix.core.redis_client import LocalStorage, StorageKeys
from zenmedix.schemas.audit import AuditAction
from zenmedix.schemas.backup import BackupDocument, BackupImportResult, StorageStats
from zenmedix.services.audit_service import AuditService

logger = structlog.get_logger(__name__)

BACKUP_VERSION = "1.0"
APPLICATION_NAME = "ZenMedix"
ACCEPTED_APPLICATIONS = {APPLICATION_NAME, "MedFlow EMR"}

# Session records hold record store tokens; throttling state and the
# appointments cache only make sense with the expiry they were written with
EXCLUDED_PREFIXES = ("session:", "lockout:", "login_attempts:")
EXCLUDED_KEYS = frozenset({StorageKeys.APPOINTMENTS})


def _backed_up(key: str) -> bool:
    return key not in EXCLUDED_KEYS and not key.startswith(EXCLUDED_PREFIXES)


def _category(key: str) -> str:
    return key.split(":", 1)[0] or "other"


class BackupService:
    """Snapshot and restore application entries in local storage."""

    def __init__(
        self,
        storage: LocalStorage,
        audit: AuditService | None = None,
        clock: Clock = utc_now,
    ):
        """Initialize with local storage, optional audit and a clock."""
        self.storage = storage
        self.audit = audit
        self.clock = clock

    def backup_keys(self) -> list[str]:
        """Keys included in a backup."""
        return [key for key in self.storage.keys("*") if _backed_up(key)]

    async def export_backup(self) -> BackupDocument:
        """
        Export every application entry.

        JSON values are decoded; anything else is exported as the raw string.
        """
        keys = self.backup_keys()
        data: dict[str, Any] = {}
        for key in keys:
            raw = self.storage.get(key)
            try:
                data[key] = json.loads(raw) if raw else None
            except ValueError:
                data[key] = raw

        exported_at = self.clock().isoformat()
        document = BackupDocument(
            version=BACKUP_VERSION,
            export_date=exported_at,
            application=APPLICATION_NAME,
            data_keys=len(keys),
            data=data,
        )

        self.storage.set_json(
            StorageKeys.BACKUP_INFO,
            {"lastBackup": exported_at, "keysBackedUp": len(keys)},
        )
        logger.info("backup_exported", keys=len(keys))

        if self.audit:
            await self.audit.log(
                AuditAction.BACKUP_EXPORT,
                {"keysExported": len(keys), "date": exported_at},
            )
        return document

    async def import_backup(
        self, backup: dict[str, Any], overwrite: bool = False
    ) -> BackupImportResult:
        """
        Restore entries from a backup document.

        Existing keys are kept unless ``overwrite`` is set.

        Raises:
            BadRequestException: If the document is malformed or from another application
        """
        if not backup.get("version") or not backup.get("data") or not backup.get("application"):
            raise BadRequestException("Invalid backup file format")
        if backup["application"] not in ACCEPTED_APPLICATIONS:
            raise BadRequestException("Backup is not from ZenMedix")
        if not isinstance(backup["data"], dict):
            raise BadRequestException("Invalid backup file format")

        imported = 0
        skipped = 0
        for key, value in backup["data"].items():
            if not _backed_up(key) or (not overwrite and self.storage.get(key)):
                skipped += 1
                continue

            text = value if isinstance(value, str) else json.dumps(value, default=str)
            if self.storage.set(key, text):
                imported += 1
            else:
                logger.error("backup_key_import_failed", key=key)

        result = BackupImportResult(
            keys_imported=imported,
            keys_skipped=skipped,
            backup_date=backup.get("exportDate"),
        )
        logger.info("backup_imported", imported=imported, skipped=skipped, overwrite=overwrite)

        if self.audit:
            await self.audit.log(
                AuditAction.BACKUP_IMPORT,
                {
                    "keysImported": imported,
                    "keysSkipped": skipped,
                    "backupDate": result.backup_date,
                    "overwrite": overwrite,
                },
            )
        return result

    def backup_info(self) -> dict[str, Any] | None:
        """When the last backup was taken, if ever."""
        return self.storage.get_json(StorageKeys.BACKUP_INFO)

    def storage_stats(self) -> StorageStats:
        """Key count, size in bytes and size per key category."""
        total = 0
        breakdown: dict[str, int] = {}
        keys = self.backup_keys()
        for key in keys:
            size = len((self.storage.get(key) or "").encode("utf-8"))
            total += size
            category = _category(key)
            breakdown[category] = breakdown.get(category, 0) + size

        return StorageStats(total_keys=len(keys), total_bytes=total, breakdown=breakdown)
