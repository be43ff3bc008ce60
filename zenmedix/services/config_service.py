"""Key/value settings stored in the ``config`` collection."""

from typing import Any

import structlog

from zenmedix.core.exceptions import AppException
from zenmedix.core.record_store import RecordCollection, RecordStore, build_filter
from zenmedix.schemas.audit import AuditAction
from zenmedix.services.audit_service import AuditService

logger = structlog.get_logger(__name__)


class ConfigService:
    """
    Read and write dashboard settings.

    These calls never raise on record store failures: ``get`` answers None,
    ``set`` answers False and ``get_all`` answers an empty dict.
    """

    COLLECTION = "config"

    def __init__(self, store: RecordStore, audit: AuditService | None = None):
        """Initialize with a record store handle and optional audit."""
        self.store = store
        self.audit = audit

    @property
    def records(self) -> RecordCollection:
        return self.store.collection(self.COLLECTION)

    async def get(self, key: str) -> Any | None:
        """Value stored under ``key``, or None."""
        try:
            record = await self.records.get_first(build_filter("key = {:key}", key=key))
        except AppException as e:
            logger.error("config_get_failed", key=key, error=e.message)
            return None
        return record.get("value") if record else None

    async def set(self, key: str, value: Any) -> bool:
        """Store ``value`` under ``key``, updating the existing record if any."""
        try:
            existing = await self.records.get_first(build_filter("key = {:key}", key=key))
            if existing:
                await self.records.update(existing["id"], {"value": value})
            else:
                await self.records.create({"key": key, "value": value})
        except AppException as e:
            logger.error("config_set_failed", key=key, error=e.message)
            return False

        logger.info("config_updated", key=key)
        if self.audit:
            await self.audit.log(AuditAction.SETTINGS_UPDATE, {"key": key}, entity="config")
        return True

    async def get_all(self) -> dict[str, Any]:
        """Every setting as a dict."""
        try:
            records = await self.records.get_full_list()
        except AppException as e:
            logger.error("config_get_all_failed", error=e.message)
            return {}
        return {r["key"]: r.get("value") for r in records if r.get("key")}
