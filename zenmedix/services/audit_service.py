"""Audit trail service backed by the ``audit_logs`` collection."""

import csv
import io
import json
from collections import Counter
from typing import Any

import structlog

from zenmedix.core.clock import Clock, utc_now
from zenmedix.core.exceptions import AppException
from zenmedix.core.record_store import RecordStore, build_filter, join_filters
from zenmedix.schemas.audit import AuditAction, AuditLogFilters, AuditStats
from zenmedix.schemas.base import PageResponse
from zenmedix.schemas.users import UserProfile

logger = structlog.get_logger(__name__)

CSV_HEADERS = ["ID", "Fecha/Hora", "Acción", "Usuario", "Tipo Entidad", "ID Entidad", "Detalles"]

SYSTEM_USER_NAME = "Sistema"


class AuditService:
    """Append and query audit entries on behalf of the current user."""

    COLLECTION = "audit_logs"

    def __init__(
        self,
        store: RecordStore,
        user: UserProfile | None = None,
        ip_address: str | None = None,
        clock: Clock = utc_now,
    ):
        """Initialize with a record store handle and the acting user."""
        self.store = store
        self.user = user
        self.ip_address = ip_address
        self.clock = clock

    async def log(
        self,
        action: AuditAction,
        details: dict[str, Any] | None = None,
        entity: str | None = None,
        entity_id: str | None = None,
    ) -> dict | None:
        """
        Append an audit entry.

        Auditing never breaks the calling operation: failures are logged and
        None is returned.
        """
        payload = {
            "user": self.user.id if self.user else None,
            "userName": (self.user.name or self.user.email) if self.user else SYSTEM_USER_NAME,
            "action": action.value,
            "entity": entity,
            "entityId": entity_id,
            "details": details or {},
            "ipAddress": self.ip_address,
        }
        payload = {k: v for k, v in payload.items() if v is not None}

        try:
            record = await self.store.collection(self.COLLECTION).create(payload)
        except AppException as e:
            logger.warning("audit_log_failed", action=action.value, error=e.message)
            return None

        logger.info("audit_logged", action=action.value, entity=entity, entity_id=entity_id)
        return record

    async def list_entries(self, filters: AuditLogFilters) -> PageResponse:
        """List audit entries, newest first."""
        filter_expr = join_filters(
            build_filter("action ~ {:action}", action=filters.action) if filters.action else None,
            build_filter("entity = {:entity}", entity=filters.entity) if filters.entity else None,
            build_filter("user = {:user}", user=filters.user_id) if filters.user_id else None,
        )

        result = await self.store.collection(self.COLLECTION).get_list(
            page=filters.page,
            per_page=filters.per_page,
            filter=filter_expr,
            sort="-created",
            expand="user",
        )

        return PageResponse(
            items=result.get("items", []),
            page=result.get("page", filters.page),
            per_page=result.get("perPage", filters.per_page),
            total_items=result.get("totalItems", 0),
            total_pages=result.get("totalPages", 0),
        )

    async def recent(self, limit: int = 500) -> list[dict]:
        """Fetch the most recent entries, newest first."""
        result = await self.store.collection(self.COLLECTION).get_list(
            page=1, per_page=limit, sort="-created"
        )
        return result.get("items", [])

    async def stats(self, limit: int = 500) -> AuditStats:
        """Summarize the most recent ``limit`` entries."""
        entries = await self.recent(limit)
        today = self.clock().date().isoformat()

        counts = Counter(entry.get("action", "") for entry in entries)

        return AuditStats(
            total_entries=len(entries),
            today_entries=sum(1 for e in entries if e.get("created", "").startswith(today)),
            action_counts=dict(counts),
            oldest_entry=entries[-1].get("created") if entries else None,
            newest_entry=entries[0].get("created") if entries else None,
        )

    async def export_csv(self) -> str:
        """
        Render every entry as CSV, newest first, and record the export.

        Data cells are quoted; embedded quotes are doubled.
        """
        entries = await self.store.collection(self.COLLECTION).get_full_list(sort="-created")

        buffer = io.StringIO()
        buffer.write(",".join(CSV_HEADERS) + "\n")
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        for entry in entries:
            writer.writerow(
                [
                    entry.get("id", ""),
                    entry.get("created", ""),
                    entry.get("action", ""),
                    entry.get("userName", ""),
                    entry.get("entity") or "",
                    entry.get("entityId") or "",
                    _details_json(entry.get("details")),
                ]
            )

        await self.log(AuditAction.BACKUP_EXPORT, {"type": "audit_log", "entries": len(entries)})
        return buffer.getvalue()


def _details_json(details: Any) -> str:
    return json.dumps(details if details is not None else {}, ensure_ascii=False)
