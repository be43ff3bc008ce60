"""User service: dashboard accounts and role-based menu visibility."""

from typing import Any

import structlog

from zenmedix.core.record_store import RecordCollection, RecordStore
from zenmedix.schemas.audit import AuditAction
from zenmedix.schemas.users import UserCreate, UserResponse, UserRole, UserUpdate
from zenmedix.services.audit_service import AuditService

logger = structlog.get_logger(__name__)

CLINICAL_ROLES = (UserRole.SUPER_ADMIN, UserRole.MEDICO)
ALL_ROLES = (UserRole.SUPER_ADMIN, UserRole.MEDICO, UserRole.RECEPCION)

# Menu entry -> roles allowed to see it
MENU_ROLES: dict[str, tuple[UserRole, ...]] = {
    "dashboard": CLINICAL_ROLES,
    "patients": CLINICAL_ROLES,
    "appointments": ALL_ROLES,
    "audit": CLINICAL_ROLES,
    "settings": CLINICAL_ROLES,
}


def get_roles() -> dict[str, str]:
    """Role constants keyed by name."""
    return {role.name: role.value for role in UserRole}


def can_access(role: UserRole | str | None, menu: str) -> bool:
    """
    Whether a role may see a menu entry.

    Users without a role see everything.
    """
    if not role:
        return True
    return role in [r.value for r in MENU_ROLES.get(menu, ())]


def visible_menus(role: UserRole | str | None) -> list[str]:
    """Menu entries visible to a role, in display order."""
    return [menu for menu in MENU_ROLES if can_access(role, menu)]


class UserService:
    """Service for dashboard user accounts."""

    COLLECTION = "users"

    def __init__(self, store: RecordStore, audit: AuditService | None = None):
        """Initialize with a record store handle and optional audit."""
        self.store = store
        self.audit = audit

    @property
    def records(self) -> RecordCollection:
        return self.store.collection(self.COLLECTION)

    async def list_users(self) -> list[UserResponse]:
        """List users sorted by name."""
        records = await self.records.get_full_list(sort="name")
        return [
            UserResponse.from_record(r).model_copy(update={"created": r.get("created")})
            for r in records
        ]

    async def create(self, data: UserCreate) -> dict[str, Any]:
        """Create a user with a confirmed password and a visible email."""
        payload = data.to_record()
        payload["passwordConfirm"] = data.password
        payload["emailVisibility"] = True

        record = await self.records.create(payload)
        logger.info("user_created", user_id=record.get("id"), role=data.role)
        await self._audit({"user": record.get("id"), "change": "create", "role": data.role.value})
        return record

    async def update(self, user_id: str, data: UserUpdate) -> dict[str, Any]:
        """Update the provided fields of a user."""
        changes = data.to_record(exclude_unset=True)
        record = await self.records.update(user_id, changes)
        logger.info("user_updated", user_id=user_id)
        await self._audit({"user": user_id, "fields": sorted(changes)})
        return record

    async def delete(self, user_id: str) -> bool:
        """Delete a user."""
        await self.records.delete(user_id)
        logger.info("user_deleted", user_id=user_id)
        await self._audit({"user": user_id, "change": "delete"})
        return True

    async def _audit(self, details: dict[str, Any]) -> None:
        if self.audit:
            await self.audit.log(
                AuditAction.SETTINGS_UPDATE,
                details,
                entity="user",
                entity_id=details.get("user"),
            )
