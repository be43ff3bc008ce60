"""User schemas for request/response validation."""

from enum import Enum

from pydantic import EmailStr, Field

from zenmedix.schemas.base import RecordSchema


class UserRole(str, Enum):
    """Dashboard roles as stored on the ``users`` collection."""

    SUPER_ADMIN = "superadmin"
    MEDICO = "medico"
    RECEPCION = "recepcion"


class UserProfile(RecordSchema):
    """Profile fields exposed for the signed-in user."""

    id: str
    email: str
    name: str | None = None
    role: UserRole | None = None
    specialty: str | None = None
    license: str | None = None

    @classmethod
    def from_record(cls, record: dict) -> "UserProfile":
        """Build a profile from a ``users`` record, dropping everything else."""
        return cls(
            id=record["id"],
            email=record.get("email", ""),
            name=record.get("name"),
            role=record.get("role") or None,
            specialty=record.get("specialty"),
            license=record.get("license"),
        )


class UserResponse(UserProfile):
    """User listing entry."""

    created: str | None = None


class UserCreate(RecordSchema):
    """Schema for creating a dashboard user."""

    email: EmailStr
    password: str = Field(..., min_length=8)
    name: str = Field(..., min_length=1, max_length=200)
    role: UserRole = UserRole.RECEPCION
    specialty: str | None = None
    license: str | None = None


class UserUpdate(RecordSchema):
    """Schema for updating a dashboard user."""

    email: str | None = None
    name: str | None = Field(None, min_length=1, max_length=200)
    role: UserRole | None = None
    specialty: str | None = None
    license: str | None = None
