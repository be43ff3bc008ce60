"""WhatsApp reminder schemas."""

from pydantic import BaseModel, Field

from zenmedix.schemas.base import RecordSchema


class WhatsAppSettings(RecordSchema):
    """The ``whatsapp`` entry of the ``config`` collection."""

    ycloud_api_key: str = ""
    sender_number: str = ""
    template_name: str = "recordatorio_cita_1_dia"
    reminder_hour: str | int | None = "disabled"
    timezone: str | None = None


class ReminderRunResult(BaseModel):
    """Outcome of one reminder job run."""

    status: str
    message: str | None = None
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    appointment_ids: list[str] = Field(default_factory=list)


class InboundResult(BaseModel):
    """Webhook acknowledgement; always delivered with HTTP 200."""

    status: str = "ok"
    message: str | None = None
    action: str | None = None
    appointment_id: str | None = Field(None, serialization_alias="appointmentId")
