"""WhatsApp appointment reminders and the handling of patients' button replies."""

import re
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import httpx
import structlog
from pydantic import ValidationError

from zenmedix.config import settings
from zenmedix.core.clock import Clock, to_local, utc_now
from zenmedix.core.exceptions import AppException
from zenmedix.core.record_store import RecordStore, build_filter
from zenmedix.schemas.appointments import AppointmentStatus
from zenmedix.schemas.reminders import InboundResult, ReminderRunResult, WhatsAppSettings
from zenmedix.services.appointment_service import AppointmentService, normalize_date
from zenmedix.services.config_service import ConfigService
from zenmedix.services.whatsapp_service import (
    CANCEL_PAYLOAD,
    CONFIRM_PAYLOAD,
    WhatsAppClient,
)

logger = structlog.get_logger(__name__)

WHATSAPP_CONFIG_KEY = "whatsapp"
DISABLED = "disabled"
DEFAULT_CLIENT_NAME = "Paciente"
DEFAULT_TIME_LABEL = "hora programada"
VIA_WHATSAPP = "whatsapp"

_PHONE_NOISE = re.compile(r"[\s+\-]")


def normalize_phone(phone: str | None) -> str:
    """Strip spaces, plus signs and dashes from a phone number."""
    return _PHONE_NOISE.sub("", phone or "")


def phones_match(a: str, b: str) -> bool:
    """Whether either normalized number contains the other."""
    if not a or not b:
        return False
    return a in b or b in a


def reminder_hour(value: str | int | None) -> int | None:
    """Parse the configured reminder hour; None means reminders are off."""
    if value is None or value == "" or value == DISABLED:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def reminder_timezone(name: str | None) -> str:
    """The configured timezone if zoneinfo knows it, else the clinic default."""
    if name:
        try:
            ZoneInfo(name)
            return name
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(
                "reminder_timezone_invalid", timezone=name, fallback=settings.default_timezone
            )
    return settings.default_timezone


def extract_button_reply(payload: dict[str, Any]) -> tuple[str | None, str | None, str | None]:
    """
    Pull the sender and button payload out of a YCloud webhook body.

    Returns:
        Tuple of (sender, button payload, reason it was ignored)
    """
    message = payload.get("whatsappInboundMessage") or payload.get("whatsappMessage") or payload
    if not isinstance(message, dict):
        return None, None, "No sender found"

    sender = message.get("from") or message.get("chat_id")
    if not sender:
        return None, None, "No sender found"

    interactive = message.get("interactive")
    if not isinstance(interactive, dict) or interactive.get("type") != "button_reply":
        return sender, None, "Not a button reply"

    reply = interactive.get("button_reply") or {}
    return sender, reply.get("id") or reply.get("payload"), None


class ReminderService:
    """Sends daily reminders and applies confirm/cancel replies to appointments."""

    def __init__(
        self,
        store: RecordStore,
        clock: Clock = utc_now,
        http_client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize with a record store handle.

        Args:
            store: Record store handle allowed to read config and edit appointments
            clock: Time source
            http_client: HTTP client passed to the WhatsApp client
        """
        self.store = store
        self.clock = clock
        self.http_client = http_client
        self.appointments = AppointmentService(store, clock=clock)
        self.config = ConfigService(store)

    async def load_settings(self) -> WhatsAppSettings | None:
        """Read the ``whatsapp`` config entry."""
        raw = await self.config.get(WHATSAPP_CONFIG_KEY)
        if not isinstance(raw, dict):
            return None
        try:
            return WhatsAppSettings.model_validate(raw)
        except ValidationError as e:
            logger.warning("whatsapp_settings_invalid", error=str(e))
            return None

    def whatsapp_client(self, config: WhatsAppSettings) -> WhatsAppClient:
        """Build a WhatsApp client for the given settings."""
        return WhatsAppClient(config, client=self.http_client)

    async def send_daily_reminders(self) -> ReminderRunResult:
        """
        Send today's reminders if this is the configured hour.

        Intended to run at the top of every hour. One failed message does not
        stop the rest.
        """
        config = await self.load_settings()
        if config is None:
            logger.info("reminders_skipped", reason="not_configured")
            return ReminderRunResult(status="skipped", message="WhatsApp settings not configured")

        hour = reminder_hour(config.reminder_hour)
        if hour is None:
            logger.info("reminders_skipped", reason="disabled")
            return ReminderRunResult(status="skipped", message="Reminders disabled")

        now = to_local(self.clock(), reminder_timezone(config.timezone))
        if now.hour != hour:
            logger.info("reminders_skipped", reason="wrong_hour", current=now.hour, configured=hour)
            return ReminderRunResult(
                status="skipped",
                message=f"Current hour ({now.hour}) is not the reminder hour ({hour})",
            )

        if not (config.ycloud_api_key and config.sender_number and config.template_name):
            logger.warning("reminders_skipped", reason="missing_credentials")
            return ReminderRunResult(status="skipped", message="Missing YCloud configuration")

        todays = await self.appointments.list_by_date(now.date())
        due = [
            apt
            for apt in todays
            if apt.get("status") != AppointmentStatus.CANCELLED.value
            and not apt.get("reminderSent")
        ]

        result = ReminderRunResult(status="completed")
        if not due:
            result.message = "No appointments to remind today"
            logger.info("reminders_none_due", date=now.date().isoformat())
            return result

        client = self.whatsapp_client(config)
        for apt in due:
            phone = apt.get("phone")
            if not phone:
                logger.info("reminder_skipped_no_phone", appointment_id=apt.get("id"))
                result.skipped += 1
                continue

            try:
                await client.send_template_reminder(
                    phone,
                    apt.get("patientName") or DEFAULT_CLIENT_NAME,
                    apt.get("time") or DEFAULT_TIME_LABEL,
                )
                await self.store.collection(AppointmentService.COLLECTION).update(
                    apt["id"],
                    {"reminderSent": True, "reminderSentAt": self.clock().isoformat()},
                )
            except AppException as e:
                logger.error("reminder_failed", appointment_id=apt.get("id"), error=e.message)
                result.failed += 1
                continue

            result.sent += 1
            result.appointment_ids.append(apt["id"])

        logger.info(
            "reminders_sent",
            sent=result.sent,
            failed=result.failed,
            skipped=result.skipped,
        )
        return result

    async def find_pending_by_phone(self, phone: str) -> dict[str, Any] | None:
        """
        Most recent appointment for a phone that is neither cancelled nor confirmed.

        Phone numbers match when either normalized number contains the other.
        """
        candidates = await self.store.collection(AppointmentService.COLLECTION).get_full_list(
            filter=build_filter(
                "status != {:cancelled} && status != {:confirmed}",
                cancelled=AppointmentStatus.CANCELLED.value,
                confirmed=AppointmentStatus.CONFIRMED.value,
            ),
        )

        sender = normalize_phone(phone)
        matches = [
            apt for apt in candidates if phones_match(normalize_phone(apt.get("phone")), sender)
        ]
        if not matches:
            return None

        return max(matches, key=_sort_key)

    async def handle_inbound(self, payload: dict[str, Any]) -> InboundResult:
        """
        Apply a confirm/cancel button reply from a patient.

        Never raises: every outcome, including failures, is reported in the
        result so that the provider does not retry the delivery.
        """
        sender, button, ignored = extract_button_reply(payload)
        if ignored:
            logger.info("whatsapp_inbound_ignored", reason=ignored)
            return InboundResult(message=ignored)

        logger.info("whatsapp_button_pressed", sender=sender, payload=button)

        try:
            appointment = await self.find_pending_by_phone(sender or "")
            if appointment is None:
                logger.info("whatsapp_inbound_no_appointment", sender=sender)
                return InboundResult(message="No appointment found")

            config = await self.load_settings()
            stamp = self.clock().isoformat()

            if button == CONFIRM_PAYLOAD:
                changes = {
                    "status": AppointmentStatus.CONFIRMED.value,
                    "confirmedAt": stamp,
                    "confirmedVia": VIA_WHATSAPP,
                }
            elif button == CANCEL_PAYLOAD:
                changes = {
                    "status": AppointmentStatus.CANCELLED.value,
                    "cancelledAt": stamp,
                    "cancelledVia": VIA_WHATSAPP,
                }
            else:
                logger.warning("whatsapp_unknown_button", payload=button)
                changes = {}

            if changes:
                await self.store.collection(AppointmentService.COLLECTION).update(
                    appointment["id"], changes
                )
                logger.info(
                    "appointment_status_from_whatsapp",
                    appointment_id=appointment["id"],
                    status=changes["status"],
                )
                await self._reply(config, sender or "", button)
        except AppException as e:
            logger.error("whatsapp_inbound_failed", sender=sender, error=e.message)
            return InboundResult(status="error", message=e.message)

        return InboundResult(action=button, appointment_id=appointment["id"])

    async def _reply(self, config: WhatsAppSettings | None, phone: str, button: str | None) -> None:
        if config is None or not (config.ycloud_api_key and config.sender_number):
            return

        client = self.whatsapp_client(config)
        try:
            if button == CONFIRM_PAYLOAD:
                await client.send_confirmation_response(phone)
            else:
                await client.send_cancellation_response(phone)
        except AppException as e:
            logger.error("whatsapp_reply_failed", phone=phone, error=e.message)


def _sort_key(appointment: dict[str, Any]) -> datetime:
    day = normalize_date(appointment.get("date")) or "1970-01-01"
    try:
        return datetime.fromisoformat(f"{day} {appointment.get('time') or '00:00'}")
    except ValueError:
        return datetime.min
