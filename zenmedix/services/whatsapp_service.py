"""YCloud WhatsApp client for appointment reminders and replies."""

from typing import Any

import httpx
import structlog

from zenmedix.config import settings
from zenmedix.core.exceptions import BadRequestException, MessagingError
from zenmedix.schemas.reminders import WhatsAppSettings

logger = structlog.get_logger(__name__)

CONFIRM_PAYLOAD = "CONFIRMA_ASISTENCIA"
CANCEL_PAYLOAD = "CANCELA_CITA"

TEMPLATE_LANGUAGE = "es_MX"

CONFIRMATION_TEXT = "¡Gracias! Tu asistencia ha sido confirmada ✅"
CANCELLATION_TEXT = (
    "Lamentamos que no puedas asistir. Tu cita ha sido cancelada. "
    "Contáctanos si deseas reagendar 👋"
)


def international(phone: str) -> str:
    """Prefix a phone number with ``+`` when missing."""
    return phone if phone.startswith("+") else f"+{phone}"


class WhatsAppClient:
    """Sends template and text messages through the YCloud API."""

    def __init__(
        self,
        config: WhatsAppSettings,
        client: httpx.AsyncClient | None = None,
        api_base: str | None = None,
    ):
        """
        Initialize with WhatsApp settings.

        Args:
            config: API key, sender number and template name
            client: HTTP client to use; a short-lived one is created per call otherwise
            api_base: Messages endpoint, defaults to the configured YCloud URL
        """
        self.config = config
        self.client = client
        self.api_base = api_base or settings.ycloud_api_base

    async def _post(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        headers = {"X-API-Key": self.config.ycloud_api_key}
        try:
            if self.client is not None:
                response = await self.client.post(url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=10.0) as client:
                    response = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error("whatsapp_unreachable", to=payload.get("to"), error=str(e))
            raise MessagingError(f"WhatsApp provider unreachable: {e!s}") from e

        if response.status_code >= 400:
            logger.error(
                "whatsapp_send_failed",
                to=payload.get("to"),
                status_code=response.status_code,
                body=response.text,
            )
            raise MessagingError(
                f"WhatsApp provider rejected the message ({response.status_code})",
                upstream_status=response.status_code,
            )

        return response.json() if response.content else {}

    async def send_template_reminder(
        self, phone: str, client_name: str, appointment_time: str
    ) -> dict[str, Any]:
        """
        Send the reminder template with confirm/cancel quick replies.

        Raises:
            BadRequestException: If API key, sender or template are not configured
            MessagingError: If the provider call fails
        """
        if not (
            self.config.ycloud_api_key and self.config.sender_number and self.config.template_name
        ):
            raise BadRequestException(
                "Missing YCloud configuration (apiKey, senderNumber, or templateName)"
            )

        payload = {
            "to": international(phone),
            "from": self.config.sender_number,
            "type": "template",
            "template": {
                "name": self.config.template_name,
                "language": {"code": TEMPLATE_LANGUAGE},
                "components": [
                    {
                        "type": "body",
                        "parameters": [
                            {"type": "text", "text": client_name},
                            {"type": "text", "text": appointment_time},
                        ],
                    },
                    _quick_reply(0, CONFIRM_PAYLOAD),
                    _quick_reply(1, CANCEL_PAYLOAD),
                ],
            },
        }

        data = await self._post(self.api_base, payload)
        logger.info("whatsapp_template_sent", to=payload["to"])
        return data

    async def send_direct_message(self, phone: str, message: str) -> dict[str, Any]:
        """
        Send free text (valid within 24 hours of the user's last message).

        Raises:
            BadRequestException: If API key or sender are not configured
            MessagingError: If the provider call fails
        """
        if not (self.config.ycloud_api_key and self.config.sender_number):
            raise BadRequestException("Missing YCloud configuration (apiKey or senderNumber)")

        payload = {
            "from": self.config.sender_number,
            "to": international(phone),
            "type": "text",
            "text": {"body": message},
        }

        data = await self._post(f"{self.api_base}/sendDirectly", payload)
        logger.info("whatsapp_message_sent", to=payload["to"])
        return data

    async def send_confirmation_response(self, phone: str) -> dict[str, Any]:
        """Thank the patient for confirming."""
        return await self.send_direct_message(phone, CONFIRMATION_TEXT)

    async def send_cancellation_response(self, phone: str) -> dict[str, Any]:
        """Acknowledge a cancellation."""
        return await self.send_direct_message(phone, CANCELLATION_TEXT)


def _quick_reply(index: int, payload: str) -> dict[str, Any]:
    return {
        "type": "button",
        "sub_type": "quick_reply",
        "index": index,
        "parameters": [{"type": "payload", "payload": payload}],
    }
