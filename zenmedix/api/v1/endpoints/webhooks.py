"""Inbound webhooks from the WhatsApp provider."""

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Body, Depends, status

from zenmedix.dependencies import get_reminder_service
from zenmedix.schemas.reminders import InboundResult
from zenmedix.services.reminder_service import ReminderService

router = APIRouter()

logger = structlog.get_logger(__name__)


@router.post(
    "/whatsapp-inbound",
    response_model=InboundResult,
    response_model_by_alias=True,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="YCloud inbound WhatsApp messages",
)
async def whatsapp_inbound(
    service: Annotated[ReminderService, Depends(get_reminder_service)],
    payload: Annotated[dict[str, Any], Body()],
) -> InboundResult:
    """
    Apply a patient's confirm/cancel button reply.

    Always answers 200 so the provider does not retry the delivery.
    """
    logger.info("whatsapp_webhook_received", keys=sorted(payload))
    try:
        return await service.handle_inbound(payload)
    except Exception as e:
        logger.exception("whatsapp_webhook_failed", error=str(e))
        return InboundResult(status="error", message=str(e))
