#!/usr/bin/env python3
"""
Send today's WhatsApp appointment reminders.

Meant to run at the top of every hour (e.g. from cron: ``0 * * * *``); the job
only sends when the current hour matches the configured reminder hour.

Usage:
    python -m scripts.send_reminders
    python -m scripts.send_reminders --loop

Environment Variables:
    RECORD_STORE_URL: Record store base URL
    RECORD_STORE_SERVICE_TOKEN: Token allowed to read config and edit appointments
"""

import argparse
import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta

import dotenv
import structlog

dotenv.load_dotenv()

from zenmedix.config import settings  # noqa: E402
from zenmedix.core.clock import utc_now  # noqa: E402
from zenmedix.core.record_store import close_record_store, get_record_store  # noqa: E402
from zenmedix.middleware.logging import configure_logging  # noqa: E402
from zenmedix.schemas.reminders import ReminderRunResult  # noqa: E402
from zenmedix.services.reminder_service import ReminderService  # noqa: E402

logger = structlog.get_logger()


async def run_once() -> ReminderRunResult:
    """Run the reminder job a single time."""
    store = get_record_store().with_token(settings.record_store_service_token)
    return await ReminderService(store).send_daily_reminders()


def seconds_until_next_hour(now: datetime) -> float:
    """Seconds from ``now`` until minute 0 of the next hour."""
    next_hour = (now + timedelta(hours=1)).replace(minute=0, second=0, microsecond=0)
    return (next_hour - now).total_seconds()


async def run_forever(
    job: Callable[[], Awaitable[ReminderRunResult]] = run_once,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> None:
    """
    Run the job at the top of every hour until interrupted.

    A failed run is logged and the schedule carries on with the next hour.
    """
    while True:
        delay = seconds_until_next_hour(utc_now())
        logger.info("reminder_job_waiting", seconds=round(delay))
        await sleep(delay)
        try:
            result = await job()
        except Exception:
            logger.exception("reminder_job_failed")
            continue
        logger.info("reminder_job_finished", **result.model_dump())


async def main_async(loop: bool) -> None:
    """Run the job once or hourly, closing the HTTP client afterwards."""
    try:
        if loop:
            await run_forever()
        else:
            result = await run_once()
            print(result.model_dump_json(indent=2))
    finally:
        await close_record_store()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Send today's WhatsApp appointment reminders")
    parser.add_argument(
        "--loop",
        action="store_true",
        help="Keep running and trigger the job at the top of every hour",
    )
    args = parser.parse_args()

    configure_logging()
    try:
        asyncio.run(main_async(args.loop))
    except KeyboardInterrupt:
        logger.info("reminder_job_stopped")


if __name__ == "__main__":
    main()
