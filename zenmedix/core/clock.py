"""Clock helpers.

Services take a ``clock`` callable so that lockout and session expiry can be
exercised without waiting on wall-clock time.
"""

from collections.abc import Callable
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def to_local(moment: datetime, timezone: str) -> datetime:
    """
    Convert an instant to naive wall-clock time in ``timezone``.

    Appointment dates and times are stored as clinic wall-clock values, so
    comparisons against "now" happen in that frame.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(ZoneInfo(timezone)).replace(tzinfo=None)
