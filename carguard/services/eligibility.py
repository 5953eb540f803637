"""
Reminder eligibility - pure functions deciding whether an obligation is due.
No I/O here; the sweep feeds in records and the current time.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Union

from carguard.models import REMINDER_SERVICE_TYPES, Obligation, UserSettings

DateLike = Union[date, datetime]

STATUS_EXPIRED = "expired"
STATUS_WARNING = "warning"
STATUS_OK = "ok"


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def is_due(obligation: Obligation, user: UserSettings, now: DateLike) -> bool:
    """
    Decide whether a reminder should go out for this obligation now.

    The window is one-sided: anything expiring on or before
    today + user.reminder_days qualifies, including obligations that are
    already overdue. An unsent overdue obligation stays due until a
    reminder is actually delivered.

    Args:
        obligation: Obligation record
        user: Settings of the obligation's owner
        now: Current date or timestamp (only the date part is used)

    Returns:
        True if a reminder should be sent
    """
    if obligation.service_type not in REMINDER_SERVICE_TYPES:
        return False
    if not user.reminders_enabled:
        return False
    if obligation.sent:
        return False

    horizon = _as_date(now) + timedelta(days=user.reminder_days)
    return obligation.expiry_date <= horizon


def days_until_expiry(expiry_date: date, today: DateLike) -> int:
    """Whole days left until expiry; negative once expired"""
    return (expiry_date - _as_date(today)).days


@dataclass(frozen=True)
class ExpiryStatus:
    """Dashboard-style classification of an expiry date"""
    state: str
    days_left: int

    @property
    def needs_attention(self) -> bool:
        return self.state in (STATUS_EXPIRED, STATUS_WARNING)


def expiry_status(expiry_date: date, reminder_days: int, today: DateLike) -> ExpiryStatus:
    """Classify an expiry date as expired, warning (inside the window) or ok"""
    days_left = days_until_expiry(expiry_date, today)
    if days_left < 0:
        return ExpiryStatus(STATUS_EXPIRED, days_left)
    if days_left <= reminder_days:
        return ExpiryStatus(STATUS_WARNING, days_left)
    return ExpiryStatus(STATUS_OK, days_left)
