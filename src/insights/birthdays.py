"""
Upcoming birthday reminders for the insights dashboard.
"""

from datetime import date, datetime
from typing import Iterable, List, Optional

import structlog

from .exceptions import InvalidInvocationError, require
from .models import CustomerProfile, UpcomingBirthday
from .normalizer import normalize_email

logger = structlog.get_logger(__name__)


def next_occurrence(birthday: date, today: date) -> date:
    """Next anniversary of birthday on or after today (Feb 29 -> Feb 28)"""
    candidate = _in_year(birthday, today.year)
    if candidate < today:
        candidate = _in_year(birthday, today.year + 1)
    return candidate


def _in_year(birthday: date, year: int) -> date:
    try:
        return birthday.replace(year=year)
    except ValueError:
        return date(year, 2, 28)


class BirthdayScanner:
    """Finds customers whose birthday falls inside the lookahead window"""

    def __init__(self, window_days: int = 30, limit: int = 10):
        if window_days < 0 or limit < 1:
            raise InvalidInvocationError(
                "window_days must be >= 0 and limit >= 1",
                details={"window_days": window_days, "limit": limit},
            )
        self.window_days = window_days
        self.limit = limit

    def find_upcoming(self, profiles: Optional[Iterable[CustomerProfile]], as_of: date) -> List[UpcomingBirthday]:
        require(as_of, "as_of")
        if not profiles:
            return []

        today = as_of.date() if isinstance(as_of, datetime) else as_of
        upcoming = []
        for profile in profiles:
            email = normalize_email(profile.email)
            if email is None or profile.birthday is None:
                continue
            nxt = next_occurrence(profile.birthday, today)
            days_until = (nxt - today).days
            if days_until > self.window_days:
                continue
            upcoming.append(
                UpcomingBirthday(
                    email=email,
                    name=profile.name,
                    birthday=profile.birthday,
                    next_birthday=nxt,
                    days_until=days_until,
                    total_bookings=profile.total_bookings,
                    loyalty_tier=profile.loyalty_tier,
                )
            )

        upcoming.sort(key=lambda b: (b.days_until, b.email))
        logger.debug("Upcoming birthdays scanned", found=len(upcoming), limit=self.limit)
        return upcoming[: self.limit]


def find_upcoming_birthdays(
    profiles: Optional[Iterable[CustomerProfile]],
    as_of: date,
    window_days: int = 30,
    limit: int = 10,
) -> List[UpcomingBirthday]:
    """Convenience function for a one-off scan"""
    return BirthdayScanner(window_days, limit).find_upcoming(profiles, as_of)
