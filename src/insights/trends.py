"""
Monthly Trend Builder

Buckets booking facts into a trailing window of calendar months.
"""

from datetime import date, datetime, timezone, tzinfo
from typing import Dict, List, Optional, Sequence, Set

import structlog

from .exceptions import InvalidInvocationError, require
from .models import BookingFact, MonthlyBucket

logger = structlog.get_logger(__name__)

DEFAULT_TREND_MONTHS = 12
LABEL_FORMAT = "%b %Y"


def month_index(value: date) -> int:
    return value.year * 12 + (value.month - 1)


def month_start(index: int) -> date:
    year, month_offset = divmod(index, 12)
    return date(year, month_offset + 1, 1)


def align_timestamp(value: datetime, tz: Optional[tzinfo]) -> datetime:
    """
    Express a timestamp in the calendar basis of the reference zone.

    Naive timestamps are taken to already be in that basis. With a naive
    reference, aware timestamps are converted to UTC and made naive.
    """
    if value.tzinfo is None:
        return value if tz is None else value.replace(tzinfo=tz)
    if tz is None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.astimezone(tz)


class TrendBuilder:
    """
    Produces a fixed-length sequence of MonthlyBucket values.

    The last bucket is the month containing as_of; earlier buckets step back
    one calendar month at a time. Facts outside the window are ignored.
    """

    def __init__(self, months: int = DEFAULT_TREND_MONTHS):
        if isinstance(months, bool) or not isinstance(months, int) or months < 1:
            raise InvalidInvocationError("months must be a positive integer", details={"months": months})
        self.months = months

    def build_monthly_trend(self, facts: Sequence[BookingFact], as_of: datetime) -> List[MonthlyBucket]:
        require(facts, "facts")
        require(as_of, "as_of")
        if not isinstance(as_of, date):
            raise InvalidInvocationError("as_of must be a date or datetime", details={"as_of": repr(as_of)})

        tz = as_of.tzinfo if isinstance(as_of, datetime) else None
        last = month_index(as_of)
        first = last - self.months + 1

        revenue: Dict[int, float] = {idx: 0.0 for idx in range(first, last + 1)}
        bookings: Dict[int, int] = {idx: 0 for idx in range(first, last + 1)}
        customers: Dict[int, Set[str]] = {idx: set() for idx in range(first, last + 1)}

        excluded = 0
        for fact in facts:
            idx = month_index(align_timestamp(fact.occurred_at, tz))
            if idx < first or idx > last:
                excluded += 1
                continue
            bookings[idx] += 1
            customers[idx].add(fact.customer_key)
            if fact.is_paid:
                revenue[idx] += fact.amount_paid

        buckets = []
        for idx in range(first, last + 1):
            start = month_start(idx)
            buckets.append(
                MonthlyBucket(
                    month=start.strftime(LABEL_FORMAT),
                    start=start,
                    revenue=revenue[idx],
                    bookings=bookings[idx],
                    customers=len(customers[idx]),
                )
            )

        logger.debug("Monthly trend built", months=self.months, excluded=excluded)
        return buckets


def build_monthly_trend(
    facts: Sequence[BookingFact],
    as_of: datetime,
    months: int = DEFAULT_TREND_MONTHS,
) -> List[MonthlyBucket]:
    """Convenience function for a one-off trend"""
    return TrendBuilder(months).build_monthly_trend(facts, as_of)
