"""
Population Counts

Derives GlobalCounts from customer-table rows for callers that hold them.
The engine itself treats GlobalCounts as an external input and never calls
this on its own.
"""

from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

import structlog

from src.config import get_settings
from .exceptions import require
from .models import CustomerActivity, GlobalCounts
from .trends import align_timestamp

logger = structlog.get_logger(__name__)


def compute_global_counts(
    activities: Iterable[CustomerActivity],
    as_of: date,
    window_days: Optional[int] = None,
) -> GlobalCounts:
    """
    Count total, recently active and churned customers.

    Args:
        activities: One row per customer in the full population
        as_of: Reference "now"
        window_days: Trailing activity window, INSIGHTS_RECENCY_WINDOW_DAYS by default

    Returns:
        GlobalCounts for the population
    """
    require(activities, "activities")
    require(as_of, "as_of")
    if not isinstance(as_of, datetime):
        as_of = datetime.combine(as_of, time.min)

    if window_days is None:
        window_days = get_settings().insights.recency_window_days

    cutoff = as_of - timedelta(days=window_days)
    total = active = churned = 0

    for activity in activities:
        total += 1
        last = activity.last_booking_at
        if last is not None and align_timestamp(last, as_of.tzinfo) >= cutoff:
            active += 1
        elif activity.total_bookings > 0:
            churned += 1

    logger.debug("Population counted", total=total, active=active, churned=churned)
    return GlobalCounts(
        total_customers=total,
        recent_active_customers=active,
        churned_customers=churned,
    )
