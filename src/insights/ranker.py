"""
Customer Leaderboards

Top-N customers by paid revenue and by booking count.
"""

from typing import Callable, Tuple

import structlog

from .exceptions import InvalidInvocationError, require
from .models import AggregationResult, CustomerAggregate, RankedCustomer, Rankings

logger = structlog.get_logger(__name__)

DEFAULT_TOP_N = 10


def _by_revenue(agg: CustomerAggregate) -> Tuple[float, str]:
    return (-agg.paid_revenue, agg.customer_key)


def _by_bookings(agg: CustomerAggregate) -> Tuple[int, str]:
    return (-agg.booking_count, agg.customer_key)


class Ranker:
    """
    Builds both leaderboards from the same aggregates.

    Ties are broken by ascending customer key, so the output does not
    depend on the order customers were first seen.
    """

    def rank_top(self, aggregation: AggregationResult, n: int = DEFAULT_TOP_N) -> Rankings:
        require(aggregation, "aggregation")
        if isinstance(n, bool) or not isinstance(n, int) or n < 1:
            raise InvalidInvocationError("n must be a positive integer", details={"n": n})

        rankings = Rankings(
            by_revenue=self._top(aggregation, _by_revenue, n),
            by_bookings=self._top(aggregation, _by_bookings, n),
        )
        logger.debug("Leaderboards built", n=n, customers=len(aggregation))
        return rankings

    @staticmethod
    def _top(
        aggregation: AggregationResult,
        key: Callable[[CustomerAggregate], tuple],
        n: int,
    ) -> Tuple[RankedCustomer, ...]:
        ordered = sorted(aggregation.customers.values(), key=key)[:n]
        return tuple(
            RankedCustomer(email=agg.customer_key, revenue=agg.paid_revenue, bookings=agg.booking_count)
            for agg in ordered
        )
