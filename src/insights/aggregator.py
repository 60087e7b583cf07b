"""
Customer Aggregation

Groups normalized booking facts by customer key.
"""

from typing import Dict, Iterable, List, Sequence

import structlog

from .exceptions import require
from .models import AggregationResult, BookingFact, CustomerAggregate

logger = structlog.get_logger(__name__)


class CustomerAggregator:
    """
    Folds booking facts into one CustomerAggregate per customer key.

    Facts are visited once, in the order given, so revenue sums are
    reproducible across runs. Keys are compared by exact string equality;
    identity normalization happens upstream in FactNormalizer.

    Example:
        result = CustomerAggregator().aggregate(facts)
        result.customers["alice@x.com"].paid_revenue
    """

    def aggregate(self, facts: Sequence[BookingFact]) -> AggregationResult:
        """Aggregate a fact list into per-customer totals"""
        require(facts, "facts")

        counts: Dict[str, int] = {}
        revenue: Dict[str, float] = {}
        paid_bookings = 0

        for fact in facts:
            key = fact.customer_key
            counts[key] = counts.get(key, 0) + 1
            revenue.setdefault(key, 0.0)
            if fact.is_paid:
                revenue[key] += fact.amount_paid
                paid_bookings += 1

        customers = {
            key: CustomerAggregate(
                customer_key=key,
                booking_count=counts[key],
                paid_revenue=revenue[key],
            )
            for key in counts
        }

        logger.debug(
            "Facts aggregated",
            facts=len(facts),
            customers=len(customers),
            paid_bookings=paid_bookings,
        )

        return AggregationResult(
            customers=customers,
            paid_bookings_count=paid_bookings,
            fact_count=len(facts),
        )

    def merge(self, results: Iterable[AggregationResult]) -> AggregationResult:
        """
        Combine partial results from partitioned fact lists.

        Partials are merged in the order given. Counts match aggregate()
        over the concatenated facts exactly; revenue matches up to float
        summation order.
        """
        require(results, "results")

        counts: Dict[str, int] = {}
        revenue: Dict[str, float] = {}
        paid_bookings = 0
        fact_count = 0

        for partial in results:
            paid_bookings += partial.paid_bookings_count
            fact_count += partial.fact_count
            for key, agg in partial.customers.items():
                counts[key] = counts.get(key, 0) + agg.booking_count
                revenue[key] = revenue.get(key, 0.0) + agg.paid_revenue

        customers = {
            key: CustomerAggregate(customer_key=key, booking_count=counts[key], paid_revenue=revenue[key])
            for key in counts
        }
        return AggregationResult(
            customers=customers,
            paid_bookings_count=paid_bookings,
            fact_count=fact_count,
        )


def aggregate_facts(facts: Sequence[BookingFact], partitions: int = 1) -> AggregationResult:
    """
    Convenience function to aggregate facts, optionally in slices.

    Args:
        facts: Normalized facts
        partitions: Number of contiguous slices to aggregate separately

    Returns:
        Merged aggregation result
    """
    aggregator = CustomerAggregator()
    if partitions <= 1 or len(facts) <= 1:
        return aggregator.aggregate(facts)

    size = -(-len(facts) // partitions)
    slices: List[Sequence[BookingFact]] = [facts[i:i + size] for i in range(0, len(facts), size)]
    return aggregator.merge(aggregator.aggregate(chunk) for chunk in slices)
