"""
Scalar Metric Calculation

Derives report-level metrics from customer aggregates and population counts:
- Customer lifetime value (mean paid revenue per paying customer)
- Average booking value
- Repeat customer rate
- Churn rate
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

import structlog

from .exceptions import require
from .models import AggregationResult, GlobalCounts, ScalarMetrics

logger = structlog.get_logger(__name__)

Number = Union[int, float]


def safe_divide(numerator: Number, denominator: Number) -> float:
    """Division that yields 0.0 for a zero denominator"""
    if not denominator:
        return 0.0
    return numerator / denominator


def round_half_up(value: Number, places: int = 0) -> float:
    """Round with halves going away from zero (2.5 -> 3, 0.25 -> 0.3)"""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))


def round_currency(value: Number) -> int:
    """Round a monetary amount to whole units"""
    return int(round_half_up(value, 0))


def percentage(part: Number, whole: Number) -> float:
    """part / whole * 100 rounded half-up to one decimal, 0.0 when whole is 0"""
    if not whole:
        return 0.0
    ratio = Decimal(part) * 100 / Decimal(whole)
    return float(ratio.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


class MetricCalculator:
    """
    Computes ScalarMetrics from an AggregationResult and GlobalCounts.

    Currency values are kept at full precision; rounding to whole units
    happens when the report is assembled. Rates are rounded here.
    """

    def compute_metrics(
        self,
        aggregation: AggregationResult,
        global_counts: GlobalCounts,
    ) -> ScalarMetrics:
        require(aggregation, "aggregation")
        require(global_counts, "global_counts")

        ordered = [aggregation.customers[key] for key in aggregation.sorted_keys()]

        total_revenue = math.fsum(agg.paid_revenue for agg in ordered)
        paying_customers = sum(1 for agg in ordered if agg.paid_revenue > 0)
        repeat_customers = sum(1 for agg in ordered if agg.booking_count > 1)
        paid_bookings = aggregation.paid_bookings_count

        metrics = ScalarMetrics(
            unique_customers_with_revenue=paying_customers,
            total_revenue=total_revenue,
            average_customer_lifetime_value=safe_divide(total_revenue, paying_customers),
            paid_bookings_count=paid_bookings,
            average_booking_value=safe_divide(total_revenue, paid_bookings),
            repeat_customers=repeat_customers,
            repeat_customer_rate=percentage(repeat_customers, global_counts.total_customers),
            churn_rate=percentage(
                global_counts.churned_customers,
                global_counts.recent_active_customers + global_counts.churned_customers,
            ),
        )

        logger.debug(
            "Metrics computed",
            total_revenue=metrics.total_revenue,
            repeat_customers=repeat_customers,
            churn_rate=metrics.churn_rate,
        )
        return metrics
