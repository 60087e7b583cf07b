"""
Customer Insights Engine

Main orchestrator that chains normalization, aggregation and the
independent downstream stages into a single InsightsReport.
"""

import asyncio
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd
import polars as pl
import structlog
from pydantic import ValidationError

from src.config import InsightsSettings, get_settings
from .aggregator import CustomerAggregator
from .birthdays import BirthdayScanner
from .exceptions import InvalidInvocationError, require
from .metrics import MetricCalculator, round_currency
from .models import (
    AggregationResult,
    BookingFact,
    CustomerProfile,
    GlobalCounts,
    InsightsReport,
    MonthlyBucket,
    Rankings,
    ScalarMetrics,
    Segmentation,
    UpcomingBirthday,
)
from .normalizer import FactNormalizer
from .ranker import Ranker
from .segmenter import Segmenter
from .trends import TrendBuilder

logger = structlog.get_logger(__name__)

GlobalCountsInput = Union[GlobalCounts, Mapping[str, Any]]


@dataclass(frozen=True)
class PreparedFacts:
    """Upstream stage output shared by every downstream stage"""
    facts: Tuple[BookingFact, ...]
    aggregation: AggregationResult
    global_counts: GlobalCounts
    as_of: datetime


class InsightsEngine:
    """
    Stateless customer insights pipeline.

    Pipeline:
    1. Normalize raw booking rows
    2. Aggregate per customer
    3. Metrics, segmentation, leaderboards, trend and birthdays
    4. Assemble the report

    Example:
        engine = InsightsEngine()
        report = engine.generate(rows, {"totalCustomers": 2, ...}, as_of)
    """

    def __init__(self, settings: Optional[InsightsSettings] = None):
        self.settings = settings or get_settings().insights
        self.normalizer = FactNormalizer()
        self.aggregator = CustomerAggregator()
        self.calculator = MetricCalculator()
        self.segmenter = Segmenter(self.settings.vip_min_bookings)
        self.ranker = Ranker()
        self.trend_builder = TrendBuilder(self.settings.trend_months)
        self.birthday_scanner = BirthdayScanner(
            self.settings.birthday_window_days,
            self.settings.birthday_limit,
        )

    # ------------------------------------------------------------------
    # Input validation
    # ------------------------------------------------------------------

    @staticmethod
    def _coerce_counts(global_counts: GlobalCountsInput) -> GlobalCounts:
        require(global_counts, "global_counts")
        if isinstance(global_counts, GlobalCounts):
            return global_counts
        if not isinstance(global_counts, Mapping):
            raise InvalidInvocationError(
                "global_counts must be GlobalCounts or a mapping",
                details={"type": type(global_counts).__name__},
            )
        try:
            return GlobalCounts.model_validate(dict(global_counts))
        except ValidationError as e:
            raise InvalidInvocationError(
                "global_counts is invalid",
                details={"errors": e.errors(include_url=False)},
            ) from e

    @staticmethod
    def _coerce_as_of(as_of: Union[date, datetime]) -> datetime:
        require(as_of, "as_of")
        if isinstance(as_of, datetime):
            return as_of
        if isinstance(as_of, date):
            return datetime.combine(as_of, time.min)
        raise InvalidInvocationError(
            "as_of must be a date or datetime",
            details={"type": type(as_of).__name__},
        )

    def prepare(
        self,
        raw_facts: Iterable[Any],
        global_counts: GlobalCountsInput,
        as_of: Union[date, datetime],
    ) -> PreparedFacts:
        """Validate inputs, normalize and aggregate"""
        require(raw_facts, "raw_facts")
        counts = self._coerce_counts(global_counts)
        reference = self._coerce_as_of(as_of)

        if isinstance(raw_facts, pl.DataFrame):
            facts = tuple(self.normalizer.normalize_frame(raw_facts))
        elif isinstance(raw_facts, pd.DataFrame):
            facts = tuple(self.normalizer.normalize(raw_facts.to_dict("records")))
        else:
            facts = tuple(self.normalizer.normalize(raw_facts))
        aggregation = self.aggregator.aggregate(facts)
        return PreparedFacts(facts=facts, aggregation=aggregation, global_counts=counts, as_of=reference)

    # ------------------------------------------------------------------
    # Report assembly
    # ------------------------------------------------------------------

    def _assemble(
        self,
        prepared: PreparedFacts,
        metrics: ScalarMetrics,
        segmentation: Segmentation,
        rankings: Rankings,
        trend: Sequence[MonthlyBucket],
        birthdays: Sequence[UpcomingBirthday],
    ) -> InsightsReport:
        counts = prepared.global_counts
        report = InsightsReport(
            generated_for=prepared.as_of,
            total_customers=counts.total_customers,
            active_customers=counts.recent_active_customers,
            churned_customers=counts.churned_customers,
            unique_customers_with_revenue=metrics.unique_customers_with_revenue,
            paid_bookings_count=metrics.paid_bookings_count,
            repeat_customers=metrics.repeat_customers,
            repeat_customer_rate=metrics.repeat_customer_rate,
            churn_rate=metrics.churn_rate,
            average_customer_lifetime_value=round_currency(metrics.average_customer_lifetime_value),
            average_booking_value=round_currency(metrics.average_booking_value),
            total_revenue=round_currency(metrics.total_revenue),
            segmentation=segmentation,
            top_customers_by_revenue=rankings.by_revenue,
            top_customers_by_bookings=rankings.by_bookings,
            monthly_trends=tuple(trend),
            upcoming_birthdays=tuple(birthdays),
        )

        logger.info(
            "Customer insights generated",
            facts=len(prepared.facts),
            customers=len(prepared.aggregation),
            **report.summary(),
        )
        return report

    def generate(
        self,
        raw_facts: Iterable[Any],
        global_counts: GlobalCountsInput,
        as_of: Union[date, datetime],
        profiles: Optional[Iterable[CustomerProfile]] = None,
    ) -> InsightsReport:
        """
        Build an InsightsReport synchronously.

        Args:
            raw_facts: Approved/completed booking rows from the query layer
            global_counts: Population counts over the full customer table
            as_of: Reference "now" for the trend window and birthdays
            profiles: Optional customer rows for birthday reminders

        Returns:
            Immutable InsightsReport
        """
        prepared = self.prepare(raw_facts, global_counts, as_of)
        profile_list: List[CustomerProfile] = list(profiles or [])

        return self._assemble(
            prepared,
            self.calculator.compute_metrics(prepared.aggregation, prepared.global_counts),
            self.segmenter.segment(prepared.aggregation),
            self.ranker.rank_top(prepared.aggregation, self.settings.top_n),
            self.trend_builder.build_monthly_trend(prepared.facts, prepared.as_of),
            self.birthday_scanner.find_upcoming(profile_list, prepared.as_of),
        )

    async def agenerate(
        self,
        raw_facts: Iterable[Any],
        global_counts: GlobalCountsInput,
        as_of: Union[date, datetime],
        profiles: Optional[Iterable[CustomerProfile]] = None,
    ) -> InsightsReport:
        """
        Build an InsightsReport, running the downstream stages concurrently.

        The stages only read the prepared facts, so the result equals
        generate() for the same inputs.
        """
        prepared = self.prepare(raw_facts, global_counts, as_of)
        profile_list: List[CustomerProfile] = list(profiles or [])

        metrics, segmentation, rankings, trend, birthdays = await asyncio.gather(
            asyncio.to_thread(self.calculator.compute_metrics, prepared.aggregation, prepared.global_counts),
            asyncio.to_thread(self.segmenter.segment, prepared.aggregation),
            asyncio.to_thread(self.ranker.rank_top, prepared.aggregation, self.settings.top_n),
            asyncio.to_thread(self.trend_builder.build_monthly_trend, prepared.facts, prepared.as_of),
            asyncio.to_thread(self.birthday_scanner.find_upcoming, profile_list, prepared.as_of),
        )
        return self._assemble(prepared, metrics, segmentation, rankings, trend, birthdays)


def build_customer_insights(
    raw_facts: Iterable[Any],
    global_counts: GlobalCountsInput,
    as_of: Union[date, datetime],
    profiles: Optional[Iterable[CustomerProfile]] = None,
    settings: Optional[InsightsSettings] = None,
) -> InsightsReport:
    """
    Convenience function to build a report with default settings.

    Args:
        raw_facts: Booking rows
        global_counts: Population counts
        as_of: Reference "now"
        profiles: Optional customer rows for birthday reminders
        settings: Optional tuning overrides

    Returns:
        InsightsReport
    """
    return InsightsEngine(settings).generate(raw_facts, global_counts, as_of, profiles)
