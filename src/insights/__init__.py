"""
Customer Insights Module
"""
from .aggregator import CustomerAggregator, aggregate_facts
from .birthdays import BirthdayScanner, find_upcoming_birthdays
from .engine import InsightsEngine, build_customer_insights
from .exceptions import InsightsError, InvalidInvocationError
from .metrics import MetricCalculator
from .models import (
    BookingFact,
    BookingStatus,
    CustomerActivity,
    CustomerAggregate,
    CustomerProfile,
    GlobalCounts,
    InsightsReport,
    MonthlyBucket,
    RankedCustomer,
    RawBookingFact,
    Segmentation,
)
from .normalizer import FactNormalizer, normalize_facts
from .population import compute_global_counts
from .ranker import Ranker
from .segmenter import CustomerTier, Segmenter
from .trends import TrendBuilder, build_monthly_trend

__all__ = [
    "BirthdayScanner",
    "BookingFact",
    "BookingStatus",
    "CustomerActivity",
    "CustomerAggregate",
    "CustomerAggregator",
    "CustomerProfile",
    "CustomerTier",
    "FactNormalizer",
    "GlobalCounts",
    "InsightsEngine",
    "InsightsError",
    "InsightsReport",
    "InvalidInvocationError",
    "MetricCalculator",
    "MonthlyBucket",
    "RankedCustomer",
    "Ranker",
    "RawBookingFact",
    "Segmentation",
    "Segmenter",
    "TrendBuilder",
    "aggregate_facts",
    "build_customer_insights",
    "build_monthly_trend",
    "compute_global_counts",
    "find_upcoming_birthdays",
    "normalize_facts",
]
