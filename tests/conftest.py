"""
Test Suite Configuration
"""
from datetime import datetime
from typing import Dict, List

import pytest

from src.config import Settings
from src.data.generators import BookingFactGenerator, CustomerGenerator
from src.insights.models import (
    AggregationResult,
    BookingFact,
    CustomerAggregate,
    GlobalCounts,
)


def make_aggregation(*rows) -> AggregationResult:
    """Build an AggregationResult from (key, bookings, revenue) tuples"""
    customers = {
        key: CustomerAggregate(customer_key=key, booking_count=bookings, paid_revenue=revenue)
        for key, bookings, revenue in rows
    }
    return AggregationResult(customers=customers, paid_bookings_count=0, fact_count=sum(r[1] for r in rows))


def make_fact(key: str, amount: float, paid: bool, occurred_at: datetime) -> BookingFact:
    return BookingFact(customer_key=key, amount_paid=amount if paid else 0.0, is_paid=paid, occurred_at=occurred_at)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        app_env="testing",
        debug=True,
    )


@pytest.fixture
def as_of() -> datetime:
    """Reference 'now' used by the worked example"""
    return datetime(2025, 2, 15, 12, 0, 0)


@pytest.fixture
def example_rows() -> List[Dict]:
    """Raw rows from the worked example"""
    return [
        {"email": "alice@x.com", "amount_paid": 100, "is_paid": True, "occurred_at": datetime(2025, 1, 10)},
        {"email": "alice@x.com", "amount_paid": 0, "is_paid": False, "occurred_at": datetime(2025, 2, 5)},
        {"email": "bob@y.com", "amount_paid": 50, "is_paid": True, "occurred_at": datetime(2025, 1, 20)},
    ]


@pytest.fixture
def example_counts() -> GlobalCounts:
    return GlobalCounts(total_customers=2, recent_active_customers=2, churned_customers=0)


@pytest.fixture
def generated_rows() -> List[Dict]:
    """Seeded synthetic rows including malformed ones"""
    return BookingFactGenerator(seed=7, n_customers=30).generate(400, as_of=datetime(2025, 6, 15, 12, 0, 0))


@pytest.fixture
def customer_generator() -> CustomerGenerator:
    generator = BookingFactGenerator(seed=11, n_customers=20)
    return CustomerGenerator(generator.emails, seed=11)


@pytest.fixture
def aggregation_of():
    """Factory for AggregationResult from (key, bookings, revenue) tuples"""
    return make_aggregation


@pytest.fixture
def fact_of():
    """Factory for normalized BookingFact values"""
    return make_fact
