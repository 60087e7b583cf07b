"""
Customer Insights Data Model

Value types flowing through the insights pipeline:
- Raw and normalized booking facts
- Per-customer aggregates
- Externally supplied population counts
- The assembled InsightsReport and its parts
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class BookingStatus(str, Enum):
    """Booking lifecycle states"""
    APPROVED = "APPROVED"
    COMPLETED = "COMPLETED"
    PENDING = "PENDING"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


# =============================================================================
# PIPELINE VALUES
# =============================================================================

@dataclass
class RawBookingFact:
    """Booking row as handed over by the query layer, before validation"""
    email: Any
    amount_paid: Any = None
    is_paid: Any = False
    occurred_at: Any = None
    status: Any = BookingStatus.APPROVED


@dataclass(frozen=True)
class BookingFact:
    """One normalized booking"""
    customer_key: str
    amount_paid: float
    is_paid: bool
    occurred_at: datetime
    status: BookingStatus = BookingStatus.APPROVED


@dataclass(frozen=True)
class CustomerAggregate:
    """Per-customer rollup of booking facts"""
    customer_key: str
    booking_count: int
    paid_revenue: float


@dataclass(frozen=True)
class AggregationResult:
    """Output of one aggregation pass"""
    customers: Mapping[str, CustomerAggregate]
    paid_bookings_count: int = 0
    fact_count: int = 0

    def __len__(self) -> int:
        return len(self.customers)

    def sorted_keys(self) -> Tuple[str, ...]:
        """Customer keys in ascending order, for order-independent iteration"""
        return tuple(sorted(self.customers))


@dataclass(frozen=True)
class ScalarMetrics:
    """Report-level metrics; currency values are not yet rounded"""
    unique_customers_with_revenue: int
    total_revenue: float
    average_customer_lifetime_value: float
    paid_bookings_count: int
    average_booking_value: float
    repeat_customers: int
    repeat_customer_rate: float
    churn_rate: float


@dataclass
class CustomerProfile:
    """Customer-table row used for birthday reminders"""
    email: Optional[str]
    name: Optional[str] = None
    birthday: Optional[date] = None
    total_bookings: int = 0
    loyalty_tier: str = "BRONZE"


@dataclass
class CustomerActivity:
    """Customer-table row used to derive population counts"""
    email: str
    last_booking_at: Optional[datetime] = None
    total_bookings: int = 0


# =============================================================================
# EXTERNAL INPUT
# =============================================================================

class GlobalCounts(BaseModel):
    """Population counts computed over the full customer table"""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    total_customers: int = Field(ge=0, strict=True, alias="totalCustomers")
    recent_active_customers: int = Field(ge=0, strict=True, alias="recentActiveCustomers")
    churned_customers: int = Field(ge=0, strict=True, alias="churnedCustomers")


# =============================================================================
# REPORT
# =============================================================================

class Segmentation(BaseModel):
    """Customer counts per activity tier"""

    model_config = ConfigDict(frozen=True)

    vip: int = 0
    regular: int = 0
    first_time: int = 0

    @property
    def total(self) -> int:
        return self.vip + self.regular + self.first_time


class RankedCustomer(BaseModel):
    """Leaderboard entry carrying both ranking metrics"""

    model_config = ConfigDict(frozen=True)

    email: str
    revenue: float
    bookings: int


@dataclass(frozen=True)
class Rankings:
    """Top-N leaderboards"""
    by_revenue: Tuple[RankedCustomer, ...] = field(default_factory=tuple)
    by_bookings: Tuple[RankedCustomer, ...] = field(default_factory=tuple)


class MonthlyBucket(BaseModel):
    """One calendar month of activity"""

    model_config = ConfigDict(frozen=True)

    month: str
    start: date
    revenue: float = 0.0
    bookings: int = 0
    customers: int = 0


class UpcomingBirthday(BaseModel):
    """Customer with a birthday inside the lookahead window"""

    model_config = ConfigDict(frozen=True)

    email: str
    name: Optional[str] = None
    birthday: date
    next_birthday: date
    days_until: int
    total_bookings: int = 0
    loyalty_tier: str = "BRONZE"


class InsightsReport(BaseModel):
    """Complete customer insights snapshot"""

    model_config = ConfigDict(frozen=True)

    generated_for: datetime

    # Overview
    total_customers: int
    active_customers: int
    churned_customers: int
    unique_customers_with_revenue: int
    paid_bookings_count: int
    repeat_customers: int
    repeat_customer_rate: float
    churn_rate: float

    # Financial
    average_customer_lifetime_value: int
    average_booking_value: int
    total_revenue: int

    segmentation: Segmentation
    top_customers_by_revenue: Tuple[RankedCustomer, ...] = ()
    top_customers_by_bookings: Tuple[RankedCustomer, ...] = ()
    monthly_trends: Tuple[MonthlyBucket, ...] = ()
    upcoming_birthdays: Tuple[UpcomingBirthday, ...] = ()

    def trend_for(self, label: str) -> Optional[MonthlyBucket]:
        """Look up a trend bucket by its month label"""
        for bucket in self.monthly_trends:
            if bucket.month == label:
                return bucket
        return None

    def summary(self) -> Dict[str, Any]:
        """Headline numbers for logging"""
        return {
            "total_revenue": self.total_revenue,
            "customers_with_revenue": self.unique_customers_with_revenue,
            "repeat_customer_rate": self.repeat_customer_rate,
            "churn_rate": self.churn_rate,
        }
