"""
Synthetic Data Generator

Generates realistic venue booking data for testing and development.
Includes:
- Customers with realistic names, emails and birthdays
- Booking rows with messy identity, amount and timestamp fields
- Customer activity rows for population counts
"""

import random
from datetime import datetime, timedelta
from typing import Dict, List, Optional

import polars as pl
from faker import Faker

from src.insights.models import CustomerActivity, CustomerProfile


# =============================================================================
# CONFIGURATION
# =============================================================================

LOYALTY_TIERS = [("BRONZE", 0.55), ("SILVER", 0.25), ("GOLD", 0.15), ("PLATINUM", 0.05)]

# Share of rows the normalizer is expected to drop or repair
MESSY_ROW_RATES = {
    "blank_email": 0.03,
    "bad_timestamp": 0.03,
    "negative_amount": 0.02,
    "unpaid_with_amount": 0.05,
    "email_case_noise": 0.20,
}


# =============================================================================
# GENERATORS
# =============================================================================

class BookingFactGenerator:
    """
    Generate booking rows shaped like the query layer's output.

    Every instance owns its own random state, so two generators with the
    same seed produce identical rows.

    Example:
        rows = BookingFactGenerator(seed=7).generate(500, as_of=now)
    """

    def __init__(self, seed: int = 42, n_customers: int = 50):
        self.random = random.Random(seed)
        self.fake = Faker()
        self.fake.seed_instance(seed)
        self.emails = [self.fake.unique.email() for _ in range(n_customers)]

    def _noisy_email(self, email: str) -> str:
        if self.random.random() < MESSY_ROW_RATES["email_case_noise"]:
            return f"  {email.upper()} "
        return email

    def generate(self, n: int = 1000, as_of: Optional[datetime] = None, span_days: int = 540) -> List[Dict]:
        """Generate n raw booking rows spread over span_days before as_of"""
        as_of = as_of or datetime(2025, 6, 15, 12, 0, 0)
        rows = []

        for _ in range(n):
            email = self.random.choice(self.emails)
            is_paid = self.random.random() < 0.7
            amount = round(self.random.uniform(50, 2500), 2) if is_paid else 0.0
            occurred_at = as_of - timedelta(
                days=self.random.randint(0, span_days),
                minutes=self.random.randint(0, 1440),
            )

            row = {
                "email": self._noisy_email(email),
                "amount_paid": amount,
                "is_paid": is_paid,
                "occurred_at": occurred_at,
                "status": self.random.choice(["APPROVED", "COMPLETED"]),
            }

            roll = self.random.random()
            if roll < MESSY_ROW_RATES["blank_email"]:
                row["email"] = self.random.choice(["", "   ", None])
            elif roll < MESSY_ROW_RATES["blank_email"] + MESSY_ROW_RATES["bad_timestamp"]:
                row["occurred_at"] = self.random.choice(["not-a-date", None, ""])
            elif roll < 0.08:
                row["amount_paid"] = -abs(amount) - 1
            elif not is_paid and roll < 0.13:
                row["amount_paid"] = round(self.random.uniform(1, 500), 2)

            rows.append(row)

        return rows

    def generate_frame(self, n: int = 1000, as_of: Optional[datetime] = None) -> pl.DataFrame:
        """Generate rows as a polars DataFrame with clean timestamps"""
        rows = [
            row for row in self.generate(n, as_of)
            if isinstance(row["occurred_at"], datetime)
        ]
        return pl.DataFrame(rows, schema={
            "email": pl.Utf8,
            "amount_paid": pl.Float64,
            "is_paid": pl.Boolean,
            "occurred_at": pl.Datetime,
            "status": pl.Utf8,
        })


class CustomerGenerator:
    """Generate customer-table rows for the generated emails"""

    def __init__(self, emails: List[str], seed: int = 42):
        self.emails = emails
        self.random = random.Random(seed)
        self.fake = Faker()
        self.fake.seed_instance(seed)

    def profiles(self) -> List[CustomerProfile]:
        tiers = [tier for tier, _ in LOYALTY_TIERS]
        weights = [weight for _, weight in LOYALTY_TIERS]
        return [
            CustomerProfile(
                email=email,
                name=self.fake.name(),
                birthday=self.fake.date_of_birth(minimum_age=18, maximum_age=80)
                if self.random.random() > 0.2 else None,
                total_bookings=self.random.randint(0, 20),
                loyalty_tier=self.random.choices(tiers, weights=weights)[0],
            )
            for email in self.emails
        ]

    def activities(self, as_of: datetime, span_days: int = 365) -> List[CustomerActivity]:
        activities = []
        for email in self.emails:
            total = self.random.randint(0, 12)
            last = as_of - timedelta(days=self.random.randint(0, span_days)) if total else None
            activities.append(CustomerActivity(email=email, last_booking_at=last, total_bookings=total))
        return activities
