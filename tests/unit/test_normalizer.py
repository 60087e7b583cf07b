"""
Unit Tests - Fact Normalization
"""
from datetime import date, datetime

import polars as pl
import pytest

from src.data.generators import BookingFactGenerator
from src.insights.exceptions import InvalidInvocationError
from src.insights.models import BookingStatus, RawBookingFact
from src.insights.normalizer import (
    FactNormalizer,
    coerce_amount,
    coerce_bool,
    coerce_timestamp,
    normalize_email,
    normalize_facts,
)


class TestCoercion:
    """Tests for field-level coercion helpers"""

    def test_normalize_email(self):
        """Test trimming and lower-casing"""
        assert normalize_email("  Alice@X.com ") == "alice@x.com"
        assert normalize_email("   ") is None
        assert normalize_email(None) is None
        assert normalize_email(123) is None

    def test_coerce_amount(self):
        """Test currency parsing and defaults"""
        assert coerce_amount("$1,250.50") == 1250.5
        assert coerce_amount("abc") == 0.0
        assert coerce_amount(None) == 0.0
        assert coerce_amount(float("nan")) == 0.0
        assert coerce_amount(-20) == -20.0

    def test_coerce_bool(self):
        """Test paid flag parsing"""
        assert coerce_bool(True) is True
        assert coerce_bool("Yes") is True
        assert coerce_bool("paid") is True
        assert coerce_bool("no") is False
        assert coerce_bool(None) is False
        assert coerce_bool(1) is True
        assert coerce_bool(0) is False

    def test_coerce_timestamp(self):
        """Test timestamp parsing"""
        assert coerce_timestamp("2025-01-10T10:00:00") == datetime(2025, 1, 10, 10, 0, 0)
        assert coerce_timestamp(date(2025, 1, 10)) == datetime(2025, 1, 10)
        assert coerce_timestamp("not-a-date") is None
        assert coerce_timestamp("") is None
        assert coerce_timestamp(None) is None


class TestFactNormalizer:
    """Tests for FactNormalizer.normalize"""

    def test_case_insensitive_identity(self):
        """Emails differing by case or whitespace share a key"""
        facts = normalize_facts([
            {"email": "A@x.com", "amount_paid": 10, "is_paid": True, "occurred_at": datetime(2025, 1, 1)},
            {"email": "a@x.com ", "amount_paid": 20, "is_paid": True, "occurred_at": datetime(2025, 1, 2)},
        ])

        assert [f.customer_key for f in facts] == ["a@x.com", "a@x.com"]

    def test_unpaid_amount_is_zeroed(self):
        """Amounts on unpaid bookings never count"""
        facts = normalize_facts([
            {"email": "a@x.com", "amount_paid": 500, "is_paid": False, "occurred_at": datetime(2025, 1, 1)},
        ])

        assert facts[0].amount_paid == 0.0
        assert facts[0].is_paid is False

    def test_negative_amount_is_clamped(self):
        """Negative paid amounts clamp to zero"""
        facts = normalize_facts([
            {"email": "a@x.com", "amount_paid": -75, "is_paid": True, "occurred_at": datetime(2025, 1, 1)},
        ])

        assert facts[0].amount_paid == 0.0
        assert facts[0].is_paid is True

    def test_missing_amount_defaults_to_zero(self):
        """Paid rows without an amount keep is_paid with zero revenue"""
        facts = normalize_facts([
            {"email": "a@x.com", "is_paid": True, "occurred_at": datetime(2025, 1, 1)},
        ])

        assert facts[0].amount_paid == 0.0

    def test_unusable_rows_are_dropped(self):
        """Rows without identity or timestamp are silently excluded"""
        rows = [
            {"email": "", "amount_paid": 10, "is_paid": True, "occurred_at": datetime(2025, 1, 1)},
            {"email": None, "amount_paid": 10, "is_paid": True, "occurred_at": datetime(2025, 1, 1)},
            {"email": 42, "amount_paid": 10, "is_paid": True, "occurred_at": datetime(2025, 1, 1)},
            {"email": "b@x.com", "amount_paid": 10, "is_paid": True, "occurred_at": "not-a-date"},
            {"email": "b@x.com", "amount_paid": 10, "is_paid": True},
            {"email": "c@x.com", "amount_paid": 10, "is_paid": True, "occurred_at": "2025-03-01"},
        ]

        facts = FactNormalizer().normalize(rows)

        assert len(facts) == 1
        assert facts[0].customer_key == "c@x.com"
        assert facts[0].occurred_at == datetime(2025, 3, 1)

    def test_accepts_objects_and_aliases(self):
        """Dataclass rows and camelCase mappings are both understood"""
        rows = [
            RawBookingFact(email="a@x.com", amount_paid="25.5", is_paid="true", occurred_at="2025-01-05"),
            {"customerKey": "B@x.com", "amountPaid": 10, "isPaid": True, "createdAt": datetime(2025, 1, 6)},
        ]

        facts = FactNormalizer().normalize(rows)

        assert [(f.customer_key, f.amount_paid) for f in facts] == [("a@x.com", 25.5), ("b@x.com", 10.0)]

    def test_status_is_carried(self):
        """Known statuses are parsed, unknown ones default to approved"""
        facts = normalize_facts([
            {"email": "a@x.com", "is_paid": True, "occurred_at": datetime(2025, 1, 1), "status": "completed"},
            {"email": "a@x.com", "is_paid": True, "occurred_at": datetime(2025, 1, 1), "status": "???"},
        ])

        assert facts[0].status == BookingStatus.COMPLETED
        assert facts[1].status == BookingStatus.APPROVED

    def test_preserves_order(self):
        """Output keeps input order"""
        rows = [
            {"email": f"u{i}@x.com", "is_paid": False, "occurred_at": datetime(2025, 1, 1)}
            for i in range(5)
        ]

        facts = normalize_facts(rows)

        assert [f.customer_key for f in facts] == [f"u{i}@x.com" for i in range(5)]

    def test_none_input_fails_fast(self):
        """Missing fact list is an invalid invocation"""
        with pytest.raises(InvalidInvocationError):
            FactNormalizer().normalize(None)

    def test_empty_input(self):
        """Empty list is valid"""
        assert normalize_facts([]) == []


class TestFrameNormalization:
    """Tests for FactNormalizer.normalize_frame"""

    def test_normalize_frame(self):
        """Frame rows follow the same rules as record rows"""
        df = pl.DataFrame({
            "email": ["  Alice@X.com", "bob@y.com", None, "carol@z.com"],
            "amount_paid": [100.0, 80.0, 10.0, -5.0],
            "is_paid": [True, False, True, True],
            "occurred_at": [
                datetime(2025, 1, 10),
                datetime(2025, 1, 11),
                datetime(2025, 1, 12),
                datetime(2025, 1, 13),
            ],
        })

        facts = FactNormalizer().normalize_frame(df)

        assert [f.customer_key for f in facts] == ["alice@x.com", "bob@y.com", "carol@z.com"]
        assert [f.amount_paid for f in facts] == [100.0, 0.0, 0.0]
        assert facts[0].occurred_at == datetime(2025, 1, 10)

    def test_normalize_frame_string_columns(self):
        """String amounts, flags and timestamps are parsed"""
        df = pl.DataFrame({
            "customerKey": ["a@x.com", "b@x.com", "c@x.com"],
            "amountPaid": ["$1,000.00", "20", "5"],
            "isPaid": ["yes", "true", "no"],
            "createdAt": ["2025-01-10 10:00:00", "garbage", "2025-01-20 09:15:00"],
        })

        facts = FactNormalizer().normalize_frame(df)

        assert [f.customer_key for f in facts] == ["a@x.com", "c@x.com"]
        assert facts[0].amount_paid == 1000.0
        assert facts[1].amount_paid == 0.0
        assert facts[1].occurred_at == datetime(2025, 1, 20, 9, 15, 0)

    def test_frame_and_records_agree(self):
        """Both entry points produce the same facts"""
        df = BookingFactGenerator(seed=3, n_customers=15).generate_frame(200)
        normalizer = FactNormalizer()

        assert normalizer.normalize_frame(df) == normalizer.normalize(df.to_dicts())
