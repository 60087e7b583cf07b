"""
Booking Fact Normalization

Validates and coerces raw booking rows into canonical BookingFact values.
Handles:
- Email identity normalization (trim + lower-case)
- Monetary defaults and clamping
- Timestamp parsing
- Silent exclusion of rows without a usable identity or timestamp
"""

import math
import re
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, List, Mapping, Optional, Sequence

import pandas as pd
import polars as pl
import structlog

from .exceptions import require
from .models import BookingFact, BookingStatus

logger = structlog.get_logger(__name__)

EMAIL_FIELDS = ("email", "customer_key", "customerKey", "customer_email")
AMOUNT_FIELDS = ("amount_paid", "amountPaid", "paid_amount")
PAID_FIELDS = ("is_paid", "isPaid", "paid")
TIMESTAMP_FIELDS = ("occurred_at", "occurredAt", "created_at", "createdAt")
STATUS_FIELDS = ("status",)

TRUTHY_STRINGS = {"true", "t", "yes", "y", "1", "paid"}
CURRENCY_SYMBOLS = r"[$€£¥,]"


def _pick(record: Any, names: Sequence[str]) -> Any:
    """Read the first present field from a mapping or attribute object"""
    if isinstance(record, Mapping):
        for name in names:
            if name in record:
                return record[name]
        return None
    for name in names:
        if hasattr(record, name):
            return getattr(record, name)
    return None


def normalize_email(value: Any) -> Optional[str]:
    """Canonical customer key, or None when unusable"""
    if not isinstance(value, str):
        return None
    key = value.strip().lower()
    return key or None


def coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_STRINGS
    if isinstance(value, (int, float, Decimal)):
        return value == value and value != 0
    return False


def coerce_amount(value: Any) -> float:
    """Parse a monetary amount; anything unusable becomes 0.0"""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        cleaned = re.sub(CURRENCY_SYMBOLS, "", value).strip()
        if not cleaned:
            return 0.0
        try:
            value = Decimal(cleaned)
        except InvalidOperation:
            return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(amount):
        return 0.0
    return amount


def coerce_timestamp(value: Any) -> Optional[datetime]:
    """Parse a timestamp, or None when unparseable"""
    if value is None or value is pd.NaT or isinstance(value, bool):
        return None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.to_pydatetime()
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if not isinstance(value, str) or not value.strip():
        return None

    parsed = pd.to_datetime(value.strip(), errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.to_pydatetime()


def coerce_status(value: Any) -> BookingStatus:
    if isinstance(value, BookingStatus):
        return value
    if isinstance(value, str):
        try:
            return BookingStatus(value.strip().upper())
        except ValueError:
            pass
    return BookingStatus.APPROVED


class FactNormalizer:
    """
    Turns query-layer booking rows into BookingFact values.

    Rows may be mappings, dataclasses or any object exposing the expected
    attributes. Rows that cannot be attributed to a customer or placed in
    time are dropped without raising.

    Example:
        normalizer = FactNormalizer()
        facts = normalizer.normalize(rows)
    """

    def normalize_one(self, record: Any) -> Optional[BookingFact]:
        """Normalize a single row, or return None if it must be excluded"""
        customer_key = normalize_email(_pick(record, EMAIL_FIELDS))
        if customer_key is None:
            return None

        occurred_at = coerce_timestamp(_pick(record, TIMESTAMP_FIELDS))
        if occurred_at is None:
            return None

        is_paid = coerce_bool(_pick(record, PAID_FIELDS))
        amount = coerce_amount(_pick(record, AMOUNT_FIELDS))
        if not is_paid or amount < 0:
            amount = 0.0

        return BookingFact(
            customer_key=customer_key,
            amount_paid=amount,
            is_paid=is_paid,
            occurred_at=occurred_at,
            status=coerce_status(_pick(record, STATUS_FIELDS)),
        )

    def normalize(self, raw_facts: Iterable[Any]) -> List[BookingFact]:
        """Normalize rows, preserving input order"""
        require(raw_facts, "raw_facts")

        facts: List[BookingFact] = []
        dropped = 0
        for record in raw_facts:
            fact = self.normalize_one(record)
            if fact is None:
                dropped += 1
                continue
            facts.append(fact)

        logger.debug("Facts normalized", kept=len(facts), dropped=dropped)
        return facts

    def normalize_frame(self, df: pl.DataFrame) -> List[BookingFact]:
        """
        Normalize a polars DataFrame of booking rows.

        Applies the same rules as normalize() using column expressions.

        Args:
            df: Frame with email, amount, paid flag and timestamp columns

        Returns:
            Normalized facts in row order
        """
        require(df, "df")
        df = self._canonical_columns(df)
        input_rows = len(df)

        df = df.with_columns(
            pl.col("email").cast(pl.Utf8, strict=False).str.strip_chars().str.to_lowercase().alias("email"),
            self._paid_expr(df.schema["is_paid"]).alias("is_paid"),
            self._amount_expr(df.schema["amount_paid"]).alias("amount_paid"),
            self._timestamp_expr(df.schema["occurred_at"]).alias("occurred_at"),
        )

        df = df.with_columns(
            pl.when(pl.col("is_paid") & (pl.col("amount_paid") > 0))
            .then(pl.col("amount_paid"))
            .otherwise(0.0)
            .alias("amount_paid")
        )

        df = df.filter(
            pl.col("email").is_not_null()
            & (pl.col("email") != "")
            & pl.col("occurred_at").is_not_null()
        )

        facts = [
            BookingFact(
                customer_key=row["email"],
                amount_paid=float(row["amount_paid"]),
                is_paid=bool(row["is_paid"]),
                occurred_at=row["occurred_at"],
                status=coerce_status(row.get("status")),
            )
            for row in df.iter_rows(named=True)
        ]

        logger.debug("Fact frame normalized", kept=len(facts), dropped=input_rows - len(facts))
        return facts

    def _canonical_columns(self, df: pl.DataFrame) -> pl.DataFrame:
        """Rename known aliases and add missing optional columns"""
        renames = {}
        for canonical, names in (
            ("email", EMAIL_FIELDS),
            ("amount_paid", AMOUNT_FIELDS),
            ("is_paid", PAID_FIELDS),
            ("occurred_at", TIMESTAMP_FIELDS),
        ):
            if canonical in df.columns:
                continue
            for name in names:
                if name in df.columns:
                    renames[name] = canonical
                    break
        if renames:
            df = df.rename(renames)

        defaults = {
            "email": pl.lit(None, dtype=pl.Utf8),
            "amount_paid": pl.lit(0.0),
            "is_paid": pl.lit(False),
            "occurred_at": pl.lit(None, dtype=pl.Datetime),
        }
        missing = [expr.alias(name) for name, expr in defaults.items() if name not in df.columns]
        if missing:
            df = df.with_columns(missing)
        return df

    @staticmethod
    def _paid_expr(dtype: pl.DataType) -> pl.Expr:
        col = pl.col("is_paid")
        if dtype == pl.Boolean:
            return col.fill_null(False)
        if dtype == pl.Utf8:
            return col.str.strip_chars().str.to_lowercase().is_in(list(TRUTHY_STRINGS)).fill_null(False)
        if dtype.is_numeric():
            return (col.fill_null(0) != 0).fill_null(False)
        return pl.lit(False)

    @staticmethod
    def _amount_expr(dtype: pl.DataType) -> pl.Expr:
        col = pl.col("amount_paid")
        if dtype == pl.Utf8:
            col = col.str.replace_all(CURRENCY_SYMBOLS, "").str.strip_chars()
        amount = col.cast(pl.Float64, strict=False)
        return (
            pl.when(amount.is_not_null() & amount.is_finite())
            .then(amount)
            .otherwise(0.0)
        )

    @staticmethod
    def _timestamp_expr(dtype: pl.DataType) -> pl.Expr:
        col = pl.col("occurred_at")
        if dtype == pl.Utf8:
            return col.str.strip_chars().str.to_datetime(strict=False)
        if dtype == pl.Date:
            return col.cast(pl.Datetime)
        if isinstance(dtype, pl.Datetime):
            return col
        return pl.lit(None, dtype=pl.Datetime)


def normalize_facts(raw_facts: Iterable[Any]) -> List[BookingFact]:
    """
    Convenience function to normalize booking rows.

    Args:
        raw_facts: Mappings or objects with booking fields

    Returns:
        Normalized facts
    """
    return FactNormalizer().normalize(raw_facts)
