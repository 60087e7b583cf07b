"""
Unit Tests - Pipeline Invariants on Generated Data
"""
from datetime import datetime

import pytest

from src.data.generators import BookingFactGenerator
from src.insights.aggregator import CustomerAggregator, aggregate_facts
from src.insights.engine import InsightsEngine
from src.insights.models import GlobalCounts
from src.insights.normalizer import FactNormalizer
from src.insights.segmenter import Segmenter

AS_OF = datetime(2025, 6, 15, 12, 0, 0)
COUNTS = GlobalCounts(total_customers=40, recent_active_customers=25, churned_customers=10)


@pytest.fixture(params=[1, 2, 3, 5, 8])
def seeded_facts(request):
    rows = BookingFactGenerator(seed=request.param, n_customers=25).generate(300, as_of=AS_OF)
    return FactNormalizer().normalize(rows)


class TestInvariants:
    """Properties that hold for any input"""

    def test_identity_is_normalized(self, seeded_facts):
        """Noisy emails collapse onto the generator's customers"""
        keys = {f.customer_key for f in seeded_facts}

        assert len(keys) <= 25
        assert all(k == k.strip().lower() for k in keys)

    def test_revenue_non_negative(self, seeded_facts):
        result = CustomerAggregator().aggregate(seeded_facts)

        assert all(agg.paid_revenue >= 0 for agg in result.customers.values())
        assert all(agg.booking_count >= 1 for agg in result.customers.values())
        assert all(f.amount_paid == 0 for f in seeded_facts if not f.is_paid)

    def test_segmentation_partition(self, seeded_facts):
        result = CustomerAggregator().aggregate(seeded_facts)

        assert Segmenter().segment(result).total == len({f.customer_key for f in seeded_facts})

    def test_partition_counts_match(self, seeded_facts):
        whole = aggregate_facts(seeded_facts)
        merged = aggregate_facts(seeded_facts, partitions=4)

        assert {k: v.booking_count for k, v in merged.customers.items()} == {
            k: v.booking_count for k, v in whole.customers.items()
        }
        assert merged.paid_bookings_count == whole.paid_bookings_count

    def test_report_invariants(self, seeded_facts):
        report = InsightsEngine().generate(seeded_facts_rows(seeded_facts), COUNTS, AS_OF)

        assert len(report.monthly_trends) == 12
        assert report.monthly_trends[-1].month == "Jun 2025"

        revenues = [(-e.revenue, e.email) for e in report.top_customers_by_revenue]
        assert revenues == sorted(revenues)
        bookings = [(-e.bookings, e.email) for e in report.top_customers_by_bookings]
        assert bookings == sorted(bookings)

    def test_idempotent(self, seeded_facts):
        rows = seeded_facts_rows(seeded_facts)
        engine = InsightsEngine()

        assert engine.generate(rows, COUNTS, AS_OF) == engine.generate(rows, COUNTS, AS_OF)


def seeded_facts_rows(facts):
    """Feed normalized facts back through the engine as plain rows"""
    return [
        {
            "email": f.customer_key,
            "amount_paid": f.amount_paid,
            "is_paid": f.is_paid,
            "occurred_at": f.occurred_at,
        }
        for f in facts
    ]
