"""
Customer Segmentation

Buckets customers into activity tiers by booking volume.
"""

from enum import Enum

import structlog

from .exceptions import InvalidInvocationError, require
from .models import AggregationResult, Segmentation

logger = structlog.get_logger(__name__)

DEFAULT_VIP_MIN_BOOKINGS = 5


class CustomerTier(str, Enum):
    """Activity tiers"""
    VIP = "vip"
    REGULAR = "regular"
    FIRST_TIME = "first_time"


class Segmenter:
    """
    Classifies each aggregate into exactly one tier.

    Rules, in priority order:
    1. bookings >= vip_min_bookings -> VIP
    2. bookings > 1 -> REGULAR
    3. bookings == 1 -> FIRST_TIME
    """

    def __init__(self, vip_min_bookings: int = DEFAULT_VIP_MIN_BOOKINGS):
        if vip_min_bookings < 2:
            raise InvalidInvocationError(
                "vip_min_bookings must be at least 2",
                details={"vip_min_bookings": vip_min_bookings},
            )
        self.vip_min_bookings = vip_min_bookings

    def classify(self, booking_count: int) -> CustomerTier:
        if booking_count >= self.vip_min_bookings:
            return CustomerTier.VIP
        if booking_count > 1:
            return CustomerTier.REGULAR
        return CustomerTier.FIRST_TIME

    def segment(self, aggregation: AggregationResult) -> Segmentation:
        require(aggregation, "aggregation")

        tally = {tier: 0 for tier in CustomerTier}
        for agg in aggregation.customers.values():
            tally[self.classify(agg.booking_count)] += 1

        segmentation = Segmentation(
            vip=tally[CustomerTier.VIP],
            regular=tally[CustomerTier.REGULAR],
            first_time=tally[CustomerTier.FIRST_TIME],
        )
        logger.debug("Customers segmented", **segmentation.model_dump())
        return segmentation
