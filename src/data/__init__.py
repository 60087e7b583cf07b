"""
Data Generation Module
"""
from .generators import BookingFactGenerator, CustomerGenerator

__all__ = [
    "BookingFactGenerator",
    "CustomerGenerator",
]
