"""
Adapters layer - Persistence for providers and bookings.
"""

from .json_store import JsonBookingStore

__all__ = ["JsonBookingStore"]
