# backend/studio_booking/services/slots/__init__.py
"""
Slots calculation module.

Fixed business-hours grid checked against live appointments,
recomputed on every request.
"""

from .config import BookingConfig, get_booking_config
from .generator import Slot, calculate_available_slots, generate_slots, get_busy_intervals

__all__ = [
    "BookingConfig",
    "get_booking_config",
    "Slot",
    "calculate_available_slots",
    "generate_slots",
    "get_busy_intervals",
]
