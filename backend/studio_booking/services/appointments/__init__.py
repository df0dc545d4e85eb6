# backend/studio_booking/services/appointments/__init__.py
"""
Appointment lifecycle: booking, confirmation, cancellation, rescheduling,
feedback and admin status changes.
"""

from ..errors import (
    AppointmentError,
    Conflict,
    InvalidRequest,
    InvalidState,
    NotFound,
    ValidationError,
)
from .lifecycle import (
    add_feedback,
    add_internal_note,
    cancel_booking,
    complete_booking,
    confirm_booking,
    create_booking,
    find_conflict,
    generate_calendar_invite,
    get_booking,
    list_bookings,
    mark_no_show,
    reschedule_booking,
)
from .payment import compute_payment_amount

__all__ = [
    "AppointmentError",
    "Conflict",
    "InvalidRequest",
    "InvalidState",
    "NotFound",
    "ValidationError",
    "add_feedback",
    "add_internal_note",
    "cancel_booking",
    "complete_booking",
    "compute_payment_amount",
    "confirm_booking",
    "create_booking",
    "find_conflict",
    "generate_calendar_invite",
    "get_booking",
    "list_bookings",
    "mark_no_show",
    "reschedule_booking",
]
