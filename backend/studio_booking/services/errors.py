# backend/studio_booking/services/errors.py
"""
Typed failures raised by the appointment services.

The HTTP layer maps each class to its status_code; anything else
(storage errors included) propagates untouched.
"""


class AppointmentError(Exception):
    """Base class for booking failures."""

    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(AppointmentError):
    """Malformed or missing required input (e.g. no RGPD consent)."""

    status_code = 422


class InvalidRequest(AppointmentError):
    """Well-formed but semantically invalid input (e.g. a past date)."""

    status_code = 400


class Conflict(AppointmentError):
    """The requested slot is already taken."""

    status_code = 409


class NotFound(AppointmentError):
    status_code = 404


class InvalidState(AppointmentError):
    """Transition not allowed from the current status or time window."""

    status_code = 400
