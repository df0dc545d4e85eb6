# backend/studio_booking/services/appointments/payment.py
"""
Derived appointment fields.

payment_amount depends only on service_price and payment_option;
end_time only on start_time and service_duration. Both are recomputed
by the model's before_insert / before_update listener, so callers never
set them directly.
"""

from decimal import ROUND_HALF_UP, Decimal

from ..slots.config import BookingConfig, get_booking_config, minutes_to_time_str, time_str_to_minutes

PAYMENT_OPTIONS = ("onsite", "full", "deposit")


def compute_payment_amount(
    price: float,
    option: str,
    config: BookingConfig | None = None,
) -> float:
    """
    Amount due upfront for a payment option.

    - onsite  → 0
    - full    → price
    - deposit → price × deposit_rate, rounded half-up to a whole unit
    """
    config = config or get_booking_config()

    if option == "onsite":
        return 0.0
    if option == "full":
        return float(price)
    if option == "deposit":
        deposit = Decimal(str(price)) * Decimal(str(config.deposit_rate))
        return float(deposit.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    raise ValueError(f"Unknown payment option: {option!r}")


def compute_end_time(start_time: str, duration_minutes: int) -> str:
    return minutes_to_time_str(time_str_to_minutes(start_time) + duration_minutes)


def apply_derived_fields(appointment) -> None:
    """Set end_time and payment_amount on an Appointments row."""
    if appointment.start_time and appointment.service_duration:
        appointment.end_time = compute_end_time(
            appointment.start_time, appointment.service_duration
        )
    if appointment.payment_option and appointment.service_price is not None:
        appointment.payment_amount = compute_payment_amount(
            appointment.service_price, appointment.payment_option
        )
