# backend/studio_booking/services/slots/config.py
"""
Booking configuration for slots calculation and appointment rules.
"""

from dataclasses import dataclass
from functools import lru_cache


def time_str_to_minutes(value: str) -> int:
    """Convert "HH:MM" to minutes since midnight."""
    hour, minute = value.split(":")
    return int(hour) * 60 + int(minute)


def minutes_to_time_str(total_minutes: int) -> str:
    """Convert minutes since midnight to "HH:MM" (wraps past midnight)."""
    total_minutes %= 24 * 60
    return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"


@dataclass(frozen=True)
class BookingConfig:
    """
    Configuration for the booking/slots system.

    Attributes:
        business_start: Opening time "HH:MM"
        business_end: Closing time "HH:MM"; a service must end by then
        slot_step_minutes: Grid step in minutes (15/30/60)
        min_duration_minutes: Shortest bookable service
        max_duration_minutes: Longest bookable service
        cancel_min_hours: Cancellation allowed only this far ahead
        reschedule_min_hours: Rescheduling allowed only this far ahead
        deposit_rate: Share of the price charged for the deposit option
        horizon_days: How many days ahead a booking may be placed
        default_timezone: Label stored on appointments
        retention_days: Data retention period after consent
        conflict_mode: "overlap" (interval check) or "exact" (same start time)
    """
    business_start: str = "09:00"
    business_end: str = "18:00"
    slot_step_minutes: int = 30  # 15 / 30 / 60
    min_duration_minutes: int = 30
    max_duration_minutes: int = 480
    cancel_min_hours: int = 24
    reschedule_min_hours: int = 48
    deposit_rate: float = 0.3
    horizon_days: int = 92
    default_timezone: str = "Europe/Paris"
    retention_days: int = 3 * 365
    conflict_mode: str = "overlap"

    def __post_init__(self):
        """Validate configuration."""
        if self.slot_step_minutes not in (15, 30, 60):
            raise ValueError(f"slot_step_minutes must be 15, 30, or 60, got {self.slot_step_minutes}")
        if self.conflict_mode not in ("overlap", "exact"):
            raise ValueError(f"conflict_mode must be 'overlap' or 'exact', got {self.conflict_mode!r}")
        if self.business_start_minutes >= self.business_end_minutes:
            raise ValueError("business_start must be before business_end")

    @property
    def business_start_minutes(self) -> int:
        return time_str_to_minutes(self.business_start)

    @property
    def business_end_minutes(self) -> int:
        return time_str_to_minutes(self.business_end)

    def is_on_grid(self, start_time: str) -> bool:
        """True if start_time falls on a slot boundary inside business hours."""
        start = time_str_to_minutes(start_time)
        if start < self.business_start_minutes or start >= self.business_end_minutes:
            return False
        return (start - self.business_start_minutes) % self.slot_step_minutes == 0

    def fits_business_hours(self, start_time: str, duration_minutes: int) -> bool:
        """True if a service starting at start_time ends by closing time."""
        return time_str_to_minutes(start_time) + duration_minutes <= self.business_end_minutes


@lru_cache
def get_booking_config() -> BookingConfig:
    """
    Get booking configuration (singleton).

    In the future, this can read from environment or database.
    """
    return BookingConfig()
