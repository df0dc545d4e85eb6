# backend/studio_booking/services/clock.py
"""
Time helpers for booking windows.

All datetimes are naive local time of the business; the appointment
timezone is carried as a label only.
"""

from datetime import date, datetime, time


def now() -> datetime:
    return datetime.now()


def hours_until(target: datetime, now: datetime) -> float:
    """Hours from now to target (negative once target has passed)."""
    return (target - now).total_seconds() / 3600


def is_within_window(target: datetime, now: datetime, min_hours: float) -> bool:
    """True if target is at least min_hours ahead of now."""
    return hours_until(target, now) >= min_hours


def appointment_start(day: date, start_time: str) -> datetime:
    """Combine a calendar date and "HH:MM" into a datetime."""
    hour, minute = start_time.split(":")
    return datetime.combine(day, time(int(hour), int(minute)))
