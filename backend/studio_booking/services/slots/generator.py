# backend/studio_booking/services/slots/generator.py
"""
Day slot generation.

Candidate starts lie on the slot grid between business_start and
business_end, keeping only those where start + duration <= business_end.
A candidate is available when it overlaps no live (pending/confirmed)
appointment of that day. Intervals are half-open: [s1, e1) and [s2, e2)
overlap iff s1 < e2 and s2 < e1, so back-to-back bookings are fine.

Nothing is cached: every call reads the store again.
"""

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Iterator, Optional

from sqlalchemy.orm import Session

from ..errors import InvalidRequest
from .config import BookingConfig, get_booking_config, minutes_to_time_str, time_str_to_minutes


@dataclass(frozen=True)
class Slot:
    start_time: str
    end_time: str
    available: bool


def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    return start_a < end_b and start_b < end_a


def validate_duration(duration_minutes: int, config: BookingConfig) -> None:
    if not config.min_duration_minutes <= duration_minutes <= config.max_duration_minutes:
        raise InvalidRequest(
            f"Duration must be between {config.min_duration_minutes} "
            f"and {config.max_duration_minutes} minutes"
        )


def generate_slots(
    duration_minutes: int,
    busy_intervals: Iterable[tuple[int, int]],
    config: BookingConfig | None = None,
) -> Iterator[Slot]:
    """
    Yield the day's slots in chronological order.

    Args:
        duration_minutes: Requested service duration
        busy_intervals: (start_min, end_min) pairs of live appointments
        config: Booking configuration
    """
    config = config or get_booking_config()
    validate_duration(duration_minutes, config)

    busy = list(busy_intervals)
    step = config.slot_step_minutes
    close = config.business_end_minutes

    t = config.business_start_minutes
    while t + duration_minutes <= close:
        end = t + duration_minutes
        available = not any(
            intervals_overlap(t, end, busy_start, busy_end)
            for busy_start, busy_end in busy
        )
        yield Slot(
            start_time=minutes_to_time_str(t),
            end_time=minutes_to_time_str(end),
            available=available,
        )
        t += step


def calculate_available_slots(
    db: Session,
    target_date: date,
    duration_minutes: int,
    config: BookingConfig | None = None,
) -> list[Slot]:
    """
    Slots for target_date, each tagged available/unavailable.

    Past dates are not rejected here; callers decide.
    """
    config = config or get_booking_config()
    validate_duration(duration_minutes, config)

    busy = get_busy_intervals(db, target_date)
    return list(generate_slots(duration_minutes, busy, config))


# ── Database helpers ─────────────────────────────────────────────────────


def get_busy_intervals(
    db: Session,
    target_date: date,
    exclude_id: Optional[int] = None,
) -> list[tuple[int, int]]:
    """(start_min, end_min) of live appointments on target_date."""
    from ...models.appointments import ACTIVE_STATUSES, Appointments

    query = db.query(Appointments.start_time, Appointments.service_duration).filter(
        Appointments.date == target_date,
        Appointments.status.in_(ACTIVE_STATUSES),
    )
    if exclude_id is not None:
        query = query.filter(Appointments.id != exclude_id)

    intervals = []
    for start_time, duration in query.order_by(Appointments.start_time).all():
        start_min = time_str_to_minutes(start_time)
        intervals.append((start_min, start_min + duration))
    return intervals
