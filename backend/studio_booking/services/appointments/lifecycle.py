# backend/studio_booking/services/appointments/lifecycle.py
"""
Appointment lifecycle.

    pending ──confirm──▶ confirmed ──complete──▶ completed
       │                   │   └──no-show──▶ no_show
       └───reschedule──────┤
                           └──cancel (≥24h)──▶ cancelled

Each operation is one unit of work: it either commits the full mutation
(status change + audit entry) or raises one AppointmentError and leaves
the store untouched. Storage errors other than the live-slot unique index
propagate after rollback.
"""

import logging
from datetime import date, datetime, timedelta
from math import ceil
from typing import Optional, Union

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...models.appointments import ACTIVE_SLOT_INDEX, ACTIVE_STATUSES, Appointments
from ...schemas.appointments import AppointmentMetadataIn, ClientInfo, DateTimeIn
from ...schemas.services import ServiceSnapshot
from .. import clock
from ..slots.config import BookingConfig, get_booking_config, time_str_to_minutes
from ..slots.generator import intervals_overlap, validate_duration
from ..errors import Conflict, InvalidRequest, InvalidState, NotFound, ValidationError
from .identifiers import generate_appointment_id
from .ics import build_ics
from .payment import PAYMENT_OPTIONS

logger = logging.getLogger(__name__)

DEFAULT_CANCEL_REASON = "Client cancellation"
DEFAULT_RESCHEDULE_REASON = "Rescheduled at the client's request"
FEEDBACK_COMMENT_MAX = 500

AppointmentRef = Union[int, str]


# ──────────────────────────────────────────────────────────────────────────────
# Lookups
# ──────────────────────────────────────────────────────────────────────────────

def get_booking(db: Session, ref: AppointmentRef) -> Appointments:
    """Load by storage id or by public appointment_id."""
    if isinstance(ref, int) or (isinstance(ref, str) and ref.isdigit()):
        appt = db.get(Appointments, int(ref))
    else:
        appt = (
            db.query(Appointments)
            .filter(Appointments.appointment_id == ref)
            .first()
        )
    if not appt:
        raise NotFound(f"Appointment {ref} not found")
    return appt


def list_bookings(
    db: Session,
    status: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Appointments], int, int]:
    """
    Admin listing, latest appointments first.

    Returns:
        (appointments, total, pages)
    """
    query = db.query(Appointments)

    if status:
        query = query.filter(Appointments.status == status)
    if start_date:
        query = query.filter(Appointments.date >= start_date)
    if end_date:
        query = query.filter(Appointments.date <= end_date)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            Appointments.client_first_name.ilike(pattern),
            Appointments.client_last_name.ilike(pattern),
            Appointments.client_email.ilike(pattern),
            Appointments.appointment_id.ilike(pattern),
        ))

    total = query.count()
    items = (
        query.order_by(Appointments.date.desc(), Appointments.start_time.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total, ceil(total / limit) if limit else 0


def find_conflict(
    db: Session,
    target_date: date,
    start_time: str,
    duration_minutes: int,
    exclude_id: Optional[int] = None,
    config: BookingConfig | None = None,
) -> Optional[Appointments]:
    """
    Live appointment occupying the requested slot, if any.

    "exact" mode matches the same (date, start_time) only; "overlap" mode
    rejects any intersecting interval, the same rule the slot listing uses.
    """
    config = config or get_booking_config()

    query = db.query(Appointments).filter(
        Appointments.date == target_date,
        Appointments.status.in_(ACTIVE_STATUSES),
    )
    if exclude_id is not None:
        query = query.filter(Appointments.id != exclude_id)

    if config.conflict_mode == "exact":
        return query.filter(Appointments.start_time == start_time).first()

    start = time_str_to_minutes(start_time)
    end = start + duration_minutes
    for other in query.all():
        other_start = time_str_to_minutes(other.start_time)
        if intervals_overlap(start, end, other_start, other_start + other.service_duration):
            return other
    return None


# ──────────────────────────────────────────────────────────────────────────────
# Guards
# ──────────────────────────────────────────────────────────────────────────────

def starts_at(appt: Appointments) -> datetime:
    return clock.appointment_start(appt.date, appt.start_time)


def can_be_cancelled(
    appt: Appointments,
    now: datetime,
    config: BookingConfig | None = None,
) -> bool:
    config = config or get_booking_config()
    return appt.status == "confirmed" and clock.is_within_window(
        starts_at(appt), now, config.cancel_min_hours
    )


def can_be_rescheduled(
    appt: Appointments,
    now: datetime,
    config: BookingConfig | None = None,
) -> bool:
    config = config or get_booking_config()
    return appt.status in ACTIVE_STATUSES and clock.is_within_window(
        starts_at(appt), now, config.reschedule_min_hours
    )


def _validate_requested_slot(
    target_date: date,
    start_time: str,
    duration_minutes: int,
    now: datetime,
    config: BookingConfig,
) -> None:
    today = now.date()
    if target_date < today:
        raise InvalidRequest("Cannot book in the past")
    if target_date > today + timedelta(days=config.horizon_days):
        raise InvalidRequest(f"Bookings are limited to {config.horizon_days} days ahead")

    start = time_str_to_minutes(start_time)
    if start < config.business_start_minutes or not config.fits_business_hours(start_time, duration_minutes):
        raise InvalidRequest(
            f"Appointment must fit between {config.business_start} and {config.business_end}"
        )


# ──────────────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────────────

def _append_modification(
    appt: Appointments,
    kind: str,
    reason: Optional[str],
    modified_by: str,
    now: datetime,
    old_date_time: Optional[datetime] = None,
    new_date_time: Optional[datetime] = None,
) -> None:
    record = {
        "type": kind,
        "reason": reason,
        "old_date_time": old_date_time.isoformat() if old_date_time else None,
        "new_date_time": new_date_time.isoformat() if new_date_time else None,
        "modified_at": now.isoformat(),
        "modified_by": modified_by,
    }
    # New list so the JSON column is flagged dirty; existing entries are kept as-is
    appt.modifications = [*(appt.modifications or []), record]


def _is_slot_violation(error: IntegrityError) -> bool:
    """True when the live-slot unique index rejected the write."""
    message = str(error.orig)
    # PostgreSQL names the index; SQLite lists its columns
    return ACTIVE_SLOT_INDEX in message or (
        "UNIQUE constraint failed: appointments.date, appointments.start_time" in message
    )


def _commit(db: Session, conflict_detail: str = "Slot no longer available") -> None:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if _is_slot_violation(e):
            raise Conflict(conflict_detail) from e
        logger.error(f"Integrity error on appointments: {e.orig}")
        raise
    except SQLAlchemyError:
        db.rollback()
        raise


def _validate_score(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
        raise ValidationError(f"{name} must be an integer between 1 and 5")


# ──────────────────────────────────────────────────────────────────────────────
# Operations
# ──────────────────────────────────────────────────────────────────────────────

def create_booking(
    db: Session,
    service: ServiceSnapshot,
    date_time: DateTimeIn,
    client: ClientInfo,
    payment_option: str,
    metadata: AppointmentMetadataIn,
    now: datetime | None = None,
    config: BookingConfig | None = None,
) -> Appointments:
    """
    Book a slot for a client.

    Raises:
        ValidationError: no RGPD consent, unknown payment option
        InvalidRequest: past date, beyond horizon, outside business hours,
                        duration outside the allowed range
        Conflict: slot already taken
    """
    config = config or get_booking_config()
    now = now or clock.now()

    if not metadata.rgpd_consent:
        raise ValidationError("RGPD consent is required")
    if payment_option not in PAYMENT_OPTIONS:
        raise ValidationError(f"Invalid payment option: {payment_option}")
    if service.price < 0:
        raise ValidationError("Service price must be positive")

    validate_duration(service.duration, config)
    _validate_requested_slot(date_time.date, date_time.start_time, service.duration, now, config)

    if find_conflict(db, date_time.date, date_time.start_time, service.duration, config=config):
        raise Conflict("Slot no longer available")

    location = client.location.model_dump() if client.location else None

    appt = Appointments(
        appointment_id=generate_appointment_id(now),
        service_id=service.id,
        service_name=service.name,
        service_category=service.category,
        service_duration=service.duration,
        service_price=service.price,
        date=date_time.date,
        start_time=date_time.start_time,
        timezone=date_time.timezone or config.default_timezone,
        client_first_name=client.first_name,
        client_last_name=client.last_name,
        client_email=client.email,
        client_phone=client.phone,
        client_company=client.company,
        client_project_type=client.project_type,
        client_budget=client.budget,
        client_message=client.message,
        client_location=location,
        status="pending",
        payment_option=payment_option,
        payment_status="pending",
        emails_sent=[],
        modifications=[],
        internal_notes=[],
        source=metadata.source,
        user_agent=metadata.user_agent,
        ip_address=metadata.ip_address,
        referrer=metadata.referrer,
        conversion_source=metadata.conversion_source,
        campaign_id=metadata.campaign_id,
        rgpd_consent=True,
        consent_date=now,
        data_retention_until=now + timedelta(days=config.retention_days),
        created_at=now,
        updated_at=now,
    )
    db.add(appt)
    _commit(db)
    db.refresh(appt)

    logger.info(
        f"Appointment {appt.appointment_id} created: {appt.service_name} "
        f"on {appt.date.isoformat()} {appt.start_time}-{appt.end_time}"
    )
    return appt


def confirm_booking(
    db: Session,
    ref: AppointmentRef,
    payment_reference: Optional[str] = None,
    now: datetime | None = None,
) -> Appointments:
    """pending → confirmed; a payment reference marks the payment as paid."""
    now = now or clock.now()
    appt = get_booking(db, ref)

    if appt.status != "pending":
        raise InvalidState(f"Appointment cannot be confirmed from status '{appt.status}'")

    appt.status = "confirmed"
    if payment_reference:
        appt.payment_reference = payment_reference
        appt.payment_status = "paid"
        appt.paid_at = now
    appt.confirmation_sent = True
    appt.updated_at = now
    _commit(db)

    logger.info(f"Appointment {appt.appointment_id} confirmed (payment={appt.payment_status})")
    return appt


def cancel_booking(
    db: Session,
    ref: AppointmentRef,
    reason: Optional[str] = None,
    now: datetime | None = None,
    config: BookingConfig | None = None,
) -> Appointments:
    """
    confirmed → cancelled, at least cancel_min_hours before the start.

    A paid appointment is flagged refunded; moving the money is up to the
    payment provider.
    """
    config = config or get_booking_config()
    now = now or clock.now()
    appt = get_booking(db, ref)

    if not can_be_cancelled(appt, now, config):
        raise InvalidState(
            f"Appointment can no longer be cancelled "
            f"(must be confirmed and at least {config.cancel_min_hours}h ahead)"
        )

    appt.status = "cancelled"
    _append_modification(
        appt,
        kind="cancel",
        reason=reason or DEFAULT_CANCEL_REASON,
        modified_by="client",
        now=now,
        old_date_time=starts_at(appt),
    )
    if appt.payment_status == "paid":
        appt.payment_status = "refunded"
        appt.refunded_at = now
    appt.updated_at = now
    _commit(db)

    logger.info(f"Appointment {appt.appointment_id} cancelled: {reason or DEFAULT_CANCEL_REASON}")
    return appt


def reschedule_booking(
    db: Session,
    ref: AppointmentRef,
    new_date: date,
    new_start_time: str,
    reason: Optional[str] = None,
    now: datetime | None = None,
    config: BookingConfig | None = None,
) -> Appointments:
    """
    Move a live appointment at least reschedule_min_hours before its start.

    Status is unchanged; the move is recorded with old and new date-times.
    """
    config = config or get_booking_config()
    now = now or clock.now()
    appt = get_booking(db, ref)

    if not can_be_rescheduled(appt, now, config):
        raise InvalidState(
            f"Appointment can no longer be rescheduled "
            f"(must be pending or confirmed and at least {config.reschedule_min_hours}h ahead)"
        )

    _validate_requested_slot(new_date, new_start_time, appt.service_duration, now, config)

    conflict = find_conflict(
        db, new_date, new_start_time, appt.service_duration,
        exclude_id=appt.id, config=config,
    )
    if conflict:
        raise Conflict("New slot is not available")

    old_start = starts_at(appt)
    appt.date = new_date
    appt.start_time = new_start_time
    _append_modification(
        appt,
        kind="reschedule",
        reason=reason or DEFAULT_RESCHEDULE_REASON,
        modified_by="client",
        now=now,
        old_date_time=old_start,
        new_date_time=starts_at(appt),
    )
    appt.updated_at = now
    _commit(db, "New slot is not available")

    logger.info(
        f"Appointment {appt.appointment_id} rescheduled: "
        f"{old_start.isoformat()} → {starts_at(appt).isoformat()}"
    )
    return appt


def add_feedback(
    db: Session,
    ref: AppointmentRef,
    rating: int,
    comment: Optional[str] = None,
    satisfaction: Optional[int] = None,
    would_recommend: Optional[bool] = None,
    follow_up_needed: Optional[bool] = None,
    now: datetime | None = None,
) -> Appointments:
    """Record client feedback; only completed appointments accept it."""
    now = now or clock.now()
    appt = get_booking(db, ref)

    if appt.status != "completed":
        raise InvalidState("Feedback can only be added to completed appointments")

    _validate_score("rating", rating)
    if satisfaction is not None:
        _validate_score("satisfaction", satisfaction)
    if comment is not None and len(comment) > FEEDBACK_COMMENT_MAX:
        raise ValidationError(f"Comment cannot exceed {FEEDBACK_COMMENT_MAX} characters")

    appt.feedback_rating = rating
    appt.feedback_comment = comment
    appt.feedback_satisfaction = satisfaction
    appt.feedback_would_recommend = would_recommend
    appt.feedback_follow_up_needed = follow_up_needed
    appt.feedback_submitted_at = now
    appt.updated_at = now
    _commit(db)

    logger.info(f"Feedback added to {appt.appointment_id}: rating={rating}")
    return appt


def generate_calendar_invite(
    db: Session,
    ref: AppointmentRef,
    stamp: datetime | None = None,
) -> str:
    """Render the appointment's ICS invite and flag it as generated."""
    appt = get_booking(db, ref)
    ics = build_ics(appt, stamp)

    if not appt.ics_generated:
        appt.ics_generated = True
        _commit(db)
        logger.info(f"Calendar invite generated for {appt.appointment_id}")
    return ics


# ──────────────────────────────────────────────────────────────────────────────
# Admin operations
# ──────────────────────────────────────────────────────────────────────────────

def _close_confirmed(
    db: Session,
    ref: AppointmentRef,
    new_status: str,
    reason: str,
    now: datetime | None,
) -> Appointments:
    now = now or clock.now()
    appt = get_booking(db, ref)

    if appt.status != "confirmed":
        raise InvalidState(f"Only confirmed appointments can be marked {new_status}")

    appt.status = new_status
    _append_modification(appt, kind="modify", reason=reason, modified_by="admin", now=now)
    appt.updated_at = now
    _commit(db)

    logger.info(f"Appointment {appt.appointment_id} marked {new_status}")
    return appt


def complete_booking(db: Session, ref: AppointmentRef, now: datetime | None = None) -> Appointments:
    """confirmed → completed (admin)."""
    return _close_confirmed(db, ref, "completed", "Marked completed", now)


def mark_no_show(db: Session, ref: AppointmentRef, now: datetime | None = None) -> Appointments:
    """confirmed → no_show (admin)."""
    return _close_confirmed(db, ref, "no_show", "Client did not show up", now)


def add_internal_note(
    db: Session,
    ref: AppointmentRef,
    note: str,
    added_by: str,
    is_private: bool = True,
    now: datetime | None = None,
) -> Appointments:
    now = now or clock.now()
    appt = get_booking(db, ref)

    entry = {
        "note": note,
        "added_by": added_by,
        "added_at": now.isoformat(),
        "is_private": is_private,
    }
    appt.internal_notes = [*(appt.internal_notes or []), entry]
    appt.updated_at = now
    _commit(db)
    return appt
