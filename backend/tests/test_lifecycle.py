"""Tests for the appointment lifecycle: create, confirm, cancel, reschedule, feedback."""

from datetime import date, datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from conftest import DAY, NOW, make_service
from studio_booking.models import Appointments
from studio_booking.services.appointments import (
    Conflict,
    InvalidRequest,
    InvalidState,
    NotFound,
    ValidationError,
    add_feedback,
    add_internal_note,
    cancel_booking,
    complete_booking,
    confirm_booking,
    get_booking,
    list_bookings,
    mark_no_show,
    reschedule_booking,
)
from studio_booking.services.appointments import lifecycle
from studio_booking.services.slots import BookingConfig


def _confirmed(db, book, **kwargs):
    appt = book(**kwargs)
    return confirm_booking(db, appt.id, now=NOW)


def _completed(db, book, **kwargs):
    appt = _confirmed(db, book, **kwargs)
    return complete_booking(db, appt.id, now=NOW)


# ──────────────────────────────────────────────────────────────────────────────
# create
# ──────────────────────────────────────────────────────────────────────────────

def test_create_snapshots_service_and_starts_pending(book):
    appt = book(DAY, "10:00", service=make_service(id="audit", name="Audit", duration=120, price=300))

    assert appt.status == "pending"
    assert appt.payment_status == "pending"
    assert appt.service_id == "audit"
    assert appt.service_duration == 120
    assert appt.end_time == "12:00"
    assert appt.appointment_id.startswith("APT-")
    assert appt.modifications == []
    assert appt.rgpd_consent is True
    assert appt.consent_date == NOW
    assert appt.timezone == "Europe/Paris"


def test_create_without_consent_is_rejected(db, book):
    with pytest.raises(ValidationError):
        book(consent=False)

    assert db.query(Appointments).count() == 0


def test_create_in_the_past_is_rejected(book):
    with pytest.raises(InvalidRequest, match="past"):
        book(NOW.date() - timedelta(days=1), "10:00")


def test_create_later_today_is_allowed(book):
    appt = book(NOW.date(), "15:00")
    assert appt.date == NOW.date()


def test_create_beyond_horizon_is_rejected(book):
    with pytest.raises(InvalidRequest):
        book(NOW.date() + timedelta(days=93), "10:00")


@pytest.mark.parametrize("start_time", ["08:30", "17:30"])
def test_create_outside_business_hours_is_rejected(book, start_time):
    with pytest.raises(InvalidRequest):
        book(DAY, start_time)


def test_create_with_duration_out_of_range_is_rejected(book):
    with pytest.raises(InvalidRequest):
        book(DAY, "09:00", service=make_service(duration=20))


def test_create_with_unknown_payment_option_is_rejected(book):
    with pytest.raises(ValidationError):
        book(payment_option="crypto")


def test_same_slot_cannot_be_booked_twice(book):
    book(DAY, "10:00")

    with pytest.raises(Conflict):
        book(DAY, "10:00")


def test_overlapping_slot_is_a_conflict_by_default(book):
    book(DAY, "10:00", service=make_service(duration=120))

    with pytest.raises(Conflict):
        book(DAY, "11:00")


def test_exact_mode_only_rejects_identical_start(book):
    config = BookingConfig(conflict_mode="exact")
    book(DAY, "10:00", service=make_service(duration=120), config=config)

    appt = book(DAY, "11:00", config=config)
    assert appt.start_time == "11:00"

    with pytest.raises(Conflict):
        book(DAY, "10:00", config=config)


def test_adjacent_slots_do_not_conflict(book):
    book(DAY, "10:00")
    appt = book(DAY, "11:00")

    assert appt.status == "pending"


def test_cancelled_slot_can_be_booked_again(db, book):
    appt = _confirmed(db, book)
    cancel_booking(db, appt.id, now=NOW)

    again = book(DAY, "10:00")
    assert again.status == "pending"


def test_concurrent_booking_loses_on_unique_index(db, book, monkeypatch):
    book(DAY, "10:00")
    # Second request passed its check before the first committed
    monkeypatch.setattr(lifecycle, "find_conflict", lambda *args, **kwargs: None)

    with pytest.raises(Conflict):
        book(DAY, "10:00")

    assert db.query(Appointments).count() == 1


def test_other_integrity_errors_are_not_slot_conflicts(db, book, monkeypatch):
    monkeypatch.setattr(lifecycle, "generate_appointment_id", lambda now=None: "APT-1-duplicate")
    book(DAY, "10:00")

    with pytest.raises(IntegrityError):
        book(DAY, "14:00")

    assert db.query(Appointments).count() == 1


# ──────────────────────────────────────────────────────────────────────────────
# lookups
# ──────────────────────────────────────────────────────────────────────────────

def test_get_booking_by_public_reference(db, book):
    appt = book()

    assert get_booking(db, appt.appointment_id).id == appt.id
    assert get_booking(db, str(appt.id)).id == appt.id


def test_get_unknown_booking_raises(db):
    with pytest.raises(NotFound):
        get_booking(db, "APT-0-unknown")
    with pytest.raises(NotFound):
        confirm_booking(db, 999, now=NOW)


def test_list_bookings_filters_and_paginates(db, book):
    book(DAY, "09:00")
    book(DAY, "11:00")
    other = _confirmed(db, book, day=DAY + timedelta(days=1), start_time="14:00")

    items, total, pages = list_bookings(db, page=1, limit=2)
    assert total == 3
    assert pages == 2
    # latest first
    assert items[0].id == other.id

    items, total, _ = list_bookings(db, status="confirmed")
    assert [a.id for a in items] == [other.id]

    items, total, _ = list_bookings(db, search="camille")
    assert total == 3

    items, total, _ = list_bookings(db, start_date=DAY, end_date=DAY)
    assert total == 2


# ──────────────────────────────────────────────────────────────────────────────
# confirm
# ──────────────────────────────────────────────────────────────────────────────

def test_confirm_with_payment_reference_marks_paid(db, book):
    appt = book(payment_option="full")

    confirmed = confirm_booking(db, appt.id, payment_reference="pi_123", now=NOW)

    assert confirmed.status == "confirmed"
    assert confirmed.payment_status == "paid"
    assert confirmed.payment_reference == "pi_123"
    assert confirmed.paid_at == NOW
    assert confirmed.confirmation_sent is True


def test_confirm_without_reference_leaves_payment_pending(db, book):
    appt = book()

    confirmed = confirm_booking(db, appt.id, now=NOW)

    assert confirmed.payment_status == "pending"
    assert confirmed.paid_at is None


def test_confirm_twice_is_invalid(db, book):
    appt = _confirmed(db, book)

    with pytest.raises(InvalidState):
        confirm_booking(db, appt.id, now=NOW)


# ──────────────────────────────────────────────────────────────────────────────
# cancel
# ──────────────────────────────────────────────────────────────────────────────

def test_cancel_just_inside_window_is_refused(db, book):
    appt = _confirmed(db, book, day=DAY, start_time="10:00")
    now = datetime(2024, 4, 30, 10, 1)  # 23h59m before start

    with pytest.raises(InvalidState):
        cancel_booking(db, appt.id, now=now)

    db.refresh(appt)
    assert appt.status == "confirmed"
    assert appt.modifications == []


def test_cancel_exactly_at_window_boundary_succeeds(db, book):
    appt = _confirmed(db, book, day=DAY, start_time="10:00")
    now = datetime(2024, 4, 30, 10, 0)  # 24h0m before start

    cancelled = cancel_booking(db, appt.id, reason="Schedule change", now=now)

    assert cancelled.status == "cancelled"
    [record] = cancelled.modifications
    assert record["type"] == "cancel"
    assert record["reason"] == "Schedule change"
    assert record["old_date_time"] == "2024-05-01T10:00:00"
    assert record["modified_by"] == "client"


def test_cancel_uses_default_reason(db, book):
    appt = _confirmed(db, book)

    cancelled = cancel_booking(db, appt.id, now=NOW)

    assert cancelled.modifications[-1]["reason"] == lifecycle.DEFAULT_CANCEL_REASON


def test_pending_appointment_cannot_be_cancelled(db, book):
    appt = book()

    with pytest.raises(InvalidState):
        cancel_booking(db, appt.id, now=NOW)


def test_cancelling_paid_appointment_flags_refund(db, book):
    appt = book(payment_option="full")
    confirm_booking(db, appt.id, payment_reference="pi_456", now=NOW)

    cancelled = cancel_booking(db, appt.id, now=NOW)

    assert cancelled.payment_status == "refunded"
    assert cancelled.refunded_at == NOW


def test_custom_cancel_window(db, book):
    config = BookingConfig(cancel_min_hours=2)
    appt = _confirmed(db, book)
    now = datetime(2024, 5, 1, 7, 30)

    assert cancel_booking(db, appt.id, now=now, config=config).status == "cancelled"


# ──────────────────────────────────────────────────────────────────────────────
# reschedule
# ──────────────────────────────────────────────────────────────────────────────

def test_reschedule_records_old_and_new_times(db, book):
    appt = _confirmed(db, book, day=DAY, start_time="10:00")

    moved = reschedule_booking(db, appt.id, date(2024, 5, 3), "14:00", now=NOW)

    assert moved.status == "confirmed"
    assert moved.date == date(2024, 5, 3)
    assert moved.start_time == "14:00"
    assert moved.end_time == "15:00"
    [record] = moved.modifications
    assert record["type"] == "reschedule"
    assert record["old_date_time"] == "2024-05-01T10:00:00"
    assert record["new_date_time"] == "2024-05-03T14:00:00"


def test_reschedule_keeps_pending_status(db, book):
    appt = book()

    moved = reschedule_booking(db, appt.id, DAY, "15:00", now=NOW)

    assert moved.status == "pending"


def test_reschedule_inside_48h_is_refused(db, book):
    appt = _confirmed(db, book, day=DAY, start_time="10:00")
    now = datetime(2024, 4, 29, 10, 1)

    with pytest.raises(InvalidState):
        reschedule_booking(db, appt.id, date(2024, 5, 3), "14:00", now=now)


def test_reschedule_onto_taken_slot_is_a_conflict(db, book):
    first = book(DAY, "10:00")
    book(DAY, "14:00")

    with pytest.raises(Conflict):
        reschedule_booking(db, first.id, DAY, "14:30", now=NOW)

    db.refresh(first)
    assert first.start_time == "10:00"
    assert first.modifications == []


def test_reschedule_may_overlap_its_own_slot(db, book):
    appt = book(DAY, "10:00", service=make_service(duration=120))

    moved = reschedule_booking(db, appt.id, DAY, "11:00", now=NOW)

    assert moved.start_time == "11:00"


def test_reschedule_outside_hours_is_rejected(db, book):
    appt = book()

    with pytest.raises(InvalidRequest):
        reschedule_booking(db, appt.id, DAY, "17:30", now=NOW)


def test_audit_trail_only_grows(db, book):
    appt = _confirmed(db, book)
    reschedule_booking(db, appt.id, date(2024, 5, 3), "14:00", now=NOW)
    first = dict(appt.modifications[0])

    cancel_booking(db, appt.id, now=NOW)

    assert len(appt.modifications) == 2
    assert appt.modifications[0] == first


# ──────────────────────────────────────────────────────────────────────────────
# feedback
# ──────────────────────────────────────────────────────────────────────────────

def test_feedback_requires_completed_appointment(db, book):
    appt = book()

    with pytest.raises(InvalidState):
        add_feedback(db, appt.id, rating=5, now=NOW)


def test_feedback_on_completed_appointment(db, book):
    appt = _completed(db, book)

    updated = add_feedback(
        db, appt.id, rating=5, comment="Très utile", satisfaction=4,
        would_recommend=True, now=NOW,
    )

    assert updated.feedback_rating == 5
    assert updated.feedback_satisfaction == 4
    assert updated.feedback_would_recommend is True
    assert updated.feedback_submitted_at == NOW


@pytest.mark.parametrize("rating", [0, 6, True])
def test_feedback_rating_out_of_range(db, book, rating):
    appt = _completed(db, book)

    with pytest.raises(ValidationError):
        add_feedback(db, appt.id, rating=rating, now=NOW)


def test_feedback_comment_too_long(db, book):
    appt = _completed(db, book)

    with pytest.raises(ValidationError):
        add_feedback(db, appt.id, rating=4, comment="x" * 501, now=NOW)


# ──────────────────────────────────────────────────────────────────────────────
# admin
# ──────────────────────────────────────────────────────────────────────────────

def test_complete_and_no_show_require_confirmed(db, book):
    appt = book()

    with pytest.raises(InvalidState):
        complete_booking(db, appt.id, now=NOW)
    with pytest.raises(InvalidState):
        mark_no_show(db, appt.id, now=NOW)


def test_mark_no_show_records_admin_modification(db, book):
    appt = _confirmed(db, book)

    updated = mark_no_show(db, appt.id, now=NOW)

    assert updated.status == "no_show"
    assert updated.modifications[-1]["type"] == "modify"
    assert updated.modifications[-1]["modified_by"] == "admin"


def test_completed_appointment_is_final(db, book):
    appt = _completed(db, book)

    with pytest.raises(InvalidState):
        cancel_booking(db, appt.id, now=NOW)
    with pytest.raises(InvalidState):
        reschedule_booking(db, appt.id, date(2024, 5, 3), "14:00", now=NOW)


def test_internal_notes_are_appended(db, book):
    appt = book()

    add_internal_note(db, appt.id, "Prefers video call", added_by="alice", now=NOW)
    updated = add_internal_note(db, appt.id, "Sent agenda", added_by="bob", is_private=False, now=NOW)

    assert [n["note"] for n in updated.internal_notes] == ["Prefers video call", "Sent agenda"]
    assert updated.internal_notes[1]["is_private"] is False
    assert updated.internal_notes[0]["added_at"] == NOW.isoformat()
