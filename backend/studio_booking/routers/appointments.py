# backend/studio_booking/routers/appointments.py
"""
Public appointment endpoints.

GET  /appointments/available-slots   slots of a day for a duration
POST /appointments                    book; the response carries the ICS invite
GET  /appointments/{ref}              details (storage id or APT-… reference)
GET  /appointments/{ref}/ics          calendar invite (text/calendar)
POST /appointments/{ref}/confirm
POST /appointments/{ref}/cancel
POST /appointments/{ref}/reschedule
POST /appointments/{ref}/feedback

Service errors (NotFound, Conflict, …) are turned into responses by the
handler registered in main.py.
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.appointments import (
    AppointmentCreate,
    AppointmentCreated,
    AppointmentRead,
    CancelRequest,
    ConfirmRequest,
    FeedbackCreate,
    FeedbackRead,
    RescheduleRequest,
)
from ..schemas.slots import SlotInfo, SlotsDayResponse
from ..services import appointments as booking
from ..services.catalog import ServiceCatalog, get_service_catalog
from ..services.errors import InvalidRequest
from ..services.events import appointment_payload, emit_event
from ..services.slots import calculate_available_slots, get_booking_config

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.get("/available-slots", response_model=SlotsDayResponse)
def get_available_slots(
    target_date: date = Query(..., alias="date"),
    duration: int = Query(60, ge=30, le=480),
    db: Session = Depends(get_db),
):
    config = get_booking_config()

    if target_date < date.today():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot book in the past",
        )

    slots = calculate_available_slots(db, target_date, duration, config)

    return SlotsDayResponse(
        date=target_date,
        duration=duration,
        slot_step_minutes=config.slot_step_minutes,
        slots=[SlotInfo.model_validate(slot) for slot in slots],
    )


@router.post("/", response_model=AppointmentCreated, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: AppointmentCreate,
    request: Request,
    db: Session = Depends(get_db),
    catalog: ServiceCatalog = Depends(get_service_catalog),
):
    service = catalog.get(data.service_id)
    if service is None:
        raise InvalidRequest(f"Unknown service: {data.service_id}")

    metadata = data.metadata.model_copy(update={
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("User-Agent"),
    })

    appt = booking.create_booking(
        db,
        service=service.snapshot(),
        date_time=data.date_time,
        client=data.client,
        payment_option=data.payment_option,
        metadata=metadata,
    )
    ics = booking.generate_calendar_invite(db, appt.id)
    emit_event("appointment_created", {**appointment_payload(appt), "ics": ics})

    created = AppointmentRead.from_model(appt)
    return AppointmentCreated(**created.model_dump(), ics_file=ics)


@router.get("/{ref}", response_model=AppointmentRead)
def get_appointment(ref: str, db: Session = Depends(get_db)):
    return AppointmentRead.from_model(booking.get_booking(db, ref))


@router.get("/{ref}/ics")
def download_invite(ref: str, db: Session = Depends(get_db)):
    appt = booking.get_booking(db, ref)
    ics = booking.generate_calendar_invite(db, appt.id)
    return Response(
        content=ics,
        media_type="text/calendar",
        headers={"Content-Disposition": f'attachment; filename="{appt.appointment_id}.ics"'},
    )


@router.post("/{ref}/confirm", response_model=AppointmentRead)
def confirm_appointment(
    ref: str,
    data: ConfirmRequest | None = None,
    db: Session = Depends(get_db),
):
    payment_reference = data.payment_reference if data else None
    appt = booking.confirm_booking(db, ref, payment_reference=payment_reference)
    emit_event("appointment_confirmed", appointment_payload(appt))
    return AppointmentRead.from_model(appt)


@router.post("/{ref}/cancel", response_model=AppointmentRead)
def cancel_appointment(
    ref: str,
    data: CancelRequest | None = None,
    db: Session = Depends(get_db),
):
    reason = data.reason if data else None
    appt = booking.cancel_booking(db, ref, reason=reason)
    emit_event("appointment_cancelled", appointment_payload(appt))
    return AppointmentRead.from_model(appt)


@router.post("/{ref}/reschedule", response_model=AppointmentRead)
def reschedule_appointment(
    ref: str,
    data: RescheduleRequest,
    db: Session = Depends(get_db),
):
    appt = booking.reschedule_booking(
        db,
        ref,
        new_date=data.new_date,
        new_start_time=data.new_start_time,
        reason=data.reason,
    )
    emit_event("appointment_rescheduled", appointment_payload(appt))
    return AppointmentRead.from_model(appt)


@router.post("/{ref}/feedback", response_model=FeedbackRead)
def add_feedback(
    ref: str,
    data: FeedbackCreate,
    db: Session = Depends(get_db),
):
    appt = booking.add_feedback(
        db,
        ref,
        rating=data.rating,
        comment=data.comment,
        satisfaction=data.satisfaction,
        would_recommend=data.would_recommend,
        follow_up_needed=data.follow_up_needed,
    )
    return AppointmentRead.from_model(appt).feedback
