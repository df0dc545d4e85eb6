# backend/studio_booking/routers/admin.py
"""
Admin API: appointment listing, status closing, internal notes, statistics.

Every route requires the X-Admin-Key header to match settings.admin_api_key.
An empty admin_api_key disables the admin API entirely.
"""

import logging
import secrets
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..schemas.appointments import (
    AppointmentListResponse,
    AppointmentRead,
    AppointmentStatus,
    InternalNoteCreate,
    Pagination,
)
from ..schemas.stats import StatsResponse
from ..services import appointments as booking
from ..services import statistics

logger = logging.getLogger(__name__)


def require_admin(x_admin_key: str | None = Header(None)) -> None:
    expected = settings.admin_api_key
    if not expected or not x_admin_key or not secrets.compare_digest(x_admin_key, expected):
        logger.warning("Admin endpoint called without a valid X-Admin-Key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden",
        )


router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/appointments", response_model=AppointmentListResponse)
def list_appointments(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status_filter: Optional[AppointmentStatus] = Query(None, alias="status"),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    search: Optional[str] = Query(None, min_length=2),
    db: Session = Depends(get_db),
):
    items, total, pages = booking.list_bookings(
        db,
        status=status_filter,
        start_date=start_date,
        end_date=end_date,
        search=search.strip() if search else None,
        page=page,
        limit=limit,
    )
    return AppointmentListResponse(
        appointments=[AppointmentRead.from_model(appt, include_internal=True) for appt in items],
        pagination=Pagination(current=page, pages=pages, total=total),
    )


@router.get("/appointments/{ref}", response_model=AppointmentRead)
def get_appointment(ref: str, db: Session = Depends(get_db)):
    return AppointmentRead.from_model(booking.get_booking(db, ref), include_internal=True)


@router.post("/appointments/{ref}/complete", response_model=AppointmentRead)
def complete_appointment(ref: str, db: Session = Depends(get_db)):
    appt = booking.complete_booking(db, ref)
    return AppointmentRead.from_model(appt, include_internal=True)


@router.post("/appointments/{ref}/no-show", response_model=AppointmentRead)
def mark_no_show(ref: str, db: Session = Depends(get_db)):
    appt = booking.mark_no_show(db, ref)
    return AppointmentRead.from_model(appt, include_internal=True)


@router.post(
    "/appointments/{ref}/notes",
    response_model=AppointmentRead,
    status_code=status.HTTP_201_CREATED,
)
def add_note(ref: str, data: InternalNoteCreate, db: Session = Depends(get_db)):
    appt = booking.add_internal_note(
        db, ref, note=data.note, added_by=data.added_by, is_private=data.is_private
    )
    return AppointmentRead.from_model(appt, include_internal=True)


@router.get("/stats", response_model=StatsResponse)
def get_stats(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
):
    start, end = statistics.resolve_range(start_date, end_date)
    return StatsResponse(
        start_date=start,
        end_date=end,
        overview=statistics.overview(db, start, end),
        by_service=statistics.by_service(db, start, end),
        daily=statistics.daily(db, start, end),
    )
