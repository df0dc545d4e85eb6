# backend/studio_booking/services/statistics.py
"""
Read-only appointment statistics over an inclusive date range.

- overview: counts per status, paid revenue, average rating
- by_service: count / revenue / average rating per service name
- daily: count / revenue per calendar day

Aggregation runs in the database on every call; nothing is cached.
"""

from datetime import date, timedelta
from typing import Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from ..models.appointments import Appointments
from ..schemas.stats import DailyStats, ServiceStats, StatsOverview

DEFAULT_RANGE_DAYS = 30


def resolve_range(
    start_date: Optional[date],
    end_date: Optional[date],
    today: Optional[date] = None,
) -> tuple[date, date]:
    """Fill missing bounds: end defaults to today, start to end − 30 days."""
    today = today or date.today()
    end = end_date or today
    start = start_date or (end - timedelta(days=DEFAULT_RANGE_DAYS))
    if start > end:
        start, end = end, start
    return start, end


def _in_range(start_date: date, end_date: date):
    return Appointments.date.between(start_date, end_date)


def _count_status(status: str):
    return func.sum(case((Appointments.status == status, 1), else_=0))


def overview(db: Session, start_date: date, end_date: date) -> StatsOverview:
    row = (
        db.query(
            func.count(Appointments.id),
            _count_status("confirmed"),
            _count_status("cancelled"),
            _count_status("completed"),
            _count_status("no_show"),
            func.sum(case(
                (Appointments.payment_status == "paid", Appointments.payment_amount),
                else_=0,
            )),
            func.avg(Appointments.feedback_rating),
        )
        .filter(_in_range(start_date, end_date))
        .one()
    )
    total, confirmed, cancelled, completed, no_show, revenue, avg_rating = row

    return StatsOverview(
        total_appointments=total or 0,
        confirmed_appointments=confirmed or 0,
        cancelled_appointments=cancelled or 0,
        completed_appointments=completed or 0,
        no_show_appointments=no_show or 0,
        total_revenue=float(revenue or 0),
        average_rating=float(avg_rating) if avg_rating is not None else None,
    )


def by_service(db: Session, start_date: date, end_date: date) -> list[ServiceStats]:
    count = func.count(Appointments.id).label("count")
    rows = (
        db.query(
            Appointments.service_name,
            count,
            func.sum(Appointments.payment_amount),
            func.avg(Appointments.feedback_rating),
        )
        .filter(_in_range(start_date, end_date))
        .group_by(Appointments.service_name)
        .order_by(count.desc(), Appointments.service_name)
        .all()
    )
    return [
        ServiceStats(
            service_name=name,
            count=n,
            revenue=float(revenue or 0),
            average_rating=float(avg_rating) if avg_rating is not None else None,
        )
        for name, n, revenue, avg_rating in rows
    ]


def daily(db: Session, start_date: date, end_date: date) -> list[DailyStats]:
    rows = (
        db.query(
            Appointments.date,
            func.count(Appointments.id),
            func.sum(Appointments.payment_amount),
        )
        .filter(_in_range(start_date, end_date))
        .group_by(Appointments.date)
        .order_by(Appointments.date)
        .all()
    )
    return [
        DailyStats(date=day, appointments=n, revenue=float(revenue or 0))
        for day, n, revenue in rows
    ]
