# backend/studio_booking/schemas/stats.py

from datetime import date
from typing import Optional
from pydantic import BaseModel


class StatsOverview(BaseModel):
    total_appointments: int = 0
    confirmed_appointments: int = 0
    cancelled_appointments: int = 0
    completed_appointments: int = 0
    no_show_appointments: int = 0
    total_revenue: float = 0.0
    average_rating: Optional[float] = None


class ServiceStats(BaseModel):
    service_name: str
    count: int
    revenue: float
    average_rating: Optional[float] = None


class DailyStats(BaseModel):
    date: date
    appointments: int
    revenue: float


class StatsResponse(BaseModel):
    start_date: date
    end_date: date
    overview: StatsOverview
    by_service: list[ServiceStats]
    daily: list[DailyStats]
