# backend/studio_booking/schemas/slots.py
"""
Pydantic schemas for slots API.
"""

from datetime import date
from pydantic import BaseModel, Field


class SlotInfo(BaseModel):
    """Information about a single slot."""
    start_time: str  # "HH:MM"
    end_time: str  # "HH:MM"
    available: bool

    model_config = {"from_attributes": True}


class SlotsDayResponse(BaseModel):
    """Slots of a day for a given service duration."""
    date: date
    duration: int = Field(description="Requested service duration in minutes")
    slot_step_minutes: int = Field(description="Grid step in minutes (15/30/60)")
    slots: list[SlotInfo]

    model_config = {"from_attributes": True}
