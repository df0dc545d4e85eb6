# backend/studio_booking/schemas/services.py

from typing import Optional
from pydantic import BaseModel, Field


class ServiceSnapshot(BaseModel):
    """Service data copied onto an appointment at booking time."""
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    category: str = Field(min_length=1)
    duration: int = Field(description="Duration in minutes")
    price: float = Field(ge=0)

    model_config = {"from_attributes": True}


class ServiceRead(BaseModel):
    id: str
    name: str
    category: str
    duration: int = Field(ge=30, le=480)
    price: float = Field(ge=0)
    description: Optional[str] = None
    features: list[str] = []
    recommended: bool = False

    model_config = {"from_attributes": True}

    def snapshot(self) -> ServiceSnapshot:
        return ServiceSnapshot(
            id=self.id,
            name=self.name,
            category=self.category,
            duration=self.duration,
            price=self.price,
        )
