# backend/studio_booking/schemas/appointments.py

import re
from datetime import date, datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, EmailStr, Field, field_validator

from .services import ServiceSnapshot

TIME_RE = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")
PHONE_RE = re.compile(r"^(?:\+33|0)[1-9](?:[0-9]{8})$")

AppointmentStatus = Literal["pending", "confirmed", "cancelled", "completed", "no_show"]
PaymentOption = Literal["onsite", "full", "deposit"]
ProjectType = Literal["website", "ecommerce", "mobile", "consulting", "other"]


def normalize_time(value: str) -> str:
    """Validate "H:MM" / "HH:MM" and return zero-padded "HH:MM"."""
    match = TIME_RE.match(value.strip())
    if not match:
        raise ValueError("Time must be in HH:MM format")
    return f"{int(match.group(1)):02d}:{match.group(2)}"


# ──────────────────────────────────────────────────────────────────────────────
# Request bodies
# ──────────────────────────────────────────────────────────────────────────────

class DateTimeIn(BaseModel):
    date: date
    start_time: str = Field(description="Time in HH:MM format")
    timezone: Optional[str] = None

    @field_validator("start_time")
    @classmethod
    def validate_start_time(cls, v: str) -> str:
        return normalize_time(v)


class ClientLocation(BaseModel):
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: str = "France"
    lat: Optional[float] = None
    lng: Optional[float] = None


class ClientInfo(BaseModel):
    first_name: str = Field(min_length=2, max_length=50)
    last_name: str = Field(min_length=2, max_length=50)
    email: EmailStr
    phone: str
    company: Optional[str] = Field(None, max_length=100)
    project_type: Optional[ProjectType] = None
    budget: Optional[str] = None
    message: Optional[str] = Field(None, max_length=1000)
    location: Optional[ClientLocation] = None

    model_config = {"str_strip_whitespace": True}

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("phone")
    @classmethod
    def normalize_phone(cls, v: str) -> str:
        """Drop spaces, dots and dashes, then require a French number."""
        v = re.sub(r"[\s.\-]", "", v)
        if not PHONE_RE.match(v):
            raise ValueError("Invalid French phone number")
        return v


class AppointmentMetadataIn(BaseModel):
    source: str = "website"
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    referrer: Optional[str] = None
    conversion_source: Optional[str] = None
    campaign_id: Optional[str] = None
    rgpd_consent: bool = False


class AppointmentCreate(BaseModel):
    service_id: str
    date_time: DateTimeIn
    client: ClientInfo
    payment_option: PaymentOption = "onsite"
    metadata: AppointmentMetadataIn = Field(default_factory=AppointmentMetadataIn)


class ConfirmRequest(BaseModel):
    payment_reference: Optional[str] = None


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=200)


class RescheduleRequest(BaseModel):
    new_date: date
    new_start_time: str
    reason: Optional[str] = Field(None, max_length=200)

    @field_validator("new_start_time")
    @classmethod
    def validate_new_start_time(cls, v: str) -> str:
        return normalize_time(v)


class FeedbackCreate(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=500)
    satisfaction: Optional[int] = Field(None, ge=1, le=5)
    would_recommend: Optional[bool] = None
    follow_up_needed: Optional[bool] = None


class InternalNoteCreate(BaseModel):
    note: str = Field(min_length=1, max_length=2000)
    added_by: str = Field(min_length=1)
    is_private: bool = True


# ──────────────────────────────────────────────────────────────────────────────
# Responses
# ──────────────────────────────────────────────────────────────────────────────

class DateTimeRead(BaseModel):
    date: date
    start_time: str
    end_time: str
    timezone: str


class PaymentPending(BaseModel):
    status: Literal["pending"] = "pending"
    option: PaymentOption
    amount: float


class PaymentPaid(BaseModel):
    status: Literal["paid"] = "paid"
    option: PaymentOption
    amount: float
    reference: Optional[str] = None
    transaction_id: Optional[str] = None
    paid_at: datetime


class PaymentFailed(BaseModel):
    status: Literal["failed"] = "failed"
    option: PaymentOption
    amount: float
    reference: Optional[str] = None


class PaymentRefunded(BaseModel):
    status: Literal["refunded"] = "refunded"
    option: PaymentOption
    amount: float
    reference: Optional[str] = None
    paid_at: Optional[datetime] = None
    refunded_at: datetime


Payment = Annotated[
    Union[PaymentPending, PaymentPaid, PaymentFailed, PaymentRefunded],
    Field(discriminator="status"),
]


class EmailRecord(BaseModel):
    type: Literal["confirmation", "reminder", "cancellation", "followup"]
    sent_at: datetime
    status: Literal["sent", "delivered", "failed"]


class NotificationsRead(BaseModel):
    confirmation_sent: bool = False
    reminder_sent: bool = False
    follow_up_sent: bool = False
    emails_sent: list[EmailRecord] = []
    ics_generated: bool = False


class ModificationRecord(BaseModel):
    type: Literal["reschedule", "cancel", "modify"]
    reason: Optional[str] = None
    old_date_time: Optional[datetime] = None
    new_date_time: Optional[datetime] = None
    modified_at: datetime
    modified_by: Literal["client", "admin"]


class FeedbackRead(BaseModel):
    rating: int
    comment: Optional[str] = None
    satisfaction: Optional[int] = None
    would_recommend: Optional[bool] = None
    follow_up_needed: Optional[bool] = None
    submitted_at: datetime


class MetadataRead(BaseModel):
    source: str
    referrer: Optional[str] = None
    conversion_source: Optional[str] = None
    campaign_id: Optional[str] = None
    rgpd_consent: bool
    consent_date: datetime
    data_retention_until: datetime


class InternalNoteRead(BaseModel):
    note: str
    added_by: str
    added_at: datetime
    is_private: bool = True


class AppointmentRead(BaseModel):
    id: int
    appointment_id: str
    service: ServiceSnapshot
    date_time: DateTimeRead
    client: ClientInfo
    status: AppointmentStatus
    payment: Payment
    notifications: NotificationsRead
    modifications: list[ModificationRecord]
    feedback: Optional[FeedbackRead] = None
    metadata: MetadataRead
    internal_notes: Optional[list[InternalNoteRead]] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, appt, include_internal: bool = False) -> "AppointmentRead":
        """Build the nested view from a flat Appointments row."""
        feedback = None
        if appt.feedback_submitted_at is not None:
            feedback = FeedbackRead(
                rating=appt.feedback_rating,
                comment=appt.feedback_comment,
                satisfaction=appt.feedback_satisfaction,
                would_recommend=appt.feedback_would_recommend,
                follow_up_needed=appt.feedback_follow_up_needed,
                submitted_at=appt.feedback_submitted_at,
            )

        return cls(
            id=appt.id,
            appointment_id=appt.appointment_id,
            service=ServiceSnapshot(
                id=appt.service_id,
                name=appt.service_name,
                category=appt.service_category,
                duration=appt.service_duration,
                price=appt.service_price,
            ),
            date_time=DateTimeRead(
                date=appt.date,
                start_time=appt.start_time,
                end_time=appt.end_time,
                timezone=appt.timezone,
            ),
            client=ClientInfo.model_construct(
                first_name=appt.client_first_name,
                last_name=appt.client_last_name,
                email=appt.client_email,
                phone=appt.client_phone,
                company=appt.client_company,
                project_type=appt.client_project_type,
                budget=appt.client_budget,
                message=appt.client_message,
                location=ClientLocation(**appt.client_location) if appt.client_location else None,
            ),
            status=appt.status,
            payment=_payment_view(appt),
            notifications=NotificationsRead(
                confirmation_sent=appt.confirmation_sent,
                reminder_sent=appt.reminder_sent,
                follow_up_sent=appt.follow_up_sent,
                emails_sent=appt.emails_sent or [],
                ics_generated=appt.ics_generated,
            ),
            modifications=appt.modifications or [],
            feedback=feedback,
            metadata=MetadataRead(
                source=appt.source,
                referrer=appt.referrer,
                conversion_source=appt.conversion_source,
                campaign_id=appt.campaign_id,
                rgpd_consent=appt.rgpd_consent,
                consent_date=appt.consent_date,
                data_retention_until=appt.data_retention_until,
            ),
            internal_notes=(appt.internal_notes or []) if include_internal else None,
            created_at=appt.created_at,
            updated_at=appt.updated_at,
        )


def _payment_view(appt) -> dict:
    base = {
        "status": appt.payment_status,
        "option": appt.payment_option,
        "amount": appt.payment_amount,
    }
    if appt.payment_status == "paid":
        base.update(
            reference=appt.payment_reference,
            transaction_id=appt.payment_transaction_id,
            paid_at=appt.paid_at,
        )
    elif appt.payment_status == "failed":
        base.update(reference=appt.payment_reference)
    elif appt.payment_status == "refunded":
        base.update(
            reference=appt.payment_reference,
            paid_at=appt.paid_at,
            refunded_at=appt.refunded_at,
        )
    return base


class AppointmentCreated(AppointmentRead):
    """Booking response; carries the calendar invite for the client."""
    ics_file: str


class Pagination(BaseModel):
    current: int
    pages: int
    total: int


class AppointmentListResponse(BaseModel):
    appointments: list[AppointmentRead]
    pagination: Pagination
