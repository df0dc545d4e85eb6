from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    Index,
    Integer,
    Text,
    event,
    text,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()
metadata = Base.metadata

# Statuses that hold a slot
ACTIVE_STATUSES = ("pending", "confirmed")

ACTIVE_SLOT_INDEX = 'uq_appointments_active_slot'

_active_slot_clause = text("status IN ('pending', 'confirmed')")


class Appointments(Base):
    __tablename__ = 'appointments'
    __table_args__ = (
        # One live booking per (date, start_time); closes the check-then-insert race
        Index(
            ACTIVE_SLOT_INDEX,
            'date', 'start_time',
            unique=True,
            sqlite_where=_active_slot_clause,
            postgresql_where=_active_slot_clause,
        ),
        Index('ix_appointments_date_status', 'date', 'status'),
        Index('ix_appointments_client_email', 'client_email'),
        Index('ix_appointments_payment_status', 'payment_status'),
    )

    id = Column(Integer, primary_key=True)
    appointment_id = Column(Text, nullable=False, unique=True)

    # Service snapshot taken at booking time
    service_id = Column(Text, nullable=False)
    service_name = Column(Text, nullable=False)
    service_category = Column(Text, nullable=False)
    service_duration = Column(Integer, nullable=False)
    service_price = Column(Float, nullable=False)

    date = Column(Date, nullable=False)
    start_time = Column(Text, nullable=False)
    end_time = Column(Text, nullable=False)
    timezone = Column(Text, nullable=False, server_default=text("'Europe/Paris'"))

    client_first_name = Column(Text, nullable=False)
    client_last_name = Column(Text, nullable=False)
    client_email = Column(Text, nullable=False)
    client_phone = Column(Text, nullable=False)
    client_company = Column(Text)
    client_project_type = Column(Text)
    client_budget = Column(Text)
    client_message = Column(Text)
    client_location = Column(JSON)

    status = Column(Text, nullable=False, server_default=text("'pending'"))

    payment_option = Column(Text, nullable=False)
    payment_amount = Column(Float, nullable=False, default=0)
    payment_status = Column(Text, nullable=False, server_default=text("'pending'"))
    payment_reference = Column(Text)
    payment_transaction_id = Column(Text)
    paid_at = Column(DateTime)
    refunded_at = Column(DateTime)

    confirmation_sent = Column(Boolean, nullable=False, default=False)
    reminder_sent = Column(Boolean, nullable=False, default=False)
    follow_up_sent = Column(Boolean, nullable=False, default=False)
    emails_sent = Column(JSON, nullable=False, default=list)

    # Append-only audit trail; always reassigned, never mutated in place
    modifications = Column(JSON, nullable=False, default=list)

    feedback_rating = Column(Integer)
    feedback_comment = Column(Text)
    feedback_satisfaction = Column(Integer)
    feedback_would_recommend = Column(Boolean)
    feedback_follow_up_needed = Column(Boolean)
    feedback_submitted_at = Column(DateTime)

    source = Column(Text, nullable=False, server_default=text("'website'"))
    user_agent = Column(Text)
    ip_address = Column(Text)
    referrer = Column(Text)
    conversion_source = Column(Text)
    campaign_id = Column(Text)
    rgpd_consent = Column(Boolean, nullable=False)
    consent_date = Column(DateTime, nullable=False)
    data_retention_until = Column(DateTime, nullable=False)

    google_event_id = Column(Text)
    outlook_event_id = Column(Text)
    ics_generated = Column(Boolean, nullable=False, default=False)
    last_sync_at = Column(DateTime)

    internal_notes = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    @property
    def client_full_name(self) -> str:
        return f"{self.client_first_name} {self.client_last_name}"


@event.listens_for(Appointments, "before_insert")
@event.listens_for(Appointments, "before_update")
def _derive_fields(mapper, connection, target):
    """Recompute end_time and payment amount on every persist."""
    from ..services.appointments.payment import apply_derived_fields
    apply_derived_fields(target)
