# backend/studio_booking/services/appointments/ics.py
"""
Calendar invite (RFC 5545) for an appointment.

One VEVENT per appointment. DTSTART/DTEND are wall-clock times in the
appointment's timezone (TZID parameter); DTSTAMP is UTC.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from ..clock import appointment_start

PRODID = "-//Studio Booking//Appointment//EN"
UID_DOMAIN = "studio-booking"
CRLF = "\r\n"


def _escape(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\n", "\\n")
    )


def _local(dt: datetime) -> str:
    return dt.strftime("%Y%m%dT%H%M%S")


def build_ics(appt, stamp: Optional[datetime] = None) -> str:
    """Render the VCALENDAR document for an Appointments row."""
    stamp = stamp or datetime.now(timezone.utc)
    start = appointment_start(appt.date, appt.start_time)
    end = start + timedelta(minutes=appt.service_duration)

    description = (
        f"Appointment {appt.appointment_id} for {appt.service_name}\n"
        f"Duration: {appt.service_duration} minutes\n"
        f"Client: {appt.client_full_name}"
    )

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "BEGIN:VEVENT",
        f"UID:{appt.appointment_id}@{UID_DOMAIN}",
        f"DTSTAMP:{stamp.astimezone(timezone.utc).strftime('%Y%m%dT%H%M%SZ')}",
        f"DTSTART;TZID={appt.timezone}:{_local(start)}",
        f"DTEND;TZID={appt.timezone}:{_local(end)}",
        f"SUMMARY:{_escape(appt.service_name)}",
        f"DESCRIPTION:{_escape(description)}",
        f"STATUS:{'CONFIRMED' if appt.status == 'confirmed' else 'TENTATIVE'}",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return CRLF.join(lines) + CRLF
