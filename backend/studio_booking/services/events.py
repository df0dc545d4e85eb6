"""
backend/studio_booking/services/events.py

Event emitter: pushes appointment events to Redis for the notification
worker (confirmation emails, ICS files, reminders).

Queue:
- events:p2p: instant delivery, one event per appointment change
"""

import json
import time
import logging

from ..redis_client import redis_client

logger = logging.getLogger(__name__)

P2P_QUEUE = "events:p2p"


def emit_event(event_type: str, payload: dict) -> None:
    """
    Emit a p2p event (instant delivery).

    Failures are logged and swallowed: the appointment change is already
    committed and delivery is the worker's concern.
    """
    event = {
        "type": event_type,
        **payload,
        "ts": int(time.time()),
    }
    try:
        redis_client.rpush(P2P_QUEUE, json.dumps(event, default=str))
        logger.info(f"Event emitted: {event_type} → {P2P_QUEUE}")
    except Exception as e:
        logger.error(f"Failed to emit event {event_type}: {e}")


def appointment_payload(appt) -> dict:
    """Fields the notification worker needs to render messages."""
    return {
        "appointment_id": appt.appointment_id,
        "status": appt.status,
        "service": appt.service_name,
        "date": appt.date.isoformat(),
        "start_time": appt.start_time,
        "end_time": appt.end_time,
        "timezone": appt.timezone,
        "client_name": appt.client_full_name,
        "client_email": appt.client_email,
        "payment_status": appt.payment_status,
        "payment_amount": appt.payment_amount,
    }
