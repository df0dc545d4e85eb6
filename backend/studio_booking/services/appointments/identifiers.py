import secrets
import string
from datetime import datetime

_ALPHABET = string.digits + string.ascii_lowercase


def generate_appointment_id(now: datetime | None = None) -> str:
    """Public booking reference: APT-<epoch ms>-<9 base-36 chars>."""
    now = now or datetime.now()
    millis = int(now.timestamp() * 1000)
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(9))
    return f"APT-{millis}-{suffix}"
