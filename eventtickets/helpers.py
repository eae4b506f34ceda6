import re
import uuid
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_CENT = Decimal("0.01")


def utcnow() -> datetime:
    """Naive UTC timestamp; every DateTime column in this schema is naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


def is_valid_email(email: Optional[str]) -> bool:
    if not email:
        return False
    return _EMAIL_RE.match(email.strip()) is not None


def is_uuid(value: Optional[str]) -> bool:
    if not value:
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def minor_to_amount(minor_units: int | None) -> Decimal:
    """4500 -> Decimal('45.00')"""
    return (Decimal(minor_units or 0) / 100).quantize(_CENT, rounding=ROUND_HALF_UP)


def amount_to_minor(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def to_iso(dt: datetime | None) -> Optional[str]:
    if dt is None:
        return None
    return dt.isoformat()
