import enum
from sqlalchemy import String, ForeignKey, DateTime, Numeric
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from decimal import Decimal

from eventtickets.helpers import new_id, utcnow
from eventtickets.models.base import Base


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    COMPLETED_EMAIL_FAILED = "completed_email_failed"
    PAY_ON_DAY = "pay_on_day"
    FAILED = "failed"


class PaymentMethod(str, enum.Enum):
    STRIPE = "stripe"
    PAY_ON_DAY = "pay-on-day"


# Statuses only move forward; failed is a side branch that a late success can still leave.
ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    PaymentStatus.PENDING.value: {PaymentStatus.COMPLETED.value, PaymentStatus.FAILED.value},
    PaymentStatus.FAILED.value: {PaymentStatus.COMPLETED.value},
    PaymentStatus.COMPLETED.value: {PaymentStatus.COMPLETED_EMAIL_FAILED.value},
    PaymentStatus.COMPLETED_EMAIL_FAILED.value: {PaymentStatus.COMPLETED.value},
    PaymentStatus.PAY_ON_DAY.value: {PaymentStatus.COMPLETED.value},
}


def can_transition(current: str, new: str) -> bool:
    return current == new or new in ALLOWED_TRANSITIONS.get(current, set())


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    external_session_id: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    event_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("events.id", ondelete="SET NULL"), nullable=True, index=True)
    event_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer_email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    customer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer_phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    payment_method: Mapped[str] = mapped_column(String(32), default=PaymentMethod.STRIPE.value)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"))
    payment_status: Mapped[str] = mapped_column(String(32), default=PaymentStatus.PENDING.value, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
    reminder_sent_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
