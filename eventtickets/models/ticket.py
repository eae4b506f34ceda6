from sqlalchemy import String, ForeignKey, DateTime, Boolean, Text
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime

from eventtickets.helpers import new_id
from eventtickets.models.base import Base

class Ticket(Base):
    __tablename__ = "tickets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    order_id: Mapped[str] = mapped_column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), index=True)
    ticket_code: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    ticket_type: Mapped[str] = mapped_column(String(120), default="Standard")
    qr_code_data: Mapped[str] = mapped_column(Text)  # data:image/png;base64,...
    is_used: Mapped[bool] = mapped_column(Boolean, default=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
