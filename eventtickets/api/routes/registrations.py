import logging
import time
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from eventtickets.api.deps import get_services
from eventtickets.helpers import is_uuid, is_valid_email, utcnow
from eventtickets.services.container import Services
from eventtickets.services.fulfillment import DEFAULT_TICKET_TYPE, PayOnDayRegistration
from eventtickets.services.notifications import PaymentReminder

logger = logging.getLogger(__name__)

router = APIRouter()


class PayOnDayBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str
    name: Optional[str] = None
    phone: Optional[str] = None
    event_id: Optional[str] = Field(None, alias="eventId")
    event_name: Optional[str] = Field(None, alias="eventName")
    event_date: Optional[str] = Field(None, alias="eventDate")
    ticket_type: str = Field(DEFAULT_TICKET_TYPE, alias="ticketType")
    quantity: int = Field(1, ge=1, le=10)
    total_amount: Decimal = Field(Decimal("0"), ge=0, alias="totalAmount")


class PaymentReminderBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    event_title: Optional[str] = Field(None, alias="eventTitle")
    event_date: Optional[str] = Field(None, alias="eventDate")
    amount: Optional[Decimal] = Field(None, ge=0)
    order_id: Optional[str] = Field(None, alias="orderId")


@router.post("/pay-on-day", status_code=status.HTTP_201_CREATED)
def register_pay_on_day(
    body: PayOnDayBody,
    services: Services = Depends(get_services),
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key", max_length=128),
):
    """Reserve tickets now and collect payment at the door.

    When the event is in the catalog its stored title and date win over what
    the client sent. Retrying with the same ``Idempotency-Key`` header returns
    the order created by the first attempt.
    """
    if not is_valid_email(body.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A valid email is required")
    event_name, event_date = body.event_name, body.event_date
    if is_uuid(body.event_id):
        ev = services.events.get_event(body.event_id or "")
        if ev:
            event_name = ev.title
            if ev.date:
                event_date = ev.date.isoformat()
    result = services.fulfillment.register_pay_on_day(PayOnDayRegistration(
        customer_email=body.email,
        customer_name=body.name,
        customer_phone=body.phone,
        event_id=body.event_id,
        event_name=(event_name or "").strip(),
        event_date=event_date,
        ticket_type=body.ticket_type,
        quantity=body.quantity,
        total_amount=body.total_amount,
        idempotency_key=(idempotency_key or "").strip() or None,
    ))
    return {
        "order_id": result.order_id,
        "payment_status": result.payment_status,
        "ticket_codes": list(result.ticket_codes),
        "email_sent": result.notified,
        "email_error": result.notification_error,
    }


@router.post("/payment-reminder")
def send_payment_reminder(body: PaymentReminderBody, services: Services = Depends(get_services)):
    """Send a one-off "pay at the door" reminder email."""
    if not is_valid_email(body.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Valid email is required")
    order_id = body.order_id or f"CHECKIN-{int(time.time() * 1000)}"
    result = services.mailer.send_payment_reminder(PaymentReminder(
        customer_email=(body.email or "").strip(),
        event_title=body.event_title or "Event Ticket",
        event_date=body.event_date or utcnow().isoformat(),
        amount=body.amount if body.amount is not None else Decimal("0"),
        order_id=order_id,
    ))
    if not result.success:
        logger.error("payment reminder for %s failed: %s", order_id, result.error)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to send payment reminder email", "details": result.error},
        )
    return {"success": True, "message_id": result.message_id, "order_id": order_id}
