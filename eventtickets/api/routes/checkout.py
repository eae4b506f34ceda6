import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr, Field

from eventtickets.api.deps import get_services
from eventtickets.core.errors import ConstraintViolation
from eventtickets.helpers import amount_to_minor
from eventtickets.models.order import PaymentMethod, PaymentStatus
from eventtickets.services.container import Services
from eventtickets.services.stores import OrderData

logger = logging.getLogger(__name__)

router = APIRouter()

class CheckoutBody(BaseModel):
    event_id: str
    ticket_type_id: int
    quantity: int = Field(1, ge=1, le=10, description="Number of tickets to purchase (1-10)")
    customer_email: EmailStr | None = None

@router.post("")
@router.post("/")
def create_checkout(payload: CheckoutBody, services: Services = Depends(get_services)):
    """Start a hosted checkout and record the order as pending.

    Prices come from the stored ticket type, never from the client. The
    pending row is finalised by the payment webhook.
    """
    ev = services.events.get_event(payload.event_id)
    if not ev or ev.status != "published":
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    tt = services.events.get_ticket_type(payload.ticket_type_id)
    if not tt or tt.event_id != ev.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid ticket type")
    if tt.quantity_available is not None and payload.quantity > tt.quantity_available:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Not enough tickets available")

    settings = services.settings
    base = settings.public_base_url.rstrip("/")
    unit_amount = amount_to_minor(tt.price)
    session = services.gateway.create_checkout_session(
        product_name=f"{ev.title} - {tt.name}",
        unit_amount=unit_amount,
        quantity=payload.quantity,
        currency=settings.currency,
        metadata={
            "eventId": ev.id,
            "eventName": ev.title,
            "eventDate": ev.date.isoformat() if ev.date else "",
            "quantity": str(payload.quantity),
            "ticketType": tt.name,
        },
        success_url=f"{base}/success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{base}/cancel",
        customer_email=payload.customer_email,
    )
    try:
        order = services.orders.insert(OrderData(
            external_session_id=session.session_id,
            event_id=ev.id,
            event_title=ev.title,
            customer_email=payload.customer_email,
            payment_method=PaymentMethod.STRIPE.value,
            total_amount=tt.price * payload.quantity,
            payment_status=PaymentStatus.PENDING.value,
        ))
    except ConstraintViolation:
        # webhook got there first
        order = services.orders.find_by_session_id(session.session_id)
        if order is None:
            raise
    logger.info("checkout session %s started for order %s", session.session_id, order.id)
    return {
        "url": session.url,
        "session_id": session.session_id,
        "order_id": order.id,
        "amount": unit_amount * payload.quantity,
        "currency": settings.currency,
    }
