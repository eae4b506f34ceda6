from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from eventtickets.api.deps import get_services
from eventtickets.core.errors import ConstraintViolation, NotFound
from eventtickets.helpers import to_iso, utcnow
from eventtickets.models.event import Event
from eventtickets.models.order import Order
from eventtickets.models.ticket import Ticket
from eventtickets.services.container import Services

router = APIRouter()

class LookupBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str | None = None
    order_id: str | None = Field(None, alias="orderId")

def ticket_out(t: Ticket, include_qr: bool = True) -> dict:
    data = {
        "id": t.id,
        "ticket_code": t.ticket_code,
        "ticket_type": t.ticket_type,
        "is_used": t.is_used,
        "used_at": to_iso(t.used_at),
    }
    if include_qr:
        data["qr_code_data"] = t.qr_code_data
    return data

def event_summary(ev: Event | None) -> dict | None:
    if ev is None:
        return None
    return {"id": ev.id, "title": ev.title, "description": ev.description, "date": to_iso(ev.date), "venue": ev.venue}

def _lookup(services: Services, email: str | None, order_id: str | None):
    email = (email or "").strip() or None
    order_id = (order_id or "").strip() or None
    if not email and not order_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email or order ID is required")
    orders: list[Order]
    if order_id:
        found = services.orders.find_by_id(order_id)
        orders = [found] if found else []
    else:
        orders = services.orders.find_by_email(email or "")
    if not orders:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"tickets": [], "event": None, "message": "No tickets found for the provided information"},
        )
    # most recent order wins
    order = orders[0]
    ev = services.events.get_event(order.event_id) if order.event_id else None
    tickets = services.tickets.find_tickets_by_order_id(order.id)
    return {
        "order_id": order.id,
        "event_title": order.event_title or (ev.title if ev else None),
        "event": event_summary(ev),
        "tickets": [ticket_out(t) for t in tickets],
        "payment_status": order.payment_status,
        "payment_method": order.payment_method,
        "total_amount": float(order.total_amount),
    }

@router.post("/lookup")
def lookup_tickets(body: LookupBody, services: Services = Depends(get_services)):
    """Find an order and its tickets by order id or customer email."""
    return _lookup(services, body.email, body.order_id)

@router.get("/lookup")
def lookup_tickets_get(
    email: str | None = Query(None),
    order_id: str | None = Query(None, alias="orderId"),
    services: Services = Depends(get_services),
):
    return _lookup(services, email, order_id)

@router.get("/{ticket_code}")
def get_ticket(ticket_code: str, services: Services = Depends(get_services)):
    t = services.tickets.find_by_code(ticket_code.strip().upper())
    if not t:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return {**ticket_out(t, include_qr=False), "order_id": t.order_id}

@router.post("/{ticket_code}/check-in")
def check_in_ticket(ticket_code: str, services: Services = Depends(get_services)):
    """Redeem a ticket at the door. A ticket can be checked in once."""
    try:
        t = services.tickets.redeem(ticket_code.strip().upper(), utcnow())
    except NotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    except ConstraintViolation:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Ticket already used")
    return ticket_out(t, include_qr=False)
