from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from eventtickets.api.deps import get_current_user_id, get_services
from eventtickets.helpers import to_iso
from eventtickets.models.event import Event, TicketType
from eventtickets.services.container import Services
from eventtickets.services.stores import EventDraft

router = APIRouter()
ticket_types_router = APIRouter()


class TicketTypeIn(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    quantity_available: Optional[int] = Field(default=None, ge=0)


class EventIn(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    date: Optional[datetime] = None
    venue: Optional[str] = Field(default=None, max_length=255)
    ticket_types: List[TicketTypeIn] = Field(default_factory=list)


def _naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None or dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def ticket_type_out(tt: TicketType) -> dict:
    return {
        "id": tt.id,
        "event_id": tt.event_id,
        "name": tt.name,
        "price": float(tt.price),
        "quantity_available": tt.quantity_available,
    }


def event_out(ev: Event) -> dict:
    return {
        "id": ev.id,
        "title": ev.title,
        "description": ev.description,
        "date": to_iso(ev.date),
        "venue": ev.venue,
        "status": ev.status,
        "organizer_id": ev.organizer_id,
        "published_at": to_iso(ev.published_at),
        "ticket_types": [ticket_type_out(tt) for tt in ev.ticket_types],
    }


@router.get("")
@router.get("/")
def list_events(services: Services = Depends(get_services)):
    return [event_out(ev) for ev in services.events.list_published()]


@router.get("/mine")
def list_my_events(user_id: str = Depends(get_current_user_id), services: Services = Depends(get_services)):
    """Drafts and published events owned by the caller."""
    return [event_out(ev) for ev in services.events.list_by_organizer(user_id)]


@router.get("/{event_id}")
def get_event(event_id: str, services: Services = Depends(get_services)):
    ev = services.events.get_event(event_id)
    # drafts stay private until published
    if not ev or ev.status != "published":
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return event_out(ev)


@router.post("", status_code=status.HTTP_201_CREATED)
@router.post("/", status_code=status.HTTP_201_CREATED)
def submit_event(payload: EventIn, user_id: str = Depends(get_current_user_id),
                 services: Services = Depends(get_services)):
    """Submit a new event as a draft. It is not listed until published."""
    draft = EventDraft(
        title=payload.title.strip(),
        description=payload.description,
        date=_naive_utc(payload.date),
        venue=payload.venue,
        ticket_types=[(tt.name.strip(), tt.price, tt.quantity_available) for tt in payload.ticket_types],
    )
    return event_out(services.events.create_draft(user_id, draft))


@router.post("/{event_id}/publish")
def publish_event(event_id: str, user_id: str = Depends(get_current_user_id),
                  services: Services = Depends(get_services)):
    ev = services.events.get_event(event_id)
    if not ev:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    if ev.organizer_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not the organizer of this event")
    if not ev.ticket_types:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Add at least one ticket type before publishing")
    return event_out(services.events.publish(event_id))


@ticket_types_router.get("")
@ticket_types_router.get("/")
def list_ticket_types(event_id: Optional[str] = Query(None), services: Services = Depends(get_services)):
    return [ticket_type_out(tt) for tt in services.events.list_ticket_types(event_id)]
