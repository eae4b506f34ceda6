"""Order, ticket and event persistence.

Every SQL store method runs in its own session and transaction, so callers
can chain steps that are each idempotent on their own. Lookups that match
nothing return ``None`` or an empty list; everything else that goes wrong is
raised as a ``StoreError`` subclass.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Iterator, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import DBAPIError, IntegrityError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker

from eventtickets.core.errors import (
    ConstraintViolation,
    NotFound,
    TicketsAlreadyIssued,
    Timeout,
    Unavailable,
)
from eventtickets.helpers import utcnow
from eventtickets.models.event import Event, TicketType
from eventtickets.models.order import Order, PaymentStatus, can_transition
from eventtickets.models.ticket import Ticket
from eventtickets.services.ticket_codes import GeneratedTicket

logger = logging.getLogger(__name__)

UPDATABLE_ORDER_FIELDS = frozenset({
    "event_id", "event_title", "customer_email", "customer_name", "customer_phone",
    "payment_method", "total_amount", "payment_status",
})


@dataclass
class OrderData:
    external_session_id: str
    payment_method: str
    total_amount: Decimal
    payment_status: str
    customer_email: str | None = None
    customer_name: str | None = None
    customer_phone: str | None = None
    event_id: str | None = None
    event_title: str | None = None


@dataclass
class EventDraft:
    title: str
    description: str | None = None
    date: datetime | None = None
    venue: str | None = None
    ticket_types: list[tuple[str, Decimal, int | None]] = field(default_factory=list)


# ----------------------------
# Interfaces
# ----------------------------
class OrderStore(ABC):
    @abstractmethod
    def find_by_session_id(self, session_id: str) -> Order | None: ...

    @abstractmethod
    def find_by_id(self, order_id: str) -> Order | None: ...

    @abstractmethod
    def find_by_email(self, email: str) -> list[Order]: ...

    @abstractmethod
    def insert(self, data: OrderData) -> Order: ...

    @abstractmethod
    def update_by_session_id(self, session_id: str, changes: dict[str, Any]) -> Order: ...

    @abstractmethod
    def set_status(self, order_id: str, status: str) -> Order: ...

    @abstractmethod
    def mark_reminder_sent(self, order_id: str, at: datetime) -> None: ...

    @abstractmethod
    def due_pay_on_day_reminders(self, now: datetime, lead_hours: int, limit: int = 200) -> list[tuple[Order, Event]]: ...


class TicketStore(ABC):
    @abstractmethod
    def find_tickets_by_order_id(self, order_id: str) -> list[Ticket]: ...

    @abstractmethod
    def insert_tickets_batch(self, order_id: str, tickets: Sequence[GeneratedTicket], ticket_type: str = "Standard") -> list[Ticket]: ...

    @abstractmethod
    def find_by_code(self, code: str) -> Ticket | None: ...

    @abstractmethod
    def redeem(self, code: str, at: datetime) -> Ticket: ...


class EventCatalog(ABC):
    @abstractmethod
    def get_event(self, event_id: str) -> Event | None: ...

    @abstractmethod
    def list_published(self) -> list[Event]: ...

    @abstractmethod
    def list_by_organizer(self, organizer_id: str) -> list[Event]: ...

    @abstractmethod
    def create_draft(self, organizer_id: str, draft: EventDraft) -> Event: ...

    @abstractmethod
    def publish(self, event_id: str) -> Event: ...

    @abstractmethod
    def list_ticket_types(self, event_id: str | None = None) -> list[TicketType]: ...

    @abstractmethod
    def get_ticket_type(self, ticket_type_id: int) -> TicketType | None: ...


# ----------------------------
# SQL implementations
# ----------------------------
@contextmanager
def _db_errors(action: str) -> Iterator[None]:
    try:
        yield
    except IntegrityError as e:
        raise ConstraintViolation(f"{action}: {e.orig}") from e
    except PoolTimeoutError as e:
        raise Timeout(f"{action}: timed out waiting for a database connection") from e
    except DBAPIError as e:
        raise Unavailable(f"{action}: {e.orig}") from e


class _SqlStore:
    def __init__(self, sessions: sessionmaker[Session]) -> None:
        self._sessions = sessions

    @contextmanager
    def _tx(self, action: str) -> Iterator[Session]:
        with _db_errors(action), self._sessions() as db, db.begin():
            yield db


class SqlOrderStore(_SqlStore, OrderStore):
    def find_by_session_id(self, session_id: str) -> Order | None:
        with self._tx("find order by session") as db:
            return db.scalar(select(Order).where(Order.external_session_id == session_id))

    def find_by_id(self, order_id: str) -> Order | None:
        with self._tx("find order") as db:
            return db.get(Order, order_id)

    def find_by_email(self, email: str) -> list[Order]:
        with self._tx("find orders by email") as db:
            q = select(Order).where(func.lower(Order.customer_email) == email.strip().lower())
            return list(db.scalars(q.order_by(Order.created_at.desc())))

    def insert(self, data: OrderData) -> Order:
        with self._tx("insert order") as db:
            order = Order(
                external_session_id=data.external_session_id,
                event_id=data.event_id,
                event_title=data.event_title,
                customer_email=data.customer_email,
                customer_name=data.customer_name,
                customer_phone=data.customer_phone,
                payment_method=data.payment_method,
                total_amount=data.total_amount,
                payment_status=data.payment_status,
            )
            db.add(order)
            db.flush()
            return order

    def _apply(self, order: Order, changes: dict[str, Any]) -> None:
        unknown = set(changes) - UPDATABLE_ORDER_FIELDS
        if unknown:
            raise ValueError(f"cannot update order fields: {sorted(unknown)}")
        new_status = changes.get("payment_status")
        if new_status and not can_transition(order.payment_status, new_status):
            raise ConstraintViolation(
                f"order {order.id}: payment_status {order.payment_status} -> {new_status} not allowed"
            )
        for key, value in changes.items():
            setattr(order, key, value)
        order.updated_at = utcnow()

    def update_by_session_id(self, session_id: str, changes: dict[str, Any]) -> Order:
        with self._tx("update order") as db:
            order = db.scalar(
                select(Order).where(Order.external_session_id == session_id).with_for_update()
            )
            if order is None:
                raise NotFound(f"no order for session {session_id}")
            self._apply(order, changes)
            return order

    def set_status(self, order_id: str, status: str) -> Order:
        with self._tx("set order status") as db:
            order = db.scalar(select(Order).where(Order.id == order_id).with_for_update())
            if order is None:
                raise NotFound(f"order {order_id} not found")
            self._apply(order, {"payment_status": status})
            return order

    def mark_reminder_sent(self, order_id: str, at: datetime) -> None:
        with self._tx("mark reminder sent") as db:
            order = db.get(Order, order_id)
            if order is None:
                raise NotFound(f"order {order_id} not found")
            order.reminder_sent_at = at

    def due_pay_on_day_reminders(self, now: datetime, lead_hours: int, limit: int = 200) -> list[tuple[Order, Event]]:
        window_end = now + timedelta(hours=lead_hours)
        with self._tx("scan pay-on-day reminders") as db:
            q = (
                select(Order, Event)
                .join(Event, Order.event_id == Event.id)
                .where(
                    Order.payment_status == PaymentStatus.PAY_ON_DAY.value,
                    Order.reminder_sent_at.is_(None),
                    Order.customer_email.is_not(None),
                    Event.date >= now,
                    Event.date <= window_end,
                )
                .order_by(Event.date)
                .limit(limit)
            )
            return [(o, e) for o, e in db.execute(q).all()]


class SqlTicketStore(_SqlStore, TicketStore):
    def find_tickets_by_order_id(self, order_id: str) -> list[Ticket]:
        with self._tx("find tickets") as db:
            q = select(Ticket).where(Ticket.order_id == order_id).order_by(Ticket.ticket_code)
            return list(db.scalars(q))

    def insert_tickets_batch(self, order_id: str, tickets: Sequence[GeneratedTicket], ticket_type: str = "Standard") -> list[Ticket]:
        if not tickets:
            raise ValueError("empty ticket batch")
        with self._tx("insert tickets") as db:
            # lock the order row so two deliveries cannot both see "no tickets yet"
            order = db.scalar(select(Order).where(Order.id == order_id).with_for_update())
            if order is None:
                raise NotFound(f"order {order_id} not found")
            existing = db.scalar(select(func.count()).select_from(Ticket).where(Ticket.order_id == order_id))
            if existing:
                raise TicketsAlreadyIssued(f"order {order_id} already has {existing} tickets")
            rows = [
                Ticket(order_id=order_id, ticket_code=t.code, ticket_type=ticket_type, qr_code_data=t.qr_code_data)
                for t in tickets
            ]
            db.add_all(rows)
            db.flush()
            return rows

    def find_by_code(self, code: str) -> Ticket | None:
        with self._tx("find ticket") as db:
            return db.scalar(select(Ticket).where(Ticket.ticket_code == code))

    def redeem(self, code: str, at: datetime) -> Ticket:
        with self._tx("redeem ticket") as db:
            ticket = db.scalar(select(Ticket).where(Ticket.ticket_code == code).with_for_update())
            if ticket is None:
                raise NotFound(f"ticket {code} not found")
            if ticket.is_used:
                raise ConstraintViolation(f"ticket {code} already used")
            ticket.is_used = True
            ticket.used_at = at
            return ticket


class SqlEventCatalog(_SqlStore, EventCatalog):
    def get_event(self, event_id: str) -> Event | None:
        with self._tx("get event") as db:
            return db.get(Event, event_id)

    def list_published(self) -> list[Event]:
        with self._tx("list events") as db:
            q = select(Event).where(Event.status == "published").order_by(Event.date)
            return list(db.scalars(q))

    def list_by_organizer(self, organizer_id: str) -> list[Event]:
        with self._tx("list organizer events") as db:
            q = select(Event).where(Event.organizer_id == organizer_id).order_by(Event.created_at.desc())
            return list(db.scalars(q))

    def create_draft(self, organizer_id: str, draft: EventDraft) -> Event:
        with self._tx("create event") as db:
            ev = Event(
                organizer_id=organizer_id,
                title=draft.title,
                description=draft.description,
                date=draft.date,
                venue=draft.venue,
                status="draft",
            )
            ev.ticket_types = [
                TicketType(name=name, price=price, quantity_available=qty)
                for name, price, qty in draft.ticket_types
            ]
            db.add(ev)
            db.flush()
            return ev

    def publish(self, event_id: str) -> Event:
        with self._tx("publish event") as db:
            ev = db.scalar(select(Event).where(Event.id == event_id).with_for_update())
            if ev is None:
                raise NotFound(f"event {event_id} not found")
            if ev.status != "published":
                ev.status = "published"
                ev.published_at = utcnow()
            return ev

    def list_ticket_types(self, event_id: str | None = None) -> list[TicketType]:
        with self._tx("list ticket types") as db:
            q = select(TicketType)
            if event_id:
                q = q.where(TicketType.event_id == event_id)
            return list(db.scalars(q.order_by(TicketType.id)))

    def get_ticket_type(self, ticket_type_id: int) -> TicketType | None:
        with self._tx("get ticket type") as db:
            return db.get(TicketType, ticket_type_id)


# ----------------------------
# No database configured
# ----------------------------
class _NoDatabase:
    reason = "database is not configured"

    def _fail(self, *_args: Any, **_kwargs: Any):
        raise Unavailable(self.reason)


class UnavailableOrderStore(_NoDatabase, OrderStore):
    def find_by_session_id(self, session_id): return self._fail()
    def find_by_id(self, order_id): return self._fail()
    def find_by_email(self, email): return self._fail()
    def insert(self, data): return self._fail()
    def update_by_session_id(self, session_id, changes): return self._fail()
    def set_status(self, order_id, status): return self._fail()
    def mark_reminder_sent(self, order_id, at): return self._fail()
    def due_pay_on_day_reminders(self, now, lead_hours, limit=200): return self._fail()


class UnavailableTicketStore(_NoDatabase, TicketStore):
    def find_tickets_by_order_id(self, order_id): return self._fail()
    def insert_tickets_batch(self, order_id, tickets, ticket_type="Standard"): return self._fail()
    def find_by_code(self, code): return self._fail()
    def redeem(self, code, at): return self._fail()


class UnavailableEventCatalog(_NoDatabase, EventCatalog):
    def get_event(self, event_id): return self._fail()
    def list_published(self): return self._fail()
    def list_by_organizer(self, organizer_id): return self._fail()
    def create_draft(self, organizer_id, draft): return self._fail()
    def publish(self, event_id): return self._fail()
    def list_ticket_types(self, event_id=None): return self._fail()
    def get_ticket_type(self, ticket_type_id): return self._fail()
