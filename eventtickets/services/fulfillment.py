"""Order-to-ticket fulfillment.

Turns a verified payment (or a pay-on-day registration) into one order row,
one ticket set and one confirmation email attempt. Webhooks are delivered
at least once, so every step first looks at what is already stored:

1. event details are looked up for linking and for the email (failure only
   degrades both);
2. the order is found by its external session id and updated, or inserted;
3. tickets are reused if the order already has any, otherwise generated and
   written as a single batch;
4. the confirmation is sent; a failed send annotates the order status
   instead of undoing anything.

Steps 2 and 3 raise on failure so the processor re-delivers. Replaying the
whole sequence never creates a second order or a second ticket set; it may
send the email again.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from eventtickets.core.errors import (
    ConstraintViolation,
    MissingCustomerContact,
    MissingEventMetadata,
    NotFound,
    StoreError,
    TicketsAlreadyIssued,
)
from eventtickets.helpers import is_uuid, is_valid_email, minor_to_amount
from eventtickets.models.event import Event
from eventtickets.models.order import Order, PaymentMethod, PaymentStatus
from eventtickets.models.ticket import Ticket
from eventtickets.schemas.webhook import FulfillmentEvent
from eventtickets.services.notifications import EmailSender, EmailTicket, TicketEmail
from eventtickets.services.stores import EventCatalog, OrderData, OrderStore, TicketStore
from eventtickets.services.ticket_codes import TicketGenerator

logger = logging.getLogger(__name__)

DEFAULT_TICKET_TYPE = "Standard"
MAX_CODE_ATTEMPTS = 3
LARGE_ORDER_QUANTITY = 100


@dataclass(frozen=True)
class FulfillmentResult:
    order_id: str
    order_created: bool
    tickets_created: bool
    ticket_codes: tuple[str, ...]
    notified: bool
    payment_status: str
    notification_error: str | None = None


@dataclass(frozen=True)
class PayOnDayRegistration:
    customer_email: str
    event_name: str
    total_amount: Decimal
    quantity: int = 1
    event_id: str | None = None
    event_date: str | None = None
    ticket_type: str = DEFAULT_TICKET_TYPE
    customer_name: str | None = None
    customer_phone: str | None = None
    idempotency_key: str | None = None


class FulfillmentService:
    def __init__(self, orders: OrderStore, tickets: TicketStore, events: EventCatalog,
                 mailer: EmailSender, generator: TicketGenerator) -> None:
        self.orders = orders
        self.tickets = tickets
        self.events = events
        self.mailer = mailer
        self.generator = generator

    # ----------------------------
    # Paid checkout
    # ----------------------------
    def fulfill_checkout(self, event: FulfillmentEvent) -> FulfillmentResult:
        sid = event.session_id
        if not event.customer_email:
            raise MissingCustomerContact(f"session {sid}: customer email not found")
        if not event.event_name:
            raise MissingEventMetadata(f"session {sid}: event name missing from metadata")

        # only link events the catalog knows; anything else would break the foreign key
        details = self._event_details(event.event_id if is_uuid(event.event_id) else None)
        changes: dict[str, Any] = {
            "event_title": event.event_name,
            "customer_email": event.customer_email,
            "payment_method": PaymentMethod.STRIPE.value,
            "total_amount": minor_to_amount(event.amount_total),
            "payment_status": PaymentStatus.COMPLETED.value,
        }
        if details is not None:
            changes["event_id"] = details.id
        if event.customer_name:
            changes["customer_name"] = event.customer_name
        if event.customer_phone:
            changes["customer_phone"] = event.customer_phone

        if event.quantity > LARGE_ORDER_QUANTITY:
            logger.warning("session %s: unusually large order of %d tickets", sid, event.quantity)
        order, created = self._upsert_order(sid, changes)
        tickets, issued = self._ensure_tickets(
            order.id, event.event_name, event.ticket_type or DEFAULT_TICKET_TYPE, event.quantity
        )

        mail = self._ticket_email(order, tickets, event.event_name, event.event_date, details)
        result = self.mailer.send_confirmation(mail)
        status = order.payment_status
        if result.success:
            logger.info("confirmation sent for order %s (%s)", order.id, result.message_id)
        else:
            logger.error("confirmation email failed for order %s: %s", order.id, result.error)
            status = self._annotate_email_failure(order)
        return FulfillmentResult(
            order_id=order.id,
            order_created=created,
            tickets_created=issued,
            ticket_codes=tuple(t.ticket_code for t in tickets),
            notified=result.success,
            payment_status=status,
            notification_error=result.error,
        )

    def _upsert_order(self, session_id: str, changes: dict[str, Any]) -> tuple[Order, bool]:
        if self.orders.find_by_session_id(session_id) is not None:
            order = self.orders.update_by_session_id(session_id, changes)
            logger.info("updated order %s for session %s", order.id, session_id)
            return order, False
        try:
            order = self.orders.insert(OrderData(external_session_id=session_id, **changes))
        except ConstraintViolation:
            # lost the race against a concurrent delivery of the same session
            logger.info("order for session %s appeared concurrently, updating", session_id)
            return self.orders.update_by_session_id(session_id, changes), False
        logger.info("created order %s for session %s", order.id, session_id)
        return order, True

    def _ensure_tickets(self, order_id: str, event_title: str, ticket_type: str, quantity: int) -> tuple[list[Ticket], bool]:
        existing = self.tickets.find_tickets_by_order_id(order_id)
        if existing:
            logger.info("reusing %d existing tickets for order %s", len(existing), order_id)
            return existing, False
        for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
            batch = self.generator.generate(quantity, event_title)
            try:
                rows = self.tickets.insert_tickets_batch(order_id, batch, ticket_type)
            except TicketsAlreadyIssued:
                rows = self.tickets.find_tickets_by_order_id(order_id)
                logger.info("tickets for order %s issued concurrently, reusing %d", order_id, len(rows))
                return rows, False
            except ConstraintViolation:
                if attempt == MAX_CODE_ATTEMPTS:
                    raise
                logger.warning("ticket code collision for order %s, regenerating (attempt %d)", order_id, attempt)
                continue
            logger.info("created %d tickets for order %s", len(rows), order_id)
            return rows, True
        raise AssertionError("unreachable")

    def _event_details(self, event_id: str | None) -> Event | None:
        if not event_id:
            return None
        try:
            return self.events.get_event(event_id)
        except StoreError as e:
            logger.warning("failed to fetch event %s details: %s", event_id, e)
            return None

    def _ticket_email(self, order: Order, tickets: list[Ticket], title: str, event_date: str | None,
                      details: Event | None) -> TicketEmail:
        if not event_date and details is not None and details.date is not None:
            event_date = details.date.isoformat()
        return TicketEmail(
            customer_email=order.customer_email or "",
            customer_name=order.customer_name,
            event_title=title,
            event_date=event_date,
            event_venue=details.venue if details else None,
            event_description=details.description if details else None,
            tickets=tuple(EmailTicket(t.ticket_code, t.ticket_type, t.qr_code_data) for t in tickets),
            total_amount=order.total_amount,
            payment_method=order.payment_method,
            order_id=order.id,
        )

    def _annotate_email_failure(self, order: Order) -> str:
        try:
            return self.orders.set_status(order.id, PaymentStatus.COMPLETED_EMAIL_FAILED.value).payment_status
        except StoreError:
            logger.exception("could not mark order %s as completed_email_failed", order.id)
            return order.payment_status

    # ----------------------------
    # Other processor notifications
    # ----------------------------
    def handle_payment_succeeded(self, session_id: str) -> Order | None:
        """Informational: a capture without its checkout-session event."""
        order = self.orders.find_by_session_id(session_id)
        if order is None:
            logger.info("no order for payment %s, waiting for checkout session event", session_id)
            return None
        if order.payment_status in (PaymentStatus.PENDING.value, PaymentStatus.FAILED.value):
            order = self.orders.update_by_session_id(session_id, {"payment_status": PaymentStatus.COMPLETED.value})
        return order

    def handle_checkout_failed(self, session_id: str) -> Order | None:
        order = self.orders.find_by_session_id(session_id)
        if order is None or order.payment_status != PaymentStatus.PENDING.value:
            return order
        logger.info("checkout session %s did not complete, marking order %s failed", session_id, order.id)
        return self.orders.update_by_session_id(session_id, {"payment_status": PaymentStatus.FAILED.value})

    # ----------------------------
    # Pay on the day
    # ----------------------------
    def register_pay_on_day(self, reg: PayOnDayRegistration) -> FulfillmentResult:
        """Create a pay-on-day order with its tickets and send the confirmation.

        With an ``idempotency_key`` a retried registration resumes the order
        it created earlier (issuing the tickets if they are still missing)
        instead of creating a second one. Without a key every call is a new
        order.
        """
        if not is_valid_email(reg.customer_email):
            raise MissingCustomerContact("a valid email is required")
        if not reg.event_name:
            raise MissingEventMetadata("event name is required")
        details = self._event_details(reg.event_id if is_uuid(reg.event_id) else None)
        sid = f"payday_{reg.idempotency_key or uuid.uuid4().hex}"
        order = self.orders.find_by_session_id(sid) if reg.idempotency_key else None
        created = order is None
        if order is None:
            try:
                order = self.orders.insert(OrderData(
                    external_session_id=sid,
                    event_id=details.id if details else None,
                    event_title=reg.event_name,
                    customer_email=reg.customer_email.strip(),
                    customer_name=reg.customer_name,
                    customer_phone=reg.customer_phone,
                    payment_method=PaymentMethod.PAY_ON_DAY.value,
                    total_amount=reg.total_amount,
                    payment_status=PaymentStatus.PAY_ON_DAY.value,
                ))
            except ConstraintViolation:
                existing = self.orders.find_by_session_id(sid)
                if existing is None:
                    raise
                order, created = existing, False
        if created:
            logger.info("registered pay-on-day order %s", order.id)
        else:
            logger.info("resuming pay-on-day order %s for key %s", order.id, reg.idempotency_key)
        tickets, issued = self._ensure_tickets(order.id, reg.event_name, reg.ticket_type, reg.quantity)
        result = self.mailer.send_confirmation(
            self._ticket_email(order, tickets, reg.event_name, reg.event_date, details)
        )
        if not result.success:
            logger.error("confirmation email failed for pay-on-day order %s: %s", order.id, result.error)
        return FulfillmentResult(
            order_id=order.id,
            order_created=created,
            tickets_created=issued,
            ticket_codes=tuple(t.ticket_code for t in tickets),
            notified=result.success,
            payment_status=order.payment_status,
            notification_error=result.error,
        )

    # ----------------------------
    # Manual follow-up
    # ----------------------------
    def resend_confirmation(self, order_id: str) -> FulfillmentResult:
        order = self.orders.find_by_id(order_id)
        if order is None:
            raise NotFound(f"order {order_id} not found")
        if not order.customer_email:
            raise MissingCustomerContact(f"order {order_id} has no customer email")
        tickets = self.tickets.find_tickets_by_order_id(order.id)
        if not tickets:
            raise NotFound(f"order {order_id} has no tickets")
        details = self._event_details(order.event_id)
        title = order.event_title or (details.title if details else "Your event")
        result = self.mailer.send_confirmation(self._ticket_email(order, tickets, title, None, details))
        status = order.payment_status
        if result.success and status == PaymentStatus.COMPLETED_EMAIL_FAILED.value:
            status = self.orders.set_status(order.id, PaymentStatus.COMPLETED.value).payment_status
        elif not result.success and status == PaymentStatus.COMPLETED.value:
            status = self._annotate_email_failure(order)
        return FulfillmentResult(
            order_id=order.id,
            order_created=False,
            tickets_created=False,
            ticket_codes=tuple(t.ticket_code for t in tickets),
            notified=result.success,
            payment_status=status,
            notification_error=result.error,
        )
