import hashlib
import hmac
import json
import time
from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select

from eventtickets.core.config import Settings
from eventtickets.core.security import create_access_token
from eventtickets.db.init_db import create_tables
from eventtickets.db.session import make_engine, make_session_factory
from eventtickets.helpers import utcnow
from eventtickets.main import create_app
from eventtickets.models.order import Order
from eventtickets.models.ticket import Ticket
from eventtickets.services.container import assemble
from eventtickets.services.notifications import EmailSender, SendResult
from eventtickets.services.payments import CheckoutSessionResult, PaymentGateway
from eventtickets.services.stores import EventDraft, SqlEventCatalog, SqlOrderStore, SqlTicketStore
from eventtickets.services.ticket_codes import TicketGenerator

WEBHOOK_SECRET = "whsec_test_secret"
JWT_SECRET = "test-jwt-secret"


class RecordingMailer(EmailSender):
    """Keeps every message instead of sending it; flip ``fail`` to simulate an SMTP outage."""

    def __init__(self):
        self.confirmations = []
        self.reminders = []
        self.fail = False

    def _result(self, sent):
        if self.fail:
            return SendResult(success=False, error="smtp relay unavailable")
        return SendResult(success=True, message_id=f"<msg-{len(sent)}@test>")

    def send_confirmation(self, data):
        self.confirmations.append(data)
        return self._result(self.confirmations)

    def send_payment_reminder(self, data):
        self.reminders.append(data)
        return self._result(self.reminders)


class FakeGateway(PaymentGateway):
    def __init__(self):
        self.calls = []

    def create_checkout_session(self, **kwargs):
        self.calls.append(kwargs)
        sid = f"cs_test_{len(self.calls)}"
        return CheckoutSessionResult(session_id=sid, url=f"https://checkout.test/pay/{sid}")


def fake_qr(payload: str) -> bytes:
    return b"QR:" + payload.encode("utf-8")


def sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    ts = int(time.time()) if timestamp is None else timestamp
    signed = f"{ts}.{payload.decode('utf-8')}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


def checkout_event(session_id="cs_test_1", amount_total=4500, email="buyer@example.com",
                   metadata=None, event_type="checkout.session.completed", **extra) -> bytes:
    obj = {
        "id": session_id,
        "object": "checkout.session",
        "amount_total": amount_total,
        "payment_status": "paid",
        "customer_details": {"email": email, "name": "Ada Buyer", "phone": None},
        "metadata": {"eventName": "Jazz Night", "quantity": "2"} if metadata is None else metadata,
    }
    obj.update(extra)
    return json.dumps({"id": f"evt_{session_id}", "type": event_type, "created": int(time.time()),
                       "data": {"object": obj}}).encode("utf-8")


@pytest.fixture
def settings():
    return Settings(
        ENV="test",
        SECRET_KEY=JWT_SECRET,
        DATABASE_URL="sqlite://",
        STRIPE_WEBHOOK_SECRET=WEBHOOK_SECRET,
        PUBLIC_BASE_URL="https://tickets.test",
        REMINDERS_ENABLED=False,
    )


@pytest.fixture
def sessions():
    engine = make_engine("sqlite://")
    create_tables(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def services(settings, sessions, mailer, gateway):
    return assemble(
        settings,
        SqlOrderStore(sessions),
        SqlTicketStore(sessions),
        SqlEventCatalog(sessions),
        mailer,
        gateway,
        generator=TicketGenerator(prefix="TICKET", renderer=fake_qr),
        sessions=sessions,
    )


@pytest.fixture
def client(services):
    return TestClient(create_app(services))


@pytest.fixture
def post_webhook(client):
    def _post(payload: bytes, signature: str | None = None):
        headers = {"Content-Type": "application/json"}
        headers["Stripe-Signature"] = sign(payload) if signature is None else signature
        return client.post("/webhooks/stripe", content=payload, headers=headers)
    return _post


def auth_headers(user_id: str) -> dict:
    token = create_access_token(user_id, secret_key=JWT_SECRET)
    return {"Authorization": f"Bearer {token}"}


def published_event(services, title="Jazz Night", organizer="organizer-1", days_ahead=30,
                    price=Decimal("25.00"), hours_ahead=None):
    when = utcnow() + (timedelta(hours=hours_ahead) if hours_ahead is not None else timedelta(days=days_ahead))
    ev = services.events.create_draft(organizer, EventDraft(
        title=title, description="Local trios, late set.", date=when, venue="Blue Note Hall",
        ticket_types=[("Standard", price, 100)],
    ))
    return services.events.publish(ev.id)


def count_rows(sessions, model) -> int:
    with sessions() as db:
        return db.scalar(select(func.count()).select_from(model))


def count_orders(sessions) -> int:
    return count_rows(sessions, Order)


def count_tickets(sessions) -> int:
    return count_rows(sessions, Ticket)
