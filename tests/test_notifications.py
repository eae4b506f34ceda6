import smtplib
from decimal import Decimal

import pytest

from eventtickets.services import notifications
from eventtickets.services.notifications import (
    EmailTicket,
    PaymentReminder,
    SmtpEmailSender,
    TicketEmail,
    UnconfiguredEmailSender,
)


class FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None):
        self.host, self.port, self.timeout = host, port, timeout
        self.started_tls = False
        self.logged_in = None
        self.sent = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.started_tls = True

    def login(self, user, password):
        if FakeSMTP.fail_login:
            raise smtplib.SMTPAuthenticationError(535, b"authentication failed")
        self.logged_in = (user, password)

    def send_message(self, msg):
        self.sent.append(msg)


@pytest.fixture(autouse=True)
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    FakeSMTP.fail_login = False
    monkeypatch.setattr(notifications.smtplib, "SMTP", FakeSMTP)
    monkeypatch.setattr(notifications.smtplib, "SMTP_SSL", FakeSMTP)
    return FakeSMTP


def sender(port=587):
    return SmtpEmailSender("smtp.test", port, "relay-user", "relay-pass", "noreply@eventtickets.com",
                           reply_to="support@eventtickets.com")


def confirmation():
    return TicketEmail(
        customer_email="buyer@example.com",
        event_title="Jazz Night",
        event_date="2026-03-14",
        total_amount=Decimal("45.00"),
        payment_method="stripe",
        order_id="order-1",
        tickets=(
            EmailTicket("TICKET-20260314-AAAAAAAA", "Standard", "data:image/png;base64,iVBORw0KGgo="),
            EmailTicket("TICKET-20260314-BBBBBBBB", "Standard", "data:image/png;base64,iVBORw0KGgo="),
        ),
    )


def test_confirmation_is_sent_with_inline_qr_images():
    result = sender().send_confirmation(confirmation())
    assert result.success
    assert result.message_id

    [smtp] = FakeSMTP.instances
    assert smtp.started_tls
    assert smtp.logged_in == ("relay-user", "relay-pass")
    [msg] = smtp.sent
    assert msg["To"] == "buyer@example.com"
    assert msg["Reply-To"] == "support@eventtickets.com"
    assert msg["Subject"] == "Your Tickets for Jazz Night - Order order-1"

    images = [p for p in msg.walk() if p.get_content_type() == "image/png"]
    assert [p["Content-ID"] for p in images] == ["<qr_code_0>", "<qr_code_1>"]
    html = next(p for p in msg.walk() if p.get_content_type() == "text/html").get_content()
    assert "cid:qr_code_0" in html
    assert "base64" not in html


def test_implicit_tls_port_skips_starttls():
    assert sender(port=465).send_confirmation(confirmation()).success
    assert FakeSMTP.instances[0].started_tls is False


def test_transport_failure_is_reported_not_raised():
    FakeSMTP.fail_login = True
    result = sender().send_confirmation(confirmation())
    assert result.success is False
    assert "authentication failed" in result.error


def test_payment_reminder_is_sent():
    reminder = PaymentReminder("buyer@example.com", "Jazz Night", "2026-03-14", Decimal("30"), "order-2")
    assert sender().send_payment_reminder(reminder).success
    [msg] = FakeSMTP.instances[0].sent
    assert msg["Subject"] == "Payment Reminder: Jazz Night - Order order-2"


def test_unconfigured_sender_always_fails():
    result = UnconfiguredEmailSender().send_confirmation(confirmation())
    assert result.success is False
    assert result.error == "SMTP credentials are not configured"
