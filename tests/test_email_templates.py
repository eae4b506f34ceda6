from decimal import Decimal

from eventtickets.services import email_templates as tpl
from eventtickets.services.notifications import EmailTicket, PaymentReminder, TicketEmail


def ticket_email(**overrides):
    data = dict(
        customer_email="buyer@example.com",
        customer_name="Ada",
        event_title="Jazz Night",
        event_date="2026-03-14T18:00:00Z",
        event_venue="Blue Note Hall",
        total_amount=Decimal("45"),
        payment_method="stripe",
        order_id="order-1",
        tickets=(
            EmailTicket("TICKET-20260314-AAAAAAAA", "Standard", "data:image/png;base64,QUFB"),
            EmailTicket("TICKET-20260314-BBBBBBBB", "Standard", "data:image/png;base64,QkJC"),
        ),
    )
    data.update(overrides)
    return TicketEmail(**data)


def test_confirmation_rendering_is_deterministic():
    data = ticket_email()
    assert tpl.render_confirmation_html(data) == tpl.render_confirmation_html(data)
    assert tpl.render_confirmation_text(data) == tpl.render_confirmation_text(data)


def test_confirmation_html_contents():
    html = tpl.render_confirmation_html(ticket_email())
    assert "Hello Ada!" in html
    assert "Saturday, March 14, 2026" in html
    assert "Blue Note Hall" in html
    assert "Payment Confirmed" in html
    assert "$45.00" in html
    assert "Your Tickets (2)" in html
    assert "TICKET-20260314-BBBBBBBB" in html
    assert 'src="data:image/png;base64,QUFB"' in html


def test_confirmation_html_uses_given_image_sources():
    html = tpl.render_confirmation_html(ticket_email(), ["cid:qr_code_0", "cid:qr_code_1"])
    assert 'src="cid:qr_code_1"' in html
    assert "base64" not in html


def test_pay_on_day_shows_payment_due():
    data = ticket_email(payment_method="pay-on-day", total_amount=Decimal("22.5"))
    html = tpl.render_confirmation_html(data)
    assert "Please pay $22.50 at the venue" in html
    assert "Payment Confirmed" not in html
    assert "Please pay $22.50 at the venue" in tpl.render_confirmation_text(data)


def test_missing_date_renders_placeholder():
    html = tpl.render_confirmation_html(ticket_email(event_date=None))
    assert "To be announced" in html
    assert tpl.format_event_date("not a date") == "To be announced"


def test_user_content_is_escaped_in_html():
    html = tpl.render_confirmation_html(ticket_email(event_title="<script>x</script>"))
    assert "<script>x</script>" not in html
    assert "&lt;script&gt;" in html


def test_text_body_lists_tickets():
    text = tpl.render_confirmation_text(ticket_email(customer_name=None))
    assert text.startswith("Hello!")
    assert "1. TICKET-20260314-AAAAAAAA (Standard)" in text
    assert "Order ID: order-1" in text


def test_subjects():
    assert tpl.confirmation_subject(ticket_email()) == "Your Tickets for Jazz Night - Order order-1"
    reminder = PaymentReminder("buyer@example.com", "Jazz Night", "2026-03-14", Decimal("30"), "order-2")
    assert tpl.reminder_subject(reminder) == "Payment Reminder: Jazz Night - Order order-2"


def test_reminder_bodies():
    reminder = PaymentReminder("buyer@example.com", "Jazz Night", "2026-03-14T18:00:00", Decimal("30"), "order-2")
    html = tpl.render_reminder_html(reminder)
    assert "$30.00" in html
    assert "3/14/2026" in html
    text = tpl.render_reminder_text(reminder)
    assert "Amount due: $30.00" in text
    assert "Order ID: order-2" in text
