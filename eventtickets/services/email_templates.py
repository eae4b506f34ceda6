"""Email rendering. Output depends only on the data passed in."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Sequence

from jinja2 import Environment, PackageLoader, StrictUndefined, select_autoescape

if TYPE_CHECKING:
    from eventtickets.services.notifications import PaymentReminder, TicketEmail

TO_BE_ANNOUNCED = "To be announced"


def _money(value) -> str:
    return f"{Decimal(value):.2f}"


env = Environment(
    loader=PackageLoader("eventtickets", "templates"),
    autoescape=select_autoescape(["html"]),
    undefined=StrictUndefined,
    trim_blocks=True,
    lstrip_blocks=True,
)
env.filters["money"] = _money


def _parse(value: str | date | datetime | None) -> date | None:
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        return None


def format_event_date(value: str | date | datetime | None) -> str:
    """'2026-03-14T18:00:00Z' -> 'Saturday, March 14, 2026'"""
    d = _parse(value)
    if d is None:
        return TO_BE_ANNOUNCED
    return f"{d:%A}, {d:%B} {d.day}, {d.year}"


def format_short_date(value: str | date | datetime | None) -> str:
    d = _parse(value)
    if d is None:
        return TO_BE_ANNOUNCED
    return f"{d.month}/{d.day}/{d.year}"


def confirmation_subject(data: "TicketEmail") -> str:
    return f"Your Tickets for {data.event_title} - Order {data.order_id}"


def qr_cid(index: int) -> str:
    return f"qr_code_{index}"


def render_confirmation_html(data: "TicketEmail", image_srcs: Sequence[str] | None = None) -> str:
    """HTML body; ``image_srcs`` defaults to the ticket data URLs themselves."""
    if image_srcs is None:
        image_srcs = [t.qr_code_data for t in data.tickets]
    return env.get_template("email/ticket_confirmation.html").render(
        data=data,
        event_date=format_event_date(data.event_date),
        pay_on_day=data.payment_method == "pay-on-day",
        image_srcs=list(image_srcs),
    )


def render_confirmation_text(data: "TicketEmail") -> str:
    return env.get_template("email/ticket_confirmation.txt").render(
        data=data,
        event_date=format_event_date(data.event_date),
        pay_on_day=data.payment_method == "pay-on-day",
    )


def reminder_subject(data: "PaymentReminder") -> str:
    return f"Payment Reminder: {data.event_title} - Order {data.order_id}"


def render_reminder_html(data: "PaymentReminder") -> str:
    return env.get_template("email/payment_reminder.html").render(
        data=data,
        event_date=format_short_date(data.event_date),
    )


def render_reminder_text(data: "PaymentReminder") -> str:
    return (
        f"This is a reminder to complete your payment for {data.event_title}.\n"
        f"Amount due: ${_money(data.amount)}\n"
        f"Event date: {format_short_date(data.event_date)}\n"
        f"Order ID: {data.order_id}\n"
    )
