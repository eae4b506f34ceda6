"""Outbound customer email.

Senders never raise: every transport problem comes back as a failed
``SendResult`` so callers can decide how much a missing email matters.
"""
from __future__ import annotations

import logging
import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from email.message import EmailMessage
from email.utils import make_msgid

from eventtickets.services import email_templates as tpl
from eventtickets.services.ticket_codes import data_url_to_bytes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailTicket:
    ticket_code: str
    ticket_type: str
    qr_code_data: str


@dataclass(frozen=True)
class TicketEmail:
    customer_email: str
    event_title: str
    event_date: str | None
    total_amount: Decimal
    payment_method: str
    order_id: str
    tickets: tuple[EmailTicket, ...] = field(default_factory=tuple)
    customer_name: str | None = None
    event_venue: str | None = None
    event_description: str | None = None


@dataclass(frozen=True)
class PaymentReminder:
    customer_email: str
    event_title: str
    event_date: str | None
    amount: Decimal
    order_id: str


@dataclass(frozen=True)
class SendResult:
    success: bool
    message_id: str | None = None
    error: str | None = None


class EmailSender(ABC):
    @abstractmethod
    def send_confirmation(self, data: TicketEmail) -> SendResult: ...

    @abstractmethod
    def send_payment_reminder(self, data: PaymentReminder) -> SendResult: ...


class SmtpEmailSender(EmailSender):
    """SMTP relay transport; STARTTLS on 587, implicit TLS on 465."""

    def __init__(self, host: str, port: int, user: str, password: str, from_email: str,
                 reply_to: str | None = None, timeout: float = 10.0) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.from_email = from_email
        self.reply_to = reply_to
        self.timeout = timeout

    def _message(self, to: str, subject: str, text: str, html: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.from_email
        msg["To"] = to
        if self.reply_to:
            msg["Reply-To"] = self.reply_to
        msg["Message-ID"] = make_msgid(domain=self.from_email.rpartition("@")[2] or None)
        msg.set_content(text)
        msg.add_alternative(html, subtype="html")
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        if self.port == 465:
            smtp: smtplib.SMTP = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        else:
            smtp = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        with smtp:
            if self.port != 465:
                smtp.starttls()
            smtp.login(self.user, self.password)
            smtp.send_message(msg)

    def send_confirmation(self, data: TicketEmail) -> SendResult:
        try:
            # QR codes go inline as CID parts; most clients block data: URLs
            srcs = [f"cid:{tpl.qr_cid(i)}" for i in range(len(data.tickets))]
            msg = self._message(
                data.customer_email,
                tpl.confirmation_subject(data),
                tpl.render_confirmation_text(data),
                tpl.render_confirmation_html(data, srcs),
            )
            html_part = msg.get_payload()[1]
            for i, ticket in enumerate(data.tickets):
                html_part.add_related(
                    data_url_to_bytes(ticket.qr_code_data),
                    maintype="image",
                    subtype="png",
                    cid=f"<{tpl.qr_cid(i)}>",
                    filename=f"ticket-{i + 1}.png",
                )
            self._deliver(msg)
        except Exception as e:
            logger.exception("failed to send ticket confirmation for order %s", data.order_id)
            return SendResult(success=False, error=str(e) or type(e).__name__)
        return SendResult(success=True, message_id=msg["Message-ID"])

    def send_payment_reminder(self, data: PaymentReminder) -> SendResult:
        try:
            msg = self._message(
                data.customer_email,
                tpl.reminder_subject(data),
                tpl.render_reminder_text(data),
                tpl.render_reminder_html(data),
            )
            self._deliver(msg)
        except Exception as e:
            logger.exception("failed to send payment reminder for order %s", data.order_id)
            return SendResult(success=False, error=str(e) or type(e).__name__)
        return SendResult(success=True, message_id=msg["Message-ID"])


class UnconfiguredEmailSender(EmailSender):
    error = "SMTP credentials are not configured"

    def send_confirmation(self, data: TicketEmail) -> SendResult:
        logger.warning("not sending confirmation for order %s: %s", data.order_id, self.error)
        return SendResult(success=False, error=self.error)

    def send_payment_reminder(self, data: PaymentReminder) -> SendResult:
        logger.warning("not sending payment reminder for order %s: %s", data.order_id, self.error)
        return SendResult(success=False, error=self.error)
