"""Startup wiring.

Decides once, from settings, which concrete store, mailer and gateway the
process uses. Nothing downstream re-checks whether a backend is configured;
an unconfigured one is simply an implementation that reports Unavailable.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from eventtickets.core.config import Settings
from eventtickets.db.session import make_engine, make_session_factory
from eventtickets.services.fulfillment import FulfillmentService
from eventtickets.services.notifications import EmailSender, SmtpEmailSender, UnconfiguredEmailSender
from eventtickets.services.payments import PaymentGateway, StripeGateway, UnconfiguredGateway, WebhookVerifier
from eventtickets.services.stores import (
    EventCatalog,
    OrderStore,
    SqlEventCatalog,
    SqlOrderStore,
    SqlTicketStore,
    TicketStore,
    UnavailableEventCatalog,
    UnavailableOrderStore,
    UnavailableTicketStore,
)
from eventtickets.services.ticket_codes import TicketGenerator

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    orders: OrderStore
    tickets: TicketStore
    events: EventCatalog
    mailer: EmailSender
    gateway: PaymentGateway
    verifier: WebhookVerifier
    generator: TicketGenerator
    fulfillment: FulfillmentService
    engine: Optional[Engine] = None
    sessions: Optional[sessionmaker[Session]] = None


def assemble(settings: Settings, orders: OrderStore, tickets: TicketStore, events: EventCatalog,
             mailer: EmailSender, gateway: PaymentGateway, generator: TicketGenerator | None = None,
             engine: Engine | None = None, sessions: sessionmaker[Session] | None = None) -> Services:
    generator = generator or TicketGenerator(prefix=settings.ticket_code_prefix)
    return Services(
        settings=settings,
        orders=orders,
        tickets=tickets,
        events=events,
        mailer=mailer,
        gateway=gateway,
        verifier=WebhookVerifier(settings.stripe_webhook_secret, settings.webhook_tolerance_seconds),
        generator=generator,
        fulfillment=FulfillmentService(orders, tickets, events, mailer, generator),
        engine=engine,
        sessions=sessions,
    )


def build_services(settings: Settings) -> Services:
    engine = sessions = None
    if settings.database_url:
        engine = make_engine(settings.database_url)
        sessions = make_session_factory(engine)
        orders, tickets, events = SqlOrderStore(sessions), SqlTicketStore(sessions), SqlEventCatalog(sessions)
    else:
        logger.warning("DATABASE_URL is not set; order and ticket storage will report unavailable")
        orders, tickets, events = UnavailableOrderStore(), UnavailableTicketStore(), UnavailableEventCatalog()

    if settings.smtp_configured:
        mailer: EmailSender = SmtpEmailSender(
            host=settings.smtp_host,
            port=settings.smtp_port,
            user=settings.smtp_user,
            password=settings.smtp_password,
            from_email=settings.from_email,
            reply_to=settings.support_email,
            timeout=settings.smtp_timeout_seconds,
        )
    else:
        logger.warning("SMTP is not configured; confirmation emails will fail")
        mailer = UnconfiguredEmailSender()

    if settings.stripe_secret_key:
        gateway: PaymentGateway = StripeGateway(settings.stripe_secret_key)
    else:
        gateway = UnconfiguredGateway()
    if not settings.stripe_webhook_secret:
        logger.warning("STRIPE_WEBHOOK_SECRET is not set; every webhook delivery will be rejected")

    return assemble(settings, orders, tickets, events, mailer, gateway, engine=engine, sessions=sessions)
