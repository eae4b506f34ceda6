import logging
from datetime import timedelta
from decimal import Decimal

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from eventtickets import models  # noqa: F401
from eventtickets.helpers import utcnow
from eventtickets.models.base import Base
from eventtickets.models.event import Event, TicketType

logger = logging.getLogger(__name__)

DEMO_ORGANIZER = "demo-organizer"

def create_tables(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)

def seed_demo_data(sessions: sessionmaker[Session]) -> None:
    """Seed a couple of published demo events (idempotent, keyed by title)."""
    now = utcnow()
    demo = [
        ("5K Fun Run", "Riverside Park", "A relaxed 5K around the river loop.", now + timedelta(days=14),
         [("Standard", Decimal("22.50")), ("VIP", Decimal("45.00"))]),
        ("Jazz Night", "Blue Note Hall", "Local trios, late set.", now + timedelta(days=30),
         [("Standard", Decimal("30.00"))]),
    ]
    with sessions() as db:
        for title, venue, description, date, types in demo:
            if db.query(Event).filter(Event.title == title).first():
                continue
            ev = Event(
                title=title, venue=venue, description=description, date=date,
                organizer_id=DEMO_ORGANIZER, status="published", published_at=now,
            )
            ev.ticket_types = [TicketType(name=name, price=price, quantity_available=500) for name, price in types]
            db.add(ev)
            logger.info("seeded demo event %r", title)
        db.commit()
