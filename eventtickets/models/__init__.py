from eventtickets.models.base import Base
from eventtickets.models.event import Event, TicketType
from eventtickets.models.order import Order, PaymentMethod, PaymentStatus
from eventtickets.models.ticket import Ticket

__all__ = ["Base", "Event", "TicketType", "Order", "PaymentMethod", "PaymentStatus", "Ticket"]
