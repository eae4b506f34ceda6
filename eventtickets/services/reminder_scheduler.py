import asyncio
import logging
from datetime import datetime

from eventtickets.core.errors import StoreError
from eventtickets.helpers import utcnow
from eventtickets.services.notifications import EmailSender, PaymentReminder
from eventtickets.services.stores import OrderStore

logger = logging.getLogger(__name__)

SCAN_INTERVAL_SECONDS = 60
MAX_BATCH = 200

def fire_due_reminders(orders: OrderStore, mailer: EmailSender, now: datetime, lead_hours: int) -> list[str]:
    """Send one payment reminder per pay-on-day order whose event is close.

    Returns the ids of orders reminded in this pass. An order whose email
    fails is left unstamped and picked up again on the next scan.
    """
    sent: list[str] = []
    for order, event in orders.due_pay_on_day_reminders(now, lead_hours, limit=MAX_BATCH):
        result = mailer.send_payment_reminder(PaymentReminder(
            customer_email=order.customer_email or "",
            event_title=order.event_title or event.title,
            event_date=event.date.isoformat() if event.date else None,
            amount=order.total_amount,
            order_id=order.id,
        ))
        if not result.success:
            logger.warning("payment reminder for order %s failed: %s", order.id, result.error)
            continue
        orders.mark_reminder_sent(order.id, now)
        sent.append(order.id)
    return sent

async def reminder_loop(orders: OrderStore, mailer: EmailSender, lead_hours: int,
                        interval: float = SCAN_INTERVAL_SECONDS, initial_delay: float = 3) -> None:
    await asyncio.sleep(initial_delay)
    while True:
        try:
            # SMTP and DB calls block; keep them off the event loop
            sent = await asyncio.to_thread(fire_due_reminders, orders, mailer, utcnow(), lead_hours)
            if sent:
                logger.info("sent %d payment reminders", len(sent))
        except StoreError as e:
            logger.warning("reminder scan failed: %s", e)
        except Exception:
            logger.exception("reminder scan failed")
        await asyncio.sleep(interval)
