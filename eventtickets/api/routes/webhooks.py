import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from eventtickets.api.deps import get_services
from eventtickets.core.errors import StoreError, TicketingError
from eventtickets.schemas.webhook import FulfillmentEvent, WebhookEvent
from eventtickets.services.container import Services
from eventtickets.services.fulfillment import FulfillmentService
from eventtickets.services.payments import SIGNATURE_HEADER

logger = logging.getLogger(__name__)

router = APIRouter()

FULFILL_EVENTS = {"checkout.session.completed", "checkout.session.async_payment_succeeded"}
FAILED_EVENTS = {"checkout.session.expired", "checkout.session.async_payment_failed"}

def dispatch_event(fulfillment: FulfillmentService, event: WebhookEvent) -> None:
    if event.type in FULFILL_EVENTS:
        if event.type == "checkout.session.completed" and event.data.object.get("payment_status") == "unpaid":
            # delayed payment methods; tickets wait for async_payment_succeeded
            logger.info("checkout session %s completed but unpaid, waiting", event.object_id)
            return
        fulfillment.fulfill_checkout(FulfillmentEvent.from_checkout_session(event.data.object))
    elif event.type == "payment_intent.succeeded":
        if not event.object_id:
            return
        try:
            fulfillment.handle_payment_succeeded(event.object_id)
        except StoreError as e:
            # informational only; the checkout session event does the real work
            logger.warning("could not record payment %s: %s", event.object_id, e)
    elif event.type in FAILED_EVENTS:
        if event.object_id:
            fulfillment.handle_checkout_failed(event.object_id)
    elif event.type == "charge.refunded":
        logger.info("refund received for %s, no automated handling", event.object_id)
    else:
        logger.info("unhandled webhook event type: %s", event.type)

@router.post("/stripe")
async def stripe_webhook(request: Request, services: Services = Depends(get_services)):
    """Payment processor webhook.

    200 {"received": true} once the event is handled (or deliberately ignored);
    400 {"error", "received": false} when it cannot be trusted, parsed or
    fulfilled, so the processor delivers it again.
    """
    payload = await request.body()
    try:
        event = services.verifier.verify(payload, request.headers.get(SIGNATURE_HEADER))
        logger.info("webhook event received: %s (%s)", event.type, event.id)
        await run_in_threadpool(dispatch_event, services.fulfillment, event)
    except TicketingError as e:
        logger.error("webhook error: %s: %s", type(e).__name__, e)
        return JSONResponse(status_code=400, content={"error": str(e), "received": False})
    return {"received": True}
