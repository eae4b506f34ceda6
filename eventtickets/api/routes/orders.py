from fastapi import APIRouter, Depends

from eventtickets.api.deps import get_fulfillment
from eventtickets.services.fulfillment import FulfillmentService

router = APIRouter()


@router.post("/{order_id}/resend-confirmation")
def resend_confirmation(order_id: str, fulfillment: FulfillmentService = Depends(get_fulfillment)):
    """Send the confirmation email again with the order's existing tickets.

    Used to recover orders left in ``completed_email_failed``.
    """
    result = fulfillment.resend_confirmation(order_id)
    return {
        "order_id": result.order_id,
        "email_sent": result.notified,
        "email_error": result.notification_error,
        "payment_status": result.payment_status,
        "ticket_codes": list(result.ticket_codes),
    }
