from fastapi import APIRouter

from eventtickets.api.routes import checkout, events, health, orders, registrations, tickets, webhooks

api_router = APIRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])  # GET /
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])  # POST /stripe
api_router.include_router(checkout.router, prefix="/checkout", tags=["checkout"])  # POST /
api_router.include_router(events.router, prefix="/events", tags=["events"])  # GET /, /mine, /{id}; POST /, /{id}/publish
api_router.include_router(events.ticket_types_router, prefix="/ticket-types", tags=["events"])  # GET /?event_id=
api_router.include_router(tickets.router, prefix="/tickets", tags=["tickets"])  # /lookup, GET /{code}, POST /{code}/check-in
api_router.include_router(registrations.router, prefix="/registrations", tags=["registrations"])  # pay-on-day, payment-reminder
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])  # POST /{id}/resend-confirmation
