"""Strict models for the payment processor's webhook payloads.

Only the fields the fulfillment pipeline reads are declared; anything else
the processor sends is ignored. Business-required fields (customer email,
event name) are allowed to be absent here and are enforced by the
fulfillment service, which reports them with their own error types.
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from eventtickets.core.errors import MalformedPayload


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class CustomerDetails(_Lenient):
    email: str | None = None
    name: str | None = None
    phone: str | None = None


class CheckoutMetadata(_Lenient):
    event_id: str | None = Field(default=None, alias="eventId")
    event_name: str | None = Field(default=None, alias="eventName")
    event_date: str | None = Field(default=None, alias="eventDate")
    ticket_type: str | None = Field(default=None, alias="ticketType")
    quantity: int = Field(default=1, ge=1)

    @field_validator("quantity", mode="before")
    @classmethod
    def _default_quantity(cls, v: Any) -> Any:
        # processor metadata values are strings; "" means "not set"
        if v is None or (isinstance(v, str) and not v.strip()):
            return 1
        return v

    @field_validator("event_id", "event_name", "event_date", "ticket_type", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class CheckoutSession(_Lenient):
    id: str = Field(min_length=1)
    amount_total: int | None = Field(default=None, ge=0)
    customer_email: str | None = None
    customer_details: CustomerDetails | None = None
    metadata: CheckoutMetadata = Field(default_factory=CheckoutMetadata)

    @field_validator("metadata", mode="before")
    @classmethod
    def _null_metadata(cls, v: Any) -> Any:
        return {} if v is None else v


class WebhookData(_Lenient):
    object: dict[str, Any]


class WebhookEvent(_Lenient):
    id: str = Field(min_length=1)
    type: str = Field(min_length=1)
    data: WebhookData
    created: int | None = None

    @property
    def object_id(self) -> str | None:
        value = self.data.object.get("id")
        return value if isinstance(value, str) and value else None


class FulfillmentEvent(BaseModel):
    """A completed payment, reduced to what fulfillment needs."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    amount_total: int = 0  # minor currency units
    customer_email: str | None = None
    customer_name: str | None = None
    customer_phone: str | None = None
    event_id: str | None = None
    event_name: str | None = None
    event_date: str | None = None
    ticket_type: str | None = None
    quantity: int = 1

    @classmethod
    def from_checkout_session(cls, obj: dict[str, Any]) -> "FulfillmentEvent":
        try:
            session = CheckoutSession.model_validate(obj)
        except ValidationError as e:
            raise MalformedPayload(f"invalid checkout session: {e.errors(include_url=False, include_input=False)}") from e
        details = session.customer_details or CustomerDetails()
        email = (details.email or session.customer_email or "").strip() or None
        meta = session.metadata
        return cls(
            session_id=session.id,
            amount_total=session.amount_total or 0,
            customer_email=email,
            customer_name=details.name,
            customer_phone=details.phone,
            event_id=meta.event_id,
            event_name=meta.event_name,
            event_date=meta.event_date,
            ticket_type=meta.ticket_type,
            quantity=meta.quantity,
        )
