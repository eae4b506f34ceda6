"""Payment processor integration: inbound webhook verification and the
checkout-session call that starts a payment.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import stripe
from pydantic import ValidationError

from eventtickets.core.errors import MalformedPayload, PaymentGatewayError, SignatureInvalid, Unavailable
from eventtickets.schemas.webhook import WebhookEvent

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "stripe-signature"


class WebhookVerifier:
    """Authenticates a webhook delivery, then parses it.

    The HMAC check runs on the raw body first; the body is only parsed once
    it is known to be exactly what the processor signed.
    """

    def __init__(self, secret: str | None, tolerance_seconds: int = 300) -> None:
        self._secret = secret
        self.tolerance_seconds = tolerance_seconds

    def verify(self, payload: bytes, signature: str | None) -> WebhookEvent:
        if not self._secret:
            raise SignatureInvalid("webhook secret is not configured")
        if not signature:
            raise SignatureInvalid("missing signature header")
        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedPayload("body is not valid UTF-8") from e
        try:
            stripe.WebhookSignature.verify_header(body, signature, self._secret, self.tolerance_seconds)
        except stripe.SignatureVerificationError as e:
            raise SignatureInvalid(f"webhook signature verification failed: {e}") from e
        try:
            return WebhookEvent.model_validate_json(payload)
        except ValidationError as e:
            raise MalformedPayload(f"invalid webhook event: {e.errors(include_url=False, include_input=False)}") from e


# ----------------------------
# Checkout gateway
# ----------------------------
@dataclass(frozen=True)
class CheckoutSessionResult:
    session_id: str
    url: str


class PaymentGateway(ABC):
    @abstractmethod
    def create_checkout_session(
        self,
        *,
        product_name: str,
        unit_amount: int,
        quantity: int,
        currency: str,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
        customer_email: str | None = None,
    ) -> CheckoutSessionResult:
        """Create a hosted checkout session; amounts are in minor units."""
        ...


class StripeGateway(PaymentGateway):
    def __init__(self, api_key: str) -> None:
        self.api_key = api_key

    def create_checkout_session(
        self,
        *,
        product_name: str,
        unit_amount: int,
        quantity: int,
        currency: str,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
        customer_email: str | None = None,
    ) -> CheckoutSessionResult:
        params = dict(
            mode="payment",
            payment_method_types=["card"],
            line_items=[{
                "price_data": {
                    "currency": currency,
                    "product_data": {"name": product_name},
                    "unit_amount": unit_amount,
                },
                "quantity": quantity,
            }],
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
        )
        if customer_email:
            params["customer_email"] = customer_email
        try:
            session = stripe.checkout.Session.create(api_key=self.api_key, **params)
        except stripe.APIConnectionError as e:
            raise Unavailable(f"payment processor unreachable: {e}") from e
        except stripe.StripeError as e:
            logger.error("checkout session creation failed: %s", e)
            raise PaymentGatewayError(str(e)) from e
        return CheckoutSessionResult(session_id=session.id, url=session.url)


class UnconfiguredGateway(PaymentGateway):
    def create_checkout_session(self, **_kwargs) -> CheckoutSessionResult:
        raise Unavailable("payment processor is not configured")
