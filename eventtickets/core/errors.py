"""Error taxonomy shared by the stores, the webhook verifier and the
fulfillment pipeline.

Store and transport failures are raised as ``StoreError`` subclasses; the
fulfillment service decides per step whether a failure is fatal.
"""


class TicketingError(Exception):
    """Base class for every error this package raises on purpose."""


class InboundEventError(TicketingError):
    """The inbound webhook could not be trusted or understood."""


class SignatureInvalid(InboundEventError):
    pass


class MalformedPayload(InboundEventError):
    pass


class FulfillmentDataError(TicketingError):
    """A trusted event is missing data the pipeline cannot do without."""


class MissingCustomerContact(FulfillmentDataError):
    pass


class MissingEventMetadata(FulfillmentDataError):
    pass


class StoreError(TicketingError):
    pass


class NotFound(StoreError):
    pass


class ConstraintViolation(StoreError):
    pass


class TicketsAlreadyIssued(ConstraintViolation):
    """The order already owns a ticket set; nothing was written."""


class Unavailable(StoreError):
    pass


class Timeout(Unavailable):
    pass


class PaymentGatewayError(TicketingError):
    """The payment processor rejected a request we made to it."""
