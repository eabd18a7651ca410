"""Error taxonomy shared by the ordering core and the payment adapters.

Validation and lookup failures reuse Protean's own exceptions
(``ValidationError`` and ``ObjectNotFoundError``); the classes below cover the
failure kinds Protean has no vocabulary for. The HTTP layer maps each class to
a status code in ``shared.http``.
"""

from protean.exceptions import ValidationError


class ForbiddenError(Exception):
    """The caller is authenticated but may not act on this order."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidTransitionError(ValidationError):
    """The requested fulfillment status is not reachable from the current one."""


class InvalidStateError(ValidationError):
    """The order is not in a state that allows the requested operation."""


class WebhookSignatureError(Exception):
    """A webhook payload failed signature verification."""


class GatewayError(Exception):
    """The payment processor was unreachable or rejected a request.

    Always retryable from the caller's point of view: nothing was persisted.
    """

    retryable = True

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class PersistenceError(Exception):
    """The order store failed; the operation was not applied."""

    retryable = True


class OrderBusyError(PersistenceError):
    """Another request held or changed the order; retrying will see its result."""
