"""HTTP error mapping shared by the application and the API tests.

Every failure leaves the service as
``{"success": false, "error", "message", "details", "retryable"}``.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.integrations.fastapi import register_exception_handlers
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.errors import (
    ForbiddenError,
    GatewayError,
    InvalidStateError,
    InvalidTransitionError,
    OrderBusyError,
    PersistenceError,
    WebhookSignatureError,
)

_HTTP_ERROR_NAMES = {401: "Unauthorized", 403: "Forbidden", 404: "NotFound", 405: "MethodNotAllowed"}


def error_response(status_code: int, error: str, message: str, details=None, retryable: bool = False) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": error,
            "message": message,
            "details": details,
            "retryable": retryable,
        },
    )


def _first_message(messages: dict) -> str:
    for field_messages in (messages or {}).values():
        if field_messages:
            return str(field_messages[0])
    return "Validation failed"


async def _invalid_transition(request: Request, exc: InvalidTransitionError):
    return error_response(400, "InvalidTransition", _first_message(exc.messages), exc.messages)


async def _invalid_state(request: Request, exc: InvalidStateError):
    return error_response(400, "InvalidState", _first_message(exc.messages), exc.messages)


async def _validation_error(request: Request, exc: ValidationError):
    return error_response(400, "ValidationError", _first_message(exc.messages), exc.messages)


async def _request_validation(request: Request, exc: RequestValidationError):
    details = [{"loc": list(err["loc"]), "msg": err["msg"]} for err in exc.errors()]
    return error_response(400, "ValidationError", "Invalid request body", details)


async def _not_found(request: Request, exc: ObjectNotFoundError):
    return error_response(404, "NotFound", str(exc) or "Resource not found")


async def _forbidden(request: Request, exc: ForbiddenError):
    return error_response(403, "Forbidden", exc.message)


async def _bad_signature(request: Request, exc: WebhookSignatureError):
    return error_response(400, "SecurityError", str(exc))


async def _gateway_error(request: Request, exc: GatewayError):
    return error_response(502, "GatewayError", exc.message, {"code": exc.code}, retryable=True)


async def _order_busy(request: Request, exc: OrderBusyError):
    return error_response(409, "Conflict", str(exc), retryable=True)


async def _persistence_error(request: Request, exc: PersistenceError):
    return error_response(503, "PersistenceError", str(exc), retryable=True)


async def _http_exception(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, _HTTP_ERROR_NAMES.get(exc.status_code, "HTTPError"), str(exc.detail))


def install_error_handlers(app: FastAPI) -> None:
    """Register the handlers; Starlette picks the most specific class first.

    Protean's own handlers go in first so domain errors without a mapping
    here still get a 4xx; the ones below replace them for the shared kinds.
    """
    register_exception_handlers(app)
    app.add_exception_handler(InvalidTransitionError, _invalid_transition)
    app.add_exception_handler(InvalidStateError, _invalid_state)
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(RequestValidationError, _request_validation)
    app.add_exception_handler(ObjectNotFoundError, _not_found)
    app.add_exception_handler(ForbiddenError, _forbidden)
    app.add_exception_handler(WebhookSignatureError, _bad_signature)
    app.add_exception_handler(GatewayError, _gateway_error)
    app.add_exception_handler(OrderBusyError, _order_busy)
    app.add_exception_handler(PersistenceError, _persistence_error)
    app.add_exception_handler(StarletteHTTPException, _http_exception)
