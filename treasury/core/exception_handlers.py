"""Exception handlers: TreasuryException and framework errors to JSON responses.

Every error body carries "error" and "message"; domain errors add "details".
"""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from treasury.core.config import get_settings
from treasury.domain.exceptions import TreasuryException

logger = logging.getLogger(__name__)

HTTP_STATUS_BY_ERROR_CODE: dict[str, int] = {
    "VALIDATION_ERROR": 400,
    "AUTHENTICATION_ERROR": 401,
    "PERMISSION_DENIED": 403,
    "RESOURCE_NOT_FOUND": 404,
    "CONFLICT": 409,
    "DUPLICATE_ASSIGNMENT": 409,
    "DUPLICATE_CODE": 409,
    "SYSTEM_ROLE_PROTECTED": 409,
    "OUTBOX_TRANSACTION_REQUIRED": 500,
    "AUTHORIZATION_INDETERMINATE": 503,
}


def _error_body(error: str, message: object, details: object = None) -> dict:
    body = {"error": error, "message": message}
    if details is not None:
        body["details"] = details
    return body


def _on_treasury_exception(request: Request, exc: TreasuryException) -> JSONResponse:
    status_code = HTTP_STATUS_BY_ERROR_CODE.get(exc.error_code, 400)
    if status_code == 503:
        # Store unreachable during a permission check: the request is denied.
        logger.warning(
            "Request denied on %s %s: %s", request.method, request.url.path, exc.details
        )
    elif status_code >= 500:
        logger.error("%s on %s %s: %s", exc.error_code, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def _on_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=_error_body(
            "VALIDATION_ERROR", "Request validation failed", jsonable_encoder(exc.errors())
        ),
    )


def _on_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body("HTTP_ERROR", exc.detail),
        headers=getattr(exc, "headers", None),
    )


def _on_unhandled(request: Request, exc: Exception) -> JSONResponse:
    """500; the exception text is only exposed when debug is on."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = str(exc) if get_settings().debug else "Internal server error"
    return JSONResponse(status_code=500, content=_error_body("INTERNAL_ERROR", message))


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers on app; call once from create_app()."""
    app.add_exception_handler(TreasuryException, _on_treasury_exception)
    app.add_exception_handler(RequestValidationError, _on_request_validation)
    app.add_exception_handler(StarletteHTTPException, _on_http_exception)
    app.add_exception_handler(Exception, _on_unhandled)
