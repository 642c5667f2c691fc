"""
Exception handlers rendering every error in the {success, message, data} envelope

Authentication and authorization failures additionally carry a stable error
code, the request path and a suggestion for the client.
"""

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from marketplace.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    MarketplaceError,
    ProductServiceError,
)
from marketplace.core.logging import get_logger
from marketplace.models import ApiResponse, AuthErrorResponse, get_datetime_utc

logger = get_logger(__name__)

UPSTREAM_UNAVAILABLE_MESSAGE = "Service temporarily unavailable. Please try again later."
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred. Please contact support."


def envelope(status_code: int, message: str) -> JSONResponse:
    body = ApiResponse[None](success=False, message=message)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True),
    )


def _field_name(loc: tuple[Any, ...]) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "header")]
    return ".".join(parts) or "request"


def format_validation_errors(errors: list[dict[str, Any]]) -> str:
    fields = ", ".join(f"{_field_name(tuple(e['loc']))}: {e['msg']}" for e in errors)
    return f"Validation failed: {{{fields}}}"


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = format_validation_errors(list(exc.errors()))
    logger.info("request_validation_failed", path=request.url.path, message_text=message)
    return envelope(status.HTTP_400_BAD_REQUEST, message)


async def auth_error_handler(
    request: Request, exc: AuthenticationError | AuthorizationError
) -> JSONResponse:
    logger.warning(
        "request_rejected",
        path=request.url.path,
        error_code=exc.error_code,
        error=exc.error,
    )
    body = AuthErrorResponse(
        success=False,
        message=exc.message,
        status=exc.status_code,
        error=exc.error,
        error_code=exc.error_code,
        path=request.url.path,
        timestamp=get_datetime_utc(),
        suggestion=exc.suggestion,
        details=exc.details,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(mode="json", by_alias=True),
        headers={"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None,
    )


async def product_service_error_handler(request: Request, exc: ProductServiceError) -> JSONResponse:
    logger.error(
        "product_service_error",
        path=request.url.path,
        upstream_status=exc.upstream_status,
        error_type=type(exc).__name__,
        error_message=exc.message,
    )
    return envelope(status.HTTP_503_SERVICE_UNAVAILABLE, UPSTREAM_UNAVAILABLE_MESSAGE)


async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "request_failed",
            path=request.url.path,
            error_type=type(exc).__name__,
            error_message=exc.message,
        )
        return envelope(exc.status_code, UNEXPECTED_ERROR_MESSAGE)
    return envelope(exc.status_code, exc.message)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        error_type=type(exc).__name__,
        error_message=str(exc),
        exc_info=exc,
    )
    return envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, UNEXPECTED_ERROR_MESSAGE)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(AuthenticationError, auth_error_handler)
    app.add_exception_handler(AuthorizationError, auth_error_handler)
    app.add_exception_handler(ProductServiceError, product_service_error_handler)
    app.add_exception_handler(MarketplaceError, marketplace_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
