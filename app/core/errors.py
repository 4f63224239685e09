"""
Error Taxonomy
Custom exceptions and FastAPI error handler registration.

Every handled error is returned as {"error": "<message>"}. Messages for
configuration and provider failures are generic; details go to the log.
"""

import logging
import traceback
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors that map to an HTTP response."""

    status_code = 500
    public_message = "internal"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.public_message)

    @property
    def client_message(self) -> str:
        return self.public_message


class ConfigurationError(AppError):
    """Missing credentials or server settings."""

    status_code = 500
    public_message = "Server not configured"


class StorageError(AppError):
    """A finished video could not be copied into storage."""

    status_code = 500
    public_message = "Failed to store video"


class ProviderError(AppError):
    """Upstream call failed or returned an unexpected shape."""

    status_code = 502
    public_message = "Provider error"

    def __init__(self, message: Optional[str] = None, upstream_status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.upstream_status = upstream_status
        self.body = body


class RateLimitError(ProviderError):
    """Provider rejected the request with 429."""

    status_code = 429
    public_message = "Rate limit exceeded, please try again in a moment."


class PaymentRequiredError(ProviderError):
    """Provider rejected the request with 402."""

    status_code = 402
    public_message = "Provider credits exhausted, please check your billing settings."


class NotFoundError(AppError):
    """Requested job does not exist."""

    status_code = 404
    public_message = "job not found"


class ValidationError(AppError):
    """A required field is missing or invalid."""

    status_code = 400

    @property
    def client_message(self) -> str:
        return str(self)


class WebhookAuthError(AppError):
    """Webhook signature missing or wrong."""

    status_code = 401
    public_message = "invalid signature"


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc}")
    else:
        logger.info(f"{type(exc).__name__} on {request.url.path}: {exc}")
    return error_response(exc.status_code, exc.client_message)


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "invalid request"
    return error_response(400, message)


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=getattr(exc, "headers", None))


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.url.path}: {exc}\n{traceback.format_exc()}")
    return error_response(500, "internal")


def register_error_handlers(app: FastAPI) -> None:
    """Register custom exception handlers on the FastAPI app."""
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)


__all__ = [
    "AppError",
    "ConfigurationError",
    "StorageError",
    "ProviderError",
    "RateLimitError",
    "PaymentRequiredError",
    "NotFoundError",
    "ValidationError",
    "WebhookAuthError",
    "register_error_handlers",
]
