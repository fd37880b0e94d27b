from __future__ import annotations

import logging
from typing import Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger("forexapi.errors")


class ConversionError(Exception):
    """Base class for errors surfaced by the conversion API.

    ``str(exc)`` carries the operator-facing detail; ``public_message`` is what
    end users see in responses and in per-entry rate errors.
    """

    status_code: int = status.HTTP_400_BAD_REQUEST
    error_type: str = "conversion_error"

    def __init__(self, message: str, public_message: Optional[str] = None):
        super().__init__(message)
        self.public_message = public_message or message


class CurrencyNotFound(ConversionError):
    status_code = status.HTTP_404_NOT_FOUND
    error_type = "currency_not_found"


class ZeroRateTarget(ConversionError):
    error_type = "zero_rate_target"


class InvalidAmount(ConversionError):
    error_type = "invalid_amount"


class InvalidDateRange(ConversionError):
    error_type = "invalid_date_range"


class RateLimitExceeded(ConversionError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error_type = "rate_limit_exceeded"


class ProviderError(ConversionError):
    """Failure talking to the external forex provider."""

    status_code = status.HTTP_502_BAD_GATEWAY
    error_type = "provider_error"
    default_public_message = "Exchange rate provider returned an invalid response."

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message, public_message=self.default_public_message)
        self.cause = cause


class ProviderUnavailable(ProviderError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_type = "provider_unavailable"
    default_public_message = "Exchange rate provider is temporarily unavailable."


class ProviderBadResponse(ProviderError):
    error_type = "provider_bad_response"


class RateNotFound(ProviderError):
    error_type = "rate_not_found"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message, cause)
        # Missing pairs are safe to name.
        self.public_message = message


def error_payload(code: int, error_type: str, message) -> dict:
    return {
        "success": False,
        "error": {"code": code, "type": error_type, "message": message},
    }


def conversion_error_handler(request: Request, exc: ConversionError):  # type: ignore
    if isinstance(exc, ProviderError):
        logger.warning(
            "forex provider failure on %s: %s (cause: %r)",
            request.url.path,
            exc,
            exc.cause,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(exc.status_code, exc.error_type, exc.public_message),
    )


def not_found_handler(request: Request, exc):  # type: ignore
    code = getattr(exc, "status_code", status.HTTP_404_NOT_FOUND)
    if code == status.HTTP_404_NOT_FOUND:
        message = f"No route for {request.method} {request.url.path}"
        return JSONResponse(
            status_code=code, content=error_payload(code, "not_found", message)
        )
    return JSONResponse(
        status_code=code,
        content=error_payload(code, "http_error", getattr(exc, "detail", "")),
    )


def validation_error_handler(request: Request, exc: RequestValidationError):  # type: ignore
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_payload(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "validation_error",
            [
                {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
                for err in exc.errors()
            ],
        ),
    )


def server_error_handler(request: Request, exc: Exception):  # type: ignore
    logger.exception("unhandled exception")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_payload(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "internal_error",
            "An unexpected error occurred.",
        ),
    )
