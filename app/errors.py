"""Domain errors and their HTTP rendering."""
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for every error the services raise on purpose.

    Attributes:
        code: stable identifier clients can switch on.
        message: human readable message.
        details: extra data returned in the envelope's ``data`` field.
        status_code: HTTP status used when the error reaches a router.
    """

    code = "APP_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(f"[{self.code}] {message}")


class NotFound(AppError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class AlreadyCompleted(AppError):
    code = "ALREADY_COMPLETED"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str = "Interview already completed", details=None):
        super().__init__(message, details)


class InvalidInput(AppError):
    code = "INVALID_INPUT"
    status_code = status.HTTP_400_BAD_REQUEST


class ConfigurationError(AppError):
    """Plan limits or providers are not configured. An operator issue."""

    code = "CONFIGURATION_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class QuotaExceeded(AppError):
    code = "QUOTA_EXCEEDED"
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, plan: str, limit: int, action: str, monthly: bool = False):
        self.plan = plan
        self.limit = limit
        self.action = action
        scope = "monthly limit" if monthly else "limit"
        super().__init__(
            f"{plan} plan {scope} reached ({limit} {action}). Upgrade to continue.",
            {"plan": plan, "limit": limit, "action": action}
        )


class RateLimitExceeded(AppError):
    code = "RATE_LIMIT_EXCEEDED"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, operation: str, retry_after: int):
        self.retry_after = retry_after
        super().__init__(
            "Rate limit exceeded. Please wait before making another request.",
            {"operation": operation, "retry_after": retry_after}
        )


class GenerationFailed(AppError):
    code = "GENERATION_FAILED"
    status_code = status.HTTP_502_BAD_GATEWAY


class TranscriptionFailed(AppError):
    code = "TRANSCRIPTION_FAILED"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class GradingDegraded(AppError):
    """A single grade could not be produced; callers fall back to a default."""

    code = "GRADING_DEGRADED"


class EmptyResponse(AppError):
    code = "EMPTY_RESPONSE"
    status_code = status.HTTP_502_BAD_GATEWAY


class ProviderError(AppError):
    code = "PROVIDER_ERROR"
    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, operation: str, attempts: int, cause: Optional[BaseException] = None):
        self.operation = operation
        self.attempts = attempts
        reason = str(cause) if cause is not None else "unknown error"
        super().__init__(
            f"{operation} failed after {attempts} attempts: {reason}",
            {"operation": operation, "attempts": attempts}
        )


class ProviderTimeout(ProviderError):
    code = "PROVIDER_TIMEOUT"
    status_code = status.HTTP_504_GATEWAY_TIMEOUT


def error_envelope(message: str, data: Any = None) -> Dict[str, Any]:
    return {"success": False, "message": message, "data": data}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc)

    headers = None
    if isinstance(exc, RateLimitExceeded):
        headers = {"Retry-After": str(exc.retry_after)}

    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(exc.message, {"code": exc.code, **exc.details}),
        headers=headers
    )


HTTP_ERROR_CODES = {
    status.HTTP_400_BAD_REQUEST: "INVALID_INPUT",
    status.HTTP_401_UNAUTHORIZED: "UNAUTHORIZED",
    status.HTTP_403_FORBIDDEN: "FORBIDDEN",
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
}


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Framework and dependency ``HTTPException``s in the same envelope."""
    code = HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(message, {"code": code}),
        headers=getattr(exc, "headers", None)
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_envelope("Validation failed", {"code": "VALIDATION_ERROR", "errors": errors})
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
