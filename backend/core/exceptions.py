"""
Custom exceptions and handlers for consistent API error responses.

Guards and services only raise the typed errors defined here. The handlers
registered by ``register_exception_handlers`` are the single place where an
error becomes an HTTP status code and a response envelope.
"""

from typing import Any, Dict, List, Optional
import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .response_middleware import get_request_id

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base API error with consistent structure"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "ERROR"
    default_message: str = "Request failed"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message or self.default_message
        self.details = details
        self.headers = headers
        super().__init__(self.message)


class ValidationError(APIError):
    """Validation error"""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "VALIDATION_ERROR"
    default_message = "Validation failed"


class UnauthenticatedError(APIError):
    """Authentication error"""

    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "UNAUTHENTICATED"
    default_message = "Not authorized to access this route"

    def __init__(self, message: Optional[str] = None, details: Optional[Any] = None):
        super().__init__(message, details, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(APIError):
    """Permission denied error"""

    status_code = status.HTTP_403_FORBIDDEN
    error_code = "FORBIDDEN"
    default_message = "Permission denied"


class NotFoundError(APIError):
    """Resource not found error"""

    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"
    default_message = "Resource not found"


class ConflictError(APIError):
    """Resource conflict error"""

    status_code = status.HTTP_409_CONFLICT
    error_code = "CONFLICT"
    default_message = "Resource conflict"


class UploadError(APIError):
    """File upload rejected (400) or failed in storage (500)"""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "UPLOAD_ERROR"
    default_message = "Problem with file upload"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Any] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, details)
        if status_code is not None:
            self.status_code = status_code


class InternalError(APIError):
    """Unexpected failure; the message is always safe to show to clients"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "INTERNAL_ERROR"
    default_message = "An unexpected error occurred"


def error_envelope(
    code: str, message: str, details: Optional[Any] = None
) -> Dict[str, Any]:
    error: Dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return {
        "success": False,
        "error": error,
        "message": message,
        "meta": {"request_id": get_request_id()},
    }


async def handle_api_error(request: Request, exc: APIError) -> JSONResponse:
    """Handle custom API errors"""
    if exc.status_code >= 500:
        logger.error(
            f"{type(exc).__name__} at {request.method} {request.url.path}: {exc.message}"
        )
    else:
        logger.info(
            f"{type(exc).__name__} at {request.method} {request.url.path}: {exc.message}"
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(exc.error_code, exc.message, exc.details),
        headers=exc.headers,
    )


def _format_validation_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    formatted = []
    for error in errors:
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        formatted.append(
            {"field": ".".join(location), "message": error.get("msg", "Invalid value")}
        )
    return formatted


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Convert FastAPI request validation failures to ValidationError envelopes"""
    details = _format_validation_errors(exc.errors())
    logger.info(f"Request validation failed at {request.url.path}: {details}")
    return JSONResponse(
        status_code=ValidationError.status_code,
        content=error_envelope(
            ValidationError.error_code, ValidationError.default_message, details
        ),
    )


async def handle_http_exception(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Keep framework-raised HTTP errors (404 route, 405 method) in the envelope"""
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope("HTTP_ERROR", message),
        headers=getattr(exc, "headers", None),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    """Wrap anything unexpected as InternalError without leaking its text"""
    logger.exception(
        f"Unhandled exception at {request.method} {request.url.path}: {type(exc).__name__}"
    )
    return JSONResponse(
        status_code=InternalError.status_code,
        content=error_envelope(InternalError.error_code, InternalError.default_message),
    )


def register_exception_handlers(app):
    """Register all exception handlers with the FastAPI app"""
    app.add_exception_handler(APIError, handle_api_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(Exception, handle_unexpected_error)
