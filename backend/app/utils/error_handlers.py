"""
Centralized error handling and user-friendly error messages.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..config import APP_ENV

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base application error."""
    def __init__(self, message: str, status_code: int = 500, details: dict | None = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed or missing input."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=400, details=details)


class AuthenticationError(AppError):
    """Missing or invalid credential."""
    def __init__(self, message: str = "Please authenticate", details: dict | None = None):
        super().__init__(message, status_code=401, details=details)


class AuthorizationError(AppError):
    """Authenticated, but not allowed to touch this resource."""
    def __init__(self, message: str = "Access forbidden", details: dict | None = None):
        super().__init__(message, status_code=403, details=details)


class NotFoundError(AppError):
    """Resource not found error."""
    def __init__(self, message: str = "Resource not found", details: dict | None = None):
        super().__init__(message, status_code=404, details=details)


class ConflictError(AppError):
    """Request clashes with the current state (duplicate application, non-pending withdrawal)."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=400, details=details)


class FileUploadError(AppError):
    """File upload error."""
    def __init__(self, message: str, status_code: int = 400, details: dict | None = None):
        super().__init__(message, status_code=status_code, details=details)


class RateLimitError(AppError):
    def __init__(self, message: str = "Too many requests, please try again later.", details: dict | None = None):
        super().__init__(message, status_code=429, details=details)


class UpstreamError(AppError):
    """External storage (or other upstream service) failed."""
    def __init__(self, message: str = "Upstream service failed", details: dict | None = None):
        super().__init__(message, status_code=502, details=details)


class InternalError(AppError):
    def __init__(self, message: str = "Something went wrong on our end. Please try again later.", details: dict | None = None):
        super().__init__(message, status_code=500, details=details)


# User-friendly error messages
ERROR_MESSAGES = {
    # Authentication
    "invalid_credentials": "Invalid login credentials",
    "email_exists": "User already exists with this email",
    "weak_password": "Password must be at least 6 characters long.",
    "authentication_required": "Authentication required",
    "invalid_reset_token": "Invalid or expired token",
    "user_not_found": "User not found",

    # File uploads
    "file_too_large": "File is too large.",
    "invalid_file_type": "Invalid file type.",
    "upload_failed": "Failed to upload file. Please try again.",

    # Jobs
    "job_not_found": "Job not found",
    "job_not_accepting": "Job not found or not accepting applications",
    "job_forbidden": "Not authorized to modify this job",

    # Applications
    "application_not_found": "Application not found",
    "already_applied": "You have already applied for this job",
    "withdraw_not_pending": "You can only withdraw applications that are still pending",
    "application_forbidden": "Not authorized to access this application",

    # General
    "server_error": "Something went wrong on our end. Please try again later.",
    "database_error": "Database connection issue. Please try again later.",
    "validation_error": "Please check your input and try again.",
}


def get_error_message(error_key: str, default: str | None = None) -> str:
    """Get a user-friendly error message."""
    return ERROR_MESSAGES.get(error_key, default or ERROR_MESSAGES["server_error"])


def create_error_response(
    status_code: int,
    message: str,
    details: dict | None = None
) -> JSONResponse:
    """Create a standardized error response."""
    content = {
        "success": False,
        "error": message,
    }

    if details:
        content["details"] = details

    return JSONResponse(
        status_code=status_code,
        content=content
    )


def _include_details(status_code: int) -> bool:
    # Internals only leak in development.
    return status_code < 500 or APP_ENV == "development"


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    details = exc.details if _include_details(exc.status_code) else None
    return create_error_response(exc.status_code, exc.message, details)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return create_error_response(exc.status_code, str(exc.detail))


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """pydantic/FastAPI request errors use the same 400 shape as ValidationError."""
    errors = [
        {
            "field": ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path", "form")),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    first = errors[0] if errors else None
    message = f"{first['field']}: {first['message']}" if first and first["field"] else get_error_message("validation_error")
    return create_error_response(400, message, {"errors": errors})


async def operational_error_handler(request: Request, exc: OperationalError):
    logger.exception("Database OperationalError: %s", exc)
    root = getattr(exc, "orig", None)
    details = {"database": str(root or exc)} if _include_details(503) else None
    return create_error_response(503, get_error_message("database_error"), details)


def _render_internal(error: InternalError) -> JSONResponse:
    details = error.details if _include_details(error.status_code) else None
    return create_error_response(error.status_code, error.message, details)


async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database SQLAlchemyError: %s", exc)
    return _render_internal(InternalError(get_error_message("database_error"), details={"database": str(exc)}))


async def unhandled_exception_handler(request: Request, exc: Exception):
    """Anything that is not an AppError surfaces as an InternalError."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _render_internal(InternalError(details={"exception": f"{type(exc).__name__}: {exc}"}))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(OperationalError, operational_error_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
