"""
Validation utilities for input validation and error handling.

Everything here raises ValidationError (HTTP 400) so bad input is rejected at the
boundary, before any query is issued.
"""
import re
from datetime import datetime
from typing import Any

from ..models.enums import ApplicationStatus, JobLevel, JobStatus, Role, enum_values
from .error_handlers import ValidationError

OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")


def validate_object_id(value: Any, field_name: str = "ID") -> str:
    """Identifiers are 24-character hex strings; normalize to lowercase."""
    if not isinstance(value, str) or not OBJECT_ID_PATTERN.match(value):
        raise ValidationError(f"Invalid {field_name} format")
    return value.lower()


def validate_email(email: str) -> str:
    """Validate email format."""
    if not email or not isinstance(email, str):
        raise ValidationError("Email is required")

    email = email.strip().lower()
    if len(email) > 255:
        raise ValidationError("Email too long (max 255 characters)")

    # Basic email regex
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    if not re.match(pattern, email):
        raise ValidationError("Invalid email format")

    return email


def validate_password(password: str) -> None:
    """Validate password strength."""
    if not password or not isinstance(password, str):
        raise ValidationError("Password is required")

    if len(password) < 6:
        raise ValidationError("Password must be at least 6 characters")

    if len(password) > 72:
        raise ValidationError("Password too long (max 72 characters)")


def validate_string_field(
    value: Any,
    field_name: str,
    min_length: int = 1,
    max_length: int = 1000,
    required: bool = True,
    pattern: str | None = None,
) -> str | None:
    """Validate a string field with common rules."""
    if value is None:
        if required:
            raise ValidationError(f"{field_name} is required")
        return None

    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")

    value = value.strip()

    if required and not value:
        raise ValidationError(f"{field_name} cannot be empty")

    if len(value) < min_length:
        raise ValidationError(f"{field_name} must be at least {min_length} characters")

    if len(value) > max_length:
        raise ValidationError(f"{field_name} must not exceed {max_length} characters")

    if pattern and not re.match(pattern, value):
        raise ValidationError(f"{field_name} format is invalid")

    return value


def validate_integer_field(
    value: Any,
    field_name: str,
    min_value: int | None = None,
    max_value: int | None = None,
    required: bool = True,
) -> int | None:
    """Validate an integer field."""
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field_name} is required")
        return None

    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a valid integer")

    if not isinstance(value, int):
        try:
            value = int(value)
        except (ValueError, TypeError):
            raise ValidationError(f"{field_name} must be a valid integer")

    if min_value is not None and value < min_value:
        raise ValidationError(f"{field_name} must be at least {min_value}")

    if max_value is not None and value > max_value:
        raise ValidationError(f"{field_name} must not exceed {max_value}")

    return value


def validate_number_field(
    value: Any,
    field_name: str,
    min_value: float | None = None,
    required: bool = True,
) -> float | None:
    """Validate a numeric (int or float) field such as a salary."""
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field_name} is required")
        return None

    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")

    try:
        number = float(value)
    except (ValueError, TypeError):
        raise ValidationError(f"{field_name} must be a number")

    if number != number or number in (float("inf"), float("-inf")):
        raise ValidationError(f"{field_name} must be a number")

    if min_value is not None and number < min_value:
        raise ValidationError(f"{field_name} must be at least {min_value:g}")

    return number


def validate_string_list(value: Any, field_name: str) -> list[str]:
    """Ordered list of non-empty strings; blanks are dropped, order is kept."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError(f"{field_name} must be a list")
    return [str(x).strip() for x in value if str(x).strip()]


def validate_datetime_field(value: Any, field_name: str) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except (ValueError, AttributeError):
        raise ValidationError(f"Invalid {field_name} format. Use ISO 8601 format.")


def _validate_choice(value: Any, field_name: str, choices: list[str]) -> str:
    if not value or not isinstance(value, str):
        raise ValidationError(f"{field_name} is required")
    value = value.strip()
    if value not in choices:
        raise ValidationError(f"Invalid {field_name.lower()}. Must be one of: {', '.join(choices)}")
    return value


def validate_role(role: str | None, allowed: set[Role] | None = None) -> Role:
    """Validate user role."""
    allowed = allowed or {Role.JOBSEEKER, Role.RECRUITER}
    choices = [r.value for r in Role if r in allowed]
    value = _validate_choice((role or "").strip().lower() or None, "Role", choices)
    return Role(value)


def validate_job_status(status: str | None) -> JobStatus:
    """Validate job status."""
    value = _validate_choice((status or "").strip().lower() or None, "Status", enum_values(JobStatus))
    return JobStatus(value)


def validate_job_level(level: str | None) -> JobLevel:
    return JobLevel(_validate_choice(level, "Level", enum_values(JobLevel)))


def validate_application_status(status: str | None) -> ApplicationStatus:
    value = _validate_choice((status or "").strip().lower() or None, "Status", enum_values(ApplicationStatus))
    return ApplicationStatus(value)


def sanitize_filename(filename: str) -> str:
    """Sanitize filename to prevent directory traversal and other attacks."""
    if not filename:
        raise ValidationError("Filename is required")

    # Remove any path separators
    filename = filename.replace("/", "_").replace("\\", "_")

    # Remove any null bytes
    filename = filename.replace("\x00", "")

    # Remove directory traversal sequences
    filename = filename.replace("..", "_")

    # Remove leading dots to prevent hidden files
    filename = filename.lstrip(".")

    # Ensure it's not too long
    if len(filename) > 255:
        raise ValidationError("Filename too long")

    # Ensure it has some content
    if not filename or filename == "_":
        raise ValidationError("Invalid filename")

    return filename
