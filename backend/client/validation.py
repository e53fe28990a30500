import re
from dataclasses import dataclass
from typing import Callable, Dict, Optional

EMAIL_MAX_LENGTH = 254
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
PASSWORD_PATTERN = re.compile(r"^(?=.*[0-9])(?=.*[!@#$%^&*])[A-Za-z0-9!@#$%^&*]{8,}$")

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


@dataclass
class FieldResult:
    is_valid: bool
    value: str = ""
    message: Optional[str] = None


def sanitize(value: Optional[str]) -> str:
    """Trim, drop control characters and angle brackets."""
    if value is None:
        return ""
    value = _CONTROL_CHARS.sub("", str(value))
    return value.replace("<", "").replace(">", "").strip()


def validate_email(value: Optional[str]) -> FieldResult:
    email = sanitize(value).lower()
    if not email:
        return FieldResult(False, email, "Email is required")
    if len(email) > EMAIL_MAX_LENGTH:
        return FieldResult(False, email, "Email is too long")
    if not EMAIL_PATTERN.fullmatch(email):
        return FieldResult(False, email, "Enter a valid email address")
    return FieldResult(True, email)


def validate_password(value: Optional[str]) -> FieldResult:
    password = sanitize(value)
    if not password:
        return FieldResult(False, password, "Password is required")
    if len(password) < PASSWORD_MIN_LENGTH:
        return FieldResult(False, password, f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    if len(password) > PASSWORD_MAX_LENGTH:
        return FieldResult(False, password, "Password is too long")
    if not PASSWORD_PATTERN.fullmatch(password):
        return FieldResult(
            False, password,
            "Password must include at least one number and one special character (!@#$%^&*)",
        )
    return FieldResult(True, password)


def validate_login_password(value: Optional[str]) -> FieldResult:
    """Login only checks presence and length; strength is the server's concern."""
    password = sanitize(value)
    if not password:
        return FieldResult(False, password, "Password is required")
    if len(password) > PASSWORD_MAX_LENGTH:
        return FieldResult(False, password, "Password is too long")
    return FieldResult(True, password)


def make_repeat_password_validator(password: str) -> Callable[[Optional[str]], FieldResult]:
    def validate_repeat_password(value: Optional[str]) -> FieldResult:
        repeat = sanitize(value)
        if not repeat:
            return FieldResult(False, repeat, "Confirm your password")
        if repeat != sanitize(password):
            return FieldResult(False, repeat, "Passwords do not match")
        return FieldResult(True, repeat)

    return validate_repeat_password


def validate_form(values: Dict[str, Optional[str]],
                  validators: Dict[str, Callable[[Optional[str]], FieldResult]]):
    """Run each field's validator.

    Returns ``(sanitized_values, errors)``; ``errors`` is empty when every
    field passed.
    """
    sanitized: Dict[str, str] = {}
    errors: Dict[str, str] = {}
    for field, validator in validators.items():
        result = validator(values.get(field))
        sanitized[field] = result.value
        if not result.is_valid:
            errors[field] = result.message
    return sanitized, errors
