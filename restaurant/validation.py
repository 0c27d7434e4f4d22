from __future__ import annotations
import re

from .errors import ValidationError

PHONE_RE = re.compile(r"^\+?[0-9]{9,15}$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

def require_text(value: str | None, field: str, max_length: int) -> str:
    """Strip ``value`` and reject it when blank or too long."""
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{field} is required")
    if len(value) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return value

def optional_text(value: str | None, field: str, max_length: int) -> str | None:
    value = (value or "").strip()
    if not value:
        return None
    if len(value) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return value

def check_email(email: str | None) -> str | None:
    email = optional_text(email, "email", 100)
    if email is None:
        return None
    if not EMAIL_RE.match(email):
        raise ValidationError("Invalid email format")
    return email.lower()

def check_phone(phone: str | None) -> str | None:
    phone = (phone or "").strip()
    if not phone:
        return None
    if not PHONE_RE.match(phone):
        raise ValidationError("Invalid phone format")
    return phone

def check_range(value: int | None, field: str, low: int, high: int) -> int:
    if value is None or not (low <= value <= high):
        raise ValidationError(f"{field} must be between {low} and {high}")
    return value
