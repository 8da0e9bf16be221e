from __future__ import annotations

import re
from typing import Any, Optional

from ..core.constants import EMAIL_PATTERN, PHONE_PATTERN
from ..core.exceptions import ValidationError

_PHONE_RE = re.compile(PHONE_PATTERN)
_EMAIL_RE = re.compile(EMAIL_PATTERN)
_ID_RE = re.compile(r"^[0-9]+$")


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_min_length(value: Optional[str], field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters")
    return value


def require_phone(value: Optional[str]) -> str:
    phone = require_non_empty(value, "Phone")
    if not _PHONE_RE.match(phone):
        raise ValidationError("Phone must be exactly 10 digits")
    return phone


def require_email(value: Optional[str]) -> str:
    email = require_non_empty(value, "Email").lower()
    if not _EMAIL_RE.match(email):
        raise ValidationError("Invalid email format")
    return email


def optional_text(value: Optional[str]) -> Optional[str]:
    v = (value or "").strip()
    return v or None


def require_id(value: Any, field_name: str) -> int:
    """Accept a JSON integer or a string of ASCII digits; floats and booleans are refused."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field_name} is required")
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {field_name.lower()} ID")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _ID_RE.match(value.strip()):
        return int(value.strip())
    raise ValidationError(f"Invalid {field_name.lower()} ID")
