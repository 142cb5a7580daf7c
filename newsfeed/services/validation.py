"""
Input shape checks shared by the services.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Type

from newsfeed.errors import ValidationError


def require_text(value: Optional[str], field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    return value.strip()


def optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def require_choice(value: Any, choices: Type[Enum], field: str) -> str:
    """Return the enum value for ``value`` or raise ``ValidationError``."""
    if isinstance(value, choices):
        return value.value
    allowed = [c.value for c in choices]
    if value not in allowed:
        raise ValidationError(f"{field} must be one of: {', '.join(allowed)}")
    return value


def require_limit(limit: int, maximum: int = 200) -> int:
    if not isinstance(limit, int) or isinstance(limit, bool) or limit < 1:
        raise ValidationError("limit must be a positive integer")
    return min(limit, maximum)
