"""
Validation — Input validation and error handling utilities.

Used by the config loader to sanitize converter settings the same way
for every source (master JSON, individual env vars, CLI options).

## Usage

    from upload_converter.validation import validate_dimension

    try:
        max_width = validate_dimension(raw, "max_width")
    except ValidationError as e:
        print(f"Validation failed: {e}")
"""

from __future__ import annotations

from typing import Any, Dict, Optional

MAX_DIMENSION_LIMIT = 9999

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


class ValidationError(Exception):
    """Raised when validation fails."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict] = None):
        self.message = message
        self.field = field
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.field:
            return f"{self.field}: {self.message}"
        return self.message


class ConfigurationError(Exception):
    """Raised when configuration is missing or invalid."""
    pass


def parse_bool(value: Any, field: str = "value") -> bool:
    """Parse a boolean setting leniently ("1", "true", "on", ...)."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return bool(value)

    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValidationError(f"Not a boolean: {value!r}", field=field)


def _absint(value: Any, field: str) -> int:
    try:
        return abs(int(str(value).strip()))
    except (TypeError, ValueError):
        raise ValidationError(f"Not an integer: {value!r}", field=field)


def validate_dimension(value: Any, field: str = "dimension") -> int:
    """Validate a max width/height setting (1..9999 pixels)."""
    number = _absint(value, field)
    if not 1 <= number <= MAX_DIMENSION_LIMIT:
        raise ValidationError(
            f"Must be between 1 and {MAX_DIMENSION_LIMIT}, got {number}",
            field=field,
            details={"value": number},
        )
    return number


def sanitize_quality(value: Any, field: str = "quality") -> int:
    """Clamp a compression quality setting into 1..100."""
    return max(1, min(100, _absint(value, field)))
