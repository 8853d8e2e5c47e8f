"""Validation helpers shared by configuration loaders."""

from __future__ import annotations

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def require_positive_int(value: int, field_name: str) -> int:
    """Validate a positive integer input and return it."""
    if value <= 0:
        raise ValueError(f"{field_name} must be greater than zero.")
    return value


def parse_positive_int(raw: str, field_name: str) -> int:
    """Parse text into a positive integer, naming the field on failure."""
    try:
        value = int(raw.strip())
    except ValueError:
        raise ValueError(f"{field_name} must be an integer, got {raw!r}.") from None
    return require_positive_int(value, field_name)


def validate_choice(value: str, field_name: str, allowed: set[str]) -> str:
    """Validate that a string value is within a set of allowed options."""
    if value not in allowed:
        options = ", ".join(sorted(allowed))
        raise ValueError(f"{field_name} must be one of: {options}.")
    return value


def parse_bool(raw: str, field_name: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{field_name} must be a boolean flag, got {raw!r}.")
