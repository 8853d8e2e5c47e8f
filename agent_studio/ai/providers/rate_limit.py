"""Rate limit handling utilities for model providers."""

from __future__ import annotations

import math
import re
import secrets
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from email.utils import parsedate_to_datetime
from typing import Any

_DURATION_PATTERN = re.compile(r"^(?P<number>\d+(?:\.\d+)?)(?P<unit>ms|s|m|h)?$", re.IGNORECASE)
_RESET_HEADERS = (
    "x-ratelimit-reset-requests",
    "x-ratelimit-reset-tokens",
    "x-ratelimit-reset",
)


@dataclass(frozen=True)
class RateLimitEvent:
    """Rate limit details captured from a provider error."""

    retry_after_seconds: float
    reset_at: datetime | None
    reason: str
    limit_header: str | None = None


@dataclass(frozen=True)
class RateLimitBackoff:
    """Jittered exponential backoff for rate-limited calls."""

    max_retries: int = 4
    min_delay_seconds: float = 2.0
    max_delay_seconds: float = 30.0
    jitter_ratio: float = 0.15

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if self.min_delay_seconds <= 0:
            raise ValueError("min_delay_seconds must be greater than zero")
        if self.max_delay_seconds < self.min_delay_seconds:
            raise ValueError("max_delay_seconds must be greater than or equal to min_delay_seconds")
        if not 0 <= self.jitter_ratio <= 1:
            raise ValueError("jitter_ratio must be between 0 and 1 inclusive")

    def next_delay(self, *, attempt: int, retry_after: float | None) -> float:
        """Return the delay in seconds before retry number ``attempt``.

        A server supplied ``retry_after`` raises the floor of the delay but the
        exponential component is still capped at ``max_delay_seconds``.
        """
        if attempt < 1:
            raise ValueError("attempt must be greater than or equal to 1")
        if retry_after is not None and (not math.isfinite(retry_after) or retry_after < 0):
            raise ValueError("retry_after must be a non-negative finite number")
        base = self.min_delay_seconds * (2 ** (attempt - 1))
        bounded = min(base, self.max_delay_seconds)
        if retry_after is not None:
            bounded = max(bounded, retry_after)
        jitter = bounded * self.jitter_ratio
        if jitter <= 0:
            return bounded
        random_fraction = float(secrets.randbelow(10_000)) / 10_000
        return bounded + (jitter * random_fraction)


def extract_rate_limit_event(error: Any) -> RateLimitEvent | None:
    """Parse retry headers from a provider error when available."""
    response = getattr(error, "response", None)
    headers = getattr(response, "headers", None) if response is not None else None
    if not headers:
        return None

    normalized = _lowercase_headers(headers)
    retry_after_value = normalized.get("retry-after")
    reset_value = next((normalized[key] for key in _RESET_HEADERS if normalized.get(key)), None)
    retry_after_seconds = _parse_retry_after(retry_after_value) if retry_after_value else None
    reset_at = _parse_reset_at(reset_value) if reset_value else None

    if retry_after_seconds is None and reset_at is not None:
        retry_after_seconds = max(0.0, (reset_at - datetime.now(tz=UTC)).total_seconds())

    return RateLimitEvent(
        retry_after_seconds=retry_after_seconds or 0.0,
        reset_at=reset_at,
        reason=getattr(error, "message", None) or str(error),
        limit_header=retry_after_value or reset_value,
    )


def _lowercase_headers(headers: Mapping[str, Any]) -> dict[str, str]:
    return {str(key).lower(): str(value) for key, value in headers.items() if value}


def _parse_retry_after(value: str) -> float | None:
    stripped = value.strip()
    try:
        return max(0.0, float(stripped))
    except ValueError:
        parsed_date = _parse_http_date(stripped)
        if parsed_date is not None:
            return max(0.0, (parsed_date - datetime.now(tz=UTC)).total_seconds())
    return _parse_duration_seconds(stripped)


def _parse_reset_at(value: str) -> datetime | None:
    stripped = value.strip()
    duration_seconds = _parse_duration_seconds(stripped)
    if duration_seconds is not None:
        return datetime.now(tz=UTC) + timedelta(seconds=duration_seconds)
    return _parse_http_date(stripped)


def _parse_http_date(value: str) -> datetime | None:
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _parse_duration_seconds(value: str) -> float | None:
    """Parse a duration like '1s', '250ms' or '2m' into seconds."""
    match = _DURATION_PATTERN.match(value)
    if not match:
        return None
    number = float(match.group("number"))
    unit = (match.group("unit") or "s").lower()
    if unit == "ms":
        return number / 1000.0
    if unit == "m":
        return number * 60.0
    if unit == "h":
        return number * 3600.0
    return number
