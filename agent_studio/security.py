"""Secret detection and redaction for text that gets persisted or logged."""

from __future__ import annotations

import re
from typing import Final

POTENTIAL_SECRET_PATTERNS: tuple[tuple[str, str], ...] = (
    ("anthropic_api_key", r"sk-ant-[A-Za-z0-9_-]{20,}"),
    ("openai_api_key", r"sk-[A-Za-z0-9_-]{20,}"),
    ("github_token", r"gh[pousr]_[A-Za-z0-9]{20,}"),
    ("aws_access_key_id", r"AKIA[0-9A-Z]{16}"),
    ("jwt_token", r"eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+"),
    ("bearer_token", r"(?i)bearer\s+[A-Za-z0-9._-]{16,}"),
)

SENSITIVE_KEY_PATTERN: Final[str] = (
    r"[A-Za-z0-9_.-]*(?:token|secret|api[_-]?key|password|passphrase|"
    r"private[_-]?key|access[_-]?key)[A-Za-z0-9_.-]*"
)

_KEY_VALUE_PATTERN: Final[re.Pattern[str]] = re.compile(
    rf"(?i)(\b{SENSITIVE_KEY_PATTERN}\b)(\s*[:=]\s*)(\"[^\"]*\"|'[^']*'|[^\s,;&]+)"
)
_QUERY_PARAM_PATTERN: Final[re.Pattern[str]] = re.compile(
    rf"(?i)([?&]{SENSITIVE_KEY_PATTERN}=)[^&#\s]+"
)
_URL_CREDENTIALS_PATTERN: Final[re.Pattern[str]] = re.compile(r"(?i)(https?://[^:\s/]+:)[^@\s/]+@")


def find_potential_secrets(text: str) -> list[str]:
    """Return labels of the secret patterns present in ``text``."""
    return [label for label, pattern in POTENTIAL_SECRET_PATTERNS if re.search(pattern, text)]


def redact_sensitive_text(text: str) -> str:
    """Replace secret-like values with ``[REDACTED:...]`` placeholders."""
    redacted = text
    for label, pattern in POTENTIAL_SECRET_PATTERNS:
        redacted = re.sub(pattern, f"[REDACTED:{label}]", redacted)
    redacted = _KEY_VALUE_PATTERN.sub(
        lambda match: f"{match.group(1)}{match.group(2)}[REDACTED:value]",
        redacted,
    )
    redacted = _QUERY_PARAM_PATTERN.sub(r"\1[REDACTED:value]", redacted)
    return _URL_CREDENTIALS_PATTERN.sub(r"\1[REDACTED:value]@", redacted)
