"""Provider wrapper with bounded retries and a fallback provider."""

from __future__ import annotations

import logging
import time
from typing import Any

from agent_studio.ai.providers.base import LLMProvider
from agent_studio.security import redact_sensitive_text

logger = logging.getLogger(__name__)


class ResilientLLM:
    """Retry a primary provider, then hand the request to a fallback.

    Without a fallback the last primary error is re-raised. ``last_error``
    keeps a redacted description of the most recent primary failure so the
    API can report degraded operation.
    """

    def __init__(
        self,
        primary: LLMProvider,
        fallback: LLMProvider | None = None,
        *,
        max_retries: int = 3,
        base_delay_seconds: float = 0.25,
        max_delay_seconds: float = 2.0,
    ) -> None:
        if max_retries <= 0:
            raise ValueError("max_retries must be greater than zero.")
        if base_delay_seconds <= 0 or max_delay_seconds <= 0:
            raise ValueError("retry delay values must be positive.")
        self.primary = primary
        self.fallback = fallback
        self.max_retries = max_retries
        self.base_delay_seconds = base_delay_seconds
        self.max_delay_seconds = max_delay_seconds
        self.fallback_count = 0
        self.last_error: str | None = None

    def retry_delays(self) -> list[float]:
        """Sleep durations between consecutive primary attempts."""
        return [
            min(self.base_delay_seconds * (2**step), self.max_delay_seconds)
            for step in range(self.max_retries - 1)
        ]

    def generate_json(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        seed: int | None = None,
    ) -> dict[str, Any]:
        delays = self.retry_delays()
        for attempt in range(1, self.max_retries + 1):
            try:
                result = self.primary.generate_json(system_prompt, user_prompt, seed=seed)
            except Exception as exc:  # noqa: BLE001
                self.last_error = redact_sensitive_text(f"{type(exc).__name__}: {exc}")
                if attempt == self.max_retries:
                    if self.fallback is None:
                        raise
                    break
                logger.warning(
                    "Model provider failed (attempt %s/%s): %s",
                    attempt,
                    self.max_retries,
                    self.last_error,
                )
                time.sleep(delays[attempt - 1])
            else:
                self.last_error = None
                return result

        assert self.fallback is not None
        self.fallback_count += 1
        logger.warning("Using offline fallback after provider failures: %s", self.last_error)
        return self.fallback.generate_json(system_prompt, user_prompt, seed=seed)
