"""OpenAI-backed provider used for story drafting and agent chat."""

from __future__ import annotations

import json
import logging
import os
import re
import time
from typing import Any

from openai import APIConnectionError, APIError, APITimeoutError, OpenAI, RateLimitError

from agent_studio.ai.providers.rate_limit import (
    RateLimitBackoff,
    RateLimitEvent,
    extract_rate_limit_event,
)

logger = logging.getLogger(__name__)

OPENAI_MODELS: tuple[str, ...] = (
    "gpt-4",
    "gpt-4-turbo",
    "gpt-4o",
    "gpt-4o-mini",
    "gpt-3.5-turbo",
)


class OpenAIProvider:
    """LLM provider using the OpenAI chat completions API in JSON mode."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
        temperature: float = 0.7,
        max_output_tokens: int = 1_000,
        seed: int | None = None,
        max_retries: int = 3,
        min_retry_seconds: float = 1.0,
        max_retry_seconds: float = 20.0,
        client: Any | None = None,
    ) -> None:
        resolved_api_key = api_key or os.getenv("OPENAI_API_KEY")
        if client is None and not resolved_api_key:
            raise ValueError("OPENAI_API_KEY is required for OpenAIProvider.")
        self.client = client or OpenAI(api_key=resolved_api_key)
        self.model = model
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.seed = seed
        self.backoff = RateLimitBackoff(
            max_retries=max_retries,
            min_delay_seconds=min_retry_seconds,
            max_delay_seconds=max_retry_seconds,
        )
        self.last_rate_limit: RateLimitEvent | None = None

    def generate_json(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        seed: int | None = None,
    ) -> dict[str, Any]:
        """Generate a JSON object, retrying rate limits and transient network errors."""
        attempts = self.backoff.max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                raw_text = self._complete(system_prompt, user_prompt, seed=seed)
                return parse_json_response(raw_text)
            except RateLimitError as exc:
                if attempt >= attempts:
                    raise
                self._sleep_for_rate_limit(exc, attempt, attempts)
            except (APIConnectionError, APITimeoutError) as exc:
                if attempt >= attempts:
                    raise
                delay = self.backoff.next_delay(attempt=attempt, retry_after=None)
                logger.warning(
                    "OpenAI connection error (%s); retrying in %.2fs (attempt %s/%s).",
                    type(exc).__name__,
                    delay,
                    attempt,
                    attempts,
                )
                time.sleep(delay)
            except APIError as exc:
                if getattr(exc, "status_code", None) != 429 or attempt >= attempts:
                    raise
                self._sleep_for_rate_limit(exc, attempt, attempts)
        raise RuntimeError("OpenAI retries exhausted.")

    def _sleep_for_rate_limit(self, error: Exception, attempt: int, attempts: int) -> None:
        self.last_rate_limit = extract_rate_limit_event(error)
        retry_after = self.last_rate_limit.retry_after_seconds if self.last_rate_limit else None
        delay = self.backoff.next_delay(attempt=attempt, retry_after=retry_after)
        logger.warning(
            "OpenAI rate limit hit; retrying in %.2fs (attempt %s/%s).",
            delay,
            attempt,
            attempts,
        )
        time.sleep(delay)

    def _complete(self, system_prompt: str, user_prompt: str, *, seed: int | None) -> str:
        resolved_seed = self.seed if seed is None else seed
        payload: dict[str, Any] = {
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_output_tokens,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "response_format": {"type": "json_object"},
        }
        if resolved_seed is not None:
            payload["seed"] = resolved_seed
        response = self.client.chat.completions.create(**payload)
        message = response.choices[0].message.content
        if message is None:
            raise RuntimeError("Model returned empty message content.")
        return str(message)


def parse_json_response(raw_text: str) -> dict[str, Any]:
    """Parse a JSON object from possibly noisy model output."""
    cleaned = raw_text.strip()
    if cleaned.startswith("```"):
        cleaned = re.sub(r"^```[a-zA-Z0-9_-]*\s*", "", cleaned)
        cleaned = re.sub(r"\s*```$", "", cleaned)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        match = re.search(r"\{.*\}", cleaned, flags=re.DOTALL)
        if not match:
            raise ValueError("Model output did not contain JSON.") from None
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            raise ValueError("Model output did not contain valid JSON.") from exc
    if not isinstance(parsed, dict):
        raise ValueError("Expected top-level JSON object from model.")
    return parsed
