"""Tests for resilient provider wrapper."""

from __future__ import annotations

from typing import Any

import pytest

from agent_studio.ai.providers.mock_provider import MockProvider
from agent_studio.ai.providers.resilient_llm import ResilientLLM


class FailingProvider:
    """Provider that fails a fixed number of times before answering."""

    def __init__(self, failures: int | None = None) -> None:
        self.failures = failures
        self.calls = 0

    def generate_json(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        seed: int | None = None,
    ) -> dict[str, Any]:
        _ = (system_prompt, user_prompt, seed)
        self.calls += 1
        if self.failures is None or self.calls <= self.failures:
            raise RuntimeError("boom")
        return {"ok": "primary"}


def _resilient(primary: FailingProvider, fallback: MockProvider | None) -> ResilientLLM:
    return ResilientLLM(
        primary=primary,
        fallback=fallback,
        max_retries=2,
        base_delay_seconds=0.001,
        max_delay_seconds=0.001,
    )


def test_resilient_llm_fallback_on_failure() -> None:
    """ResilientLLM should return fallback output after retries fail."""
    primary = FailingProvider()
    provider = _resilient(primary, MockProvider([{"ok": True}]))

    output = provider.generate_json("sys", "usr")

    assert output == {"ok": True}
    assert primary.calls == 2
    assert provider.fallback_count == 1


def test_resilient_llm_retries_then_succeeds() -> None:
    provider = _resilient(FailingProvider(failures=1), MockProvider([{"ok": "fallback"}]))

    assert provider.generate_json("sys", "usr") == {"ok": "primary"}
    assert provider.fallback_count == 0


def test_resilient_llm_without_fallback_reraises() -> None:
    provider = _resilient(FailingProvider(), None)

    with pytest.raises(RuntimeError, match="boom"):
        provider.generate_json("sys", "usr")


def test_resilient_llm_rejects_invalid_settings() -> None:
    with pytest.raises(ValueError, match="max_retries"):
        ResilientLLM(MockProvider(), max_retries=0)


def test_mock_provider_drains_queue_then_uses_default() -> None:
    provider = MockProvider([{"n": 1}], default={"n": 0})

    assert provider.remaining == 1
    assert provider.generate_json("s", "u") == {"n": 1}
    assert provider.generate_json("s", "u") == {"n": 0}
    assert provider.remaining == 0
    with pytest.raises(RuntimeError, match="no remaining responses"):
        MockProvider().generate_json("s", "u")


def test_retry_delays_double_up_to_the_cap() -> None:
    provider = ResilientLLM(
        MockProvider(),
        max_retries=4,
        base_delay_seconds=0.5,
        max_delay_seconds=1.5,
    )

    assert provider.retry_delays() == [0.5, 1.0, 1.5]


class LeakyProvider:
    """Provider whose first failure message carries a credential."""

    def __init__(self) -> None:
        self.calls = 0

    def generate_json(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        seed: int | None = None,
    ) -> dict[str, Any]:
        _ = (system_prompt, user_prompt, seed)
        self.calls += 1
        if self.calls == 1:
            raise RuntimeError("bad request api_key=abc123")
        return {"ok": True}


def test_last_error_is_redacted() -> None:
    provider = ResilientLLM(LeakyProvider(), MockProvider(default={}), max_retries=1)

    provider.generate_json("sys", "usr")

    assert provider.last_error == "RuntimeError: bad request api_key=[REDACTED:value]"


def test_last_error_is_cleared_after_a_successful_retry() -> None:
    provider = ResilientLLM(
        LeakyProvider(),
        max_retries=2,
        base_delay_seconds=0.001,
        max_delay_seconds=0.001,
    )

    assert provider.generate_json("sys", "usr") == {"ok": True}
    assert provider.last_error is None
