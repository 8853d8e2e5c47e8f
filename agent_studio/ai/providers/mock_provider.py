"""Offline provider that replays queued JSON responses."""

from __future__ import annotations

from collections.abc import Iterable
from copy import deepcopy
from typing import Any


class MockProvider:
    """Deterministic provider for tests and for running without an API key.

    Queued responses are returned in order. Once the queue is drained the
    ``default`` response is repeated; without a default the provider raises.
    """

    def __init__(
        self,
        responses: Iterable[dict[str, Any]] = (),
        *,
        default: dict[str, Any] | None = None,
    ) -> None:
        self._responses = [deepcopy(item) for item in responses]
        self._default = deepcopy(default) if default is not None else None
        self.prompts: list[tuple[str, str]] = []

    @property
    def remaining(self) -> int:
        return len(self._responses)

    def generate_json(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        seed: int | None = None,
    ) -> dict[str, Any]:
        """Return the next queued response and record the prompts."""
        _ = seed
        self.prompts.append((system_prompt, user_prompt))
        if self._responses:
            return deepcopy(self._responses.pop(0))
        if self._default is not None:
            return deepcopy(self._default)
        raise RuntimeError("MockProvider has no remaining responses.")
