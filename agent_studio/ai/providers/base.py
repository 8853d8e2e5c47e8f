"""Provider abstraction for JSON-producing language models."""

from __future__ import annotations

from typing import Any, Protocol


class LLMProvider(Protocol):
    """Interface implemented by every model provider."""

    def generate_json(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        seed: int | None = None,
    ) -> dict[str, Any]:
        """Return the model's reply parsed as a JSON object."""
        ...
