"""Environment-driven runtime configuration."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path

from agent_studio.config_validation import parse_bool, parse_positive_int, validate_choice

PROVIDER_CHOICES = {"mock", "openai"}

DEFAULT_DATA_FILE = Path(".agent_studio/data.json")
DEFAULT_CONVERSATION_DB = Path(".agent_studio/conversations.sqlite")
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_MAX_RETRIES = 3


@dataclass(frozen=True)
class StudioConfig:
    """Settings shared by the API server and the CLI."""

    data_file: Path = DEFAULT_DATA_FILE
    provider: str = "mock"
    model: str = DEFAULT_MODEL
    openai_api_key: str | None = None
    seed_sample_data: bool = True
    conversation_db: Path = DEFAULT_CONVERSATION_DB
    max_retries: int = DEFAULT_MAX_RETRIES

    def with_overrides(self, **changes: object) -> StudioConfig:
        """Return a copy with the non-``None`` overrides applied."""
        return replace(self, **{key: value for key, value in changes.items() if value is not None})


def load_config(environ: Mapping[str, str] | None = None) -> StudioConfig:
    """Build configuration from ``environ`` (defaults to ``os.environ``)."""
    env = os.environ if environ is None else environ
    defaults = StudioConfig()

    provider = env.get("AGENT_STUDIO_PROVIDER", defaults.provider).strip().lower()
    validate_choice(provider, "AGENT_STUDIO_PROVIDER", PROVIDER_CHOICES)

    seed_raw = env.get("AGENT_STUDIO_SEED_SAMPLE_DATA")
    retries_raw = env.get("AGENT_STUDIO_MAX_RETRIES")
    data_file = env.get("AGENT_STUDIO_DATA_FILE")
    conversation_db = env.get("AGENT_STUDIO_CONVERSATION_DB")

    return StudioConfig(
        data_file=Path(data_file) if data_file else defaults.data_file,
        provider=provider,
        model=env.get("AGENT_STUDIO_MODEL", "").strip() or defaults.model,
        openai_api_key=env.get("OPENAI_API_KEY") or None,
        seed_sample_data=(
            parse_bool(seed_raw, "AGENT_STUDIO_SEED_SAMPLE_DATA")
            if seed_raw is not None
            else defaults.seed_sample_data
        ),
        conversation_db=Path(conversation_db) if conversation_db else defaults.conversation_db,
        max_retries=(
            parse_positive_int(retries_raw, "AGENT_STUDIO_MAX_RETRIES")
            if retries_raw is not None
            else defaults.max_retries
        ),
    )
