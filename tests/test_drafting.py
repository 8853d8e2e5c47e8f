"""Tests for story drafting and agent chat on top of model providers."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from agent_studio.ai.drafting import (
    DEFAULT_DESCRIPTION,
    DEFAULT_TITLE,
    OFFLINE_RESPONSE,
    AIServiceError,
    StoryDrafter,
    build_provider,
    normalize_generated_story,
    snap_story_points,
)
from agent_studio.ai.providers.mock_provider import MockProvider
from agent_studio.ai.providers.resilient_llm import ResilientLLM
from agent_studio.config import StudioConfig

REQUIREMENTS = "Users need to reset their password by email."


class FailingProvider:
    """Provider that always fails."""

    def generate_json(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        seed: int | None = None,
    ) -> dict[str, Any]:
        _ = (system_prompt, user_prompt, seed)
        raise RuntimeError("upstream unavailable")


def test_draft_story_sends_requirements_and_normalizes_reply() -> None:
    provider = MockProvider(
        [
            {
                "title": "  Password reset  ",
                "description": "As a user, I want to reset my password so that I can log in.",
                "acceptanceCriteria": ["- Email is sent", "* Link expires", ""],
                "storyPoints": 4,
            }
        ]
    )

    story = StoryDrafter(provider).draft_story(REQUIREMENTS)

    assert story.title == "Password reset"
    assert story.acceptance_criteria == ("Email is sent", "Link expires")
    assert story.story_points == 3
    assert REQUIREMENTS in provider.prompts[0][1]


def test_normalize_fills_defaults_and_caps_criteria() -> None:
    story = normalize_generated_story(
        {"acceptance_criteria": "one\ntwo\nthree\nfour\nfive\nsix", "story_points": "eight"}
    )

    assert story.title == DEFAULT_TITLE
    assert story.description == DEFAULT_DESCRIPTION
    assert story.acceptance_criteria == ("one", "two", "three", "four", "five")
    assert story.story_points == 5


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (1, 1),
        (4, 3),
        (6.5, 5),
        (7, 8),
        (10.5, 8),
        (100, 13),
        (0, 5),
        (-3, 5),
        (float("nan"), 5),
        (True, 5),
        (None, 5),
        ("13", 13),
    ],
)
def test_snap_story_points(value: Any, expected: int) -> None:
    assert snap_story_points(value) == expected


@pytest.mark.parametrize("requirements", ["too short", "x" * 2001, "   padded   "])
def test_draft_story_rejects_out_of_range_requirements(requirements: str) -> None:
    provider = MockProvider(default=OFFLINE_RESPONSE)

    with pytest.raises(ValueError, match="between 10 and 2000"):
        StoryDrafter(provider).draft_story(requirements)
    assert provider.prompts == []


def test_provider_failure_becomes_ai_service_error() -> None:
    with pytest.raises(AIServiceError, match="upstream unavailable"):
        StoryDrafter(FailingProvider()).draft_story(REQUIREMENTS)


def test_chat_renders_persona_prompt_and_returns_reply() -> None:
    provider = MockProvider([{"response": " Let's split the epic. "}])

    reply = StoryDrafter(provider).chat(
        "How should we plan?",
        agent_name="Sam",
        agent_type="scrum-master",
        system_prompt="You are a Scrum Master.",
    )

    assert reply == "Let's split the epic."
    system_prompt, user_prompt = provider.prompts[0]
    assert system_prompt == "You are a Scrum Master."
    assert "respond as Sam, the scrum-master" in user_prompt
    assert "Current Context: No specific context provided" in user_prompt
    assert "User Message: How should we plan?" in user_prompt


def test_chat_without_response_field_is_an_error() -> None:
    provider = MockProvider([{"answer": "wrong key"}])

    with pytest.raises(AIServiceError, match="did not include a response"):
        StoryDrafter(provider).chat(
            "hello",
            agent_name="Sam",
            agent_type="scrum-master",
            system_prompt="persona",
        )


def test_build_provider_mock_answers_offline() -> None:
    provider = build_provider(StudioConfig(provider="mock"))

    story = StoryDrafter(provider).draft_story(REQUIREMENTS)

    assert isinstance(provider, MockProvider)
    assert story.title == OFFLINE_RESPONSE["title"]


def test_build_provider_openai_wraps_with_offline_fallback(tmp_path: Path) -> None:
    config = StudioConfig(
        data_file=tmp_path / "data.json",
        provider="openai",
        openai_api_key="sk-test-key-not-real-000000000000",
    )

    provider = build_provider(config)

    assert isinstance(provider, ResilientLLM)
    assert isinstance(provider.fallback, MockProvider)


def test_build_provider_rejects_unknown_provider() -> None:
    with pytest.raises(ValueError, match="Unknown provider"):
        build_provider(StudioConfig(provider="other"))
