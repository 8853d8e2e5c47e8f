"""LLM-backed story drafting and agent role-play chat."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

from agent_studio.ai.providers.base import LLMProvider
from agent_studio.ai.providers.mock_provider import MockProvider
from agent_studio.ai.providers.openai_provider import OpenAIProvider
from agent_studio.ai.providers.resilient_llm import ResilientLLM
from agent_studio.config import StudioConfig

logger = logging.getLogger(__name__)

MIN_REQUIREMENTS_LENGTH = 10
MAX_REQUIREMENTS_LENGTH = 2000
MAX_ACCEPTANCE_CRITERIA = 5
STORY_POINT_SCALE: tuple[int, ...] = (1, 2, 3, 5, 8, 13)
DEFAULT_STORY_POINTS = 5
DEFAULT_TITLE = "User Story"
DEFAULT_DESCRIPTION = "User story description"

DRAFT_SYSTEM_PROMPT = (
    "You are a Requirements Analyst who writes agile user stories. "
    "Reply with a single JSON object and nothing else."
)

DRAFT_USER_TEMPLATE = """Based on the following requirements, generate a user story:

Requirements: {requirements}

Please provide:
1. A concise title
2. A detailed description in "As a [user], I want [goal] so that [benefit]" format
3. 3-5 acceptance criteria
4. Estimated story points (1, 2, 3, 5, 8, 13)

Return JSON with the keys "title", "description", "acceptance_criteria" (list of strings)
and "story_points" (integer)."""

CHAT_USER_TEMPLATE = """{system_prompt}

Current Context: {context}

User Message: {message}

Please respond as {agent_name}, the {agent_type}, maintaining your professional role \
and expertise. Return JSON of the form {{"response": "<your reply>"}}."""

OFFLINE_RESPONSE: dict[str, Any] = {
    "title": "Draft user story",
    "description": (
        "As a user, I want the described capability so that I can complete my work. "
        "Generated offline; review before planning."
    ),
    "acceptance_criteria": [
        "The capability is available to the intended users",
        "Errors are reported with a clear message",
        "Behaviour is covered by automated tests",
    ],
    "story_points": DEFAULT_STORY_POINTS,
    "response": (
        "The language model is unavailable right now, so this is an offline reply. "
        "Could you share more context about your goal so we can continue once it is back?"
    ),
}


class AIServiceError(RuntimeError):
    """Raised when the language model cannot produce a usable answer."""


@dataclass(frozen=True)
class GeneratedStory:
    """Story draft returned by the model, normalized."""

    title: str
    description: str
    acceptance_criteria: tuple[str, ...]
    story_points: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "acceptance_criteria": list(self.acceptance_criteria),
            "story_points": self.story_points,
        }


class StoryDrafter:
    """Turns free-text requirements into story drafts and answers agent chats."""

    def __init__(self, provider: LLMProvider) -> None:
        self.provider = provider

    def draft_story(self, requirements: str, *, seed: int | None = None) -> GeneratedStory:
        text = requirements.strip()
        if not MIN_REQUIREMENTS_LENGTH <= len(text) <= MAX_REQUIREMENTS_LENGTH:
            raise ValueError(
                "requirements must be between "
                f"{MIN_REQUIREMENTS_LENGTH} and {MAX_REQUIREMENTS_LENGTH} characters."
            )
        prompt = DRAFT_USER_TEMPLATE.format(requirements=text)
        payload = self._call(DRAFT_SYSTEM_PROMPT, prompt, seed)
        story = normalize_generated_story(payload)
        logger.info(
            "Drafted story %r with %s acceptance criteria.",
            story.title,
            len(story.acceptance_criteria),
        )
        return story

    def chat(
        self,
        message: str,
        *,
        agent_name: str,
        agent_type: str,
        system_prompt: str,
        context: str | None = None,
    ) -> str:
        """Return the agent's in-character reply to ``message``."""
        prompt = CHAT_USER_TEMPLATE.format(
            system_prompt=system_prompt,
            context=context or "No specific context provided",
            message=message,
            agent_name=agent_name,
            agent_type=agent_type,
        )
        payload = self._call(system_prompt, prompt, None)
        reply = payload.get("response")
        if not isinstance(reply, str) or not reply.strip():
            raise AIServiceError("Model reply did not include a response.")
        return reply.strip()

    def _call(self, system_prompt: str, user_prompt: str, seed: int | None) -> dict[str, Any]:
        try:
            return self.provider.generate_json(system_prompt, user_prompt, seed=seed)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Language model request failed: %s", exc)
            raise AIServiceError(f"Language model request failed: {exc}") from exc


def normalize_generated_story(payload: dict[str, Any]) -> GeneratedStory:
    """Coerce a loosely shaped model reply into a ``GeneratedStory``."""
    title = _clean_text(payload.get("title")) or DEFAULT_TITLE
    description = _clean_text(payload.get("description")) or DEFAULT_DESCRIPTION
    raw_criteria = payload.get("acceptance_criteria", payload.get("acceptanceCriteria", []))
    if isinstance(raw_criteria, str):
        raw_criteria = raw_criteria.splitlines()
    criteria = [
        cleaned
        for cleaned in (_clean_criterion(item) for item in raw_criteria or [])
        if cleaned
    ]
    points = payload.get("story_points", payload.get("storyPoints"))
    return GeneratedStory(
        title=title,
        description=description,
        acceptance_criteria=tuple(criteria[:MAX_ACCEPTANCE_CRITERIA]),
        story_points=snap_story_points(points),
    )


def snap_story_points(value: Any) -> int:
    """Map an estimate onto the nearest point of the planning scale, ties rounding down."""
    if isinstance(value, bool):
        return DEFAULT_STORY_POINTS
    try:
        number = float(value)
    except (TypeError, ValueError):
        return DEFAULT_STORY_POINTS
    if not math.isfinite(number) or number <= 0:
        return DEFAULT_STORY_POINTS
    return min(STORY_POINT_SCALE, key=lambda point: (abs(point - number), point))


def build_provider(config: StudioConfig) -> LLMProvider:
    """Instantiate the configured provider."""
    if config.provider == "mock":
        return MockProvider(default=OFFLINE_RESPONSE)
    if config.provider == "openai":
        primary = OpenAIProvider(
            api_key=config.openai_api_key,
            model=config.model,
            max_retries=config.max_retries,
        )
        return ResilientLLM(
            primary,
            fallback=MockProvider(default=OFFLINE_RESPONSE),
            max_retries=1,
        )
    raise ValueError(f"Unknown provider: {config.provider!r}.")


def _clean_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _clean_criterion(value: Any) -> str:
    if value is None:
        return ""
    text = value.strip() if isinstance(value, str) else str(value).strip()
    return text.lstrip("-•* ").strip()
