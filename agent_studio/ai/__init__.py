"""Language model integration: providers, story drafting and agent chat."""

from agent_studio.ai.drafting import (
    AIServiceError,
    GeneratedStory,
    StoryDrafter,
    build_provider,
)

__all__ = ["AIServiceError", "GeneratedStory", "StoryDrafter", "build_provider"]
