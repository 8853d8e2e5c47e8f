"""Model provider implementations."""

from agent_studio.ai.providers.base import LLMProvider
from agent_studio.ai.providers.mock_provider import MockProvider
from agent_studio.ai.providers.openai_provider import OpenAIProvider
from agent_studio.ai.providers.resilient_llm import ResilientLLM

__all__ = ["LLMProvider", "MockProvider", "OpenAIProvider", "ResilientLLM"]
