from meeting_wizard.services.llm.base import (
    LLMProvider,
    LLMProviderError,
    LLMRateLimitError,
    MockChatProvider,
)
from meeting_wizard.services.llm.openai_provider import OpenAIChatProvider

__all__ = [
    "LLMProvider",
    "LLMProviderError",
    "LLMRateLimitError",
    "MockChatProvider",
    "OpenAIChatProvider",
]
