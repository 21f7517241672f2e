from meeting_wizard.services.transcription.base import (
    MockTranscriptionProvider,
    TranscriptionProvider,
    TranscriptionProviderError,
    TranscriptionRateLimitError,
)
from meeting_wizard.services.transcription.openai_provider import OpenAITranscriptionProvider

__all__ = [
    "MockTranscriptionProvider",
    "TranscriptionProvider",
    "TranscriptionProviderError",
    "TranscriptionRateLimitError",
    "OpenAITranscriptionProvider",
]
