from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from meeting_wizard.services.retry import RateLimitError


class TranscriptionProviderError(RuntimeError):
    def __init__(
        self, message: str, status_code: Optional[int] = None, raw: Optional[str] = None
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.raw = raw


class TranscriptionRateLimitError(TranscriptionProviderError, RateLimitError):
    def __init__(self, message: str, raw: Optional[str] = None) -> None:
        TranscriptionProviderError.__init__(self, message, status_code=429, raw=raw)


class TranscriptionProvider(ABC):
    @abstractmethod
    def transcribe(self, audio_path: str, language: str) -> str:
        """Return the transcript text for ``audio_path``."""
        raise NotImplementedError


class MockTranscriptionProvider(TranscriptionProvider):
    """Offline stand-in used when no API key is configured."""

    SAMPLE = (
        "Detta är ett EXEMPELTRANSKRIPT (mock) på svenska. "
        "Här nämns beslut, åtgärder och nästa steg."
    )

    def transcribe(self, audio_path: str, language: str) -> str:
        return self.SAMPLE
