from __future__ import annotations

import asyncio
import logging
import os
from typing import Optional

from meeting_wizard.services.audio import fix_dat_webm, validate_format
from meeting_wizard.services.meeting_store import MeetingStore
from meeting_wizard.services.retry import retry_with_backoff
from meeting_wizard.services.settings import SettingsService
from meeting_wizard.services.transcription import (
    MockTranscriptionProvider,
    OpenAITranscriptionProvider,
    TranscriptionProvider,
    TranscriptionProviderError,
)


class TranscriptionService:
    """Transcribes a meeting's audio file and stores the result."""

    def __init__(
        self,
        meeting_store: MeetingStore,
        settings: SettingsService,
        max_retries: int = 3,
        base_delay_ms: int = 1000,
    ) -> None:
        self._store = meeting_store
        self._settings = settings
        self._max_retries = max_retries
        self._base_delay_ms = base_delay_ms
        self._logger = logging.getLogger("meeting_wizard.transcription")

    def _get_provider(self) -> tuple[TranscriptionProvider, str]:
        config = self._settings.transcription()
        self._logger.info(
            "Transcription settings: key=%s url=%s model=%s mock=%s",
            "SET" if config.api_key else "NOT SET",
            config.base_url,
            config.model,
            config.mock,
        )
        if config.mock:
            return MockTranscriptionProvider(), config.language
        return (
            OpenAITranscriptionProvider(
                api_key=config.api_key, model=config.model, base_url=config.base_url
            ),
            config.language,
        )

    def _resolve_audio(self, meeting_id: str, path: str) -> str:
        candidate = path
        if not os.path.isabs(candidate):
            candidate = self._store.audio_file_path(meeting_id, os.path.basename(path)) or ""
        owned = bool(candidate) and self._store.owns_path(meeting_id, candidate)
        if not owned or not os.path.exists(candidate):
            raise TranscriptionProviderError(f"Audio file not found: {path}", status_code=404)
        fixed = fix_dat_webm(candidate)
        if fixed:
            self._logger.info("Using fixed path: %s", fixed)
            candidate = fixed
        return candidate

    async def transcribe(
        self,
        meeting_id: str,
        path: str,
        language: Optional[str] = None,
        append: bool = False,
        filename: Optional[str] = None,
    ) -> str:
        """Transcribe ``path`` and store it; returns the meeting's full transcript.

        Raises:
            TranscriptionProviderError: Missing file or provider failure.
            UnsupportedAudioFormatError: The file type is not accepted.
            RateLimitExhaustedError: Still rate limited after all retries.
        """
        provider, default_language = self._get_provider()
        language = language or default_language
        self._logger.info(
            "Transcription request: meeting=%s path=%s lang=%s", meeting_id, path, language
        )
        if isinstance(provider, MockTranscriptionProvider):
            text = provider.transcribe(path, language)
        else:
            audio_path = self._resolve_audio(meeting_id, path)
            validate_format(audio_path)
            text = await retry_with_backoff(
                lambda: asyncio.to_thread(provider.transcribe, audio_path, language),
                max_retries=self._max_retries,
                base_delay_ms=self._base_delay_ms,
            )
        return self._store.store_transcription(
            meeting_id, text, append=append, filename=filename or "unknown"
        )
