from __future__ import annotations

import logging
import os

import requests

from meeting_wizard.services.audio import ALLOWED_EXTENSIONS
from meeting_wizard.services.transcription.base import (
    TranscriptionProvider,
    TranscriptionProviderError,
    TranscriptionRateLimitError,
)


class OpenAITranscriptionProvider(TranscriptionProvider):
    """Speech-to-text through an OpenAI-compatible ``/v1/audio/transcriptions``."""

    def __init__(
        self,
        api_key: str,
        model: str = "whisper-1",
        base_url: str = "https://api.openai.com",
        timeout: float = 300,
        connect_timeout: float = 30,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._timeout = (connect_timeout, timeout)
        self._logger = logging.getLogger("meeting_wizard.transcription.openai")

    def transcribe(self, audio_path: str, language: str) -> str:
        if not os.path.exists(audio_path):
            raise TranscriptionProviderError(f"Audio file not found: {audio_path}", status_code=404)

        self._logger.info(
            "Transcribing path=%s language=%s model=%s", audio_path, language, self._model
        )
        try:
            with open(audio_path, "rb") as audio_file:
                response = requests.post(
                    f"{self._base_url}/v1/audio/transcriptions",
                    headers={"Authorization": f"Bearer {self._api_key}"},
                    files={"file": (os.path.basename(audio_path), audio_file)},
                    data={"model": self._model, "language": language},
                    timeout=self._timeout,
                )
        except requests.RequestException as exc:
            raise TranscriptionProviderError(f"Network error: {exc}") from exc

        self._logger.info("API response status: %s", response.status_code)
        raw = response.text
        try:
            data = response.json()
        except ValueError:
            data = None

        if response.status_code != 200:
            api_message = _error_message(data)
            if response.status_code == 429:
                message = "Rate limit nådd. Försök igen om några minuter. (Status: 429)"
                if api_message:
                    message += f" - {api_message}"
                raise TranscriptionRateLimitError(message, raw=raw)
            message = api_message or f"API error (status: {response.status_code})"
            if "Invalid file format" in message or "Unsupported file format" in message:
                message = "Ogiltigt filformat. Stödda format: " + ", ".join(
                    ext.upper() for ext in ALLOWED_EXTENSIONS
                )
            raise TranscriptionProviderError(message, status_code=response.status_code, raw=raw)

        if not isinstance(data, dict):
            raise TranscriptionProviderError("Invalid API response", raw=raw)
        text = data.get("text") or ""
        if not text:
            raise TranscriptionProviderError("Empty transcription result", raw=raw)
        self._logger.info("Transcription successful, length: %s", len(text))
        return text


def _error_message(data) -> str:
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return ""
