from __future__ import annotations

import logging
from typing import Optional

import requests

from meeting_wizard.services.llm.base import LLMProvider, LLMProviderError, LLMRateLimitError


class OpenAIChatProvider(LLMProvider):
    """LLM provider for OpenAI and OpenAI-compatible chat completion APIs."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://api.openai.com",
        timeout: int = 120,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._logger = logging.getLogger("meeting_wizard.llm.openai")

    def chat(
        self,
        messages: list[dict],
        temperature: float = 0.2,
        model: Optional[str] = None,
    ) -> str:
        request_body = {
            "model": model or self._model,
            "temperature": temperature,
            "messages": messages,
        }
        try:
            response = requests.post(
                f"{self._base_url}/v1/chat/completions",
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                json=request_body,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise LLMProviderError(f"LLM network error: {exc}") from exc

        raw = response.text
        if response.status_code == 429:
            raise LLMRateLimitError(
                "Rate limit nådd för LLM. Försök igen om några minuter. (Status: 429)", raw=raw
            )
        try:
            data = response.json()
        except ValueError:
            data = None

        content = None
        if isinstance(data, dict):
            choices = data.get("choices") or []
            if choices and isinstance(choices[0], dict):
                content = (choices[0].get("message") or {}).get("content")
        if response.status_code >= 400 or content is None:
            raise LLMProviderError(
                f"LLM API error (status: {response.status_code})",
                status_code=response.status_code,
                raw=raw,
            )
        self._logger.info(
            "Chat completion ok: model=%s messages=%s reply_chars=%s",
            request_body["model"],
            len(messages),
            len(content),
        )
        return str(content)
