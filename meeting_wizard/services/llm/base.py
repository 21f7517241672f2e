from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import Optional

from meeting_wizard.services.retry import RateLimitError


class LLMProviderError(RuntimeError):
    def __init__(
        self, message: str, status_code: Optional[int] = None, raw: Optional[str] = None
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.raw = raw


class LLMRateLimitError(LLMProviderError, RateLimitError):
    def __init__(self, message: str, raw: Optional[str] = None) -> None:
        LLMProviderError.__init__(self, message, status_code=429, raw=raw)


class LLMProvider(ABC):
    @abstractmethod
    def chat(
        self,
        messages: list[dict],
        temperature: float = 0.2,
        model: Optional[str] = None,
    ) -> str:
        """Send a chat message list and return the assistant reply text."""
        raise NotImplementedError


class MockChatProvider(LLMProvider):
    """Offline provider: fills the standard minutes sections with demo text.

    When a user message carries a ``MALL:`` block that template is returned
    with its known sections filled; otherwise a fixed reply is returned.
    """

    REPLY = (
        "Detta är ett mock-svar från LLM. I verkligheten skulle jag hjälpa dig "
        "att fylla i mallen baserat på transkriptet."
    )

    SECTION_FILLERS = {
        "Sammanfattning": "- Sammanfattning (mock) baserad på transkript",
        "Beslut": "- Beslut: Demo-beslut",
        "Åtgärder": "- [ ] Demo-åtgärd; Ansvarig: Anna; Deadline: 2025-09-01",
        "Risker": "- Demo-risk",
        "Nästa steg": "- Boka uppföljning (demo)",
    }

    def __init__(self) -> None:
        self._logger = logging.getLogger("meeting_wizard.llm.mock")

    @classmethod
    def fill_template(cls, template: str) -> str:
        filled = template
        for heading, filler in cls.SECTION_FILLERS.items():
            pattern = re.compile(
                rf"(^## {re.escape(heading)}[ \t]*$)(.*?)(?=^#{{1,2}} |\Z)",
                re.MULTILINE | re.DOTALL,
            )
            filled = pattern.sub(lambda m, f=filler: f"{m.group(1)}\n{f}\n", filled)
        return filled

    def chat(
        self,
        messages: list[dict],
        temperature: float = 0.2,
        model: Optional[str] = None,
    ) -> str:
        template = _find_template(messages)
        self._logger.info("Mock chat: messages=%s template=%s", len(messages), bool(template))
        if template:
            return self.fill_template(template)
        return self.REPLY


def _find_template(messages: list[dict]) -> str:
    for message in messages:
        if message.get("role") != "user":
            continue
        content = str(message.get("content", ""))
        for marker in ("MALL ATT FYLLA I:\n", "MALL:\n"):
            if marker in content:
                template = content.split(marker, 1)[1]
                return re.split(r"\n\n(?:MÖTESTRANSKRIPT|TRANSKRIPT):\n", template, maxsplit=1)[0]
    return ""
