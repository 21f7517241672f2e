"""AI-assisted filling of the meeting template from the transcript."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from meeting_wizard.services.agenda import split_agenda
from meeting_wizard.services.llm import LLMProvider, MockChatProvider, OpenAIChatProvider
from meeting_wizard.services.meeting_store import MeetingStore
from meeting_wizard.services.retry import retry_with_backoff
from meeting_wizard.services.session import ChatMessage, WizardSession, WizardStep
from meeting_wizard.services.settings import LLMSettings, SettingsService

DEFAULT_TASK_PROMPT = "Fyll i mallen baserat på transkriptet."
TEMPLATE_UPDATED = "Mall uppdaterad"


class FillInputError(ValueError):
    """The session lacks the agenda, transcript or template needed to fill."""


@dataclass(frozen=True)
class ChatResult:
    response: str
    filled_template: str
    chat: list[ChatMessage]

    def to_dict(self) -> dict:
        return {
            "response": self.response,
            "filled_template": self.filled_template,
            "chat": [m.to_dict() for m in self.chat],
        }


def build_chat_messages(
    system_prompt: str,
    template: str,
    transcript: str,
    history: list[ChatMessage],
    instruction: str,
) -> list[dict]:
    context = (
        f"MALL ATT FYLLA I:\n{template}\n\n"
        f"MÖTESTRANSKRIPT:\n{transcript}\n\n"
        "VIKTIGT: Fyll i mallen baserat på transkriptet och instruktionerna som följer. "
        "Svara ALLTID med den ifyllda mallen som innehåller konkret information från mötet."
    )
    messages = [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": context},
    ]
    messages.extend(m.to_dict() for m in history)
    messages.append({"role": "user", "content": instruction})
    return messages


def build_fill_messages(
    system_prompt: str, task_prompt: str, template: str, transcript: str
) -> list[dict]:
    return [
        {"role": "system", "content": system_prompt},
        {
            "role": "user",
            "content": f"{task_prompt}\n\nMALL:\n{template}\n\nTRANSKRIPT:\n{transcript}",
        },
    ]


class TemplateFillService:
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
        self._logger = logging.getLogger("meeting_wizard.fill")

    def _get_provider(self) -> tuple[LLMProvider, LLMSettings]:
        config = self._settings.llm()
        if config.mock:
            self._logger.info("Using mock chat provider")
            return MockChatProvider(), config
        return (
            OpenAIChatProvider(api_key=config.api_key, model=config.model, base_url=config.base_url),
            config,
        )

    async def _complete(
        self, provider: LLMProvider, messages: list[dict], temperature: float, model: Optional[str]
    ) -> str:
        return await retry_with_backoff(
            lambda: asyncio.to_thread(provider.chat, messages, temperature, model),
            max_retries=self._max_retries,
            base_delay_ms=self._base_delay_ms,
        )

    async def fill(
        self,
        meeting_id: str,
        template: str,
        system_prompt: Optional[str] = None,
        task_prompt: Optional[str] = None,
    ) -> str:
        """One-shot fill of ``template`` from the stored transcript."""
        if not template.strip():
            raise FillInputError("Template is empty")
        provider, config = self._get_provider()
        transcript = self._store.load_transcript(meeting_id) or ""
        messages = build_fill_messages(
            system_prompt or config.system_prompt,
            task_prompt or DEFAULT_TASK_PROMPT,
            template,
            transcript,
        )
        filled = await self._complete(provider, messages, config.temperature, None)
        self._store.save_filled(meeting_id, filled)
        self._logger.info("Template filled: meeting=%s chars=%s", meeting_id, len(filled))
        return filled

    async def chat(
        self,
        session: WizardSession,
        instruction: str,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> ChatResult:
        """Refine the filled template through one more instruction turn."""
        instruction = instruction.strip()
        if not instruction:
            raise FillInputError("Message is empty")
        if not session.agenda.strip():
            raise FillInputError("Ingen agenda hittad. Gå till steg 1 först.")
        if not session.transcript.strip():
            raise FillInputError("Inget transkript hittat. Gå till steg 3 först.")
        template = split_agenda(session.agenda).second_section
        if not template:
            raise FillInputError(
                "Kunde inte hitta mall-sektion i agendan. "
                "Kontrollera att agendan har två #-rubriker."
            )

        provider, config = self._get_provider()
        messages = build_chat_messages(
            config.system_prompt, template, session.transcript, session.chat, instruction
        )
        reply = await self._complete(
            provider,
            messages,
            config.temperature if temperature is None else temperature,
            model,
        )

        session.filled = reply
        session.current_step = WizardStep.TEMPLATE
        session.chat = [
            *session.chat,
            ChatMessage("user", instruction),
            ChatMessage("assistant", TEMPLATE_UPDATED),
        ]
        self._store.save_filled(session.meeting_id, reply)
        self._store.save_chat(session.meeting_id, session.chat_json())
        self._store.save_state(session.meeting_id, session.to_state())
        self._logger.info(
            "Chat turn complete: meeting=%s history=%s", session.meeting_id, len(session.chat)
        )
        return ChatResult(response=reply, filled_template=reply, chat=session.chat)
