"""Wizard session: the per-meeting working state passed between services.

The session is read from the store by a router, handed explicitly to the
service that needs it, and persisted again only through the store.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class WizardStep(str, Enum):
    AGENDA = "agenda"
    RECORD = "record"
    TRANSCRIBE = "transcribe"
    TEMPLATE = "template"
    EXPORT = "export"

    @classmethod
    def parse(cls, value: Optional[str]) -> "WizardStep":
        try:
            return cls(value or cls.AGENDA.value)
        except ValueError:
            return cls.AGENDA


@dataclass(frozen=True)
class ChatMessage:
    role: str
    content: str

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}


@dataclass
class WizardSession:
    meeting_id: str
    current_step: WizardStep = WizardStep.AGENDA
    agenda: str = ""
    transcript: str = ""
    filled: str = ""
    settings: dict = field(default_factory=dict)
    chat: list[ChatMessage] = field(default_factory=list)

    @classmethod
    def from_state(cls, meeting: dict) -> "WizardSession":
        """Build a session from :meth:`MeetingStore.load_meeting` output."""
        return cls(
            meeting_id=meeting.get("meetingId") or "",
            current_step=WizardStep.parse(meeting.get("currentStep")),
            agenda=meeting.get("agenda") or "",
            transcript=meeting.get("transcript") or "",
            filled=meeting.get("filled") or "",
            settings=meeting.get("settings") or {},
            chat=parse_chat_dialog(meeting.get("chatDialog")),
        )

    def to_state(self) -> dict:
        return {
            "currentStep": self.current_step.value,
            "agenda": self.agenda,
            "transcript": self.transcript,
            "filled": self.filled,
            "settings": self.settings,
        }

    def chat_json(self) -> str:
        return json.dumps([m.to_dict() for m in self.chat], ensure_ascii=False)


def parse_chat_dialog(raw) -> list[ChatMessage]:
    """Accept a stored chat dialog as JSON text, a list, or ``{"messages": [...]}``."""
    if not raw:
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            return []
    if isinstance(raw, dict):
        raw = raw.get("messages", [])
    if not isinstance(raw, list):
        return []
    return [
        ChatMessage(role=str(item.get("role", "user")), content=str(item.get("content", "")))
        for item in raw
        if isinstance(item, dict)
    ]
