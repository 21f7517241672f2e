import logging
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from meeting_wizard.services.meeting_store import (
    InvalidMeetingIdError,
    MeetingExistsError,
    MeetingStore,
    MeetingStoreError,
    validate_meeting_id,
)


class RenameMeetingRequest(BaseModel):
    new_meeting_id: str = Field(..., min_length=1)


class MeetingStateRequest(BaseModel):
    currentStep: str = "agenda"
    agenda: str = ""
    transcript: str = ""
    filled: str = ""
    settings: dict = {}
    timestamp: Optional[str] = None


class AgendaRequest(BaseModel):
    content: str = Field(..., min_length=1)


class TranscriptRequest(BaseModel):
    content: str = ""


class ChatDialogRequest(BaseModel):
    chat_data: str = Field(..., min_length=1)


def require_meeting(meeting_store: MeetingStore, meeting_id: str) -> dict:
    """Load a meeting or raise the matching HTTP error."""
    try:
        meeting = meeting_store.load_meeting(meeting_id)
    except InvalidMeetingIdError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except MeetingStoreError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    if meeting is None:
        raise HTTPException(status_code=404, detail=f"Meeting not found: {meeting_id}")
    return meeting


def create_meetings_router(meeting_store: MeetingStore) -> APIRouter:
    router = APIRouter()
    logger = logging.getLogger("meeting_wizard.api.meetings")

    @router.post("/api/meetings")
    def create_meeting() -> dict:
        state = meeting_store.create_meeting()
        return {"meeting_id": state["meetingId"], "meeting": state}

    @router.get("/api/meetings")
    def list_meetings() -> list[dict]:
        return meeting_store.list_meetings()

    @router.get("/api/meetings/{meeting_id}")
    def get_meeting(meeting_id: str) -> dict:
        return require_meeting(meeting_store, meeting_id)

    @router.post("/api/meetings/{meeting_id}/rename")
    def rename_meeting(meeting_id: str, payload: RenameMeetingRequest) -> dict:
        try:
            validate_meeting_id(meeting_id)
            state = meeting_store.rename_meeting(meeting_id, payload.new_meeting_id)
        except InvalidMeetingIdError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except MeetingExistsError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except MeetingStoreError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except OSError as exc:
            logger.exception("Rename failed: %s -> %s", meeting_id, payload.new_meeting_id)
            raise HTTPException(status_code=500, detail="Could not rename meeting") from exc
        return {"meeting_id": state["meetingId"], "meeting": state}

    @router.get("/api/meetings/{meeting_id}/state")
    def load_state(meeting_id: str) -> dict:
        try:
            state = meeting_store.load_state(meeting_id)
        except InvalidMeetingIdError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except MeetingStoreError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        if state is None:
            raise HTTPException(status_code=404, detail="No meeting state found")
        return state

    @router.put("/api/meetings/{meeting_id}/state")
    def save_state(meeting_id: str, payload: MeetingStateRequest) -> dict:
        try:
            return meeting_store.save_state(meeting_id, payload.model_dump())
        except InvalidMeetingIdError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @router.put("/api/meetings/{meeting_id}/agenda")
    def save_agenda(meeting_id: str, payload: AgendaRequest) -> dict:
        require_meeting(meeting_store, meeting_id)
        meeting_store.save_agenda(meeting_id, payload.content)
        return {"status": "ok"}

    @router.get("/api/meetings/{meeting_id}/transcript")
    def load_transcript(meeting_id: str) -> dict:
        require_meeting(meeting_store, meeting_id)
        transcript = meeting_store.load_transcript(meeting_id)
        if transcript is None:
            raise HTTPException(status_code=404, detail="No transcript found")
        return {"transcript": transcript}

    @router.put("/api/meetings/{meeting_id}/transcript")
    def save_transcript(meeting_id: str, payload: TranscriptRequest) -> dict:
        require_meeting(meeting_store, meeting_id)
        meeting_store.save_transcript(meeting_id, payload.content)
        return {"status": "ok"}

    @router.put("/api/meetings/{meeting_id}/chat")
    def save_chat(meeting_id: str, payload: ChatDialogRequest) -> dict:
        require_meeting(meeting_store, meeting_id)
        meeting_store.save_chat(meeting_id, payload.chat_data)
        return {"status": "ok"}

    return router
