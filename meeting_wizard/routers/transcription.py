import logging
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from meeting_wizard.routers.meetings import require_meeting
from meeting_wizard.services.audio import UnsupportedAudioFormatError
from meeting_wizard.services.meeting_store import MeetingStore
from meeting_wizard.services.retry import RateLimitExhaustedError
from meeting_wizard.services.transcription import TranscriptionProviderError
from meeting_wizard.services.transcription_service import TranscriptionService


class TranscribeRequest(BaseModel):
    path: str = Field(..., min_length=1, description="Stored audio path or file name")
    lang: Optional[str] = Field(None, description="Language hint, e.g. 'sv' or 'en'")
    append: bool = False
    filename: Optional[str] = None


def create_transcription_router(
    meeting_store: MeetingStore, transcription_service: TranscriptionService
) -> APIRouter:
    router = APIRouter()
    logger = logging.getLogger("meeting_wizard.api.transcription")

    @router.post("/api/meetings/{meeting_id}/transcribe")
    async def transcribe(meeting_id: str, payload: TranscribeRequest) -> dict:
        require_meeting(meeting_store, meeting_id)
        try:
            transcript = await transcription_service.transcribe(
                meeting_id,
                payload.path,
                language=payload.lang,
                append=payload.append,
                filename=payload.filename,
            )
        except UnsupportedAudioFormatError as exc:
            meeting_store.log_error(
                meeting_id, str(exc), {"file_extension": exc.extension, "file_path": payload.path}
            )
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except RateLimitExhaustedError as exc:
            logger.warning("Transcription rate limited: %s", exc)
            meeting_store.log_api_error(
                meeting_id, str(exc), exc.status_code, getattr(exc.last_error, "raw", None)
            )
            raise HTTPException(status_code=429, detail=str(exc)) from exc
        except TranscriptionProviderError as exc:
            logger.warning("Transcription failed: %s", exc)
            meeting_store.log_api_error(meeting_id, str(exc), exc.status_code, exc.raw)
            status = 404 if exc.status_code == 404 else 502
            raise HTTPException(status_code=status, detail=str(exc)) from exc
        return {"transcript": transcript}

    return router
