import logging
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from meeting_wizard.routers.meetings import require_meeting
from meeting_wizard.services.fill import FillInputError, TemplateFillService
from meeting_wizard.services.llm import LLMProviderError
from meeting_wizard.services.meeting_store import MeetingStore
from meeting_wizard.services.retry import RateLimitExhaustedError
from meeting_wizard.services.session import WizardSession


class FillRequest(BaseModel):
    template_markdown: str = Field(..., min_length=1)
    system_prompt: Optional[str] = None
    task_prompt: Optional[str] = None


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    model: Optional[str] = None
    temperature: Optional[float] = Field(None, ge=0.0, le=2.0)


def create_fill_router(
    meeting_store: MeetingStore, fill_service: TemplateFillService
) -> APIRouter:
    router = APIRouter()
    logger = logging.getLogger("meeting_wizard.api.fill")

    def _provider_failure(meeting_id: str, exc: Exception) -> HTTPException:
        if isinstance(exc, RateLimitExhaustedError):
            logger.warning("LLM rate limited: %s", exc)
            meeting_store.log_api_error(
                meeting_id, str(exc), exc.status_code, getattr(exc.last_error, "raw", None)
            )
            return HTTPException(status_code=429, detail=str(exc))
        logger.warning("LLM call failed: %s", exc)
        meeting_store.log_api_error(
            meeting_id, str(exc), getattr(exc, "status_code", None), getattr(exc, "raw", None)
        )
        return HTTPException(status_code=502, detail=str(exc))

    @router.post("/api/meetings/{meeting_id}/fill")
    async def fill_template(meeting_id: str, payload: FillRequest) -> dict:
        require_meeting(meeting_store, meeting_id)
        try:
            filled = await fill_service.fill(
                meeting_id,
                payload.template_markdown,
                system_prompt=payload.system_prompt,
                task_prompt=payload.task_prompt,
            )
        except FillInputError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except (RateLimitExhaustedError, LLMProviderError) as exc:
            raise _provider_failure(meeting_id, exc) from exc
        return {"filled_markdown": filled}

    @router.post("/api/meetings/{meeting_id}/chat")
    async def chat(meeting_id: str, payload: ChatRequest) -> dict:
        session = WizardSession.from_state(require_meeting(meeting_store, meeting_id))
        try:
            result = await fill_service.chat(
                session, payload.message, model=payload.model, temperature=payload.temperature
            )
        except FillInputError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except (RateLimitExhaustedError, LLMProviderError) as exc:
            raise _provider_failure(meeting_id, exc) from exc
        return result.to_dict()

    return router
