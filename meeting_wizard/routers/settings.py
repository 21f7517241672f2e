import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from meeting_wizard.services.settings import SettingsService

_logger = logging.getLogger("meeting_wizard.api.settings")


class LLMSettingsRequest(BaseModel):
    model: str = Field(..., min_length=1)
    temperature: float = Field(0.2, ge=0.0, le=2.0)
    system_prompt: str = Field(..., min_length=1)


def create_settings_router(settings: SettingsService) -> APIRouter:
    router = APIRouter()

    @router.get("/api/settings/llm")
    def get_llm_settings() -> dict:
        return settings.public_llm_settings()

    @router.post("/api/settings/llm")
    def update_llm_settings(payload: LLMSettingsRequest) -> dict:
        try:
            return settings.update_llm_settings(
                payload.model, payload.temperature, payload.system_prompt
            )
        except OSError as exc:
            _logger.exception("Could not write config")
            raise HTTPException(status_code=500, detail="Could not save settings") from exc

    @router.get("/api/settings/transcription")
    def get_transcription_settings() -> dict:
        config = settings.transcription()
        return {
            "model": config.model,
            "language": config.language,
            "base_url": config.base_url,
            "has_api_key": bool(config.api_key),
            "mock": config.mock,
        }

    return router
