import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from meeting_wizard.services.agenda import heading_lines, split_agenda
from meeting_wizard.services.templates import TemplateCatalog


class SplitAgendaRequest(BaseModel):
    text: str = ""


def create_agenda_router(template_catalog: TemplateCatalog) -> APIRouter:
    router = APIRouter()
    logger = logging.getLogger("meeting_wizard.api.agenda")

    @router.post("/api/agenda/split")
    def split(payload: SplitAgendaRequest) -> dict:
        sections = split_agenda(payload.text)
        headings = heading_lines(payload.text)
        logger.debug(
            "Agenda split: headings=%s template_chars=%s",
            len(headings),
            len(sections.second_section),
        )
        return {
            **sections.to_dict(),
            "headings": [{"index": index, "text": line} for index, line in headings],
        }

    @router.get("/api/templates")
    def list_templates() -> list[dict]:
        return template_catalog.list_templates()

    @router.get("/api/templates/{filename}")
    def get_template(filename: str) -> dict:
        content = template_catalog.load_template(filename)
        if content is None:
            raise HTTPException(status_code=404, detail="Template not found")
        return {"filename": filename, "content": content, **split_agenda(content).to_dict()}

    return router
