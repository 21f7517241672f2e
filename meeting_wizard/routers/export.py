import json
import logging
import os
import re
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import Response

from meeting_wizard.routers.meetings import require_meeting
from meeting_wizard.services.export import (
    build_meeting_zip,
    markdown_sections,
    markdown_to_word_html,
)
from meeting_wizard.services.meeting_store import MeetingStore

_SAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9_.-]")


def _attachment(filename: str) -> dict:
    return {"Content-Disposition": f'attachment; filename="{_SAFE_FILENAME_RE.sub("_", filename)}"'}


def create_export_router(meeting_store: MeetingStore) -> APIRouter:
    router = APIRouter()
    logger = logging.getLogger("meeting_wizard.api.export")

    def _filled(meeting_id: str) -> str:
        require_meeting(meeting_store, meeting_id)
        filled = meeting_store.load_filled(meeting_id)
        if not filled:
            raise HTTPException(status_code=404, detail="Ingen ifylld mall att exportera")
        return filled

    @router.get("/api/meetings/{meeting_id}/export")
    def export_filled(
        meeting_id: str,
        format: str = Query("md", pattern="^(md|json)$"),
        filename: Optional[str] = None,
    ) -> Response:
        filled = _filled(meeting_id)
        if format == "json":
            body = json.dumps(
                {
                    "meetingId": meeting_id,
                    "exported": datetime.now().isoformat(timespec="seconds"),
                    "sections": markdown_sections(filled),
                    "markdown": filled,
                },
                ensure_ascii=False,
                indent=2,
            )
            return Response(
                content=body,
                media_type="application/json",
                headers=_attachment(filename or f"{meeting_id}.json"),
            )
        return Response(
            content=filled,
            media_type="text/markdown; charset=utf-8",
            headers=_attachment(filename or "mote.md"),
        )

    @router.get("/api/meetings/{meeting_id}/export/word")
    def export_word(meeting_id: str, filename: Optional[str] = None) -> Response:
        filled = _filled(meeting_id)
        return Response(
            content=markdown_to_word_html(filled),
            media_type="application/msword",
            headers=_attachment(filename or "mote.doc"),
        )

    @router.get("/api/meetings/{meeting_id}/export/zip")
    def export_zip(meeting_id: str) -> Response:
        require_meeting(meeting_store, meeting_id)
        try:
            payload = build_meeting_zip(meeting_store.meeting_dir(meeting_id))
        except OSError as exc:
            logger.exception("Zip export failed: meeting=%s", meeting_id)
            meeting_store.log_error(meeting_id, f"Kunde inte skapa ZIP-fil: {exc}")
            raise HTTPException(status_code=500, detail="Kunde inte skapa ZIP-fil") from exc
        logger.info("Zip export: meeting=%s bytes=%s", meeting_id, len(payload))
        return Response(
            content=payload,
            media_type="application/zip",
            headers=_attachment(f"{meeting_id}.zip"),
        )

    @router.get("/api/meetings/{meeting_id}/errors")
    def error_log(meeting_id: str) -> dict:
        require_meeting(meeting_store, meeting_id)
        content = meeting_store.read_error_log(meeting_id) or ""
        return {"lines": [line for line in content.splitlines() if line.strip()]}

    return router
