import logging
import mimetypes
import os
from typing import Optional

from fastapi import APIRouter, File, HTTPException, UploadFile
from fastapi.responses import FileResponse

from meeting_wizard.routers.meetings import require_meeting
from meeting_wizard.services.audio import MAX_UPLOAD_BYTES
from meeting_wizard.services.meeting_store import MeetingStore

UPLOAD_CHUNK_BYTES = 1024 * 1024


def create_uploads_router(meeting_store: MeetingStore) -> APIRouter:
    router = APIRouter()
    logger = logging.getLogger("meeting_wizard.api.uploads")

    @router.post("/api/meetings/{meeting_id}/audio")
    async def upload_audio(meeting_id: str, audio: UploadFile = File(...)) -> dict:
        require_meeting(meeting_store, meeting_id)
        if audio.size is not None and audio.size > MAX_UPLOAD_BYTES:
            raise HTTPException(status_code=400, detail="file too large")
        chunks: list[bytes] = []
        received = 0
        while True:
            chunk = await audio.read(UPLOAD_CHUNK_BYTES)
            if not chunk:
                break
            received += len(chunk)
            if received > MAX_UPLOAD_BYTES:
                logger.warning("Upload rejected: meeting=%s over %s bytes", meeting_id, MAX_UPLOAD_BYTES)
                raise HTTPException(status_code=400, detail="file too large")
            chunks.append(chunk)
        contents = b"".join(chunks)
        if not contents:
            raise HTTPException(status_code=400, detail="audio required")
        mime = audio.content_type or mimetypes.guess_type(audio.filename or "")[0] or ""
        logger.info(
            "Upload: meeting=%s name=%s mime=%s bytes=%s",
            meeting_id,
            audio.filename,
            mime,
            len(contents),
        )
        try:
            return meeting_store.save_audio(meeting_id, contents, mime, audio.filename or "")
        except OSError as exc:
            meeting_store.log_error(
                meeting_id, "Saving upload failed", {"file_size": len(contents), "error": str(exc)}
            )
            raise HTTPException(status_code=500, detail="Upload failed") from exc

    @router.get("/api/meetings/{meeting_id}/audio")
    def list_audio(meeting_id: str) -> dict:
        require_meeting(meeting_store, meeting_id)
        return {"files": meeting_store.list_audio_files(meeting_id)}

    @router.get("/api/meetings/{meeting_id}/audio/download")
    def download_audio(meeting_id: str, filename: Optional[str] = None):
        require_meeting(meeting_store, meeting_id)
        path = meeting_store.audio_file_path(meeting_id, filename)
        if not path:
            raise HTTPException(status_code=404, detail="Audio file not found")
        return FileResponse(
            path,
            media_type=mimetypes.guess_type(path)[0] or "application/octet-stream",
            filename=os.path.basename(path),
        )

    return router
