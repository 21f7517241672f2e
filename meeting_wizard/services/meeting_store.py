from __future__ import annotations

import glob
import json
import logging
import mimetypes
import os
import re
import secrets
import shutil
import threading
from datetime import datetime
from typing import Optional

from meeting_wizard.services.audio import extension_for

STATE_FILE = "meeting_state.json"
AGENDA_FILE = "agenda.md"
TRANSCRIPT_FILE = "transcript.txt"
FILLED_FILE = "filled.md"
CHAT_FILE = "chat_dialog.json"
ERROR_FILE = "error.txt"
AUDIO_DIR = "audio"
VERSIONS_DIR = "versions"

_MEETING_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class MeetingStoreError(RuntimeError):
    pass


class InvalidMeetingIdError(MeetingStoreError, ValueError):
    pass


class MeetingExistsError(MeetingStoreError):
    pass


def validate_meeting_id(meeting_id: str) -> str:
    if not meeting_id or not _MEETING_ID_RE.match(meeting_id):
        raise InvalidMeetingIdError(
            "Invalid meeting id. Use only letters, digits, dashes and underscores."
        )
    return meeting_id


def _timestamp() -> str:
    return datetime.now().strftime("%Y%m%d_%H%M%S")


class MeetingStore:
    """Flat-file storage, one folder per meeting.

    Every write replaces the whole file (last write wins).  Previous
    transcripts and filled templates are copied into ``versions/`` before
    being overwritten.
    """

    def __init__(self, meetings_dir: str) -> None:
        self._meetings_dir = meetings_dir
        self._lock = threading.RLock()
        self._logger = logging.getLogger("meeting_wizard.meetings")
        os.makedirs(self._meetings_dir, exist_ok=True)

    # ── Paths ──────────────────────────────────────────────────────────

    def _path(self, meeting_id: str, *parts: str) -> str:
        return os.path.join(self._meetings_dir, validate_meeting_id(meeting_id), *parts)

    def exists(self, meeting_id: str) -> bool:
        return os.path.isfile(self._path(meeting_id, STATE_FILE))

    def meeting_dir(self, meeting_id: str) -> str:
        """Return the meeting folder, creating it with its subfolders."""
        base = self._path(meeting_id)
        for sub in (AUDIO_DIR, VERSIONS_DIR):
            os.makedirs(os.path.join(base, sub), exist_ok=True)
        return base

    # ── Low-level file helpers ─────────────────────────────────────────

    def _read_text(self, meeting_id: str, name: str) -> Optional[str]:
        path = self._path(meeting_id, name)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def _write_text(self, meeting_id: str, name: str, content: str) -> str:
        path = os.path.join(self.meeting_dir(meeting_id), name)
        temp_path = f"{path}.tmp"
        with open(temp_path, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(temp_path, path)
        self._logger.info("Saved meeting file: %s", path)
        return path

    def _read_state_file(self, meeting_id: str) -> Optional[dict]:
        content = self._read_text(meeting_id, STATE_FILE)
        if content is None:
            return None
        try:
            data = json.loads(content)
        except json.JSONDecodeError as exc:
            self.log_error(
                meeting_id,
                "Invalid JSON in meeting state file",
                {"content": content[:200]},
            )
            raise MeetingStoreError("Invalid JSON in meeting state file") from exc
        if not isinstance(data, dict):
            raise MeetingStoreError("Invalid meeting state file")
        return data

    def _write_state_file(self, meeting_id: str, state: dict) -> None:
        self._write_text(meeting_id, STATE_FILE, json.dumps(state, ensure_ascii=False, indent=2))

    def _backup(self, meeting_id: str, name: str, prefix: str) -> Optional[str]:
        source = self._path(meeting_id, name)
        if not os.path.exists(source):
            return None
        _, ext = os.path.splitext(name)
        target = os.path.join(
            self.meeting_dir(meeting_id), VERSIONS_DIR, f"{prefix}_{_timestamp()}{ext}"
        )
        shutil.copyfile(source, target)
        self._logger.info("Backed up %s to %s", source, target)
        return target

    # ── Meetings ───────────────────────────────────────────────────────

    def create_meeting(self) -> dict:
        with self._lock:
            meeting_id = f"meeting_{_timestamp()}_{secrets.token_hex(3)}"
            state = {
                "meetingId": meeting_id,
                "created": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
                "agenda": "",
                "transcript": "",
                "filled": "",
                "currentStep": "agenda",
                "uploaded": None,
            }
            self._write_state_file(meeting_id, state)
            self._logger.info("Created meeting: %s", meeting_id)
            return state

    def load_meeting(self, meeting_id: str) -> Optional[dict]:
        """Return the meeting state merged with the contents of its files."""
        with self._lock:
            state = self._read_state_file(meeting_id)
            if state is None:
                return None
            state["agenda"] = self._read_text(meeting_id, AGENDA_FILE) or ""
            state["transcript"] = self._read_text(meeting_id, TRANSCRIPT_FILE) or ""
            state["filled"] = self._read_text(meeting_id, FILLED_FILE) or ""
            state["chatDialog"] = self._read_text(meeting_id, CHAT_FILE) or ""
            audio_files = self.list_audio_files(meeting_id)
            if audio_files:
                first = audio_files[0]
                state["uploaded"] = {
                    "path": first["path"],
                    "filename": first["filename"],
                    "size": first["size"],
                    "type": first["mime"],
                }
            return state

    def list_meetings(self) -> list[dict]:
        meetings: list[dict] = []
        with self._lock:
            try:
                names = os.listdir(self._meetings_dir)
            except OSError as exc:
                self._logger.warning("Failed to list meetings dir: %s", exc)
                return []
            for name in names:
                base = os.path.join(self._meetings_dir, name)
                state_path = os.path.join(base, STATE_FILE)
                if not os.path.isdir(base) or not os.path.isfile(state_path):
                    continue
                try:
                    with open(state_path, "r", encoding="utf-8") as f:
                        state = json.load(f)
                except (OSError, json.JSONDecodeError) as exc:
                    self._logger.warning("Failed to read meeting state: %s error=%s", state_path, exc)
                    continue
                created = os.path.getmtime(base)
                if isinstance(state, dict) and state.get("created"):
                    try:
                        created = datetime.strptime(
                            state["created"], "%Y-%m-%d %H:%M:%S"
                        ).timestamp()
                    except (TypeError, ValueError):
                        pass
                meetings.append(
                    {
                        "id": name,
                        "created": created,
                        "modified": os.path.getmtime(state_path),
                        "currentStep": (state or {}).get("currentStep", "agenda"),
                        "hasTranscript": os.path.isfile(os.path.join(base, TRANSCRIPT_FILE)),
                        "hasFilled": os.path.isfile(os.path.join(base, FILLED_FILE)),
                        "hasAgenda": os.path.isfile(os.path.join(base, AGENDA_FILE)),
                        "hasAudio": bool(glob.glob(os.path.join(base, AUDIO_DIR, "*"))),
                    }
                )
        return sorted(meetings, key=lambda m: m["modified"], reverse=True)

    def rename_meeting(self, old_id: str, new_id: str) -> dict:
        with self._lock:
            old_dir = self._path(old_id)
            new_dir = self._path(new_id)
            if not os.path.isdir(old_dir):
                raise MeetingStoreError(f"Meeting not found: {old_id}")
            if os.path.exists(new_dir):
                raise MeetingExistsError(f"A meeting named {new_id} already exists")
            os.rename(old_dir, new_dir)
            state = self._read_state_file(new_id) or {}
            state["meetingId"] = new_id
            state["oldMeetingId"] = old_id
            state["renamed"] = datetime.now().astimezone().isoformat()
            self._write_state_file(new_id, state)
            self._logger.info("Renamed meeting: %s -> %s", old_id, new_id)
            return state

    # ── Wizard state ───────────────────────────────────────────────────

    def save_state(self, meeting_id: str, payload: dict) -> dict:
        now = datetime.now().astimezone().isoformat()
        state = {
            "meetingId": meeting_id,
            "currentStep": payload.get("currentStep") or "agenda",
            "agenda": payload.get("agenda") or "",
            "transcript": payload.get("transcript") or "",
            "filled": payload.get("filled") or "",
            "settings": payload.get("settings") or {},
            "timestamp": payload.get("timestamp") or now,
            "lastSaved": now,
        }
        with self._lock:
            previous = self._read_state_file(meeting_id) or {}
            if previous.get("created"):
                state["created"] = previous["created"]
            self._write_state_file(meeting_id, state)
        return state

    def load_state(self, meeting_id: str) -> Optional[dict]:
        with self._lock:
            return self._read_state_file(meeting_id)

    # ── Documents ──────────────────────────────────────────────────────

    def save_agenda(self, meeting_id: str, content: str) -> str:
        if not content:
            raise ValueError("Agenda content is empty")
        with self._lock:
            return self._write_text(meeting_id, AGENDA_FILE, content)

    def load_agenda(self, meeting_id: str) -> str:
        return self._read_text(meeting_id, AGENDA_FILE) or ""

    def save_transcript(self, meeting_id: str, text: str) -> str:
        with self._lock:
            self._backup(meeting_id, TRANSCRIPT_FILE, "transcript")
            return self._write_text(meeting_id, TRANSCRIPT_FILE, text or "")

    def load_transcript(self, meeting_id: str) -> Optional[str]:
        return self._read_text(meeting_id, TRANSCRIPT_FILE)

    def store_transcription(
        self, meeting_id: str, text: str, append: bool = False, filename: str = "unknown"
    ) -> str:
        """Write a fresh transcription, appending after a separator if asked."""
        with self._lock:
            existing = self._read_text(meeting_id, TRANSCRIPT_FILE)
            if append and existing is not None:
                text = f"{existing}\n\n--- Transkribering från: {filename} ---\n\n{text}"
            self._write_text(meeting_id, TRANSCRIPT_FILE, text)
            return text

    def save_filled(self, meeting_id: str, markdown: str) -> str:
        with self._lock:
            self._backup(meeting_id, FILLED_FILE, "filled")
            return self._write_text(meeting_id, FILLED_FILE, markdown)

    def load_filled(self, meeting_id: str) -> Optional[str]:
        return self._read_text(meeting_id, FILLED_FILE)

    def save_chat(self, meeting_id: str, chat_json: str) -> str:
        with self._lock:
            return self._write_text(meeting_id, CHAT_FILE, chat_json)

    # ── Audio ──────────────────────────────────────────────────────────

    def save_audio(
        self, meeting_id: str, data: bytes, mime: str, original_name: str = ""
    ) -> dict:
        ext = extension_for(mime, original_name)
        name = f"audio_{_timestamp()}_{secrets.token_hex(3)}.{ext}"
        target = os.path.join(self.meeting_dir(meeting_id), AUDIO_DIR, name)
        with open(target, "wb") as f:
            f.write(data)
        self._logger.info("Upload saved: meeting=%s path=%s mime=%s", meeting_id, target, mime)
        return {"path": target, "filename": name, "mime": mime}

    def list_audio_files(self, meeting_id: str) -> list[dict]:
        audio_dir = self._path(meeting_id, AUDIO_DIR)
        files: list[dict] = []
        for path in sorted(glob.glob(os.path.join(audio_dir, "*"))):
            if not os.path.isfile(path):
                continue
            files.append(
                {
                    "path": path,
                    "filename": os.path.basename(path),
                    "size": os.path.getsize(path),
                    "mime": mimetypes.guess_type(path)[0] or "application/octet-stream",
                    "uploaded": os.path.getmtime(path),
                }
            )
        return files

    def audio_file_path(self, meeting_id: str, filename: Optional[str] = None) -> Optional[str]:
        """Resolve an audio file of the meeting; the first one when unnamed."""
        audio_dir = os.path.realpath(self._path(meeting_id, AUDIO_DIR))
        if not filename:
            files = self.list_audio_files(meeting_id)
            return files[0]["path"] if files else None
        path = os.path.realpath(os.path.join(audio_dir, filename))
        if os.path.dirname(path) != audio_dir or not os.path.isfile(path):
            return None
        return path

    def owns_path(self, meeting_id: str, path: str) -> bool:
        base = os.path.realpath(self._path(meeting_id))
        return os.path.realpath(path).startswith(base + os.sep)

    # ── Per-meeting error log ──────────────────────────────────────────

    def log_error(self, meeting_id: str, error: str, context: Optional[dict] = None) -> None:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        context_str = f" | Context: {json.dumps(context, ensure_ascii=False)}" if context else ""
        path = os.path.join(self.meeting_dir(meeting_id), ERROR_FILE)
        with self._lock, open(path, "a", encoding="utf-8") as f:
            f.write(f"[{timestamp}] {error}{context_str}\n")
        self._logger.error("Meeting %s error: %s", meeting_id, error)

    def log_api_error(
        self,
        meeting_id: str,
        error: str,
        status: Optional[int] = None,
        raw: Optional[str] = None,
    ) -> None:
        context: dict = {}
        if status:
            context["status"] = status
        if raw:
            context["raw"] = raw[:500]
        self.log_error(meeting_id, error, context)

    def read_error_log(self, meeting_id: str) -> Optional[str]:
        return self._read_text(meeting_id, ERROR_FILE)
