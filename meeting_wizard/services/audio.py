from __future__ import annotations

import logging
import os
from typing import Optional

MAX_UPLOAD_BYTES = 100 * 1024 * 1024

# Formats accepted by the OpenAI transcription endpoint.
ALLOWED_EXTENSIONS = (
    "flac", "m4a", "mp3", "mp4", "mpeg", "mpga", "oga", "ogg", "wav", "webm",
)

_MIME_EXTENSIONS = {
    "audio/webm": "webm",
    "audio/webm;codecs=opus": "webm",
    "audio/ogg": "ogg",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/mp4": "mp4",
    "video/mp4": "mp4",
    "audio/flac": "flac",
    "audio/m4a": "m4a",
}

_CONVERSIONS = {
    "aac": "mp3",
    "aiff": "wav",
    "au": "wav",
    "ra": "wav",
    "wma": "mp3",
    "m4v": "mp4",
    "mov": "mp4",
    "avi": "mp4",
}

_EBML_HEADER = b"\x1a\x45\xdf\xa3"

_logger = logging.getLogger("meeting_wizard.audio")


class UnsupportedAudioFormatError(ValueError):
    def __init__(self, extension: str) -> None:
        message = (
            f"Ogiltigt filformat: {extension.upper()}. Stödda format: "
            + ", ".join(ext.upper() for ext in ALLOWED_EXTENSIONS)
        )
        suggestion = suggest_conversion(extension)
        if suggestion:
            message += f". Försök konvertera till {suggestion.upper()} format."
        super().__init__(message)
        self.extension = extension
        self.suggestion = suggestion


def extension_for(mime: Optional[str], original_name: str = "") -> str:
    """Pick a file extension from the MIME type, then the upload's name."""
    ext = _MIME_EXTENSIONS.get((mime or "").strip().lower())
    if ext:
        return ext
    original_ext = os.path.splitext(original_name or "")[1].lstrip(".").lower()
    # Browser recordings often arrive without a usable type.
    return original_ext or "webm"


def suggest_conversion(extension: str) -> Optional[str]:
    return _CONVERSIONS.get(extension.lower())


def file_extension(path: str) -> str:
    return os.path.splitext(path)[1].lstrip(".").lower()


def validate_format(path: str) -> str:
    ext = file_extension(path)
    if ext not in ALLOWED_EXTENSIONS:
        raise UnsupportedAudioFormatError(ext)
    return ext


def fix_dat_webm(path: str) -> Optional[str]:
    """Rename a ``.dat`` upload that is really WebM; return the new path."""
    if not path.endswith(".dat") or not os.path.isfile(path):
        return None
    with open(path, "rb") as f:
        header = f.read(4)
    if header != _EBML_HEADER:
        return None
    new_path = path[: -len(".dat")] + ".webm"
    os.rename(path, new_path)
    _logger.info("Converted .dat file to .webm: %s -> %s", path, new_path)
    return new_path
