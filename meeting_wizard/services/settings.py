import json
import logging
import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_BASE_URL = "https://api.openai.com"
DEFAULT_WHISPER_MODEL = "whisper-1"
DEFAULT_LANGUAGE = "sv"
DEFAULT_LLM_MODEL = "gpt-4o-mini"
DEFAULT_TEMPERATURE = 0.2
DEFAULT_SYSTEM_PROMPT = (
    "Du är en expert på att fylla i mötesmallar baserat på transkript. "
    "Du ska vara noggrann, tydlig och följa exakt samma struktur som originalmallen."
)

_TRUTHY = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class TranscriptionSettings:
    api_key: str
    base_url: str
    model: str
    language: str
    mock: bool


@dataclass(frozen=True)
class LLMSettings:
    api_key: str
    base_url: str
    model: str
    temperature: float
    system_prompt: str
    mock: bool


class SettingsService:
    """Resolves runtime settings from config.json with environment overrides.

    config.json layout::

        {
          "mock_mode": false,
          "transcription": {"api_key": "", "base_url": "", "model": "", "language": ""},
          "llm": {"api_key": "", "base_url": "", "model": "", "temperature": 0.2,
                  "system_prompt": ""}
        }

    The file is re-read on every call so edits apply without a restart.
    """

    def __init__(self, config_path: str) -> None:
        self._config_path = config_path
        self._logger = logging.getLogger("meeting_wizard.settings")

    def _read_config(self) -> dict:
        """Read config from file, returning empty dict if not found."""
        if not os.path.exists(self._config_path):
            return {}
        with open(self._config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return data if isinstance(data, dict) else {}

    def _write_config(self, data: dict) -> None:
        os.makedirs(os.path.dirname(self._config_path) or ".", exist_ok=True)
        with open(self._config_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    @staticmethod
    def _pick(env_key: str, section: dict, key: str, default: str = "") -> str:
        value = os.environ.get(env_key)
        if value is None or value == "":
            value = section.get(key)
        return str(value) if value not in (None, "") else default

    def mock_mode(self, api_key: Optional[str] = None) -> bool:
        env_value = os.environ.get("MOCK_MODE")
        if env_value is not None and env_value.strip():
            forced = env_value.strip().lower() in _TRUTHY
        else:
            forced = bool(self._read_config().get("mock_mode", False))
        return forced or not api_key

    def transcription(self) -> TranscriptionSettings:
        section = self._read_config().get("transcription", {}) or {}
        api_key = self._pick("OPENAI_API_KEY", section, "api_key")
        return TranscriptionSettings(
            api_key=api_key,
            base_url=self._pick("OPENAI_BASE_URL", section, "base_url", DEFAULT_BASE_URL),
            model=self._pick("WHISPER_MODEL", section, "model", DEFAULT_WHISPER_MODEL),
            language=self._pick("WHISPER_LANGUAGE", section, "language", DEFAULT_LANGUAGE),
            mock=self.mock_mode(api_key),
        )

    def llm(self) -> LLMSettings:
        section = self._read_config().get("llm", {}) or {}
        api_key = self._pick("LLM_API_KEY", section, "api_key")
        raw_temperature = self._pick("LLM_TEMPERATURE", section, "temperature", str(DEFAULT_TEMPERATURE))
        try:
            temperature = float(raw_temperature)
        except ValueError:
            self._logger.warning("Invalid LLM temperature %r, using default", raw_temperature)
            temperature = DEFAULT_TEMPERATURE
        return LLMSettings(
            api_key=api_key,
            base_url=self._pick("LLM_BASE_URL", section, "base_url", DEFAULT_BASE_URL),
            model=self._pick("LLM_MODEL", section, "model", DEFAULT_LLM_MODEL),
            temperature=temperature,
            system_prompt=self._pick("LLM_SYSTEM_PROMPT", section, "system_prompt", DEFAULT_SYSTEM_PROMPT),
            mock=self.mock_mode(api_key),
        )

    def public_llm_settings(self) -> dict:
        llm = self.llm()
        return {
            "model": llm.model,
            "temperature": llm.temperature,
            "system_prompt": llm.system_prompt,
            "has_api_key": bool(llm.api_key),
            "mock": llm.mock,
        }

    def update_llm_settings(self, model: str, temperature: float, system_prompt: str) -> dict:
        data = self._read_config()
        section = data.get("llm", {}) or {}
        section.update(
            {"model": model, "temperature": temperature, "system_prompt": system_prompt}
        )
        data["llm"] = section
        self._write_config(data)
        self._logger.info("LLM settings updated: model=%s temperature=%s", model, temperature)
        return self.public_llm_settings()
