"""Shared fixtures.

Every test runs in its own temporary working directory with mock providers,
so nothing touches the network or the developer's ``data/`` folder.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from meeting_wizard import main as main_module
from meeting_wizard.services.meeting_store import MeetingStore
from meeting_wizard.services.settings import SettingsService

_PROVIDER_ENV = (
    "STORAGE_PATH",
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "WHISPER_MODEL",
    "WHISPER_LANGUAGE",
    "LLM_API_KEY",
    "LLM_BASE_URL",
    "LLM_MODEL",
    "LLM_TEMPERATURE",
    "LLM_SYSTEM_PROMPT",
    "MOCK_MODE",
)

AGENDA = (
    "# Agenda\n"
    "1. Uppföljning\n"
    "2. Budget\n"
    "# Mall för protokoll\n"
    "## Sammanfattning\n"
    "\n"
    "## Beslut\n"
    "\n"
    "## Åtgärder\n"
)


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for key in _PROVIDER_ENV:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("MOCK_MODE", "1")
    return tmp_path


@pytest.fixture
def store(workdir) -> MeetingStore:
    return MeetingStore(str(workdir / "data" / "meetings"))


@pytest.fixture
def settings(workdir) -> SettingsService:
    return SettingsService(str(workdir / "data" / "config.json"))


@pytest.fixture
def app(workdir, monkeypatch):
    # Keep pytest's own log capture and faulthandler in place.
    monkeypatch.setattr(main_module, "configure_logging", lambda logs_dir: "")
    monkeypatch.setattr(main_module, "enable_crash_logging", lambda logs_dir: "")
    return main_module.create_app()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def agenda() -> str:
    return AGENDA
