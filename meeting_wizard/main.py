import json
import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.base import BaseHTTPMiddleware

from meeting_wizard.context import AppContext
from meeting_wizard.routers.agenda import create_agenda_router
from meeting_wizard.routers.export import create_export_router
from meeting_wizard.routers.fill import create_fill_router
from meeting_wizard.routers.logs import create_logs_router
from meeting_wizard.routers.meetings import create_meetings_router
from meeting_wizard.routers.settings import create_settings_router
from meeting_wizard.routers.transcription import create_transcription_router
from meeting_wizard.routers.uploads import create_uploads_router
from meeting_wizard.services.crash_logging import enable_crash_logging
from meeting_wizard.services.fill import TemplateFillService
from meeting_wizard.services.logging_setup import configure_logging
from meeting_wizard.services.meeting_store import MeetingStore
from meeting_wizard.services.settings import SettingsService
from meeting_wizard.services.templates import TemplateCatalog
from meeting_wizard.services.transcription_service import TranscriptionService

__version__ = "0.1.0"


def _load_boot_config(config_path: str, logger: logging.Logger) -> dict:
    if not os.path.exists(config_path):
        logger.info("Boot: config_path missing=%s", config_path)
        return {}
    logger.info("Boot: loading config_path=%s", config_path)
    with open(config_path, "r", encoding="utf-8") as config_file:
        config = json.load(config_file)
    logger.info("Boot: config keys=%s", sorted(config.keys()))
    return config


def _resolve_data_dir(config: dict, default_data_dir: str, logger: logging.Logger) -> str:
    custom_data_dir = os.environ.get("STORAGE_PATH", "").strip() or config.get("data_dir", "")
    if not custom_data_dir:
        logger.info("Boot: using default data_dir=%s", default_data_dir)
        return default_data_dir
    os.makedirs(custom_data_dir, exist_ok=True)
    if os.access(custom_data_dir, os.W_OK):
        logger.info("Boot: using custom data_dir=%s", custom_data_dir)
        return custom_data_dir
    logger.warning(
        "Boot: custom data_dir=%s is not writable, falling back to %s",
        custom_data_dir, default_data_dir,
    )
    return default_data_dir


class NoCacheMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        path = request.url.path
        if path.endswith((".html", ".js", ".css")) or path == "/":
            response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
            response.headers["Pragma"] = "no-cache"
            response.headers["Expires"] = "0"
        return response


def create_app() -> FastAPI:
    cwd = os.getcwd()
    configure_logging(os.path.join(cwd, "logs"))
    logger = logging.getLogger("meeting_wizard.boot")
    logger.info("Boot: starting create_app cwd=%s pid=%s", cwd, os.getpid())
    enable_crash_logging(os.path.join(cwd, "logs"))

    default_data_dir = os.path.join(cwd, "data")
    os.makedirs(default_data_dir, exist_ok=True)
    # Config always lives in the app-level data dir regardless of custom data_dir
    config_path = os.path.join(default_data_dir, "config.json")
    config = _load_boot_config(config_path, logger)

    ctx = AppContext(
        cwd=cwd,
        data_dir=_resolve_data_dir(config, default_data_dir, logger),
        config_path=config_path,
    )
    ctx.ensure_dirs()
    logger.info("Boot: AppContext ready data_dir=%s", ctx.data_dir)

    app = FastAPI(title="Meeting Wizard", version=__version__)
    app.state.version = __version__
    app.state.ctx = ctx

    settings = SettingsService(ctx.config_path)
    meeting_store = MeetingStore(ctx.meetings_dir)
    template_catalog = TemplateCatalog(ctx.templates_dir)
    transcription_service = TranscriptionService(meeting_store, settings)
    fill_service = TemplateFillService(meeting_store, settings)
    app.state.settings = settings
    app.state.meeting_store = meeting_store
    app.state.transcription_service = transcription_service
    app.state.fill_service = fill_service
    logger.info(
        "Boot: services ready meetings_dir=%s templates_dir=%s mock_llm=%s mock_transcription=%s",
        ctx.meetings_dir,
        ctx.templates_dir,
        settings.llm().mock,
        settings.transcription().mock,
    )

    app.include_router(create_meetings_router(meeting_store))
    app.include_router(create_agenda_router(template_catalog))
    app.include_router(create_uploads_router(meeting_store))
    app.include_router(create_transcription_router(meeting_store, transcription_service))
    app.include_router(create_fill_router(meeting_store, fill_service))
    app.include_router(create_export_router(meeting_store))
    app.include_router(create_settings_router(settings))
    app.include_router(create_logs_router(ctx))
    logger.info("Boot: routers mounted")

    app.add_middleware(NoCacheMiddleware)

    @app.get("/")
    def root():
        index_path = os.path.join(ctx.static_dir, "index.html")
        if os.path.exists(index_path):
            return FileResponse(index_path)
        return {"message": "Meeting Wizard API running", "version": app.state.version}

    @app.get("/api/health")
    def health() -> dict:
        return {"status": "ok", "version": app.state.version}

    if os.path.exists(ctx.static_dir):
        app.mount("/static", StaticFiles(directory=ctx.static_dir), name="static")
        logger.info("Boot: static mounted at /static")
    else:
        logger.info("Boot: no static directory at %s", ctx.static_dir)

    logger.info("Boot: create_app complete")
    return app
