"""Application context: single source of truth for all runtime paths.

Resolved once at boot. Logs stay in the working directory, config always
lives in the default data dir, and meetings follow ``data_dir``.
"""

from __future__ import annotations

import os


class AppContext:
    """Holds all runtime directory paths for the application."""

    def __init__(
        self,
        *,
        cwd: str,
        data_dir: str,
        config_path: str,
    ) -> None:
        self._cwd = cwd
        self._data_dir = data_dir
        self._config_path = config_path
        self._app_dir = os.path.dirname(__file__)

    # ── Data paths ─────────────────────────────────────────────────────

    @property
    def data_dir(self) -> str:
        return self._data_dir

    @property
    def meetings_dir(self) -> str:
        return os.path.join(self.data_dir, "meetings")

    # ── Config (always in the app-level default data dir) ──────────────

    @property
    def config_path(self) -> str:
        return self._config_path

    # ── App-relative paths (never change) ──────────────────────────────

    @property
    def static_dir(self) -> str:
        return os.path.join(self._app_dir, "static")

    @property
    def templates_dir(self) -> str:
        return os.path.join(self._app_dir, "templates")

    # ── Logs (stay in cwd, not in data_dir) ────────────────────────────

    @property
    def logs_dir(self) -> str:
        return os.path.join(self._cwd, "logs")

    # ── Helpers ────────────────────────────────────────────────────────

    def ensure_dirs(self) -> None:
        """Create all required directories if they don't exist."""
        for d in (
            self.data_dir,
            self.meetings_dir,
            self.logs_dir,
        ):
            os.makedirs(d, exist_ok=True)
