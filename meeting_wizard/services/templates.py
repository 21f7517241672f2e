import logging
import os
from typing import Optional


class TemplateCatalog:
    """Markdown agenda templates shipped in the templates directory."""

    def __init__(self, templates_dir: str) -> None:
        self._templates_dir = templates_dir
        self._logger = logging.getLogger("meeting_wizard.templates")

    def list_templates(self) -> list[dict]:
        if not os.path.isdir(self._templates_dir):
            self._logger.warning("Templates dir missing: %s", self._templates_dir)
            return []
        templates = []
        for filename in sorted(os.listdir(self._templates_dir)):
            stem, ext = os.path.splitext(filename)
            if ext != ".md":
                continue
            templates.append(
                {
                    "filename": filename,
                    "name": _display_name(stem),
                    "path": filename,
                }
            )
        return templates

    def load_template(self, filename: str) -> Optional[str]:
        base = os.path.realpath(self._templates_dir)
        path = os.path.realpath(os.path.join(base, filename))
        if os.path.dirname(path) != base or not path.endswith(".md") or not os.path.isfile(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()


def _display_name(stem: str) -> str:
    words = stem.replace("-", " ").replace("_", " ").split(" ")
    return " ".join(word[:1].upper() + word[1:] for word in words)
