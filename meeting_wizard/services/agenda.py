"""Split an imported agenda document into its agenda and template parts.

An agenda file carries two top-level (``# ``) sections: the meeting agenda
itself and a fill-in template for the minutes.  The template section is the
first top-level heading that names a protocol/template; failing that, the
second top-level heading.
"""
from __future__ import annotations

from dataclasses import dataclass

HEADING_PREFIX = "# "
TEMPLATE_KEYWORDS = ("protokoll", "mall", "template", "dokumentation")


@dataclass(frozen=True)
class AgendaSections:
    first_section: str
    second_section: str

    def to_dict(self) -> dict:
        return {
            "first_section": self.first_section,
            "second_section": self.second_section,
        }


def heading_lines(text: str) -> list[tuple[int, str]]:
    """Return ``(line_index, line)`` for every top-level heading."""
    return [
        (index, line)
        for index, line in enumerate(text.split("\n"))
        if line.startswith(HEADING_PREFIX)
    ]


def _template_start(headings: list[tuple[int, str]]) -> int | None:
    # A lone heading never opens a template, keyword or not.
    if len(headings) < 2:
        return None
    for index, line in headings:
        lowered = line.lower()
        if any(keyword in lowered for keyword in TEMPLATE_KEYWORDS):
            return index
    return headings[1][0]


def split_agenda(text: str) -> AgendaSections:
    """Split ``text`` into the agenda (first) and template (second) section.

    Never raises.  Without a usable second heading the whole document is the
    first section and the second section is empty.
    """
    if not text or not text.strip():
        return AgendaSections("", "")

    lines = text.split("\n")
    start = _template_start(heading_lines(text))
    if start is None:
        return AgendaSections(text, "")
    return AgendaSections("\n".join(lines[:start]), "\n".join(lines[start:]))
