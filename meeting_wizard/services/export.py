from __future__ import annotations

import html
import io
import os
import re
import zipfile

_H2_RE = re.compile(r"^##\s+(.*)$")
_BOLD_RE = re.compile(r"\*\*(.*?)\*\*")
_ITALIC_RE = re.compile(r"\*(.*?)\*")

WORD_HTML_HEAD = """<!DOCTYPE html>
<html xmlns:o="urn:schemas-microsoft-com:office:office" xmlns:w="urn:schemas-microsoft-com:office:word" xmlns="http://www.w3.org/TR/REC-html40">
<head>
<meta charset="utf-8">
<meta name="ProgId" content="Word.Document">
<title>Mötesmall</title>
<style>
body { font-family: "Calibri", sans-serif; font-size: 11pt; line-height: 1.15; margin: 1in; }
h1 { font-size: 18pt; font-weight: bold; color: #2F5496; margin-top: 12pt; margin-bottom: 6pt; }
h2 { font-size: 14pt; font-weight: bold; color: #2F5496; margin-top: 12pt; margin-bottom: 6pt; }
h3 { font-size: 12pt; font-weight: bold; margin-top: 12pt; margin-bottom: 6pt; }
p { margin-bottom: 6pt; }
ul, ol { margin-bottom: 6pt; }
li { margin-bottom: 3pt; }
</style>
</head>
<body>"""


def markdown_sections(markdown: str) -> dict[str, str]:
    """Map every ``## `` heading to the text below it.

    Lines before the first ``## `` heading are dropped.
    """
    sections: dict[str, str] = {}
    current = None
    for line in re.split(r"\r\n|\r|\n", markdown):
        match = _H2_RE.match(line)
        if match:
            current = match.group(1).strip()
            sections[current] = ""
        elif current is not None:
            sections[current] = f"{sections[current]}\n{line}" if sections[current] else line
    return sections


def _inline(text: str) -> str:
    content = html.escape(text, quote=True)
    content = _BOLD_RE.sub(r"<strong>\1</strong>", content)
    return _ITALIC_RE.sub(r"<em>\1</em>", content)


def markdown_to_word_html(markdown: str) -> str:
    """Render the filled template as HTML that Word opens as a document."""
    parts = [WORD_HTML_HEAD]
    in_list = False
    for raw_line in markdown.split("\n"):
        line = raw_line.strip()
        is_item = line.startswith("- ")
        if in_list and not is_item:
            parts.append("</ul>")
            in_list = False
        if not line:
            parts.append("<p>&nbsp;</p>")
        elif line.startswith("### "):
            parts.append(f"<h3>{html.escape(line[4:])}</h3>")
        elif line.startswith("## "):
            parts.append(f"<h2>{html.escape(line[3:])}</h2>")
        elif line.startswith("# "):
            parts.append(f"<h1>{html.escape(line[2:])}</h1>")
        elif is_item:
            if not in_list:
                parts.append("<ul>")
                in_list = True
            parts.append(f"<li>{_inline(line[2:])}</li>")
        else:
            parts.append(f"<p>{_inline(line)}</p>")
    if in_list:
        parts.append("</ul>")
    parts.append("</body></html>")
    return "".join(parts)


def build_meeting_zip(meeting_dir: str) -> bytes:
    """Zip the whole meeting folder, paths relative to it."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for root, dirs, files in os.walk(meeting_dir):
            dirs.sort()
            for name in sorted(dirs):
                rel = os.path.relpath(os.path.join(root, name), meeting_dir).replace(os.sep, "/")
                archive.writestr(f"{rel}/", b"")
            for name in sorted(files):
                path = os.path.join(root, name)
                rel = os.path.relpath(path, meeting_dir).replace(os.sep, "/")
                archive.write(path, rel)
    return buffer.getvalue()
