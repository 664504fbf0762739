"""
Plain-text helpers for note previews and editor blocks.

Pure functions, no I/O.
"""
from __future__ import annotations

import re

_MARKDOWN_RULES: list[tuple[re.Pattern, str]] = [
    (re.compile(r"^#{1,6}\s+", re.MULTILINE), ""),                     # headers
    (re.compile(r"\*\*(.*?)\*\*"), r"\1"),                             # bold
    (re.compile(r"\*(.*?)\*"), r"\1"),                                 # italic
    (re.compile(r"__(.*?)__"), r"\1"),
    (re.compile(r"_(.*?)_"), r"\1"),
    (re.compile(r"```[\s\S]*?```"), ""),                               # code blocks
    (re.compile(r"`([^`]+)`"), r"\1"),
    (re.compile(r"!\[([^\]]*)\]\([^)]+\)"), ""),                       # images
    (re.compile(r"https?://[^\s)]+\.(?:jpg|jpeg|png|gif|webp|svg|mp4|webm|ogg)", re.IGNORECASE), ""),
    (re.compile(r"![a-zA-Z0-9\-]+"), ""),                              # bare !identifier
    (re.compile(r"^>\s+", re.MULTILINE), ""),                          # blockquotes
    (re.compile(r"^[\s]*[-*_]{3,}[\s]*$", re.MULTILINE), ""),          # horizontal rules
    (re.compile(r"^[\s]*[-*+]\s+", re.MULTILINE), ""),                 # bullet lists
    (re.compile(r"^[\s]*\d+\.\s+", re.MULTILINE), ""),                 # numbered lists
    (re.compile(r"\n\s*\n"), "\n"),                                    # blank lines
]

_HEADING_RE = re.compile(r"^#+")


def strip_markdown(markdown: str | None) -> str:
    """Return `markdown` as plain text (used for list previews)."""
    if not markdown:
        return ""
    text = markdown
    for pattern, repl in _MARKDOWN_RULES:
        text = pattern.sub(repl, text)
    return text.strip()


def preview(markdown: str | None, limit: int = 280) -> str:
    text = strip_markdown(markdown)
    if len(text) <= limit:
        return text
    return text[: limit - 1].rstrip() + "…"


def markdown_to_blocks(markdown: str | None) -> list[dict]:
    """
    Split markdown into editor blocks: one block per non-empty line,
    `#` lines become headings (level = number of #'s + 1, like the editor does).
    """
    blocks: list[dict] = []
    for line in (markdown or "").split("\n"):
        line = line.strip()
        if not line:
            continue
        match = _HEADING_RE.match(line)
        if match:
            blocks.append({
                "type": "heading",
                "content": strip_markdown(line),
                "props": {"level": len(match.group(0)) + 1},
            })
            continue
        blocks.append({"type": "paragraph", "content": strip_markdown(line)})
    return blocks
