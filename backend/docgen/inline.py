"""
Inline formatting extraction for paragraph, list and table-cell text.

Only **bold** spans carry style. Italic markers, inline code backticks and
Markdown links are reduced to their visible text.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

_BOLD_RE = re.compile(r"\*\*([^*]+)\*\*")
_ITALIC_RE = re.compile(r"\*([^*]+)\*")
_CODE_RE = re.compile(r"`([^`]+)`")
_LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]+\)")


@dataclass(frozen=True)
class StyledRun:
    text: str
    bold: bool = False


def _clean_markup(text: str) -> str:
    text = _ITALIC_RE.sub(r"\1", text)
    return _LINK_RE.sub(r"\1", text)


def _clean(text: str) -> str:
    # Code span contents are literal; only the text around them is unwrapped.
    parts: list[str] = []
    last = 0
    for match in _CODE_RE.finditer(text):
        parts.append(_clean_markup(text[last:match.start()]))
        parts.append(match.group(1))
        last = match.end()
    parts.append(_clean_markup(text[last:]))
    return "".join(parts)


def parse_inline(text: str) -> list[StyledRun]:
    """Split text into plain and bold runs, left to right, first match wins."""
    runs: list[StyledRun] = []
    last = 0
    for match in _BOLD_RE.finditer(text or ""):
        if match.start() > last:
            plain = _clean(text[last:match.start()])
            if plain:
                runs.append(StyledRun(plain))
        runs.append(StyledRun(match.group(1), bold=True))
        last = match.end()
    if text and last < len(text):
        tail = _clean(text[last:])
        if tail:
            runs.append(StyledRun(tail))
    return runs


def strip_inline(text: str) -> str:
    return "".join(run.text for run in parse_inline(text))
