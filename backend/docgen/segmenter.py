"""
Single-pass content segmenter.

Turns markdown-flavoured LLM output into an ordered list of ContentBlock
values. Line classification priority is fixed: diagram, then table, then
heading / list / paragraph. Fenced code is taken verbatim.
"""
from __future__ import annotations

import re

from .blocks import (
    BulletList,
    CodeBlock,
    ContentBlock,
    Diagram,
    Heading,
    NumberedList,
    Paragraph,
    Table,
)

FENCE = "```"
DIAGRAM_MIN_INDENT = 4

_BOX_CHARS = "+|─━│┃┌┐└┘├┤┬┴┼═║╔╗╚╝╠╣╦╩╬"
_BOX_BORDER_RE = re.compile(r"^[+┌└├╔╚╠][-=+─━═┬┴┼╦╩╬]*[+┐┘┤╗╝╣]$")
_FRAMED_RE = re.compile(r"^[|│║].*[|│║]$")
_ARROW_RE = re.compile(r"-+>|<-+|=+>|<=+|[→←↑↓↔⇒⇐⇑⇓▶◀▲▼]")
_CONNECTOR_RE = re.compile(r"^[|│v^]+$")
_DIAMOND_RE = re.compile(r"^/.*\\$|^\\.*/$")
_GANTT_RE = re.compile(r"\|=+\|")
_BRACKETED_RE = re.compile(r"\[[^\]]*\]|\([^)]*\)")
_BRANCH_LABEL_RE = re.compile(r"^(yes|no)$", re.IGNORECASE)

_TABLE_SEPARATOR_RE = re.compile(r"^[\s|:\-]+$")
_HEADING_RE = re.compile(r"^(#{1,3}) (.*)$")
_NUMBERED_RE = re.compile(r"^\d+\.\s(.*)$")


def _indent_width(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def is_diagram_line(line: str) -> bool:
    """True for an indented line whose content looks like ASCII art."""
    if _indent_width(line) < DIAGRAM_MIN_INDENT:
        return False
    text = line.strip()
    if not text:
        return False
    if _BOX_BORDER_RE.match(text) or (len(text) >= 2 and _FRAMED_RE.match(text)):
        return True
    if sum(text.count(c) for c in "+|") >= 2:
        return True
    if _ARROW_RE.search(text) or _CONNECTOR_RE.match(text):
        return True
    if _DIAMOND_RE.match(text) or _GANTT_RE.search(text):
        return True
    if _BRACKETED_RE.search(text) and any(c in text for c in _BOX_CHARS):
        return True
    return bool(_BRANCH_LABEL_RE.match(text))


def is_table_row(line: str) -> bool:
    text = line.strip()
    return text.startswith("|") and text.endswith("|") and len(text.split("|")) >= 3


def is_table_separator(line: str) -> bool:
    text = line.strip()
    return bool(text) and "-" in text and bool(_TABLE_SEPARATOR_RE.match(text))


def split_table_row(line: str) -> tuple[str, ...]:
    text = line.strip()
    return tuple(cell.strip() for cell in text[1:-1].split("|"))


class _Scanner:
    """Mutable scan state for one segment() call."""

    def __init__(self) -> None:
        self.blocks: list[ContentBlock] = []
        # Accumulating paragraph-like block: kind is "paragraph", "bullet" or "numbered".
        self.kind: str | None = None
        self.items: list[str] = []
        self.table_rows: list[tuple[str, ...]] = []
        self.in_table = False
        self.diagram_lines: list[str] = []
        self.pending_blank: list[str] = []
        self.in_diagram = False

    def flush_text(self) -> None:
        if self.kind and self.items:
            items = tuple(self.items)
            if self.kind == "bullet":
                self.blocks.append(BulletList(items))
            elif self.kind == "numbered":
                self.blocks.append(NumberedList(items))
            else:
                self.blocks.append(Paragraph(items))
        self.kind = None
        self.items = []

    def flush_table(self) -> None:
        if self.in_table and self.table_rows:
            self.blocks.append(Table(tuple(self.table_rows)))
        self.table_rows = []
        self.in_table = False

    def flush_diagram(self) -> None:
        if self.in_diagram and self.diagram_lines:
            self.blocks.append(Diagram(tuple(self.diagram_lines)))
        self.diagram_lines = []
        self.pending_blank = []
        self.in_diagram = False

    def flush_all(self) -> None:
        self.flush_diagram()
        self.flush_table()
        self.flush_text()

    def append_text(self, kind: str, item: str) -> None:
        if self.kind != kind:
            self.flush_text()
            self.kind = kind
        self.items.append(item)


def segment(text: str) -> list[ContentBlock]:
    """Classify text into content blocks. Deterministic, never raises."""
    lines = (text or "").replace("\r\n", "\n").replace("\r", "\n").split("\n")
    state = _Scanner()
    in_code = False
    code_lines: list[str] = []

    i = 0
    while i < len(lines):
        raw = lines[i]
        i += 1

        if raw.startswith(FENCE):
            if in_code:
                state.blocks.append(CodeBlock("\n".join(code_lines)))
                code_lines = []
                in_code = False
            else:
                state.flush_all()
                in_code = True
            continue

        if in_code:
            code_lines.append(raw)
            continue

        line = raw.rstrip()

        if state.in_table:
            if is_table_separator(line):
                continue
            if is_table_row(line):
                state.table_rows.append(split_table_row(line))
                continue
            state.flush_table()

        if state.in_diagram:
            # Only indented blank lines belong to a diagram; an empty line ends it.
            if not line and _indent_width(raw) >= DIAGRAM_MIN_INDENT:
                state.pending_blank.append("")
                continue
            if is_diagram_line(line):
                state.diagram_lines.extend(state.pending_blank)
                state.pending_blank = []
                state.diagram_lines.append(line)
                continue
            state.flush_diagram()

        if is_diagram_line(line):
            state.flush_text()
            state.in_diagram = True
            state.diagram_lines = [line]
            continue

        if is_table_row(line):
            state.flush_text()
            state.in_table = True
            state.table_rows = [split_table_row(line)]
            if i < len(lines) and is_table_separator(lines[i]):
                i += 1
            continue

        # Markers match on the unstripped line so "# " and "- " keep their meaning.
        heading = _HEADING_RE.match(raw)
        if heading:
            state.flush_text()
            state.blocks.append(Heading(len(heading.group(1)), heading.group(2).rstrip()))
            continue

        if raw.startswith("- ") or raw.startswith("* "):
            state.append_text("bullet", raw[2:].rstrip())
            continue

        numbered = _NUMBERED_RE.match(raw)
        if numbered:
            state.append_text("numbered", numbered.group(1).rstrip())
            continue

        if line.strip():
            state.append_text("paragraph", line)
        else:
            state.flush_text()

    if in_code:
        state.blocks.append(CodeBlock("\n".join(code_lines)))
    state.flush_all()
    return state.blocks
