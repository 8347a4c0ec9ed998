"""Typed content blocks produced by the segmenter, and the result every renderer returns."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Heading:
    level: int
    text: str


@dataclass(frozen=True)
class Paragraph:
    lines: tuple[str, ...]


@dataclass(frozen=True)
class BulletList:
    items: tuple[str, ...]


@dataclass(frozen=True)
class NumberedList:
    items: tuple[str, ...]


@dataclass(frozen=True)
class CodeBlock:
    text: str


@dataclass(frozen=True)
class Table:
    # rows[0] is the header row
    rows: tuple[tuple[str, ...], ...]

    @property
    def header(self) -> tuple[str, ...]:
        return self.rows[0] if self.rows else ()

    @property
    def body(self) -> tuple[tuple[str, ...], ...]:
        return self.rows[1:]


@dataclass(frozen=True)
class Diagram:
    lines: tuple[str, ...]


ContentBlock = Union[Heading, Paragraph, BulletList, NumberedList, CodeBlock, Table, Diagram]


@dataclass(frozen=True)
class RenderResult:
    """Output of a format renderer."""
    buffer: bytes
    page_count: int | None = None

    @property
    def file_size(self) -> int:
        return len(self.buffer)
