"""Markdown output: the content passes through verbatim under a title."""
from __future__ import annotations

from models import DocumentMetadata
from models_branding import BrandingConfig

from .blocks import RenderResult
from .format_utils import format_date

DEFAULT_AUTHOR = "Document Generator"


def build_markdown(
    title: str,
    content: str,
    branding: BrandingConfig,
    metadata: DocumentMetadata | None = None,
) -> str:
    parts = [f"# {title}", "", content]
    if branding.enabled:
        metadata = metadata or DocumentMetadata()
        author = metadata.author or branding.organization_name or DEFAULT_AUTHOR
        parts += [
            "",
            "---",
            "",
            "*Document Information:*",
        ]
        if branding.organization_name:
            parts.append(f"- Organization: {branding.organization_name}")
        parts += [
            f"- Document: {title}",
            f"- Author: {author}",
            f"- Date: {format_date()}",
        ]
    text = "\n".join(parts)
    return text if text.endswith("\n") else text + "\n"


def generate_md(
    title: str,
    content: str,
    branding: BrandingConfig,
    metadata: DocumentMetadata | None = None,
) -> RenderResult:
    return RenderResult(buffer=build_markdown(title, content, branding, metadata).encode("utf-8"))

