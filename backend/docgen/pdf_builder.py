"""
PDF document builder.

Renders segmented content to print-ready HTML and converts it to PDF via
Playwright's headless Chromium. Running header and footer (logo,
organisation, "Page X of Y") use Chromium's header/footer templates; the
page count and document info are read back and written with pypdf.
"""
from __future__ import annotations

import html
import logging
from io import BytesIO
from typing import Any, Iterable

from pypdf import PdfReader, PdfWriter

from models import DocumentMetadata
from models_branding import BrandingConfig

from .blocks import (
    BulletList,
    CodeBlock,
    ContentBlock,
    Diagram,
    Heading,
    NumberedList,
    Paragraph,
    RenderResult,
    Table,
)
from .branding import ProcessedLogo, load_logo, map_font_family, process_template_content
from .errors import RendererUnavailableError
from .inline import parse_inline, strip_inline
from .segmenter import segment

logger = logging.getLogger(__name__)

# Letter, in points
PAGE_MARGIN_PT = 72
HEADER_HEIGHT_PT = 50
FOOTER_HEIGHT_PT = 40
HEADER_LOGO_BOX = (150, 50)

TITLE_SIZE_PT = 24
HEADING_SIZES_PT = {1: 20, 2: 16, 3: 14}
BODY_SIZE_PT = 12
CODE_SIZE_PT = 10
DIAGRAM_SIZE_PT = 9

FOOTER_GRAY = "#666666"
CODE_FILL = "#f5f5f5"
CODE_TEXT = "#333333"
CREATOR = "Document Generator"

# Base PDF family -> CSS stack Chromium can resolve.
CSS_FONT_STACKS = {
    "Helvetica": "Helvetica, Arial, 'Liberation Sans', sans-serif",
    "Times-Roman": "'Times New Roman', Times, 'Liberation Serif', serif",
    "Courier": "'Courier New', Courier, 'Liberation Mono', monospace",
}
MONO_STACK = CSS_FONT_STACKS["Courier"]


def _esc(value: Any) -> str:
    return html.escape(str(value if value is not None else ""), quote=True)


def _inline_html(text: str) -> str:
    return "".join(
        f"<strong>{_esc(run.text)}</strong>" if run.bold else _esc(run.text)
        for run in parse_inline(text)
    )


def css_font_stack(font_family: str) -> str:
    return CSS_FONT_STACKS[map_font_family(font_family)]


def _pdf_css(primary: str, font_stack: str) -> str:
    return f"""
@page {{ size: Letter; }}
html, body {{ margin: 0; padding: 0; }}
body {{ font-family: {font_stack}; font-size: {BODY_SIZE_PT}pt; line-height: 1.35; color: #000; }}
.doc-title {{ font-size: {TITLE_SIZE_PT}pt; font-weight: bold; color: {primary}; text-align: center;
  border-bottom: 2px solid {primary}; padding-bottom: 10pt; margin: 0 0 24pt 0; }}
h1, h2, h3 {{ color: {primary}; font-weight: bold; margin: 12pt 0 6pt 0; page-break-after: avoid; }}
h1 {{ font-size: {HEADING_SIZES_PT[1]}pt; }}
h2 {{ font-size: {HEADING_SIZES_PT[2]}pt; }}
h3 {{ font-size: {HEADING_SIZES_PT[3]}pt; }}
p {{ margin: 0 0 6pt 0; text-align: justify; }}
ul, ol {{ margin: 0 0 8pt 0; padding-left: 20pt; }}
li {{ margin-bottom: 3pt; }}
pre {{ font-family: {MONO_STACK}; background: {CODE_FILL}; color: {CODE_TEXT}; padding: 10pt;
  margin: 6pt 0 12pt 0; white-space: pre; overflow-wrap: normal; page-break-inside: avoid; }}
pre.code {{ font-size: {CODE_SIZE_PT}pt; white-space: pre-wrap; }}
pre.diagram {{ font-size: {DIAGRAM_SIZE_PT}pt; line-height: 1.15; }}
table.data {{ border-collapse: collapse; width: 100%; margin: 6pt 0 12pt 0; font-size: 10pt; }}
table.data th {{ background: {primary}; color: #ffffff; font-weight: bold; text-align: left; }}
table.data th, table.data td {{ border: 1px solid #cccccc; padding: 4pt 6pt; text-align: left; vertical-align: top; }}
table.data thead {{ display: table-header-group; }}
""".strip()


class PdfBuilder:
    def __init__(
        self,
        title: str,
        branding: BrandingConfig,
        metadata: DocumentMetadata | None = None,
        logo: ProcessedLogo | None = None,
    ):
        self.title = title
        self.branding = branding
        self.metadata = metadata or DocumentMetadata()
        self.base_font = map_font_family(branding.font_family)
        self.font_stack = CSS_FONT_STACKS[self.base_font]
        self.primary = branding.primary_color
        self.logo = logo

    def load_logo(self) -> None:
        if self.logo is None and self.branding.enabled and self.branding.logo_url:
            self.logo = load_logo(self.branding.logo_url, *HEADER_LOGO_BOX)
            if self.logo is None:
                logger.warning("Rendering PDF without logo; logo source could not be processed")

    # -- body --------------------------------------------------------------

    def block_html(self, block: ContentBlock) -> str:
        if isinstance(block, Heading):
            level = min(max(block.level, 1), 3)
            return f"<h{level}>{_esc(strip_inline(block.text))}</h{level}>"
        if isinstance(block, Paragraph):
            return "".join(f"<p>{_inline_html(line)}</p>" for line in block.lines)
        if isinstance(block, BulletList):
            items = "".join(f"<li>{_inline_html(item)}</li>" for item in block.items)
            return f"<ul>{items}</ul>"
        if isinstance(block, NumberedList):
            items = "".join(f"<li>{_inline_html(item)}</li>" for item in block.items)
            return f"<ol>{items}</ol>"
        if isinstance(block, CodeBlock):
            return f'<pre class="code">{_esc(block.text)}</pre>'
        if isinstance(block, Diagram):
            return f'<pre class="diagram">{_esc(chr(10).join(block.lines))}</pre>'
        if isinstance(block, Table):
            return self._table_html(block)
        return ""

    @staticmethod
    def _table_html(block: Table) -> str:
        if not block.rows:
            return ""
        head = "".join(f"<th>{_inline_html(cell)}</th>" for cell in block.header)
        body = "".join(
            "<tr>" + "".join(f"<td>{_inline_html(cell)}</td>" for cell in row) + "</tr>"
            for row in block.body
        )
        return f'<table class="data"><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>'

    def build_html(self, blocks: Iterable[ContentBlock]) -> str:
        body = "\n".join(self.block_html(block) for block in blocks)
        return f"""
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <title>{_esc(self.title)}</title>
  <style>{_pdf_css(self.primary, self.font_stack)}</style>
</head>
<body>
  <div class="doc-title">{_esc(self.title)}</div>
  {body}
</body>
</html>
        """.strip()

    # -- running header / footer ------------------------------------------

    def header_template(self) -> str:
        if not self.branding.header.enabled:
            return "<span></span>"
        text = process_template_content(
            _esc(self.branding.header.content),
            {"organization": _esc(self.branding.organization_name), "page": '<span class="pageNumber"></span>'},
        ) or _esc(self.branding.organization_name)
        has_logo = self.logo is not None and self.branding.enabled
        logo_html = (
            f'<img src="{self.logo.data_uri}" style="width:{self.logo.width}px;height:{self.logo.height}px;'
            f'margin-right:14pt;vertical-align:middle;" />'
            if has_logo else ""
        )
        align = "left" if has_logo else "center"
        return (
            f'<div style="width:100%;margin:0 {PAGE_MARGIN_PT}pt;padding-bottom:4pt;'
            f'border-bottom:1px solid {self.primary};font-family:{self.font_stack};font-size:10pt;'
            f'font-weight:bold;color:{self.primary};text-align:{align};-webkit-print-color-adjust:exact;">'
            f'{logo_html}<span style="vertical-align:middle;">{text}</span></div>'
        )

    def footer_template(self) -> str:
        if not self.branding.footer.enabled:
            return "<span></span>"
        text = process_template_content(
            _esc(self.branding.footer.content),
            {
                "organization": _esc(self.branding.organization_name),
                "page": '<span class="pageNumber"></span>',
                "total": '<span class="totalPages"></span>',
            },
        )
        page_html = (
            '<div style="text-align:right;">Page <span class="pageNumber"></span> of '
            '<span class="totalPages"></span></div>'
            if self.branding.footer.include_page_number else ""
        )
        text_html = f'<div style="text-align:center;">{text}</div>' if text else ""
        return (
            f'<div style="width:100%;margin:0 {PAGE_MARGIN_PT}pt;padding-top:4pt;'
            f'border-top:1px solid {self.primary};font-family:{self.font_stack};font-size:9pt;'
            f'color:{FOOTER_GRAY};-webkit-print-color-adjust:exact;">{text_html}{page_html}</div>'
        )

    def margins(self) -> dict[str, str]:
        top = PAGE_MARGIN_PT + (HEADER_HEIGHT_PT if self.branding.header.enabled else 0)
        bottom = PAGE_MARGIN_PT + (FOOTER_HEIGHT_PT if self.branding.footer.enabled else 0)
        return {
            "top": f"{top}pt",
            "bottom": f"{bottom}pt",
            "left": f"{PAGE_MARGIN_PT}pt",
            "right": f"{PAGE_MARGIN_PT}pt",
        }

    # -- output ------------------------------------------------------------

    def print_pdf(self, html_str: str) -> bytes:
        try:
            from playwright.sync_api import Error as PlaywrightError, sync_playwright
        except ImportError as exc:
            raise RendererUnavailableError("Playwright is not installed.") from exc

        show_chrome = self.branding.header.enabled or self.branding.footer.enabled
        try:
            with sync_playwright() as p:
                browser = p.chromium.launch(args=["--no-sandbox"])
                try:
                    page = browser.new_page()
                    page.set_content(html_str, wait_until="load")
                    page.emulate_media(media="print")
                    return page.pdf(
                        format="Letter",
                        print_background=True,
                        display_header_footer=show_chrome,
                        header_template=self.header_template(),
                        footer_template=self.footer_template(),
                        margin=self.margins(),
                    )
                finally:
                    browser.close()
        except PlaywrightError as exc:
            msg = str(exc)[:500]
            raise RendererUnavailableError(f"PDF runtime unavailable: {msg}") from exc

    def finalize(self, pdf_bytes: bytes) -> RenderResult:
        """Stamp document info and count pages."""
        writer = PdfWriter(clone_from=PdfReader(BytesIO(pdf_bytes)))
        writer.add_metadata({
            "/Title": self.title,
            "/Author": self.metadata.author or self.branding.organization_name or CREATOR,
            "/Subject": self.metadata.subject or "",
            "/Keywords": ", ".join(self.metadata.keywords),
            "/Creator": f"{CREATOR} (PDF)",
        })
        out = BytesIO()
        writer.write(out)
        return RenderResult(buffer=out.getvalue(), page_count=len(writer.pages))

    def render(self, blocks: Iterable[ContentBlock]) -> RenderResult:
        self.load_logo()
        return self.finalize(self.print_pdf(self.build_html(blocks)))


def build_pdf_html(
    blocks: Iterable[ContentBlock],
    branding: BrandingConfig,
    title: str,
    logo: ProcessedLogo | None = None,
) -> str:
    return PdfBuilder(title, branding, logo=logo).build_html(blocks)


def render_pdf(
    blocks: Iterable[ContentBlock],
    branding: BrandingConfig,
    title: str,
    metadata: DocumentMetadata | None = None,
) -> RenderResult:
    return PdfBuilder(title, branding, metadata).render(blocks)


def generate_pdf(
    title: str,
    content: str,
    branding: BrandingConfig,
    metadata: DocumentMetadata | None = None,
) -> RenderResult:
    return render_pdf(segment(content), branding, title, metadata)
