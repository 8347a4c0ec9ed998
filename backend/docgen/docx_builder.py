"""
Word document builder.

Renders segmented content into a branded .docx with python-docx: logo and
organisation header, footer with page numbers, coloured headings, shaded
monospaced code and diagram blocks, and tables with a branded header row.
"""
from __future__ import annotations

import logging
from io import BytesIO
from typing import Any, Iterable

from docx import Document
from docx.enum.table import WD_TABLE_ALIGNMENT
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Emu, Pt, RGBColor

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
from .branding import ProcessedLogo, get_docx_font_family, load_logo, process_template_content
from .inline import parse_inline, strip_inline
from .segmenter import segment

logger = logging.getLogger(__name__)

TITLE_SIZE = Pt(24)
HEADING_SIZES = {1: Pt(20), 2: Pt(16), 3: Pt(14)}
HEADING_SPACING = {1: (Pt(20), Pt(10)), 2: (Pt(15), Pt(7.5)), 3: (Pt(12), Pt(6))}
BODY_SIZE = Pt(12)
CODE_SIZE = Pt(10)
DIAGRAM_SIZE = Pt(9)
HEADER_TEXT_SIZE = Pt(10)
FOOTER_TEXT_SIZE = Pt(9)

CODE_FONT = "Courier New"
CODE_FILL = "F5F5F5"
FOOTER_GRAY = "666666"
WHITE = "FFFFFF"
EMU_PER_PX = 9525

HEADER_LOGO_BOX = (150, 50)
DEFAULT_AUTHOR = "Document Generator"
TOC_FIELD = 'TOC \\o "1-3" \\h \\z \\u'
TOC_PLACEHOLDER = "Right-click to update table of contents."


# ---------------------------------------------------------------------------
# OOXML helpers
# ---------------------------------------------------------------------------

_PBDR_SUCCESSORS = (
    "w:shd", "w:tabs", "w:suppressAutoHyphens", "w:kinsoku", "w:wordWrap", "w:overflowPunct",
    "w:topLinePunct", "w:autoSpaceDE", "w:autoSpaceDN", "w:bidi", "w:adjustRightInd", "w:snapToGrid",
    "w:spacing", "w:ind", "w:contextualSpacing", "w:mirrorIndents", "w:suppressOverlap", "w:jc",
    "w:textDirection", "w:textAlignment", "w:textboxTightWrap", "w:outlineLvl", "w:divId",
    "w:cnfStyle", "w:rPr", "w:sectPr", "w:pPrChange",
)


def _set_paragraph_border(paragraph: Any, edge: str, color: str, size: int, space: int) -> None:
    """size is in eighth-points, color a bare hex string."""
    p_pr = paragraph._p.get_or_add_pPr()
    p_bdr = p_pr.find(qn("w:pBdr"))
    if p_bdr is None:
        p_bdr = OxmlElement("w:pBdr")
        p_pr.insert_element_before(p_bdr, *_PBDR_SUCCESSORS)
    el = OxmlElement(f"w:{edge}")
    el.set(qn("w:val"), "single")
    el.set(qn("w:sz"), str(size))
    el.set(qn("w:space"), str(space))
    el.set(qn("w:color"), color)
    p_bdr.append(el)


def _shade_cell(cell: Any, fill: str) -> None:
    shading = OxmlElement("w:shd")
    shading.set(qn("w:val"), "clear")
    shading.set(qn("w:color"), "auto")
    shading.set(qn("w:fill"), fill)
    cell._tc.get_or_add_tcPr().append(shading)


def _set_cell_margins(cell: Any, top: int, bottom: int, left: int, right: int) -> None:
    """Margins in DXA (twentieths of a point)."""
    tc_mar = OxmlElement("w:tcMar")
    for side, value in (("top", top), ("bottom", bottom), ("start", left), ("end", right)):
        el = OxmlElement(f"w:{side}")
        el.set(qn("w:w"), str(value))
        el.set(qn("w:type"), "dxa")
        tc_mar.append(el)
    cell._tc.get_or_add_tcPr().append(tc_mar)


def _mark_header_row(row: Any) -> None:
    tr_pr = row._tr.get_or_add_trPr()
    el = OxmlElement("w:tblHeader")
    el.set(qn("w:val"), "true")
    tr_pr.append(el)


def _append_field(paragraph: Any, instr: str, size: Pt, color: str, placeholder: str = "1") -> None:
    """Append a simple field (PAGE, NUMPAGES, TOC) that Word fills in at layout time."""
    fld = OxmlElement("w:fldSimple")
    fld.set(qn("w:instr"), f" {instr} ")
    run_el = OxmlElement("w:r")
    r_pr = OxmlElement("w:rPr")
    color_el = OxmlElement("w:color")
    color_el.set(qn("w:val"), color)
    r_pr.append(color_el)
    sz = OxmlElement("w:sz")
    sz.set(qn("w:val"), str(int(size.pt * 2)))
    r_pr.append(sz)
    run_el.append(r_pr)
    text_el = OxmlElement("w:t")
    text_el.text = placeholder
    run_el.append(text_el)
    fld.append(run_el)
    paragraph._p.append(fld)


def _set_style_font(style: Any, name: str) -> None:
    style.font.name = name
    r_fonts = style.element.rPr.find(qn("w:rFonts")) if style.element.rPr is not None else None
    if r_fonts is None:
        return
    # Theme font attributes win over explicit names in Word, so drop them.
    for attr in ("w:asciiTheme", "w:hAnsiTheme", "w:eastAsiaTheme", "w:cstheme"):
        r_fonts.attrib.pop(qn(attr), None)
    r_fonts.set(qn("w:eastAsia"), name)


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------

class DocxBuilder:
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
        self.font_family = get_docx_font_family(branding.font_family)
        self.primary = branding.primary_hex.upper()
        self.logo = logo
        self.doc = Document()

    def load_logo(self) -> None:
        if self.logo is None and self.branding.enabled and self.branding.logo_url:
            self.logo = load_logo(self.branding.logo_url, *HEADER_LOGO_BOX)
            if self.logo is None:
                logger.warning("Rendering DOCX without logo; logo source could not be processed")

    # -- document setup ----------------------------------------------------

    def _apply_styles(self) -> None:
        styles = self.doc.styles
        normal = styles["Normal"]
        _set_style_font(normal, self.font_family)
        normal.font.size = BODY_SIZE
        normal.paragraph_format.line_spacing = 1.15
        for level, size in HEADING_SIZES.items():
            style = styles[f"Heading {level}"]
            _set_style_font(style, self.font_family)
            style.font.size = size
            style.font.bold = True
            style.font.italic = False
            style.font.color.rgb = RGBColor.from_string(self.primary)
            before, after = HEADING_SPACING[level]
            style.paragraph_format.space_before = before
            style.paragraph_format.space_after = after

    def _apply_properties(self) -> None:
        props = self.doc.core_properties
        props.title = self.title
        props.author = self.metadata.author or self.branding.organization_name or DEFAULT_AUTHOR
        props.subject = self.metadata.subject or ""
        props.keywords = ", ".join(self.metadata.keywords)
        props.comments = self.metadata.description or ""

    def _build_header(self) -> None:
        header = self.doc.sections[0].header
        header.is_linked_to_previous = False
        para = header.paragraphs[0] if header.paragraphs else header.add_paragraph()

        has_logo = self.logo is not None and self.branding.enabled
        if has_logo:
            run = para.add_run()
            run.add_picture(
                BytesIO(self.logo.buffer),
                width=Emu(self.logo.width * EMU_PER_PX),
                height=Emu(self.logo.height * EMU_PER_PX),
            )
            para.add_run("    ")

        text = process_template_content(
            self.branding.header.content or self.branding.organization_name or "",
            {"organization": self.branding.organization_name},
        )
        if text:
            run = para.add_run(text)
            run.bold = True
            run.font.size = HEADER_TEXT_SIZE
            run.font.color.rgb = RGBColor.from_string(self.primary)

        if has_logo or text:
            para.alignment = WD_ALIGN_PARAGRAPH.LEFT if has_logo else WD_ALIGN_PARAGRAPH.CENTER
            _set_paragraph_border(para, "bottom", self.primary, size=8, space=4)
            para.paragraph_format.space_after = Pt(10)

    def _build_footer(self) -> None:
        footer = self.doc.sections[0].footer
        footer.is_linked_to_previous = False
        rule = footer.paragraphs[0] if footer.paragraphs else footer.add_paragraph()
        _set_paragraph_border(rule, "top", self.primary, size=8, space=4)
        rule.paragraph_format.space_before = Pt(10)

        text = process_template_content(
            self.branding.footer.content or "",
            {"organization": self.branding.organization_name},
        )
        if text:
            para = footer.add_paragraph()
            para.alignment = WD_ALIGN_PARAGRAPH.CENTER
            run = para.add_run(text)
            run.font.size = FOOTER_TEXT_SIZE
            run.font.color.rgb = RGBColor.from_string(FOOTER_GRAY)

        if self.branding.footer.include_page_number:
            para = footer.add_paragraph()
            para.alignment = WD_ALIGN_PARAGRAPH.RIGHT
            for piece in ("Page ", "PAGE", " of ", "NUMPAGES"):
                if piece.isupper():
                    _append_field(para, piece, FOOTER_TEXT_SIZE, FOOTER_GRAY)
                else:
                    run = para.add_run(piece)
                    run.font.size = FOOTER_TEXT_SIZE
                    run.font.color.rgb = RGBColor.from_string(FOOTER_GRAY)

    def _add_title(self) -> None:
        para = self.doc.add_paragraph()
        para.alignment = WD_ALIGN_PARAGRAPH.CENTER
        run = para.add_run(self.title)
        run.bold = True
        run.font.size = TITLE_SIZE
        run.font.name = self.font_family
        run.font.color.rgb = RGBColor.from_string(self.primary)
        _set_paragraph_border(para, "bottom", self.primary, size=16, space=8)
        para.paragraph_format.space_after = Pt(20)
        self.doc.add_paragraph().paragraph_format.space_after = Pt(20)

    def _add_toc(self) -> None:
        heading = self.doc.add_paragraph()
        run = heading.add_run("Table of Contents")
        run.bold = True
        run.font.size = HEADING_SIZES[2]
        run.font.name = self.font_family
        run.font.color.rgb = RGBColor.from_string(self.primary)
        # Word builds the entries from Heading 1-3 when fields are updated.
        _append_field(self.doc.add_paragraph(), TOC_FIELD, BODY_SIZE, FOOTER_GRAY, TOC_PLACEHOLDER)
        self.doc.add_paragraph().paragraph_format.space_after = Pt(20)

    # -- blocks ------------------------------------------------------------

    def _add_runs(self, paragraph: Any, text: str, size: Pt = BODY_SIZE, color: str | None = None,
                  force_bold: bool = False) -> None:
        for styled in parse_inline(text):
            run = paragraph.add_run(styled.text)
            run.bold = styled.bold or force_bold
            run.font.name = self.font_family
            run.font.size = size
            if color:
                run.font.color.rgb = RGBColor.from_string(color)

    def _add_list(self, items: Iterable[str], style: str) -> None:
        for item in items:
            para = self.doc.add_paragraph(style=style)
            self._add_runs(para, item)

    def _add_monospace_block(self, lines: Iterable[str], size: Pt) -> None:
        table = self.doc.add_table(rows=1, cols=1)
        table.style = "Table Grid"
        table.alignment = WD_TABLE_ALIGNMENT.CENTER
        cell = table.rows[0].cells[0]
        _shade_cell(cell, CODE_FILL)
        _set_cell_margins(cell, top=100, bottom=100, left=200, right=200)
        for index, line in enumerate(lines):
            para = cell.paragraphs[0] if index == 0 else cell.add_paragraph()
            para.paragraph_format.space_after = Pt(0)
            para.paragraph_format.space_before = Pt(0)
            para.paragraph_format.line_spacing = 1.0
            # Blank lines keep a space so vertical alignment survives.
            run = para.add_run(line or " ")
            run.font.name = CODE_FONT
            run.font.size = size
        self.doc.add_paragraph().paragraph_format.space_after = Pt(4)

    def _add_table(self, block: Table) -> None:
        if not block.rows:
            return
        cols = max(len(row) for row in block.rows)
        table = self.doc.add_table(rows=len(block.rows), cols=cols)
        table.style = "Table Grid"
        for r_index, row in enumerate(block.rows):
            cells = table.rows[r_index].cells
            for c_index in range(cols):
                cell = cells[c_index]
                text = row[c_index] if c_index < len(row) else ""
                para = cell.paragraphs[0]
                para.alignment = WD_ALIGN_PARAGRAPH.LEFT
                if r_index == 0:
                    _shade_cell(cell, self.primary)
                    self._add_runs(para, text, color=WHITE, force_bold=True)
                else:
                    self._add_runs(para, text)
        _mark_header_row(table.rows[0])
        self.doc.add_paragraph().paragraph_format.space_after = Pt(4)

    def add_block(self, block: ContentBlock) -> None:
        if isinstance(block, Heading):
            self.doc.add_heading(strip_inline(block.text), level=min(max(block.level, 1), 3))
        elif isinstance(block, Paragraph):
            for line in block.lines:
                para = self.doc.add_paragraph()
                para.paragraph_format.space_after = Pt(10)
                self._add_runs(para, line)
        elif isinstance(block, BulletList):
            self._add_list(block.items, "List Bullet")
        elif isinstance(block, NumberedList):
            self._add_list(block.items, "List Number")
        elif isinstance(block, CodeBlock):
            self._add_monospace_block(block.text.split("\n"), CODE_SIZE)
        elif isinstance(block, Diagram):
            self._add_monospace_block(block.lines, DIAGRAM_SIZE)
        elif isinstance(block, Table):
            self._add_table(block)

    def render(self, blocks: Iterable[ContentBlock]) -> RenderResult:
        self.load_logo()
        self._apply_styles()
        self._apply_properties()
        if self.branding.header.enabled:
            self._build_header()
        if self.branding.footer.enabled:
            self._build_footer()
        self._add_title()
        if self.metadata.include_toc:
            self._add_toc()
        for block in blocks:
            self.add_block(block)
        out = BytesIO()
        self.doc.save(out)
        # Word paginates at open time; no page count is known here.
        return RenderResult(buffer=out.getvalue(), page_count=None)


def render_docx(
    blocks: Iterable[ContentBlock],
    branding: BrandingConfig,
    title: str,
    metadata: DocumentMetadata | None = None,
) -> RenderResult:
    return DocxBuilder(title, branding, metadata).render(blocks)


def generate_docx(
    title: str,
    content: str,
    branding: BrandingConfig,
    metadata: DocumentMetadata | None = None,
) -> RenderResult:
    return render_docx(segment(content), branding, title, metadata)
