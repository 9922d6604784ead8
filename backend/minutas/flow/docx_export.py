"""
Minutas — Rendered flow HTML → Word document.

Walks the editor HTML (paragraphs, headings, lists, tables, inline marks,
embedded images) and rebuilds it with python-docx. Paragraph indentation
comes from the same inline ``margin-left`` / ``text-indent`` styles the
editor writes, converted from CSS px to points (1px = 0.75pt).
"""

from __future__ import annotations

import base64
import binascii
import io
from dataclasses import dataclass, replace

import lxml.html
from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Inches, Pt, RGBColor
from lxml import etree

from minutas.flow.document import BLOCK_TAGS, parse_length, parse_px, parse_style
from minutas.utils.logging import logger, step_timer

PX_TO_PT = 0.75
LIST_TAGS = ("ul", "ol")
# the default template has List Bullet/Number up to 3
MAX_LIST_LEVEL = 3

ALIGNMENTS = {
    "left": WD_ALIGN_PARAGRAPH.LEFT,
    "center": WD_ALIGN_PARAGRAPH.CENTER,
    "right": WD_ALIGN_PARAGRAPH.RIGHT,
    "justify": WD_ALIGN_PARAGRAPH.JUSTIFY,
}


@dataclass(frozen=True)
class Marks:
    bold: bool = False
    italic: bool = False
    underline: bool = False
    strike: bool = False
    color: RGBColor | None = None
    size: float | None = None


def _marks_for(el: etree._Element, marks: Marks) -> Marks:
    tag = el.tag
    if tag in ("strong", "b"):
        marks = replace(marks, bold=True)
    elif tag in ("em", "i"):
        marks = replace(marks, italic=True)
    elif tag == "u":
        marks = replace(marks, underline=True)
    elif tag in ("s", "strike", "del"):
        marks = replace(marks, strike=True)
    style = parse_style(el.get("style"))
    color = style.get("color", "")
    if color.startswith("#") and len(color) == 7:
        try:
            marks = replace(marks, color=RGBColor.from_string(color[1:].upper()))
        except ValueError:
            pass
    size = parse_length(style.get("font-size"))
    if size is not None and size[0] > 0:
        number, unit = size
        marks = replace(marks, size=number if unit == "pt" else number * PX_TO_PT)
    return marks


def _add_run(paragraph, text: str, marks: Marks) -> None:
    if not text:
        return
    run = paragraph.add_run(text)
    run.bold = marks.bold or None
    run.italic = marks.italic or None
    run.underline = marks.underline or None
    if marks.strike:
        run.font.strike = True
    if marks.color is not None:
        run.font.color.rgb = marks.color
    if marks.size:
        run.font.size = Pt(marks.size)


def _add_image(paragraph, el: etree._Element) -> None:
    src = el.get("src", "")
    if not src.startswith("data:") or "," not in src:
        logger.warning("  Skipping non-embedded image: %s", src[:60])
        return
    try:
        data = base64.b64decode(src.split(",", 1)[1])
        paragraph.add_run().add_picture(io.BytesIO(data))
    except (binascii.Error, ValueError) as exc:
        logger.warning("  Skipping unreadable embedded image: %s", exc)


def _fill_inline(paragraph, el: etree._Element, marks: Marks) -> None:
    _add_run(paragraph, el.text or "", marks)
    for child in el:
        if not isinstance(child.tag, str):
            pass
        elif child.tag == "br":
            paragraph.add_run().add_break()
        elif child.tag == "img":
            _add_image(paragraph, child)
        elif child.tag in LIST_TAGS:
            # nested lists become their own paragraphs
            pass
        else:
            _fill_inline(paragraph, child, _marks_for(child, marks))
        _add_run(paragraph, child.tail or "", marks)


def _format_block(paragraph, el: etree._Element) -> None:
    style = parse_style(el.get("style"))
    fmt = paragraph.paragraph_format
    indent = parse_px(style.get("margin-left") or style.get("padding-left"))
    if indent:
        fmt.left_indent = Pt(indent * PX_TO_PT)
    text_indent = parse_px(style.get("text-indent"))
    if text_indent:
        fmt.first_line_indent = Pt(text_indent * PX_TO_PT)
    align = style.get("text-align")
    if align in ALIGNMENTS:
        paragraph.alignment = ALIGNMENTS[align]


class DocxBuilder:
    """Appends HTML blocks to a python-docx container (body, header, cell)."""

    def __init__(self, container):
        self.container = container

    def add_html(self, html: str) -> None:
        if not html or not html.strip():
            return
        root = lxml.html.fragment_fromstring(html, create_parent="div")
        if root.text and root.text.strip():
            self.container.add_paragraph(root.text.strip())
        for child in root:
            self._block(child)
            if child.tail and child.tail.strip():
                self.container.add_paragraph(child.tail.strip())

    def _paragraph(self, el: etree._Element, style: str | None = None):
        paragraph = self.container.add_paragraph(style=style) if style else self.container.add_paragraph()
        _format_block(paragraph, el)
        _fill_inline(paragraph, el, _marks_for(el, Marks()))
        return paragraph

    def _block(self, el: etree._Element) -> None:
        if not isinstance(el.tag, str):
            return
        tag = el.tag
        if tag in BLOCK_TAGS[1:] and hasattr(self.container, "add_heading"):
            heading = self.container.add_heading(level=int(tag[1]))
            _format_block(heading, el)
            _fill_inline(heading, el, Marks())
        elif tag in ("ul", "ol"):
            self._list(el)
        elif tag == "table":
            self._table(el)
        elif tag in ("div", "blockquote", "section", "header", "footer"):
            if any(isinstance(c.tag, str) and c.tag in BLOCK_TAGS + ("ul", "ol", "table", "div") for c in el):
                if el.text and el.text.strip():
                    self.container.add_paragraph(el.text.strip())
                for child in el:
                    self._block(child)
            else:
                self._paragraph(el)
        elif tag == "hr":
            self.container.add_paragraph("")
        else:
            self._paragraph(el)

    def _list(self, el: etree._Element, level: int = 1) -> None:
        style = "List Bullet" if el.tag == "ul" else "List Number"
        if level > 1:
            style += f" {min(level, MAX_LIST_LEVEL)}"
        for li in el.findall("li"):
            self._paragraph(li, style=style)
            for sub in li:
                if isinstance(sub.tag, str) and sub.tag in LIST_TAGS:
                    self._list(sub, level + 1)

    def _table(self, el: etree._Element) -> None:
        rows = [tr for tr in el.iter("tr")]
        if not rows:
            return
        cols = max(len([c for c in tr if c.tag in ("td", "th")]) for tr in rows) or 1
        if hasattr(self.container, "add_heading"):
            table = self.container.add_table(rows=len(rows), cols=cols)
            table.style = "Table Grid"
        else:
            # header/footer parts need an explicit width
            table = self.container.add_table(len(rows), cols, Inches(6))
        for r, tr in enumerate(rows):
            cells = [c for c in tr if c.tag in ("td", "th")]
            for c, cell_el in enumerate(cells):
                cell = table.cell(r, c)
                paragraph = cell.paragraphs[0]
                marks = Marks(bold=cell_el.tag == "th")
                _fill_inline(paragraph, cell_el, marks)


def html_to_docx(body_html: str, header_html: str | None = None) -> bytes:
    """Build a .docx from rendered flow HTML; the header goes in the page header."""
    with step_timer("Convert HTML → DOCX"):
        doc = Document()
        normal = doc.styles["Normal"].font
        normal.name = "Calibri"
        normal.size = Pt(11)

        if header_html:
            header = doc.sections[0].header
            header.is_linked_to_previous = False
            # the header part starts with one empty paragraph
            DocxBuilder(header).add_html(header_html)

        DocxBuilder(doc).add_html(body_html)

        buf = io.BytesIO()
        doc.save(buf)
        data = buf.getvalue()
        logger.info("  DOCX built: %d paragraphs, %d bytes", len(doc.paragraphs), len(data))
        return data
