"""
Minutas — Word (.docx) → flow HTML.

Keeps what the flow editor can represent: paragraphs, headings, tables,
bold/italic/underline runs, alignment and paragraph indentation. Word
indents are points; the editor works in CSS px (1px = 0.75pt).
"""

from __future__ import annotations

import html
import io
import zipfile

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.opc.exceptions import PackageNotFoundError
from docx.oxml.ns import qn
from docx.table import Table
from docx.text.paragraph import Paragraph

from minutas.errors import ImportCorruptFileError
from minutas.flow.document import format_style
from minutas.utils.logging import logger, step_timer

PT_PER_PX = 0.75

_ALIGN_CSS = {
    WD_ALIGN_PARAGRAPH.CENTER: "center",
    WD_ALIGN_PARAGRAPH.RIGHT: "right",
    WD_ALIGN_PARAGRAPH.JUSTIFY: "justify",
}


def pt_to_px(length) -> int:
    """python-docx Length (or None) → whole CSS px."""
    if length is None:
        return 0
    return int(round(length.pt / PT_PER_PX))


def _run_html(run) -> str:
    text = html.escape(run.text, quote=False).replace("\n", "<br>")
    if not text:
        return ""
    if run.underline:
        text = f"<u>{text}</u>"
    if run.italic:
        text = f"<em>{text}</em>"
    if run.bold:
        text = f"<strong>{text}</strong>"
    return text


def _inline_html(paragraph: Paragraph) -> str:
    parts = []
    for item in paragraph.iter_inner_content():
        runs = item.runs if hasattr(item, "runs") else [item]
        parts.extend(_run_html(r) for r in runs)
    return "".join(parts)


def _block_tag(paragraph: Paragraph) -> str:
    name = paragraph.style.name if paragraph.style is not None else ""
    if name == "Title":
        return "h1"
    if name.startswith("Heading "):
        level = name.rsplit(" ", 1)[-1]
        if level.isdigit() and 1 <= int(level) <= 6:
            return f"h{level}"
    return "p"


def paragraph_html(paragraph: Paragraph) -> str:
    tag = _block_tag(paragraph)
    fmt = paragraph.paragraph_format
    props = {}
    indent = pt_to_px(fmt.left_indent)
    if indent > 0:
        props["margin-left"] = f"{indent}px"
    text_indent = pt_to_px(fmt.first_line_indent)
    if text_indent:
        props["text-indent"] = f"{text_indent}px"
    align = _ALIGN_CSS.get(paragraph.alignment)
    if align:
        props["text-align"] = align
    style = f' style="{format_style(props)}"' if props else ""
    return f"<{tag}{style}>{_inline_html(paragraph)}</{tag}>"


def table_html(table: Table) -> str:
    rows = []
    for row in table.rows:
        cells = "".join(
            "<td>" + "<br>".join(_inline_html(p) for p in cell.paragraphs) + "</td>"
            for cell in row.cells
        )
        rows.append(f"<tr>{cells}</tr>")
    return "<table><tbody>" + "".join(rows) + "</tbody></table>"


def docx_to_html(filename: str, content: bytes) -> str:
    """Convert .docx bytes to flow HTML, block by block in document order."""
    with step_timer("Read DOCX → HTML"):
        try:
            doc = Document(io.BytesIO(content))
        except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as exc:
            raise ImportCorruptFileError(filename, str(exc) or type(exc).__name__) from exc

        blocks = []
        for child in doc.element.body.iterchildren():
            if child.tag == qn("w:p"):
                blocks.append(paragraph_html(Paragraph(child, doc)))
            elif child.tag == qn("w:tbl"):
                blocks.append(table_html(Table(child, doc)))

        logger.info("  DOCX read: %d block(s)", len(blocks))
        return "".join(blocks)
