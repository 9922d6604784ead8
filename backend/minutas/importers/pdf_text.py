"""
Minutas — PDF → flow HTML.

Born-digital pages give text blocks with coordinates; each block becomes a
paragraph and its distance from the page's text column becomes
``margin-left``, snapped to the editor's indent step. Pages without a text
layer are rasterized and sent through OCR.
"""

from __future__ import annotations

import html

import fitz

from minutas.core.config import RenderConfig
from minutas.errors import ImportCorruptFileError
from minutas.importers.ocr import image_to_paragraphs
from minutas.utils.logging import logger, step_timer

PT_PER_PX = 0.75
MIN_TEXT_CHARS = 20  # below this a page is treated as scanned
OCR_DPI = 300


def snap_indent(offset_pt: float, render: RenderConfig) -> int:
    px = offset_pt / PT_PER_PX
    steps = int(round(px / render.indent_step))
    return min(max(steps * render.indent_step, 0), render.max_indent)


def _paragraph(text: str, indent: int) -> str:
    body = "<br>".join(html.escape(line.strip(), quote=False) for line in text.strip().splitlines() if line.strip())
    style = f' style="margin-left: {indent}px"' if indent else ""
    return f"<p{style}>{body}</p>"


def pdf_to_html(filename: str, content: bytes, render: RenderConfig, ocr_lang: str) -> tuple[str, str]:
    """Returns ``(html, method)`` where method is ``pdf`` or ``ocr``."""
    with step_timer("Read PDF → HTML"):
        try:
            doc = fitz.open(stream=content, filetype="pdf")
        except RuntimeError as exc:
            raise ImportCorruptFileError(filename, str(exc)) from exc

        try:
            if doc.needs_pass:
                raise ImportCorruptFileError(filename, "document is password protected")
            if doc.page_count == 0:
                raise ImportCorruptFileError(filename, "document has no pages")

            parts: list[str] = []
            ocr_pages = 0
            for page in doc:
                blocks = [b for b in page.get_text("blocks", sort=True) if b[6] == 0 and b[4].strip()]
                if sum(len(b[4].strip()) for b in blocks) < MIN_TEXT_CHARS:
                    pix = page.get_pixmap(dpi=OCR_DPI)
                    paragraphs = image_to_paragraphs(filename, pix.tobytes("png"), ocr_lang)
                    parts.extend(_paragraph(p, 0) for p in paragraphs)
                    ocr_pages += 1
                    continue
                column = min(b[0] for b in blocks)
                for x0, _y0, _x1, _y1, text, *_ in blocks:
                    parts.append(_paragraph(text, snap_indent(x0 - column, render)))
        finally:
            doc.close()

        logger.info("  PDF read: %d paragraph(s), %d page(s) via OCR", len(parts), ocr_pages)
        return "".join(parts), ("ocr" if ocr_pages else "pdf")
