"""
Minutas — Overlay stamping.

Writes each field's value into its rectangle on the source PDF with
PyMuPDF. Coordinates are points with the origin at the top-left corner of
the page, which is what ``fitz.Rect`` uses, so boxes map over unchanged.

Text that does not fit is shrunk in half-point steps down to
``MIN_FONT_SIZE``; past that it is cut at the last character that fits.
Fields whose variable is unresolved are left blank and reported.
"""

from __future__ import annotations

from typing import Iterable

import fitz

from minutas.errors import ConversionFailedError
from minutas.models.context import GenerationContext
from minutas.models.job import GenerationReport
from minutas.models.template import OverlayField
from minutas.utils.logging import logger, step_timer
from minutas.variables.resolver import VariableResolver

MIN_FONT_SIZE = 4.0
SHRINK_STEP = 0.5

FONTS = {
    "Helvetica": "helv",
    "Times": "tiro",
    "Courier": "cour",
}

ALIGN = {
    "left": fitz.TEXT_ALIGN_LEFT,
    "center": fitz.TEXT_ALIGN_CENTER,
    "right": fitz.TEXT_ALIGN_RIGHT,
}

SAVE_OPTIONS = {"garbage": 3, "deflate": True, "no_new_id": True}


def hex_to_rgb(color: str) -> tuple[float, float, float]:
    """``#rrggbb`` → PyMuPDF colour tuple in 0..1."""
    value = color.lstrip("#")
    return tuple(int(value[i:i + 2], 16) / 255 for i in (0, 2, 4))


def _insert(page: "fitz.Page", rect: "fitz.Rect", text: str, size: float, f: OverlayField) -> float:
    return page.insert_textbox(
        rect,
        text,
        fontsize=size,
        fontname=FONTS[f.font_family],
        color=hex_to_rgb(f.color),
        align=ALIGN[f.alignment],
    )


def draw_field(page: "fitz.Page", f: OverlayField, text: str, font_size: float) -> float:
    """
    Draw ``text`` inside the field's box. Returns the font size used.

    ``insert_textbox`` writes nothing when the text overflows, so each
    attempt either lands completely or leaves the page untouched.
    """
    rect = fitz.Rect(f.x, f.y, f.x + f.width, f.y + f.height)
    size = font_size
    while size >= MIN_FONT_SIZE:
        if _insert(page, rect, text, size, f) >= 0:
            return size
        size -= SHRINK_STEP

    size = MIN_FONT_SIZE
    lo, hi = 0, len(text)
    while lo < hi:
        mid = (lo + hi + 1) // 2
        probe = fitz.open()
        scratch = probe.new_page(width=page.rect.width, height=page.rect.height)
        fits = _insert(scratch, rect, text[:mid], size, f) >= 0
        probe.close()
        if fits:
            lo = mid
        else:
            hi = mid - 1
    if lo:
        _insert(page, rect, text[:lo], size, f)
    logger.warning("  Field %s clipped to %d of %d characters", f.id, lo, len(text))
    return size


def stamp_pdf(
    pdf_bytes: bytes,
    fields: Iterable[OverlayField],
    ctx: GenerationContext,
    resolver: VariableResolver,
    default_font_size: float = 12,
) -> tuple[bytes, GenerationReport]:
    """Stamp every field onto a copy of ``pdf_bytes``; the input is not modified."""
    fields = list(fields)
    paths = [f.variable_path for f in fields if f.variable_path]
    values = resolver.resolve_many(paths, ctx)

    with step_timer("Stamp overlay fields"):
        try:
            doc = fitz.open(stream=pdf_bytes, filetype="pdf")
        except RuntimeError as exc:
            raise ConversionFailedError("Overlay stamping", f"cannot open PDF: {exc}") from exc

        try:
            stamped = 0
            for f in fields:
                if f.variable_path:
                    value = values[f.variable_path]
                    if not value.resolved:
                        continue
                    text = value.text
                else:
                    text = f.custom_text
                if not text:
                    continue
                if not 1 <= f.page <= doc.page_count:
                    raise ConversionFailedError(
                        "Overlay stamping",
                        f"field {f.id} is on page {f.page}, PDF has {doc.page_count}",
                    )
                draw_field(doc[f.page - 1], f, text, f.font_size or default_font_size)
                stamped += 1
            data = doc.tobytes(**SAVE_OPTIONS)
        finally:
            doc.close()

    report = GenerationReport(unresolved=[p for p, v in values.items() if not v.resolved])
    logger.info("  Stamped %d of %d field(s), %d bytes", stamped, len(fields), len(data))
    return data, report


def render_page_png(pdf_bytes: bytes, page_number: int, dpi: int = 150) -> bytes:
    """Rasterize one page (1-based) for the overlay editor background."""
    with step_timer(f"Render page {page_number} @ {dpi} dpi"):
        doc = fitz.open(stream=pdf_bytes, filetype="pdf")
        try:
            if not 1 <= page_number <= doc.page_count:
                raise ValueError(f"page {page_number} out of range 1..{doc.page_count}")
            pix = doc[page_number - 1].get_pixmap(dpi=dpi)
            return pix.tobytes("png")
        finally:
            doc.close()
