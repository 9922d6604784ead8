"""
Minutas — Overlay template import (PDF only).

Page sizes are read from the page boxes once; they stay fixed for the life
of the template and every field coordinate refers to them.
"""

from __future__ import annotations

import fitz

from minutas.core.config import AppConfig, settings
from minutas.errors import ImportCorruptFileError
from minutas.importers.common import check_upload, run_blocking
from minutas.models.imports import OverlayImportResult
from minutas.models.template import PageInfo
from minutas.utils.logging import logger, step_timer

ALLOWED_EXTENSIONS = (".pdf",)


def read_pages(filename: str, content: bytes) -> list[PageInfo]:
    with step_timer("Read overlay PDF pages"):
        try:
            doc = fitz.open(stream=content, filetype="pdf")
        except RuntimeError as exc:
            raise ImportCorruptFileError(filename, str(exc)) from exc
        try:
            if doc.needs_pass:
                raise ImportCorruptFileError(filename, "document is password protected")
            pages = [
                PageInfo(page_number=i + 1, width_pt=round(p.rect.width, 2), height_pt=round(p.rect.height, 2))
                for i, p in enumerate(doc)
            ]
        finally:
            doc.close()
        if not pages:
            raise ImportCorruptFileError(filename, "document has no pages")
        return pages


async def import_overlay(filename: str, content: bytes, config: AppConfig | None = None) -> OverlayImportResult:
    config = config or settings
    check_upload(filename, content, ALLOWED_EXTENSIONS, config.limits.max_overlay_bytes)
    pages = await run_blocking("Import overlay PDF", config.conversion_timeout, read_pages, filename, content)
    logger.info("Overlay import: %s, %d page(s)", filename, len(pages))
    return OverlayImportResult(page_count=len(pages), pages=pages, pdf_bytes=content)
