"""
Minutas — Flow template import.

Accepts Word-family, OpenDocument, RTF, WPS, PDF and scanned images and
produces flow HTML plus the placeholders already present in it. Parsing runs
in a worker thread under the conversion timeout.
"""

from __future__ import annotations

import html

from minutas.core.config import AppConfig, settings
from minutas.flow.tokens import extract_variables
from minutas.importers.common import check_upload, run_blocking
from minutas.importers.convert import soffice_to_docx
from minutas.importers.docx_html import docx_to_html
from minutas.importers.ocr import image_to_paragraphs
from minutas.importers.pdf_text import pdf_to_html
from minutas.models.imports import FlowImportResult
from minutas.utils.logging import logger

DOCX_EXTENSIONS = (".docx",)
SOFFICE_EXTENSIONS = (".doc", ".docm", ".dotx", ".dotm", ".dot", ".rtf", ".odt", ".wps")
PDF_EXTENSIONS = (".pdf",)
IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg")

ALLOWED_EXTENSIONS = DOCX_EXTENSIONS + SOFFICE_EXTENSIONS + PDF_EXTENSIONS + IMAGE_EXTENSIONS


def _convert(filename: str, content: bytes, ext: str, config: AppConfig) -> tuple[str, str]:
    if ext in DOCX_EXTENSIONS:
        return docx_to_html(filename, content), "docx"
    if ext in SOFFICE_EXTENSIONS:
        docx_bytes = soffice_to_docx(filename, content, config.soffice_bin, config.conversion_timeout)
        return docx_to_html(filename, docx_bytes), "soffice"
    if ext in PDF_EXTENSIONS:
        return pdf_to_html(filename, content, config.render, config.ocr_lang)
    paragraphs = image_to_paragraphs(filename, content, config.ocr_lang)
    return "".join(f"<p>{html.escape(p, quote=False)}</p>" for p in paragraphs), "ocr"


async def import_flow(filename: str, content: bytes, config: AppConfig | None = None) -> FlowImportResult:
    """
    Convert an uploaded document into flow HTML.

    Raises ImportSizeExceededError, ImportFormatUnsupportedError,
    ImportCorruptFileError or ConversionTimeoutError; nothing is stored.
    """
    config = config or settings
    ext = check_upload(filename, content, ALLOWED_EXTENSIONS, config.limits.max_import_bytes)
    logger.info("Flow import: %s (%d bytes)", filename, len(content))

    body, method = await run_blocking(
        f"Import {ext}", config.conversion_timeout, _convert, filename, content, ext, config,
    )
    variables = extract_variables(body)
    logger.info("Flow import done: %s via %s, %d placeholder(s)", filename, method, len(variables))
    return FlowImportResult(html=body, variables_found=variables, source_format=method)
