"""
Minutas — Structured error catalog.

Every error has a code, human message, suggested fix and the HTTP status
the API answers with. No raw exceptions leak to the frontend.
"""

from __future__ import annotations

from typing import Any


class MinutasError(Exception):
    """Base error with structured code + suggestion."""

    http_status = 422

    def __init__(self, code: str, message: str, suggestion: str = "", detail: Any = None):
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.detail = detail
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "error_code": self.code,
            "message": self.message,
        }
        if self.suggestion:
            d["suggestion"] = self.suggestion
        if self.detail:
            d["detail"] = self.detail
        return d


# ──────────────────────────────────────────────────────────
# Import
# ──────────────────────────────────────────────────────────

class ImportFormatUnsupportedError(MinutasError):
    http_status = 415

    def __init__(self, filename: str, allowed: list[str]):
        super().__init__(
            code="IMPORT_FORMAT_UNSUPPORTED",
            message=f"File format not supported: {filename}",
            suggestion=f"Allowed types: {', '.join(allowed)}.",
        )


class ImportCorruptFileError(MinutasError):
    def __init__(self, filename: str, reason: str = ""):
        super().__init__(
            code="IMPORT_CORRUPT_FILE",
            message=f"Could not read {filename}" + (f": {reason}" if reason else ""),
            suggestion="Open the file in its original application, save it again and retry.",
        )


class ImportSizeExceededError(MinutasError):
    http_status = 413

    def __init__(self, filename: str, size_mb: float, limit_mb: float):
        super().__init__(
            code="IMPORT_SIZE_EXCEEDED",
            message=f"File exceeds {limit_mb:g}MB limit: {filename} ({size_mb:.1f}MB)",
            suggestion="Compress the document or split it before importing.",
        )


# ──────────────────────────────────────────────────────────
# Templates
# ──────────────────────────────────────────────────────────

class TemplateEmptyContentError(MinutasError):
    def __init__(self, template_id: str):
        super().__init__(
            code="TEMPLATE_EMPTY_CONTENT",
            message=f"Template {template_id} has no content to render",
            suggestion="Write some text or import a document before generating.",
        )


class TemplateNotFoundError(MinutasError):
    http_status = 404

    def __init__(self, template_id: str):
        super().__init__(
            code="TEMPLATE_NOT_FOUND",
            message=f"Template not found: {template_id}",
        )


class TemplateTrashedError(MinutasError):
    http_status = 409

    def __init__(self, template_id: str):
        super().__init__(
            code="TEMPLATE_TRASHED",
            message=f"Template {template_id} is in the trash",
            suggestion="Restore the template before editing or using it.",
        )


class TemplateNotTrashedError(MinutasError):
    http_status = 409

    def __init__(self, template_id: str):
        super().__init__(
            code="TEMPLATE_NOT_TRASHED",
            message=f"Template {template_id} is not in the trash",
            suggestion="Move the template to the trash before deleting it permanently.",
        )


class TemplateKindUnsupportedError(MinutasError):
    def __init__(self, kind: str):
        super().__init__(
            code="TEMPLATE_KIND_UNSUPPORTED",
            message=f"Unsupported template kind: {kind}",
        )


class HeaderNotFoundError(MinutasError):
    http_status = 404

    def __init__(self, header_id: str):
        super().__init__(
            code="HEADER_NOT_FOUND",
            message=f"Header block not found: {header_id}",
        )


# ──────────────────────────────────────────────────────────
# Overlay fields (save time)
# ──────────────────────────────────────────────────────────

class OverlayPageNotFoundError(MinutasError):
    def __init__(self, field_id: str, page: int, page_count: int):
        super().__init__(
            code="OVERLAY_PAGE_NOT_FOUND",
            message=f"Field {field_id} references page {page}, but the PDF has {page_count} page(s)",
            suggestion="Move the field to an existing page or delete it.",
            detail={"field_id": field_id, "page": page, "page_count": page_count},
        )


class OverlayFieldOutOfBoundsError(MinutasError):
    def __init__(self, field_id: str, page: int, problems: list[str]):
        super().__init__(
            code="OVERLAY_FIELD_OUT_OF_BOUNDS",
            message=f"Field {field_id} does not fit on page {page}: {'; '.join(problems)}",
            suggestion="Drag or resize the field so it lies completely inside the page.",
            detail={"field_id": field_id, "page": page, "problems": problems},
        )


# ──────────────────────────────────────────────────────────
# Conversion
# ──────────────────────────────────────────────────────────

class ConversionTimeoutError(MinutasError):
    http_status = 504

    def __init__(self, step: str, timeout_s: float):
        super().__init__(
            code="CONVERSION_TIMEOUT",
            message=f"{step} timed out after {timeout_s:g}s",
            suggestion="Retry later or simplify the document.",
        )


class ConversionFailedError(MinutasError):
    http_status = 500

    def __init__(self, step: str, message: str):
        super().__init__(
            code="CONVERSION_FAILED",
            message=f"{step} failed: {message}",
            suggestion="Check the template source document and retry.",
        )


class ConcurrentUsageCountConflictError(MinutasError):
    """Lost race on the usage counter. Retried by the pipeline, never returned to clients."""

    def __init__(self, template_id: str):
        super().__init__(
            code="USAGE_COUNT_CONFLICT",
            message=f"Concurrent usage update on template {template_id}",
        )


# ──────────────────────────────────────────────────────────
# Report entries (non-fatal)
# ──────────────────────────────────────────────────────────

UNRESOLVED_VARIABLE = "UNRESOLVED_VARIABLE"
MALFORMED_TOKEN = "MALFORMED_TOKEN"
