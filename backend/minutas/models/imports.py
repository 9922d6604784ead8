"""
Minutas — Import adapter results.

Adapters never touch a stored template; the caller decides what to do with
the converted content.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from minutas.models.template import PageInfo


class FlowImportResult(BaseModel):
    html: str
    variables_found: list[str] = Field(default_factory=list)
    source_format: str = ""  # docx | soffice | pdf | ocr


class OverlayImportResult(BaseModel):
    page_count: int
    pages: list[PageInfo]
    pdf_bytes: bytes = Field(exclude=True)
