"""
Minutas — Template lifecycle manager.

Single entry point for creating, editing, trashing, restoring and deleting
templates and header blocks, and for generating documents from them.

  ACTIVE ──trash──▶ TRASHED ──restore──▶ ACTIVE
                       └──delete_permanently──▶ (gone, PDF removed)

Trashed templates cannot be edited or generated from; only trashed
templates can be deleted for good.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable

from minutas.context.assemble import ContextAssembler, ContextSource, InMemoryContextSource
from minutas.core.config import AppConfig, settings
from minutas.errors import (
    HeaderNotFoundError,
    TemplateKindUnsupportedError,
    TemplateNotFoundError,
    TemplateNotTrashedError,
    TemplateTrashedError,
)
from minutas.flow.tokens import extract_variables
from minutas.importers.flow import import_flow
from minutas.importers.overlay import import_overlay
from minutas.lifecycle.store import (
    AnyTemplate,
    BlobStore,
    HeaderStore,
    InMemoryBlobStore,
    InMemoryHeaderStore,
    InMemoryTemplateStore,
    TemplateStore,
)
from minutas.models.imports import FlowImportResult, OverlayImportResult
from minutas.models.job import GenerationResult
from minutas.models.template import FlowTemplate, HeaderBlock, OverlayField, OverlayTemplate, PageInfo
from minutas.overlay.validate import validate_fields
from minutas.pipeline.generate import GenerationOrchestrator
from minutas.utils.logging import logger
from minutas.variables.registry import VariableRegistry, default_registry
from minutas.variables.resolver import VariableResolver

_FLOW_EDITABLE = {"name", "description", "category", "body_html", "header_id"}
_OVERLAY_EDITABLE = {"name", "description", "category", "default_font_size"}


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TemplateLifecycleManager:
    def __init__(
        self,
        store: TemplateStore | None = None,
        blobs: BlobStore | None = None,
        headers: HeaderStore | None = None,
        registry: VariableRegistry | None = None,
        source: ContextSource | None = None,
        config: AppConfig | None = None,
    ):
        self.store = store if store is not None else InMemoryTemplateStore()
        self.blobs = blobs if blobs is not None else InMemoryBlobStore()
        self.headers = headers if headers is not None else InMemoryHeaderStore()
        self.registry = registry or default_registry()
        self.resolver = VariableResolver(self.registry)
        self.config = config or settings
        self.assembler = ContextAssembler(source if source is not None else InMemoryContextSource(), self.config.render)

    # ---- reads ----

    def get(self, template_id: str) -> AnyTemplate:
        template = self.store.get(template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)
        return template

    def _get_active(self, template_id: str) -> AnyTemplate:
        template = self.get(template_id)
        if template.is_trashed:
            raise TemplateTrashedError(template_id)
        return template

    def list(self, include_trashed: bool = False) -> list[AnyTemplate]:
        return [t for t in self.store.list() if include_trashed or not t.is_trashed]

    def list_trash(self) -> list[AnyTemplate]:
        return [t for t in self.store.list() if t.is_trashed]

    def get_pdf(self, template_id: str) -> bytes | None:
        return self.blobs.get(template_id)

    # ---- flow ----

    def _check_header(self, header_id: str | None) -> None:
        if header_id and self.headers.get(header_id) is None:
            raise HeaderNotFoundError(header_id)

    def create_flow(
        self,
        name: str,
        category: str = "Geral",
        body_html: str = "",
        description: str | None = None,
        header_id: str | None = None,
    ) -> FlowTemplate:
        self._check_header(header_id)
        template = FlowTemplate(
            name=name,
            category=category,
            description=description,
            body_html=body_html,
            declared_variables=extract_variables(body_html),
            header_id=header_id or None,
        )
        saved = self.store.save(template)
        logger.info("Created flow template %s (%s), %d variable(s)", saved.id, saved.name, len(saved.declared_variables))
        return saved

    def update_flow(self, template_id: str, **changes: Any) -> FlowTemplate:
        """Apply ``changes`` (name, description, category, body_html, header_id)."""
        template = self._get_active(template_id)
        if not isinstance(template, FlowTemplate):
            raise TemplateKindUnsupportedError(template.kind)
        unknown = set(changes) - _FLOW_EDITABLE
        if unknown:
            raise TypeError(f"unexpected fields: {', '.join(sorted(unknown))}")
        if "header_id" in changes:
            changes["header_id"] = changes["header_id"] or None
            self._check_header(changes["header_id"])
        if "body_html" in changes:
            changes["declared_variables"] = extract_variables(changes["body_html"] or "")
        changes["updated_at"] = _now()
        updated = FlowTemplate.model_validate({**template.model_dump(), **changes, "version": template.version})
        return self.store.save(updated)

    # ---- overlay ----

    def create_overlay(
        self,
        name: str,
        pdf_bytes: bytes,
        pages: list[PageInfo],
        category: str = "Geral",
        fields: Iterable[OverlayField] = (),
        description: str | None = None,
        default_font_size: float | None = None,
    ) -> OverlayTemplate:
        fields = list(fields)
        validate_fields(fields, pages)
        template = OverlayTemplate(
            name=name,
            category=category,
            description=description,
            pages=pages,
            fields=fields,
            default_font_size=default_font_size or self.config.render.default_font_size,
            has_pdf=True,
        )
        self.blobs.put(template.id, pdf_bytes)
        saved = self.store.save(template)
        logger.info("Created overlay template %s (%s), %d page(s)", saved.id, saved.name, len(pages))
        return saved

    def update_overlay(
        self,
        template_id: str,
        fields: Iterable[OverlayField] | None = None,
        pdf_bytes: bytes | None = None,
        pages: list[PageInfo] | None = None,
        **changes: Any,
    ) -> OverlayTemplate:
        """
        Replace fields and/or the PDF. Last write wins.

        A new PDF must come with its pages; the fields (new or kept) are
        validated against the pages that will be stored.
        """
        template = self._get_active(template_id)
        if not isinstance(template, OverlayTemplate):
            raise TemplateKindUnsupportedError(template.kind)
        unknown = set(changes) - _OVERLAY_EDITABLE
        if unknown:
            raise TypeError(f"unexpected fields: {', '.join(sorted(unknown))}")
        if (pdf_bytes is None) != (pages is None):
            raise ValueError("pdf_bytes and pages must be replaced together")

        new_pages = pages if pages is not None else template.pages
        new_fields = list(fields) if fields is not None else template.fields
        validate_fields(new_fields, new_pages)

        if pdf_bytes is not None:
            self.blobs.put(template_id, pdf_bytes)
        updated = template.model_copy(update={
            **changes,
            "pages": new_pages,
            "fields": new_fields,
            "has_pdf": template.has_pdf or pdf_bytes is not None,
            "updated_at": _now(),
        })
        return self.store.save(updated)

    # ---- lifecycle ----

    def trash(self, template_id: str) -> AnyTemplate:
        template = self._get_active(template_id)
        saved = self.store.save(template.model_copy(update={"deleted_at": _now()}))
        logger.info("Template %s moved to trash", template_id)
        return saved

    def restore(self, template_id: str) -> AnyTemplate:
        template = self.get(template_id)
        if not template.is_trashed:
            raise TemplateNotTrashedError(template_id)
        saved = self.store.save(template.model_copy(update={"deleted_at": None, "updated_at": _now()}))
        logger.info("Template %s restored", template_id)
        return saved

    def delete_permanently(self, template_id: str) -> None:
        template = self.get(template_id)
        if not template.is_trashed:
            raise TemplateNotTrashedError(template_id)
        self.blobs.delete(template_id)
        self.store.delete(template_id)
        logger.info("Template %s deleted permanently", template_id)

    # ---- imports ----

    async def import_flow_file(self, filename: str, content: bytes) -> FlowImportResult:
        return await import_flow(filename, content, self.config)

    async def import_overlay_file(self, filename: str, content: bytes) -> OverlayImportResult:
        return await import_overlay(filename, content, self.config)

    # ---- header blocks ----

    def get_header(self, header_id: str) -> HeaderBlock:
        header = self.headers.get(header_id)
        if header is None:
            raise HeaderNotFoundError(header_id)
        return header

    def list_headers(self) -> list[HeaderBlock]:
        return self.headers.list()

    def create_header(self, name: str, body_html: str = "", description: str | None = None) -> HeaderBlock:
        return self.headers.save(HeaderBlock(name=name, body_html=body_html, description=description))

    def update_header(self, header_id: str, **changes: Any) -> HeaderBlock:
        header = self.get_header(header_id)
        unknown = set(changes) - {"name", "description", "body_html"}
        if unknown:
            raise TypeError(f"unexpected fields: {', '.join(sorted(unknown))}")
        updated = HeaderBlock.model_validate({**header.model_dump(), **changes, "updated_at": _now()})
        return self.headers.save(updated)

    def delete_header(self, header_id: str) -> None:
        """Delete a header block and detach it from the templates using it."""
        self.get_header(header_id)
        for template in self.store.list():
            if isinstance(template, FlowTemplate) and template.header_id == header_id:
                self.store.save(template.model_copy(update={"header_id": None}))
        self.headers.delete(header_id)

    # ---- generation ----

    async def generate(
        self,
        template_id: str,
        cliente_id: Any = None,
        processo_id: Any = None,
        funcionario_id: Any = None,
        now: datetime | None = None,
    ) -> GenerationResult:
        template = self._get_active(template_id)
        context = self.assembler.assemble(
            cliente_id=cliente_id, processo_id=processo_id, funcionario_id=funcionario_id, now=now,
        )
        orchestrator = GenerationOrchestrator(
            template,
            context,
            store=self.store,
            resolver=self.resolver,
            blobs=self.blobs,
            headers=self.headers,
            config=self.config,
        )
        return await orchestrator.run()
