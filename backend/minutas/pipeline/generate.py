"""
Minutas — Generation orchestrator.

Runs one document generation as a state machine:

  RECEIVED → VALIDATED → RENDERED → CONVERTED → DELIVERED   (or FAILED)

Flow templates render HTML (header + body) and convert it to .docx; overlay
templates stamp their fields onto the stored PDF. Each step is timed and
recorded in the GenerationResult. The usage counter is bumped only after a
document exists, so a failed run leaves the template untouched.
"""

from __future__ import annotations

import hashlib
import re
import time
import unicodedata
import uuid

from minutas.core.config import AppConfig, settings
from minutas.errors import (
    ConcurrentUsageCountConflictError,
    ConversionFailedError,
    MinutasError,
    TemplateEmptyContentError,
    TemplateKindUnsupportedError,
    TemplateNotFoundError,
)
from minutas.flow.docx_export import html_to_docx
from minutas.flow.render import has_renderable_content, render_with_header
from minutas.importers.common import run_blocking
from minutas.lifecycle.store import AnyTemplate, BlobStore, HeaderStore, TemplateStore
from minutas.models.context import GenerationContext
from minutas.models.job import (
    ArtifactMetadata,
    GenerationReport,
    GenerationResult,
    JobState,
    StepTiming,
)
from minutas.models.template import FlowTemplate, OverlayTemplate
from minutas.overlay.stamp import stamp_pdf
from minutas.utils.logging import log_report, logger
from minutas.variables.resolver import VariableResolver

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PDF_MEDIA_TYPE = "application/pdf"


def slugify(text: str | None) -> str:
    """ASCII, lower-case, dash separated. Empty when nothing survives."""
    ascii_text = unicodedata.normalize("NFKD", text or "").encode("ascii", "ignore").decode()
    return re.sub(r"[^a-z0-9]+", "-", ascii_text.lower()).strip("-")


def build_filename(template_name: str, entity_name: str | None, extension: str) -> str:
    parts = [slugify(template_name) or "documento"]
    entity = slugify(entity_name)
    if entity:
        parts.append(entity)
    return "-".join(parts) + extension


class PipelineContext:
    """Mutable state passed through pipeline steps."""

    def __init__(self):
        self.header_html: str | None = None
        self.rendered_header: str | None = None
        self.rendered_body: str = ""
        self.pdf_source: bytes = b""
        self.document: bytes = b""
        self.media_type: str = ""
        self.extension: str = ""
        self.report = GenerationReport()


class GenerationOrchestrator:
    """
    State-machine orchestrator for one document generation.

    Tracks every step's timing and status and returns a complete
    GenerationResult with the content hash and the non-fatal report.
    """

    def __init__(
        self,
        template: AnyTemplate,
        context: GenerationContext,
        store: TemplateStore,
        resolver: VariableResolver,
        blobs: BlobStore | None = None,
        headers: HeaderStore | None = None,
        config: AppConfig | None = None,
    ):
        self.job_id = uuid.uuid4().hex[:12]
        self.template = template
        self.context = context
        self.store = store
        self.resolver = resolver
        self.blobs = blobs
        self.headers = headers
        self.config = config or settings
        self.state = JobState.RECEIVED
        self.ctx = PipelineContext()
        self.timings: list[StepTiming] = []

    def _record_step(self, name: str, start: float, status: str = "ok", detail: str = ""):
        ms = int((time.perf_counter() - start) * 1000)
        self.timings.append(StepTiming(step=name, duration_ms=ms, status=status, detail=detail))
        symbol = "✓" if status == "ok" else ("⊘" if status == "skipped" else "✗")
        logger.info("  %s %s — %dms %s", symbol, name, ms, detail)

    async def run(self) -> GenerationResult:
        """Execute the full pipeline. Returns a complete GenerationResult."""
        logger.info("=" * 60)
        logger.info(
            "[%s] Generation starting (template=%s, kind=%s)",
            self.job_id, self.template.id, self.template.kind,
        )
        logger.info("=" * 60)
        pipeline_start = time.perf_counter()

        try:
            self._step_validate()
            self._step_render()
            await self._step_convert()
            self._step_count_usage()
            self.state = JobState.DELIVERED
        except Exception:
            self.state = JobState.FAILED
            raise

        entity_name = (self.context.entidade or {}).get("nome")
        filename = build_filename(self.template.name, entity_name, self.ctx.extension)
        content_hash = hashlib.sha256(self.ctx.document).hexdigest()
        log_report(self.job_id, self.ctx.report.unresolved, self.ctx.report.malformed_tokens)

        total_ms = int((time.perf_counter() - pipeline_start) * 1000)
        logger.info("=" * 60)
        logger.info(
            "[%s] Generation complete — %s, %d bytes, %dms",
            self.job_id, filename, len(self.ctx.document), total_ms,
        )
        logger.info("=" * 60)

        return GenerationResult(
            job_id=self.job_id,
            template_id=self.template.id,
            document=self.ctx.document,
            artifact=ArtifactMetadata(
                filename=filename,
                media_type=self.ctx.media_type,
                size_bytes=len(self.ctx.document),
                content_hash=content_hash,
            ),
            report=self.ctx.report,
            timings=self.timings,
        )

    # ---- steps ----

    def _step_validate(self):
        t = time.perf_counter()
        template = self.template
        if isinstance(template, FlowTemplate):
            self.ctx.header_html = self._load_header(template)
            if not (has_renderable_content(template.body_html) or has_renderable_content(self.ctx.header_html or "")):
                self._record_step("validate", t, "failed", "empty content")
                raise TemplateEmptyContentError(template.id)
            self.ctx.extension, self.ctx.media_type = ".docx", DOCX_MEDIA_TYPE
        elif isinstance(template, OverlayTemplate):
            pdf = self.blobs.get(template.id) if self.blobs is not None else None
            if not pdf:
                self._record_step("validate", t, "failed", "no PDF stored")
                raise TemplateEmptyContentError(template.id)
            self.ctx.pdf_source = pdf
            self.ctx.extension, self.ctx.media_type = ".pdf", PDF_MEDIA_TYPE
        else:
            self._record_step("validate", t, "failed", "unknown kind")
            raise TemplateKindUnsupportedError(str(getattr(template, "kind", type(template).__name__)))
        self.state = JobState.VALIDATED
        self._record_step("validate", t)

    def _load_header(self, template: FlowTemplate) -> str | None:
        if not template.header_id or self.headers is None:
            return None
        header = self.headers.get(template.header_id)
        if header is None:
            logger.warning("  Header %s is gone; rendering without it", template.header_id)
            return None
        return header.body_html

    def _step_render(self):
        t = time.perf_counter()
        if isinstance(self.template, OverlayTemplate):
            # overlay values are resolved while stamping
            self.state = JobState.RENDERED
            self._record_step("render", t, "skipped", "overlay")
            return
        header, body, report = render_with_header(
            self.template.body_html, self.ctx.header_html, self.context, self.resolver,
        )
        self.ctx.rendered_header, self.ctx.rendered_body, self.ctx.report = header, body, report
        self.state = JobState.RENDERED
        self._record_step("render", t, detail=f"{len(report.unresolved)} unresolved")

    async def _step_convert(self):
        t = time.perf_counter()
        timeout = self.config.conversion_timeout
        try:
            if isinstance(self.template, FlowTemplate):
                self.ctx.document = await run_blocking(
                    "DOCX conversion", timeout, html_to_docx, self.ctx.rendered_body, self.ctx.rendered_header,
                )
            else:
                font_size = self.template.default_font_size or self.config.render.default_font_size
                self.ctx.document, self.ctx.report = await run_blocking(
                    "Overlay stamping", timeout, stamp_pdf,
                    self.ctx.pdf_source, self.template.fields, self.context, self.resolver, font_size,
                )
        except MinutasError as exc:
            self._record_step("convert", t, "failed", exc.code)
            raise
        except Exception as exc:
            self._record_step("convert", t, "failed", str(exc))
            raise ConversionFailedError("Document conversion", str(exc)) from exc
        self.state = JobState.CONVERTED
        self._record_step("convert", t, detail=f"{len(self.ctx.document)} bytes")

    def _step_count_usage(self):
        t = time.perf_counter()
        limit = max(self.config.usage_retry_limit, 1)
        for attempt in range(1, limit + 1):
            current = self.store.get(self.template.id)
            if current is None:
                self._record_step("count_usage", t, "skipped", "template gone")
                return
            try:
                updated = self.store.increment_usage(current.id, current.version)
            except ConcurrentUsageCountConflictError:
                logger.info("  Usage count conflict on %s (attempt %d/%d)", current.id, attempt, limit)
                continue
            self._record_step("count_usage", t, detail=f"uso_count={updated.usage_count}")
            return

        # still contended: let the store add the use under its own lock
        try:
            updated = self.store.increment_usage(self.template.id)
        except TemplateNotFoundError:
            self._record_step("count_usage", t, "skipped", "template gone")
            return
        self._record_step("count_usage", t, detail=f"uso_count={updated.usage_count} (unconditional)")
