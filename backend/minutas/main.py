"""
Minutas — FastAPI Backend

Endpoints:
  GET    /v1/variables                     — Variable catalog (?q= filters)
  GET    /v1/templates                     — Active templates
  GET    /v1/templates/trash               — Trashed templates
  GET    /v1/templates/{id}                — One template record
  POST   /v1/templates/flow                — Create flow template
  PUT    /v1/templates/{id}/flow           — Edit flow template
  POST   /v1/templates/overlay             — Create overlay template (PDF upload)
  PUT    /v1/templates/{id}/overlay        — Edit overlay fields
  GET    /v1/templates/{id}/pdf-page/{n}   — Overlay page preview (PNG)
  POST   /v1/templates/{id}/trash          — Move to trash
  POST   /v1/templates/{id}/restore        — Restore from trash
  DELETE /v1/templates/{id}                — Delete permanently (trashed only)
  POST   /v1/templates/{id}/generate       — Generate the document
  POST   /v1/import/flow                   — Word/PDF/image → flow HTML
  POST   /v1/import/overlay                — PDF → page sizes
  GET/POST/PUT/DELETE /v1/headers          — Header blocks (cabeçalhos)
  GET    /health                           — Health check
"""

import base64
import json
import time
import uuid
from typing import Any

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from minutas.core.config import settings
from minutas.errors import MinutasError
from minutas.lifecycle.manager import TemplateLifecycleManager
from minutas.models.template import OverlayField, PageInfo, to_record
from minutas.overlay.stamp import render_page_png
from minutas.utils.logging import logger


app = FastAPI(
    title="Minutas API",
    description="Document templates with live business-data placeholders.",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Minutas-Report", "X-Pipeline-Duration-Ms", "X-Request-Id", "Content-Disposition"],
)

_manager = TemplateLifecycleManager()


def get_manager() -> TemplateLifecycleManager:
    return _manager


@app.on_event("startup")
async def _startup_banner():
    logger.info("")
    logger.info("╔══════════════════════════════════════════════════╗")
    logger.info("║              Minutas  ·  API Server              ║")
    logger.info("╠══════════════════════════════════════════════════╣")
    logger.info("║  Timezone    : %-34s║", settings.render.timezone)
    logger.info("║  Import limit: %-34s║", f"{settings.limits.max_import_bytes // (1024 * 1024)} MB")
    logger.info("║  Overlay cap : %-34s║", f"{settings.limits.max_overlay_bytes // (1024 * 1024)} MB")
    logger.info("║  soffice     : %-34s║", settings.soffice_bin)
    logger.info("╚══════════════════════════════════════════════════╝")
    logger.info("")


@app.exception_handler(MinutasError)
async def _minutas_error(request: Request, exc: MinutasError):
    logger.warning("%s %s — %s: %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.http_status, content={"detail": exc.to_dict()})


# ──────────────────────────────────────────────────────────
# Request models
# ──────────────────────────────────────────────────────────

class FlowCreateRequest(BaseModel):
    nome: str = Field(..., min_length=1, max_length=200)
    categoria: str = "Geral"
    descricao: str | None = None
    conteudo_html: str = ""
    cabecalho_template_id: str | None = None


class FlowUpdateRequest(BaseModel):
    nome: str | None = Field(default=None, min_length=1, max_length=200)
    categoria: str | None = None
    descricao: str | None = None
    conteudo_html: str | None = None
    cabecalho_template_id: str | None = None


class OverlayUpdateRequest(BaseModel):
    campos_overlay: list[OverlayField] | None = None
    nome: str | None = Field(default=None, min_length=1, max_length=200)
    categoria: str | None = None
    descricao: str | None = None
    tamanho_fonte: float | None = Field(default=None, ge=4, le=72)


class GenerateRequest(BaseModel):
    processo_id: int | str | None = None
    cliente_id: int | str | None = None
    funcionario_id: int | str | None = None


class HeaderRequest(BaseModel):
    nome: str = Field(..., min_length=1, max_length=200)
    descricao: str | None = None
    conteudo_html: str = ""


_FIELDS_ADAPTER = TypeAdapter(list[OverlayField])


def _header_record(header) -> dict[str, Any]:
    return {
        "id": header.id,
        "nome": header.name,
        "descricao": header.description,
        "conteudo_html": header.body_html,
        "criado_em": header.created_at.isoformat(),
        "atualizado_em": header.updated_at.isoformat(),
    }


# ──────────────────────────────────────────────────────────
# Endpoints
# ──────────────────────────────────────────────────────────

@app.get("/health")
async def health():
    return {"status": "ok", "service": "minutas-api", "version": "1.0.0"}


@app.get("/v1/variables")
async def list_variables(q: str = "", manager: TemplateLifecycleManager = Depends(get_manager)):
    """Variable catalog grouped for the sidebar; ``q`` filters by label or field."""
    return [g.to_catalog_dict() for g in manager.registry.search(q)]


@app.get("/v1/templates")
async def list_templates(manager: TemplateLifecycleManager = Depends(get_manager)):
    return [to_record(t) for t in manager.list()]


@app.get("/v1/templates/trash")
async def list_trash(manager: TemplateLifecycleManager = Depends(get_manager)):
    return [to_record(t) for t in manager.list_trash()]


@app.get("/v1/templates/{template_id}")
async def get_template(template_id: str, manager: TemplateLifecycleManager = Depends(get_manager)):
    return to_record(manager.get(template_id))


@app.post("/v1/templates/flow", status_code=201)
async def create_flow(req: FlowCreateRequest, manager: TemplateLifecycleManager = Depends(get_manager)):
    template = manager.create_flow(
        name=req.nome,
        category=req.categoria,
        body_html=req.conteudo_html,
        description=req.descricao,
        header_id=req.cabecalho_template_id,
    )
    return to_record(template)


@app.put("/v1/templates/{template_id}/flow")
async def update_flow(
    template_id: str,
    req: FlowUpdateRequest,
    manager: TemplateLifecycleManager = Depends(get_manager),
):
    names = {
        "nome": "name",
        "categoria": "category",
        "descricao": "description",
        "conteudo_html": "body_html",
        "cabecalho_template_id": "header_id",
    }
    changes = {
        names[k]: v for k, v in req.model_dump(exclude_unset=True).items()
        if v is not None or k in ("descricao", "cabecalho_template_id")
    }
    return to_record(manager.update_flow(template_id, **changes))


@app.post("/v1/templates/overlay", status_code=201)
async def create_overlay(
    file: UploadFile = File(..., description="Source PDF"),
    nome: str = Form(...),
    categoria: str = Form("Geral"),
    descricao: str | None = Form(None),
    campos_overlay: str = Form("[]", description="JSON list of overlay fields"),
    tamanho_fonte: float | None = Form(None),
    manager: TemplateLifecycleManager = Depends(get_manager),
):
    """Upload the PDF and create the template in one step; fields are optional."""
    try:
        fields = _FIELDS_ADAPTER.validate_python(json.loads(campos_overlay or "[]"))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise HTTPException(status_code=422, detail=f"campos_overlay: {exc}")

    content = await file.read()
    imported = await manager.import_overlay_file(file.filename or "upload.pdf", content)
    template = manager.create_overlay(
        name=nome,
        pdf_bytes=imported.pdf_bytes,
        pages=imported.pages,
        category=categoria,
        fields=fields,
        description=descricao,
        default_font_size=tamanho_fonte,
    )
    return to_record(template)


@app.put("/v1/templates/{template_id}/overlay")
async def update_overlay(
    template_id: str,
    req: OverlayUpdateRequest,
    manager: TemplateLifecycleManager = Depends(get_manager),
):
    names = {"nome": "name", "categoria": "category", "descricao": "description", "tamanho_fonte": "default_font_size"}
    data = req.model_dump(exclude_unset=True)
    data.pop("campos_overlay", None)
    changes = {names[k]: v for k, v in data.items() if v is not None}
    template = manager.update_overlay(template_id, fields=req.campos_overlay, **changes)
    return to_record(template)


@app.get("/v1/templates/{template_id}/pdf-page/{page}", response_class=Response)
async def pdf_page(
    template_id: str,
    page: int,
    dpi: int | None = None,
    manager: TemplateLifecycleManager = Depends(get_manager),
):
    """Overlay editor background: one page rendered as PNG."""
    template = manager.get(template_id)
    pdf = manager.get_pdf(template_id)
    if pdf is None:
        raise HTTPException(status_code=404, detail=f"Template {template_id} has no PDF")
    pages = getattr(template, "pages", [])
    if not any(p.page_number == page for p in pages):
        raise HTTPException(status_code=404, detail=f"Page {page} not found ({len(pages)} page(s))")
    dpi = min(max(dpi or settings.render.preview_dpi, 36), 300)
    png = render_page_png(pdf, page, dpi)
    return Response(content=png, media_type="image/png")


@app.post("/v1/templates/{template_id}/trash")
async def trash_template(template_id: str, manager: TemplateLifecycleManager = Depends(get_manager)):
    return to_record(manager.trash(template_id))


@app.post("/v1/templates/{template_id}/restore")
async def restore_template(template_id: str, manager: TemplateLifecycleManager = Depends(get_manager)):
    return to_record(manager.restore(template_id))


@app.delete("/v1/templates/{template_id}", status_code=204)
async def delete_template(template_id: str, manager: TemplateLifecycleManager = Depends(get_manager)):
    manager.delete_permanently(template_id)
    return Response(status_code=204)


@app.post(
    "/v1/templates/{template_id}/generate",
    response_class=Response,
    responses={
        200: {"description": "Generated document (.docx or .pdf)"},
        404: {"description": "Template not found"},
        409: {"description": "Template is in the trash"},
        422: {"description": "Template has no content"},
        504: {"description": "Conversion timed out"},
    },
)
async def generate_document(
    template_id: str,
    req: GenerateRequest,
    manager: TemplateLifecycleManager = Depends(get_manager),
):
    """
    Stamp a template with the data of a process/client and return the file.

    The X-Minutas-Report header carries the non-fatal report (unresolved
    variables, malformed tokens) as base64 JSON.
    """
    request_id = uuid.uuid4().hex[:12]
    start = time.perf_counter()
    logger.info(
        "[%s] POST /v1/templates/%s/generate — processo=%s cliente=%s",
        request_id, template_id, req.processo_id, req.cliente_id,
    )

    try:
        result = await manager.generate(
            template_id,
            cliente_id=req.cliente_id,
            processo_id=req.processo_id,
            funcionario_id=req.funcionario_id,
        )
    except MinutasError as exc:
        logger.warning("[%s] Minutas error: %s", request_id, exc.code)
        raise HTTPException(status_code=exc.http_status, detail=exc.to_dict())
    except Exception as exc:
        logger.exception("[%s] Generation failed", request_id)
        raise HTTPException(status_code=500, detail=str(exc))

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info("[%s] Complete — %d bytes in %.0f ms", request_id, len(result.document), elapsed_ms)

    report_b64 = base64.b64encode(result.report.model_dump_json().encode()).decode("ascii")
    return Response(
        content=result.document,
        media_type=result.artifact.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{result.filename}"',
            "X-Pipeline-Duration-Ms": f"{elapsed_ms:.0f}",
            "X-Request-Id": request_id,
            "X-Minutas-Report": report_b64,
        },
    )


@app.post("/v1/import/flow")
async def import_flow_file(
    file: UploadFile = File(..., description="Word, OpenDocument, RTF, PDF or image"),
    manager: TemplateLifecycleManager = Depends(get_manager),
):
    """Convert a document to flow HTML. Nothing is stored."""
    request_id = uuid.uuid4().hex[:12]
    logger.info("[%s] POST /v1/import/flow — %s", request_id, file.filename)
    content = await file.read()
    try:
        result = await manager.import_flow_file(file.filename or "", content)
    except MinutasError as exc:
        logger.warning("[%s] Import rejected: %s", request_id, exc.code)
        raise HTTPException(status_code=exc.http_status, detail=exc.to_dict())
    except Exception as exc:
        logger.exception("[%s] Import failed", request_id)
        raise HTTPException(status_code=500, detail=str(exc))
    return {
        "html": result.html,
        "variaveis": result.variables_found,
        "origem": result.source_format,
    }


@app.post("/v1/import/overlay")
async def import_overlay_file(
    file: UploadFile = File(..., description="PDF"),
    manager: TemplateLifecycleManager = Depends(get_manager),
):
    """Read page count and page sizes of a PDF. Nothing is stored."""
    request_id = uuid.uuid4().hex[:12]
    logger.info("[%s] POST /v1/import/overlay — %s", request_id, file.filename)
    content = await file.read()
    try:
        result = await manager.import_overlay_file(file.filename or "", content)
    except MinutasError as exc:
        logger.warning("[%s] Import rejected: %s", request_id, exc.code)
        raise HTTPException(status_code=exc.http_status, detail=exc.to_dict())
    return {
        "page_count": result.page_count,
        "paginas": [p.model_dump() for p in result.pages],
    }


@app.get("/v1/headers")
async def list_headers(manager: TemplateLifecycleManager = Depends(get_manager)):
    return [_header_record(h) for h in manager.list_headers()]


@app.post("/v1/headers", status_code=201)
async def create_header(req: HeaderRequest, manager: TemplateLifecycleManager = Depends(get_manager)):
    header = manager.create_header(name=req.nome, body_html=req.conteudo_html, description=req.descricao)
    return _header_record(header)


@app.get("/v1/headers/{header_id}")
async def get_header(header_id: str, manager: TemplateLifecycleManager = Depends(get_manager)):
    return _header_record(manager.get_header(header_id))


@app.put("/v1/headers/{header_id}")
async def update_header(
    header_id: str,
    req: HeaderRequest,
    manager: TemplateLifecycleManager = Depends(get_manager),
):
    header = manager.update_header(
        header_id, name=req.nome, body_html=req.conteudo_html, description=req.descricao,
    )
    return _header_record(header)


@app.delete("/v1/headers/{header_id}", status_code=204)
async def delete_header(header_id: str, manager: TemplateLifecycleManager = Depends(get_manager)):
    manager.delete_header(header_id)
    return Response(status_code=204)
