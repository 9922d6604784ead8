"""Integration tests for FastAPI endpoints (contract tests)."""

import base64
import io
import json
from dataclasses import replace

import pytest
from docx import Document
from httpx import ASGITransport, AsyncClient

from minutas.core.config import ImportLimits
from minutas.lifecycle.manager import TemplateLifecycleManager
from minutas.main import app, get_manager

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


@pytest.fixture
async def client(manager):
    app.dependency_overrides[get_manager] = lambda: manager
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


async def _create_flow(client, **extra):
    body = {"nome": "Procuração", "conteudo_html": "<p>Olá {{entidade.nome}}</p>", **extra}
    resp = await client.post("/v1/templates/flow", json=body)
    assert resp.status_code == 201
    return resp.json()


async def _create_overlay(client, pdf: bytes, fields=()):
    resp = await client.post(
        "/v1/templates/overlay",
        data={"nome": "Requerimento", "campos_overlay": json.dumps(list(fields))},
        files={"file": ("requerimento.pdf", pdf, "application/pdf")},
    )
    return resp


@pytest.mark.asyncio
class TestHealthEndpoint:
    async def test_health_returns_ok(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["version"] == "1.0.0"


@pytest.mark.asyncio
class TestVariablesEndpoint:
    async def test_catalog(self, client):
        resp = await client.get("/v1/variables")
        assert resp.status_code == 200
        prefixes = [g["prefixo"] for g in resp.json()]
        assert "entidade" in prefixes
        assert "sistema" in prefixes

    async def test_search(self, client):
        resp = await client.get("/v1/variables", params={"q": "nif"})
        groups = resp.json()
        assert groups
        for g in groups:
            for f in g["campos"]:
                assert "nif" in (f["campo"] + f["label"]).lower()


@pytest.mark.asyncio
class TestFlowTemplates:
    async def test_create_and_get(self, client):
        created = await _create_flow(client)
        assert created["tipo_template"] == "flow"
        assert created["variaveis"] == ["entidade.nome"]
        assert created["uso_count"] == 0

        resp = await client.get(f"/v1/templates/{created['id']}")
        assert resp.status_code == 200
        assert resp.json()["conteudo_html"] == "<p>Olá {{entidade.nome}}</p>"

    async def test_missing_name_returns_422(self, client):
        resp = await client.post("/v1/templates/flow", json={"conteudo_html": "<p>x</p>"})
        assert resp.status_code == 422

    async def test_update_recomputes_variables(self, client):
        created = await _create_flow(client)
        resp = await client.put(
            f"/v1/templates/{created['id']}/flow",
            json={"conteudo_html": "<p>{{processo.titulo}} {{entidade.nif}}</p>"},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["variaveis"] == ["processo.titulo", "entidade.nif"]
        assert data["nome"] == "Procuração"

    async def test_unknown_template_returns_404(self, client):
        resp = await client.get("/v1/templates/nope")
        assert resp.status_code == 404
        assert resp.json()["detail"]["error_code"] == "TEMPLATE_NOT_FOUND"

    async def test_unknown_header_returns_404(self, client):
        resp = await client.post(
            "/v1/templates/flow", json={"nome": "X", "cabecalho_template_id": "missing"},
        )
        assert resp.status_code == 404
        assert resp.json()["detail"]["error_code"] == "HEADER_NOT_FOUND"


@pytest.mark.asyncio
class TestTrashLifecycle:
    async def test_trash_restore_delete(self, client):
        tid = (await _create_flow(client))["id"]

        resp = await client.delete(f"/v1/templates/{tid}")
        assert resp.status_code == 409
        assert resp.json()["detail"]["error_code"] == "TEMPLATE_NOT_TRASHED"

        resp = await client.post(f"/v1/templates/{tid}/trash")
        assert resp.status_code == 200
        assert resp.json()["eliminado_em"] is not None
        assert [t["id"] for t in (await client.get("/v1/templates/trash")).json()] == [tid]
        assert (await client.get("/v1/templates")).json() == []

        resp = await client.put(f"/v1/templates/{tid}/flow", json={"nome": "Outro"})
        assert resp.status_code == 409

        resp = await client.post(f"/v1/templates/{tid}/restore")
        assert resp.status_code == 200
        assert resp.json()["eliminado_em"] is None

        await client.post(f"/v1/templates/{tid}/trash")
        resp = await client.delete(f"/v1/templates/{tid}")
        assert resp.status_code == 204
        assert (await client.get(f"/v1/templates/{tid}")).status_code == 404

    async def test_restore_active_returns_409(self, client):
        tid = (await _create_flow(client))["id"]
        resp = await client.post(f"/v1/templates/{tid}/restore")
        assert resp.status_code == 409


@pytest.mark.asyncio
class TestOverlayTemplates:
    async def test_create_with_fields(self, client, blank_pdf):
        field = {"page": 1, "x": 100, "y": 700, "width": 200, "height": 20, "variable_path": "entidade.nif"}
        resp = await _create_overlay(client, blank_pdf, [field])
        assert resp.status_code == 201
        data = resp.json()
        assert data["tipo_template"] == "overlay"
        assert data["paginas"] == [{"page_number": 1, "width_pt": 595.0, "height_pt": 842.0}]
        assert data["variaveis"] == ["entidade.nif"]

    async def test_bad_fields_json_returns_422(self, client, blank_pdf):
        resp = await client.post(
            "/v1/templates/overlay",
            data={"nome": "R", "campos_overlay": "not json"},
            files={"file": ("r.pdf", blank_pdf, "application/pdf")},
        )
        assert resp.status_code == 422

    async def test_field_out_of_bounds_returns_422(self, client, blank_pdf):
        tid = (await _create_overlay(client, blank_pdf)).json()["id"]
        resp = await client.put(
            f"/v1/templates/{tid}/overlay",
            json={"campos_overlay": [{"page": 1, "x": 500, "y": 10, "width": 200, "height": 20}]},
        )
        assert resp.status_code == 422
        assert resp.json()["detail"]["error_code"] == "OVERLAY_FIELD_OUT_OF_BOUNDS"

    async def test_field_on_missing_page_returns_422(self, client, blank_pdf):
        tid = (await _create_overlay(client, blank_pdf)).json()["id"]
        resp = await client.put(
            f"/v1/templates/{tid}/overlay",
            json={"campos_overlay": [{"page": 2, "x": 10, "y": 10, "width": 50, "height": 20}]},
        )
        assert resp.status_code == 422
        assert resp.json()["detail"]["error_code"] == "OVERLAY_PAGE_NOT_FOUND"

    async def test_update_font_size(self, client, blank_pdf):
        tid = (await _create_overlay(client, blank_pdf)).json()["id"]
        resp = await client.put(f"/v1/templates/{tid}/overlay", json={"tamanho_fonte": 9})
        assert resp.status_code == 200
        assert resp.json()["tamanho_fonte"] == 9

    async def test_page_preview(self, client, blank_pdf):
        tid = (await _create_overlay(client, blank_pdf)).json()["id"]
        resp = await client.get(f"/v1/templates/{tid}/pdf-page/1", params={"dpi": 72})
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "image/png"
        assert resp.content.startswith(b"\x89PNG")

        resp = await client.get(f"/v1/templates/{tid}/pdf-page/3")
        assert resp.status_code == 404

    async def test_flow_template_has_no_preview(self, client):
        tid = (await _create_flow(client))["id"]
        resp = await client.get(f"/v1/templates/{tid}/pdf-page/1")
        assert resp.status_code == 404


@pytest.mark.asyncio
class TestGenerateEndpoint:
    async def test_flow_document(self, client, manager):
        tid = (await _create_flow(client))["id"]
        resp = await client.post(f"/v1/templates/{tid}/generate", json={"cliente_id": 1})
        assert resp.status_code == 200
        assert resp.headers["content-type"] == DOCX_MIME
        assert resp.headers["content-disposition"] == 'attachment; filename="procuracao-ana-silva.docx"'
        assert len(resp.headers["x-request-id"]) == 12

        report = json.loads(base64.b64decode(resp.headers["x-minutas-report"]))
        assert report == {"unresolved": [], "malformed_tokens": []}

        doc = Document(io.BytesIO(resp.content))
        assert [p.text for p in doc.paragraphs] == ["Olá Ana Silva"]
        assert manager.get(tid).usage_count == 1

    async def test_unresolved_report(self, client):
        tid = (await _create_flow(client))["id"]
        resp = await client.post(f"/v1/templates/{tid}/generate", json={})
        assert resp.status_code == 200
        report = json.loads(base64.b64decode(resp.headers["x-minutas-report"]))
        assert report["unresolved"] == ["entidade.nome"]

    async def test_overlay_document(self, client, blank_pdf):
        field = {"page": 1, "x": 100, "y": 700, "width": 200, "height": 20, "variable_path": "entidade.nome"}
        tid = (await _create_overlay(client, blank_pdf, [field])).json()["id"]
        resp = await client.post(f"/v1/templates/{tid}/generate", json={"processo_id": 10})
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/pdf"
        assert resp.content.startswith(b"%PDF")
        assert "requerimento-silva-filhos-lda.pdf" in resp.headers["content-disposition"]

    async def test_empty_template_returns_422(self, client):
        tid = (await _create_flow(client, conteudo_html=""))["id"]
        resp = await client.post(f"/v1/templates/{tid}/generate", json={})
        assert resp.status_code == 422
        assert resp.json()["detail"]["error_code"] == "TEMPLATE_EMPTY_CONTENT"

    async def test_trashed_template_returns_409(self, client):
        tid = (await _create_flow(client))["id"]
        await client.post(f"/v1/templates/{tid}/trash")
        resp = await client.post(f"/v1/templates/{tid}/generate", json={})
        assert resp.status_code == 409


@pytest.mark.asyncio
class TestImportEndpoints:
    async def test_import_docx(self, client, docx_factory):
        data = docx_factory([("Exmo. Senhor {{entidade.nome}}", 0, 0), ("Artigo primeiro", 30, 0)])
        resp = await client.post("/v1/import/flow", files={"file": ("carta.docx", data, DOCX_MIME)})
        assert resp.status_code == 200
        body = resp.json()
        assert body["origem"] == "docx"
        assert body["variaveis"] == ["entidade.nome"]
        assert "margin-left: 40px" in body["html"]

    async def test_unsupported_format_returns_415(self, client):
        resp = await client.post("/v1/import/flow", files={"file": ("notas.txt", b"ola", "text/plain")})
        assert resp.status_code == 415
        assert resp.json()["detail"]["error_code"] == "IMPORT_FORMAT_UNSUPPORTED"

    async def test_oversized_upload_returns_413(self, source, config, docx_factory):
        small = replace(config, limits=ImportLimits(max_import_bytes=100, max_overlay_bytes=100))
        app.dependency_overrides[get_manager] = lambda: TemplateLifecycleManager(source=source, config=small)
        try:
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
                resp = await c.post(
                    "/v1/import/flow",
                    files={"file": ("carta.docx", docx_factory([("texto", 0, 0)]), DOCX_MIME)},
                )
        finally:
            app.dependency_overrides.clear()
        assert resp.status_code == 413
        assert resp.json()["detail"]["error_code"] == "IMPORT_SIZE_EXCEEDED"

    async def test_import_overlay(self, client, pdf_factory):
        pdf = pdf_factory([(595, 842), (842, 595)])
        resp = await client.post("/v1/import/overlay", files={"file": ("a.pdf", pdf, "application/pdf")})
        assert resp.status_code == 200
        body = resp.json()
        assert body["page_count"] == 2
        assert body["paginas"][1]["width_pt"] == 842.0

    async def test_corrupt_pdf_returns_422(self, client):
        resp = await client.post("/v1/import/overlay", files={"file": ("a.pdf", b"%PDF-garbage", "application/pdf")})
        assert resp.status_code == 422
        assert resp.json()["detail"]["error_code"] == "IMPORT_CORRUPT_FILE"


@pytest.mark.asyncio
class TestHeadersEndpoint:
    async def test_crud(self, client, manager):
        resp = await client.post("/v1/headers", json={"nome": "Timbre", "conteudo_html": "<p>Escritório</p>"})
        assert resp.status_code == 201
        hid = resp.json()["id"]

        tid = (await _create_flow(client, cabecalho_template_id=hid))["id"]
        assert manager.get(tid).header_id == hid

        resp = await client.put(f"/v1/headers/{hid}", json={"nome": "Timbre 2", "conteudo_html": "<p>Novo</p>"})
        assert resp.status_code == 200
        assert resp.json()["nome"] == "Timbre 2"
        assert [h["id"] for h in (await client.get("/v1/headers")).json()] == [hid]

        resp = await client.delete(f"/v1/headers/{hid}")
        assert resp.status_code == 204
        assert (await client.get(f"/v1/headers/{hid}")).status_code == 404
        assert manager.get(tid).header_id is None
