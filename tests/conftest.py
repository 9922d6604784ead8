"""Shared test configuration and fixtures for the Minutas test suite."""

import io
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

# Add backend to Python path so imports work
backend_dir = str(Path(__file__).parent.parent / "backend")
if backend_dir not in sys.path:
    sys.path.insert(0, backend_dir)

from minutas.context.assemble import InMemoryContextSource  # noqa: E402
from minutas.core.config import settings  # noqa: E402
from minutas.lifecycle.manager import TemplateLifecycleManager  # noqa: E402
from minutas.models.context import GenerationContext  # noqa: E402
from minutas.variables.registry import default_registry  # noqa: E402
from minutas.variables.resolver import VariableResolver  # noqa: E402

LISBON = ZoneInfo("Europe/Lisbon")

A4 = (595, 842)


@pytest.fixture(scope="session")
def project_root():
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def registry():
    return default_registry()


@pytest.fixture
def resolver(registry):
    return VariableResolver(registry)


@pytest.fixture
def may_first():
    """Wednesday 1 May 2024, 09:30 in Lisbon."""
    return datetime(2024, 5, 1, 9, 30, tzinfo=LISBON)


@pytest.fixture
def ctx(may_first):
    return GenerationContext(
        entidade={"nome": "Ana Silva", "nif": "123456789", "capital_social": "5000"},
        processo={"titulo": "Constituição de sociedade", "valor": 12345.5, "criado_em": "2024-04-15"},
        now=may_first,
    )


@pytest.fixture
def empty_ctx(may_first):
    return GenerationContext(now=may_first)


@pytest.fixture
def config():
    """Settings with a short conversion timeout for tests."""
    return replace(settings, conversion_timeout=10.0)


def make_pdf(pages=(A4,)) -> bytes:
    """Blank PDF with one page per (width, height) in points."""
    import fitz

    doc = fitz.open()
    for width, height in pages:
        doc.new_page(width=width, height=height)
    data = doc.tobytes()
    doc.close()
    return data


def make_docx(paragraphs) -> bytes:
    """DOCX with ``(text, left_indent_pt, first_line_indent_pt)`` paragraphs."""
    from docx import Document
    from docx.shared import Pt

    doc = Document()
    for text, left, first in paragraphs:
        p = doc.add_paragraph(text)
        if left:
            p.paragraph_format.left_indent = Pt(left)
        if first:
            p.paragraph_format.first_line_indent = Pt(first)
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


@pytest.fixture
def blank_pdf():
    return make_pdf()


@pytest.fixture
def source():
    return InMemoryContextSource(
        clientes={
            1: {
                "nome": "Ana Silva",
                "nif": "123456789",
                "morada": "Rua das Flores 10",
                "codigo_postal": "1000-100",
                "localidade": "Lisboa",
            },
            2: {
                "nome_empresa": "Silva & Filhos, Lda",
                "nif_empresa": "509876543",
                "representantes": [
                    {"nome": "João Silva", "cargo": "Gerente", "quota_valor": 2500, "quota_tipo": "€"},
                ],
            },
        },
        processos={
            10: {"titulo": "Constituição", "cliente_id": 2, "dossie_id": 7, "valor": 1500},
        },
        dossies={7: {"numero": "D-007", "nome": "Sociedades"}},
        funcionarios={3: {"nome": "Rui Costa", "cargo": "Solicitador"}},
        secundarias={
            10: [
                {"nome": "Maria Sousa", "tipo_participacao": "Sócia"},
                {"nome": "Pedro Lima", "tipo_participacao": "Testemunha"},
            ],
        },
    )


@pytest.fixture
def manager(source, config):
    return TemplateLifecycleManager(source=source, config=config)


@pytest.fixture
def pdf_factory():
    return make_pdf


@pytest.fixture
def docx_factory():
    return make_docx
