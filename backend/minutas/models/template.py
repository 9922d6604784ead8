"""
Minutas — Template records.

Templates are a tagged variant on ``kind``: flow templates carry HTML with
inline ``{{group.field}}`` tokens, overlay templates carry positioned fields
over an imported PDF. The PDF bytes themselves live in the blob store.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TemplateKind(str, enum.Enum):
    FLOW = "flow"
    OVERLAY = "overlay"


class TemplateState(str, enum.Enum):
    ACTIVE = "ACTIVE"
    TRASHED = "TRASHED"


class PageInfo(BaseModel):
    page_number: int = Field(ge=1)
    width_pt: float = Field(gt=0)
    height_pt: float = Field(gt=0)


class OverlayField(BaseModel):
    """
    A box on one PDF page, in points, origin at the top-left corner.

    Bounds are checked by ``overlay.validate`` at save time so the editor
    can warn instead of silently moving the box.
    """

    id: str = Field(default_factory=lambda: f"field_{uuid.uuid4().hex[:8]}")
    variable_path: str = ""
    custom_text: str = ""
    page: int
    x: float
    y: float
    width: float
    height: float
    font_size: float | None = Field(default=None, ge=4, le=72)
    font_family: Literal["Helvetica", "Times", "Courier"] = "Helvetica"
    color: str = Field(default="#000000", pattern=r"^#[0-9a-fA-F]{6}$")
    alignment: Literal["left", "center", "right"] = "left"


class TemplateBase(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    category: str = Field(default="Geral", max_length=100)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    usage_count: int = 0
    deleted_at: datetime | None = None
    version: int = Field(default=0, exclude=True)

    @property
    def state(self) -> TemplateState:
        return TemplateState.TRASHED if self.deleted_at else TemplateState.ACTIVE

    @property
    def is_trashed(self) -> bool:
        return self.deleted_at is not None


class FlowTemplate(TemplateBase):
    kind: Literal["flow"] = "flow"
    body_html: str = ""
    declared_variables: list[str] = Field(default_factory=list)
    header_id: str | None = None


class OverlayTemplate(TemplateBase):
    kind: Literal["overlay"] = "overlay"
    pages: list[PageInfo] = Field(default_factory=list)
    fields: list[OverlayField] = Field(default_factory=list)
    default_font_size: float = Field(default=12, ge=4, le=72)
    has_pdf: bool = False

    @property
    def declared_variables(self) -> list[str]:
        seen: dict[str, None] = {}
        for f in self.fields:
            if f.variable_path:
                seen.setdefault(f.variable_path, None)
        return list(seen)


Template = Annotated[Union[FlowTemplate, OverlayTemplate], Field(discriminator="kind")]


class HeaderBlock(BaseModel):
    """Reusable flow fragment (cabeçalho) rendered on top of flow templates."""

    id: str = Field(default_factory=_new_id)
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    body_html: str = ""
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


def to_record(template: FlowTemplate | OverlayTemplate) -> dict:
    """Persistence/wire shape using the record's column names."""
    record = {
        "id": template.id,
        "nome": template.name,
        "descricao": template.description,
        "categoria": template.category,
        "tipo_template": template.kind,
        "uso_count": template.usage_count,
        "variaveis": list(template.declared_variables),
        "criado_em": template.created_at.isoformat(),
        "atualizado_em": template.updated_at.isoformat(),
        "eliminado_em": template.deleted_at.isoformat() if template.deleted_at else None,
    }
    if isinstance(template, FlowTemplate):
        record["conteudo_html"] = template.body_html
        record["cabecalho_template_id"] = template.header_id
    else:
        record["paginas"] = [p.model_dump() for p in template.pages]
        record["campos_overlay"] = [f.model_dump() for f in template.fields]
        record["tamanho_fonte"] = template.default_font_size
    return record
