"""
Minutas — Generation context.

A read-only snapshot of the data one document is rendered against. Each
group is a flat ``field -> raw value`` mapping; assembling it from the
business records happens in ``minutas.context.assemble``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GenerationContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    entidade: dict[str, Any] | None = None
    entidades_secundarias: list[dict[str, Any]] = Field(default_factory=list)
    processo: dict[str, Any] | None = None
    dossie: dict[str, Any] | None = None
    funcionario: dict[str, Any] | None = None
    now: datetime

    @field_validator("now")
    @classmethod
    def _must_be_aware(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            raise ValueError("now must be timezone-aware")
        return v
