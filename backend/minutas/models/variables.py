"""
Minutas — Variable catalog contracts.

A placeholder path is ``group.field``; the catalog declares every valid
pair and the kind used to format its value.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict, Field


class VariableKind(str, enum.Enum):
    TEXT = "texto"
    DATE = "data"
    NUMBER = "numero"


class VariableField(BaseModel):
    model_config = ConfigDict(frozen=True)

    group: str
    field: str
    label: str
    kind: VariableKind = VariableKind.TEXT

    @property
    def path(self) -> str:
        return f"{self.group}.{self.field}"


class VariableGroup(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    prefix: str
    fields: tuple[VariableField, ...] = ()

    def to_catalog_dict(self) -> dict:
        """Wire shape of the registry: ``{grupo, prefixo, campos}``."""
        return {
            "grupo": self.name,
            "prefixo": self.prefix,
            "campos": [
                {"campo": f.field, "label": f.label, "tipo": f.kind.value}
                for f in self.fields
            ],
        }


class ResolvedValue(BaseModel):
    """Outcome of resolving one path. ``resolved=False`` is the Unresolved sentinel."""

    model_config = ConfigDict(frozen=True)

    path: str
    text: str = ""
    resolved: bool = True
    reason: str = Field(default="", description="Why the value is unresolved")

    @classmethod
    def unresolved(cls, path: str, reason: str) -> "ResolvedValue":
        return cls(path=path, text="", resolved=False, reason=reason)
