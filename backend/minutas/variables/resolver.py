"""
Minutas — Variable resolver.

Turns a ``group.field`` path plus a GenerationContext into the string that
is stamped into the document. Resolution never raises: anything that cannot
be matched to the registry or to a value comes back as Unresolved, which the
renderers write as an empty string and list in the generation report.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Iterable

from minutas.models.context import GenerationContext
from minutas.models.variables import ResolvedValue, VariableKind
from minutas.variables.formatting import clock_fields, format_date, format_number, format_text
from minutas.variables.registry import VariableRegistry

logger = logging.getLogger(__name__)

SECONDARY_GROUP = re.compile(r"^entidade_sec_(\d+)$")

FORMATTERS: dict[VariableKind, Callable[[Any], str]] = {
    VariableKind.TEXT: format_text,
    VariableKind.DATE: format_date,
    VariableKind.NUMBER: format_number,
}


def split_path(path: str) -> tuple[str, str] | None:
    group, sep, field = path.partition(".")
    if not sep or not group or not field:
        return None
    return group, field


class VariableResolver:
    """Resolves placeholder paths against a context, using the registry for types."""

    def __init__(self, registry: VariableRegistry):
        self.registry = registry

    def _group_values(self, group: str, ctx: GenerationContext) -> dict[str, Any] | None:
        if group == "sistema":
            return clock_fields(ctx.now)
        if group in ("entidade", "processo", "dossie", "funcionario"):
            return getattr(ctx, group)
        m = SECONDARY_GROUP.match(group)
        if m:
            idx = int(m.group(1)) - 1
            if 0 <= idx < len(ctx.entidades_secundarias):
                return ctx.entidades_secundarias[idx]
        return None

    def resolve(self, path: str, ctx: GenerationContext) -> ResolvedValue:
        parts = split_path(path)
        if parts is None:
            return ResolvedValue.unresolved(path, "malformed path")

        declared = self.registry.find_field(path)
        if declared is None:
            return ResolvedValue.unresolved(path, "unknown variable")

        group, field = parts
        values = self._group_values(group, ctx)
        if values is None:
            return ResolvedValue.unresolved(path, f"no {group} in context")

        raw = values.get(field)
        if raw is None:
            return ResolvedValue.unresolved(path, "no value")

        text = FORMATTERS[declared.kind](raw)
        return ResolvedValue(path=path, text=text)

    def resolve_many(self, paths: Iterable[str], ctx: GenerationContext) -> dict[str, ResolvedValue]:
        """Resolve each distinct path once, keeping first-seen order."""
        out: dict[str, ResolvedValue] = {}
        for path in paths:
            if path not in out:
                out[path] = self.resolve(path, ctx)
        unresolved = [p for p, v in out.items() if not v.resolved]
        if unresolved:
            logger.debug("Unresolved paths: %s", unresolved)
        return out
