"""
Minutas — Generation context assembly.

Builds the flat per-group snapshot the resolver reads from the business
records (client, process, dossiê, employee, secondary entities). Records
come from a ``ContextSource``; the real one lives in the host application,
``InMemoryContextSource`` backs tests and the standalone API.

Precedence: an explicit ``cliente_id`` always wins over the primary entity
recorded on the process.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol
from zoneinfo import ZoneInfo

from minutas.core.config import RenderConfig, settings
from minutas.models.context import GenerationContext
from minutas.variables.registry import MAX_PARTNERS, MAX_SECONDARY_ENTITIES
from minutas.utils.logging import logger

Record = dict[str, Any]

_ADDRESS_PARTS = ("morada", "codigo_postal", "localidade", "concelho", "distrito", "pais")


class ContextSource(Protocol):
    def get_cliente(self, cliente_id: Any) -> Record | None: ...
    def get_processo(self, processo_id: Any) -> Record | None: ...
    def get_dossie(self, dossie_id: Any) -> Record | None: ...
    def get_funcionario(self, funcionario_id: Any) -> Record | None: ...
    def list_entidades_secundarias(self, processo_id: Any) -> list[Record]: ...


@dataclass
class InMemoryContextSource:
    clientes: dict[Any, Record] = field(default_factory=dict)
    processos: dict[Any, Record] = field(default_factory=dict)
    dossies: dict[Any, Record] = field(default_factory=dict)
    funcionarios: dict[Any, Record] = field(default_factory=dict)
    secundarias: dict[Any, list[Record]] = field(default_factory=dict)

    def get_cliente(self, cliente_id: Any) -> Record | None:
        return self.clientes.get(cliente_id)

    def get_processo(self, processo_id: Any) -> Record | None:
        return self.processos.get(processo_id)

    def get_dossie(self, dossie_id: Any) -> Record | None:
        return self.dossies.get(dossie_id)

    def get_funcionario(self, funcionario_id: Any) -> Record | None:
        return self.funcionarios.get(funcionario_id)

    def list_entidades_secundarias(self, processo_id: Any) -> list[Record]:
        return list(self.secundarias.get(processo_id, []))


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _full_address(rec: Record) -> str | None:
    street = rec.get("morada")
    postal = " ".join(str(rec[k]) for k in ("codigo_postal", "localidade") if not _blank(rec.get(k)))
    tail = [str(rec[k]) for k in ("concelho", "distrito", "pais") if not _blank(rec.get(k))]
    parts = [str(street)] if not _blank(street) else []
    if postal:
        parts.append(postal)
    parts += tail
    return ", ".join(parts) or None


def _quota(rep: Record) -> str | None:
    valor, tipo = rep.get("quota_valor"), rep.get("quota_tipo")
    if _blank(valor):
        return None
    return f"{valor} ({tipo})" if not _blank(tipo) else str(valor)


def flatten_entity(rec: Record) -> Record:
    """
    Flatten a client record into the ``entidade`` field namespace.

    Derives ``morada_completa`` from the address parts, falls back to the
    company name for ``nome``, and expands the ``representantes`` relation
    into ``representante_N_*`` (partners 1..4).
    """
    out = {k: v for k, v in rec.items() if k != "representantes"}
    if _blank(out.get("nome")) and not _blank(out.get("nome_empresa")):
        out["nome"] = out["nome_empresa"]
    if _blank(out.get("morada_completa")) and any(not _blank(rec.get(k)) for k in _ADDRESS_PARTS):
        out["morada_completa"] = _full_address(rec)

    for n, rep in enumerate(rec.get("representantes") or [], start=1):
        if n > MAX_PARTNERS:
            break
        prefix = f"representante_{n}_"
        for key in ("nome", "nif", "email", "telemovel", "cargo", "quota_valor", "quota_percentagem"):
            if key in rep:
                out[prefix + key] = rep[key]
        out[prefix + "quota"] = _quota(rep)
    return out


class ContextAssembler:
    """Assembles a GenerationContext for one (client, process) pair."""

    def __init__(self, source: ContextSource, render: RenderConfig | None = None):
        self.source = source
        self.render = render or settings.render

    def now(self) -> datetime:
        return datetime.now(ZoneInfo(self.render.timezone))

    def assemble(
        self,
        cliente_id: Any = None,
        processo_id: Any = None,
        funcionario_id: Any = None,
        now: datetime | None = None,
    ) -> GenerationContext:
        processo = self.source.get_processo(processo_id) if processo_id is not None else None
        if processo_id is not None and processo is None:
            logger.warning("  Processo %s not found — processo.* will be unresolved", processo_id)

        effective_cliente = cliente_id
        if effective_cliente is None and processo:
            effective_cliente = processo.get("cliente_id")
        elif processo and processo.get("cliente_id") not in (None, cliente_id):
            logger.info(
                "  cliente_id=%s overrides processo %s primary entity %s",
                cliente_id, processo_id, processo.get("cliente_id"),
            )

        cliente = self.source.get_cliente(effective_cliente) if effective_cliente is not None else None

        dossie = None
        if processo and processo.get("dossie_id") is not None:
            dossie = self.source.get_dossie(processo["dossie_id"])

        secundarias: list[Record] = []
        if processo_id is not None:
            for rec in self.source.list_entidades_secundarias(processo_id)[:MAX_SECONDARY_ENTITIES]:
                flat = flatten_entity(rec)
                flat.setdefault("tipo_participacao", rec.get("tipo_participacao"))
                secundarias.append(flat)

        funcionario = self.source.get_funcionario(funcionario_id) if funcionario_id is not None else None

        return GenerationContext(
            entidade=flatten_entity(cliente) if cliente else None,
            entidades_secundarias=secundarias,
            processo=dict(processo) if processo else None,
            dossie=dict(dossie) if dossie else None,
            funcionario=dict(funcionario) if funcionario else None,
            now=now or self.now(),
        )
