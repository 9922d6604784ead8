"""
Minutas — Variable registry.

The catalog of placeholder groups shipped with the product. Each group
declares its prefix (the ``group`` part of a path) and its typed fields.
The catalog is built once at import and never mutated; resolvers receive a
``VariableRegistry`` instance so tests can inject a smaller one.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Iterable

from minutas.models.variables import VariableField, VariableGroup, VariableKind

T, D, N = VariableKind.TEXT, VariableKind.DATE, VariableKind.NUMBER

MAX_SECONDARY_ENTITIES = 3
MAX_PARTNERS = 4

_PARTNER_FIELDS = [
    ("nome", "Nome"),
    ("nif", "NIF"),
    ("email", "Email"),
    ("telemovel", "Telemóvel"),
    ("cargo", "Cargo"),
    ("quota", "Quota (valor e tipo)"),
    ("quota_valor", "Quota (valor)"),
    ("quota_percentagem", "Quota (%)"),
]


def _partner_fields() -> list[tuple[str, str, VariableKind]]:
    rows = []
    for n in range(1, MAX_PARTNERS + 1):
        for campo, label in _PARTNER_FIELDS:
            rows.append((f"representante_{n}_{campo}", f"Sócio {n} - {label}", T))
    return rows


ENTIDADE_FIELDS: list[tuple[str, str, VariableKind]] = [
    # dados comuns
    ("tipo", "Tipo (singular/coletivo)", T),
    ("nome", "Nome", T),
    ("designacao", "Designação", T),
    ("email", "Email", T),
    ("telefone", "Telefone", T),
    # morada
    ("morada", "Morada (rua)", T),
    ("codigo_postal", "Código Postal", T),
    ("localidade", "Freguesia", T),
    ("concelho", "Concelho", T),
    ("distrito", "Distrito", T),
    ("pais", "País", T),
    ("morada_completa", "Morada Completa", T),
    # pessoa singular
    ("nif", "NIF", T),
    ("data_nascimento", "Data de Nascimento", D),
    ("estado_civil", "Estado Civil", T),
    ("profissao", "Profissão", T),
    ("naturalidade_freguesia", "Naturalidade (Freguesia)", T),
    ("naturalidade_concelho", "Naturalidade (Concelho)", T),
    ("nacionalidade", "Nacionalidade", T),
    ("num_cc", "N.º Cartão de Cidadão", T),
    ("validade_cc", "Validade CC", D),
    ("num_ss", "N.º Segurança Social", T),
    ("num_sns", "N.º SNS", T),
    ("num_ident_civil", "N.º Identificação Civil", T),
    ("incapacidade", "Incapacidade (%)", N),
    # pessoa coletiva
    ("nome_empresa", "Nome Empresa", T),
    ("nif_empresa", "NIF Empresa", T),
    ("forma_juridica", "Forma Jurídica", T),
    ("data_constituicao", "Data Constituição", D),
    ("registo_comercial", "Registo Comercial", T),
    ("cae", "CAE", T),
    ("capital_social", "Capital Social", T),
    ("codigo_rcbe", "Código RCBE", T),
    # representante legal
    ("representante_nome", "Representante - Nome", T),
    ("representante_nif", "Representante - NIF", T),
    ("representante_email", "Representante - Email", T),
    ("representante_telemovel", "Representante - Telemóvel", T),
    ("representante_cargo", "Representante - Cargo", T),
    *_partner_fields(),
    # documentos e outros
    ("iban", "IBAN", T),
    ("certidao_permanente", "Certidão Permanente", T),
    ("observacoes", "Observações", T),
]

ENTIDADE_SEC_FIELDS = [("tipo_participacao", "Tipo de Participação", T), *ENTIDADE_FIELDS]

PROCESSO_FIELDS = [
    ("titulo", "Título", T),
    ("descricao", "Descrição", T),
    ("tipo", "Tipo", T),
    ("onde_estao", "Onde Estão", T),
    ("estado", "Estado", T),
    ("valor", "Valor", N),
    ("criado_em", "Data de Criação", D),
]

DOSSIE_FIELDS = [
    ("numero", "Número", T),
    ("nome", "Nome", T),
    ("descricao", "Descrição", T),
]

FUNCIONARIO_FIELDS = [
    ("nome", "Nome", T),
    ("email", "Email", T),
    ("cargo", "Cargo", T),
    ("departamento", "Departamento", T),
    ("telefone", "Telefone", T),
]

# Derived from the generation clock, never stored.
SISTEMA_FIELDS = [
    ("data_hoje", "Data de Hoje", D),
    ("dia", "Dia", N),
    ("mes", "Mês (número)", N),
    ("mes_nome", "Mês (nome)", T),
    ("ano", "Ano", N),
    ("hora", "Hora", T),
    ("dia_semana", "Dia da Semana", T),
    ("data_extenso", "Data por Extenso", T),
    ("ano_corrente", "Ano Corrente", N),
]


def _group(name: str, prefix: str, rows: Iterable[tuple[str, str, VariableKind]]) -> VariableGroup:
    return VariableGroup(
        name=name,
        prefix=prefix,
        fields=tuple(
            VariableField(group=prefix, field=field, label=label, kind=kind)
            for field, label, kind in rows
        ),
    )


def build_catalog() -> list[VariableGroup]:
    groups = [_group("Entidade", "entidade", ENTIDADE_FIELDS)]
    for n in range(1, MAX_SECONDARY_ENTITIES + 1):
        groups.append(_group(f"Entidade Secundária {n}", f"entidade_sec_{n}", ENTIDADE_SEC_FIELDS))
    groups += [
        _group("Processo", "processo", PROCESSO_FIELDS),
        _group("Dossiê", "dossie", DOSSIE_FIELDS),
        _group("Funcionário", "funcionario", FUNCIONARIO_FIELDS),
        _group("Sistema", "sistema", SISTEMA_FIELDS),
    ]
    return groups


class VariableRegistry:
    """Read-only lookup over a list of variable groups."""

    def __init__(self, groups: Iterable[VariableGroup]):
        self._groups: tuple[VariableGroup, ...] = tuple(groups)
        self._by_path: dict[str, VariableField] = {}
        for group in self._groups:
            for f in group.fields:
                if f.path in self._by_path:
                    raise ValueError(f"Duplicate variable path in catalog: {f.path}")
                self._by_path[f.path] = f

    def list_groups(self) -> list[VariableGroup]:
        return list(self._groups)

    def find_field(self, path: str) -> VariableField | None:
        return self._by_path.get(path)

    def has_group(self, prefix: str) -> bool:
        return any(g.prefix == prefix for g in self._groups)

    def paths(self) -> list[str]:
        return list(self._by_path)

    def search(self, query: str) -> list[VariableGroup]:
        """Filter fields by label or field id, dropping groups left empty."""
        q = query.strip().lower()
        if not q:
            return self.list_groups()
        result = []
        for group in self._groups:
            matches = tuple(
                f for f in group.fields
                if q in f.label.lower() or q in f.field.lower()
            )
            if matches:
                result.append(group.model_copy(update={"fields": matches}))
        return result


@lru_cache(maxsize=1)
def default_registry() -> VariableRegistry:
    return VariableRegistry(build_catalog())
