"""Unit tests for generation context assembly."""

from datetime import datetime

import pytest

from minutas.context.assemble import ContextAssembler, flatten_entity
from minutas.models.context import GenerationContext


class TestFlattenEntity:
    def test_full_address_is_derived(self):
        flat = flatten_entity({
            "nome": "Ana",
            "morada": "Rua das Flores 10",
            "codigo_postal": "1000-100",
            "localidade": "Lisboa",
            "pais": "Portugal",
        })
        assert flat["morada_completa"] == "Rua das Flores 10, 1000-100 Lisboa, Portugal"

    def test_existing_full_address_is_kept(self):
        flat = flatten_entity({"morada": "Rua A", "morada_completa": "Rua A, Porto"})
        assert flat["morada_completa"] == "Rua A, Porto"

    def test_company_name_fallback(self):
        assert flatten_entity({"nome_empresa": "Silva, Lda"})["nome"] == "Silva, Lda"
        assert flatten_entity({"nome": "Ana", "nome_empresa": "Silva, Lda"})["nome"] == "Ana"

    def test_partners_expand(self):
        flat = flatten_entity({
            "nome_empresa": "Silva, Lda",
            "representantes": [
                {"nome": "João", "nif": "111", "quota_valor": 2500, "quota_tipo": "€"},
                {"nome": "Rita", "quota_percentagem": 50},
            ],
        })
        assert flat["representante_1_nome"] == "João"
        assert flat["representante_1_quota"] == "2500 (€)"
        assert flat["representante_2_quota_percentagem"] == 50
        assert flat["representante_2_quota"] is None
        assert "representantes" not in flat

    def test_at_most_four_partners(self):
        flat = flatten_entity({"representantes": [{"nome": str(i)} for i in range(6)]})
        assert "representante_4_nome" in flat
        assert "representante_5_nome" not in flat


class TestAssembler:
    def test_process_entity_is_used_by_default(self, source, may_first):
        ctx = ContextAssembler(source).assemble(processo_id=10, now=may_first)
        assert ctx.entidade["nome"] == "Silva & Filhos, Lda"
        assert ctx.entidade["representante_1_quota"] == "2500 (€)"
        assert ctx.processo["titulo"] == "Constituição"
        assert ctx.dossie["numero"] == "D-007"

    def test_explicit_cliente_wins(self, source, may_first):
        ctx = ContextAssembler(source).assemble(cliente_id=1, processo_id=10, now=may_first)
        assert ctx.entidade["nome"] == "Ana Silva"
        assert ctx.processo["titulo"] == "Constituição"

    def test_secondary_entities(self, source, may_first):
        ctx = ContextAssembler(source).assemble(processo_id=10, now=may_first)
        assert [e["nome"] for e in ctx.entidades_secundarias] == ["Maria Sousa", "Pedro Lima"]
        assert ctx.entidades_secundarias[1]["tipo_participacao"] == "Testemunha"

    def test_missing_records_leave_groups_empty(self, source, may_first):
        ctx = ContextAssembler(source).assemble(cliente_id=99, processo_id=99, now=may_first)
        assert ctx.entidade is None
        assert ctx.processo is None
        assert ctx.dossie is None
        assert ctx.entidades_secundarias == []

    def test_employee(self, source, may_first):
        ctx = ContextAssembler(source).assemble(funcionario_id=3, now=may_first)
        assert ctx.funcionario["cargo"] == "Solicitador"

    def test_default_clock_is_configured_zone(self, source):
        ctx = ContextAssembler(source).assemble()
        assert ctx.now.tzinfo is not None
        assert str(ctx.now.tzinfo) == "Europe/Lisbon"


def test_naive_now_rejected():
    with pytest.raises(ValueError):
        GenerationContext(now=datetime(2024, 5, 1))
