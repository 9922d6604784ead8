"""Unit tests for placeholder scanning and flow rendering."""

import pytest

from minutas.flow.render import has_renderable_content, render_flow, render_with_header
from minutas.flow.tokens import extract_variables, find_malformed_tokens
from minutas.models.context import GenerationContext

GREETING = "Olá {{entidade.nome}}, hoje é {{sistema.data_hoje}}."


class TestTokens:
    def test_extract_in_order_distinct(self):
        html = "<p>{{a.b}} {{c.d}} {{a.b}}</p>"
        assert extract_variables(html) == ["a.b", "c.d"]

    def test_extract_from_editor_spans(self):
        html = (
            '<p><span data-template-variable="entidade.nif" data-label="NIF" '
            'class="template-variable">{{entidade.nif}}</span></p>'
        )
        assert extract_variables(html) == ["entidade.nif"]

    def test_illegal_characters_are_not_tokens(self):
        assert extract_variables("{{entidade nome}} {{ entidade.nome }}") == []

    @pytest.mark.parametrize("html,expected", [
        ("{{entidade nome}}", ["{{entidade nome}}"]),
        ("Olá {{entidade.nome}", ["{{entidade.nome}"]),
        ("fim }} aqui", ["}}"]),
        ("<p>{{entidade.nome</p>", ["{{entidade.nome"]),
    ])
    def test_malformed(self, html, expected):
        assert find_malformed_tokens(html) == expected

    def test_valid_tokens_are_not_malformed(self):
        assert find_malformed_tokens(GREETING) == []


class TestRenderFlow:
    def test_scenario_a(self, resolver, may_first):
        ctx = GenerationContext(entidade={"nome": "Ana Silva"}, now=may_first)
        html, report = render_flow(GREETING, ctx, resolver)
        assert html == "Olá Ana Silva, hoje é 01/05/2024."
        assert report.unresolved == []
        assert report.clean

    def test_scenario_b_missing_value(self, resolver, may_first):
        ctx = GenerationContext(entidade={}, now=may_first)
        html, report = render_flow(GREETING, ctx, resolver)
        assert html == "Olá , hoje é 01/05/2024."
        assert report.unresolved == ["entidade.nome"]

    def test_no_tokens_is_identity(self, resolver, ctx):
        html = '<p style="margin-left: 40px">Sem variáveis &amp; nada mais</p>'
        out, report = render_flow(html, ctx, resolver)
        assert out == html
        assert report.clean

    def test_values_are_escaped(self, resolver, may_first):
        ctx = GenerationContext(entidade={"nome": 'Silva & "Filhos" <Lda>'}, now=may_first)
        out, _ = render_flow("<p>{{entidade.nome}}</p>", ctx, resolver)
        assert out == "<p>Silva &amp; &quot;Filhos&quot; &lt;Lda&gt;</p>"

    def test_every_occurrence_replaced(self, resolver, ctx):
        out, _ = render_flow("{{entidade.nome}}/{{entidade.nome}}", ctx, resolver)
        assert out == "Ana Silva/Ana Silva"

    def test_unknown_variable_reported_once(self, resolver, ctx):
        out, report = render_flow("{{x.y}} e {{x.y}}", ctx, resolver)
        assert out == " e "
        assert report.unresolved == ["x.y"]

    def test_malformed_left_verbatim(self, resolver, ctx):
        out, report = render_flow("Olá {{entidade nome}} {{entidade.nome}}", ctx, resolver)
        assert out == "Olá {{entidade nome}} Ana Silva"
        assert report.malformed_tokens == ["{{entidade nome}}"]


class TestHeader:
    def test_header_and_body_share_context(self, resolver, ctx):
        header, body, report = render_with_header(
            "<p>{{entidade.nome}} {{processo.estado}}</p>",
            "<p>{{processo.titulo}} {{processo.estado}}</p>",
            ctx,
            resolver,
        )
        assert header == "<p>Constituição de sociedade </p>"
        assert body == "<p>Ana Silva </p>"
        assert report.unresolved == ["processo.estado"]

    def test_no_header(self, resolver, ctx):
        header, body, _ = render_with_header("<p>x</p>", None, ctx, resolver)
        assert header is None
        assert body == "<p>x</p>"


class TestRenderableContent:
    @pytest.mark.parametrize("html", ["", "   ", "<p></p>", "<p> <br></p>"])
    def test_empty(self, html):
        assert not has_renderable_content(html)

    @pytest.mark.parametrize("html", [
        "<p>texto</p>",
        "<p>{{entidade.nome}}</p>",
        '<p><img src="data:image/png;base64,AAAA"></p>',
        "<table><tr><td></td></tr></table>",
    ])
    def test_not_empty(self, html):
        assert has_renderable_content(html)
