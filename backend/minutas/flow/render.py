"""
Minutas — Flow template rendering.

Substitutes every ``{{path}}`` token with its resolved, HTML-escaped value.
Unresolved paths become empty strings and malformed tokens are left as they
are; both are collected into the GenerationReport.
"""

from __future__ import annotations

import html as html_lib

import lxml.html
from lxml import etree

from minutas.flow.tokens import TOKEN_RE, extract_variables, find_malformed_tokens
from minutas.models.context import GenerationContext
from minutas.models.job import GenerationReport
from minutas.variables.resolver import VariableResolver

_CONTENT_TAGS = ("img", "table", "hr")


def has_renderable_content(html: str) -> bool:
    """True when the fragment has visible text, a placeholder or an embedded object."""
    if not html or not html.strip():
        return False
    if TOKEN_RE.search(html):
        return True
    try:
        root = lxml.html.fragment_fromstring(html, create_parent="div")
    except (etree.ParserError, etree.XMLSyntaxError, ValueError):
        return bool(html.strip())
    if root.text_content().strip():
        return True
    return any(True for _ in root.iter(*_CONTENT_TAGS))


def render_flow(
    html: str,
    ctx: GenerationContext,
    resolver: VariableResolver,
) -> tuple[str, GenerationReport]:
    """Render one HTML fragment against ``ctx``."""
    paths = extract_variables(html)
    values = resolver.resolve_many(paths, ctx)
    report = GenerationReport(
        unresolved=[p for p, v in values.items() if not v.resolved],
        malformed_tokens=find_malformed_tokens(html),
    )
    if not paths:
        return html, report

    escaped = {p: html_lib.escape(v.text, quote=True) for p, v in values.items()}
    rendered = TOKEN_RE.sub(lambda m: escaped[m.group(1)], html)
    return rendered, report


def render_with_header(
    body_html: str,
    header_html: str | None,
    ctx: GenerationContext,
    resolver: VariableResolver,
) -> tuple[str | None, str, GenerationReport]:
    """
    Render a header block and a body against the same context.

    Returns ``(header, body, merged_report)``; header is None when absent.
    """
    body, report = render_flow(body_html, ctx, resolver)
    if not header_html:
        return None, body, report
    header, header_report = render_flow(header_html, ctx, resolver)
    return header, body, header_report.merge(report)
