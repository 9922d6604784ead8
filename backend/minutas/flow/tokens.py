"""
Minutas — Placeholder token scanning.

Flow templates carry placeholders as literal ``{{group.field}}`` text, usually
wrapped by the editor in ``<span data-template-variable=...>``. No nested or
computed expressions exist.
"""

from __future__ import annotations

import re

TOKEN_RE = re.compile(r"\{\{([a-zA-Z0-9_.]+?)\}\}")

# After valid tokens are blanked out, any brace pair left over is malformed:
# either a closed token with illegal characters, or a lone opener/closer.
_LEFTOVER_RE = re.compile(r"\{\{[^{}<>]{0,80}?\}\}|\{\{|\}\}")
_SNIPPET_LEN = 40


def extract_variables(html: str) -> list[str]:
    """Distinct token paths in order of first appearance."""
    return list(dict.fromkeys(m.group(1) for m in TOKEN_RE.finditer(html or "")))


def _snippet(text: str, start: int, match: str) -> str:
    if match != "{{":
        return match
    tail = text[start:start + _SNIPPET_LEN]
    cut = tail.find("<")
    if cut > 0:
        tail = tail[:cut]
    return tail.strip()


def find_malformed_tokens(html: str) -> list[str]:
    """
    Fragments that look like placeholders but do not match the token syntax.

    They stay in the output verbatim; callers only report them.
    """
    if not html:
        return []
    blanked = TOKEN_RE.sub(lambda m: "\x00" * len(m.group(0)), html)
    return [
        _snippet(html, m.start(), m.group(0))
        for m in _LEFTOVER_RE.finditer(blanked)
    ]
