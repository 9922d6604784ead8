"""
Minutas — Flow document model (paragraph indentation + variable insertion).

Paragraphs and headings carry two layout attributes that must survive an
HTML import/export round trip:

  indent       px, changed by indent/outdent in ``step`` increments and
               clamped to [0, max_indent]; stored as inline ``margin-left``
  text_indent  px, first-line indent; stored as inline ``text-indent``

Values read from imported HTML are kept exactly as found (no snapping),
only the editing commands clamp.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

import lxml.html
from lxml import etree

from minutas.core.config import RenderConfig, settings

BLOCK_TAGS = ("p", "h1", "h2", "h3", "h4", "h5", "h6")
VARIABLE_ATTR = "data-template-variable"

# bare numbers count as px; em, %, auto and friends are not lengths here
_LENGTH_RE = re.compile(r"^\s*(-?(?:\d+(?:\.\d*)?|\.\d+))\s*(px|pt)?\s*$", re.IGNORECASE)
PT_TO_PX = 4 / 3
_MANAGED_PROPS = {"margin-left", "padding-left", "text-indent"}


def parse_length(value: str | None) -> tuple[float, str] | None:
    """``"12.5pt"`` -> ``(12.5, "pt")``; None for anything but a px/pt length."""
    if not value:
        return None
    m = _LENGTH_RE.match(value)
    if not m:
        return None
    return float(m.group(1)), (m.group(2) or "px").lower()


def parse_px(value: str | None) -> float:
    """A px/pt length in px. 0 when missing or in another unit."""
    length = parse_length(value)
    if length is None:
        return 0.0
    number, unit = length
    return number * PT_TO_PX if unit == "pt" else number


def format_px(value: float) -> str:
    return f"{int(value)}px" if value == int(value) else f"{round(value, 2)}px"


def parse_style(style: str | None) -> dict[str, str]:
    out: dict[str, str] = {}
    for decl in (style or "").split(";"):
        name, sep, value = decl.partition(":")
        if sep and name.strip():
            out[name.strip().lower()] = value.strip()
    return out


def format_style(props: dict[str, str]) -> str:
    return "; ".join(f"{k}: {v}" for k, v in props.items())


@dataclass
class Block:
    element: etree._Element
    indent: float = 0
    text_indent: float = 0

    @property
    def tag(self) -> str:
        return self.element.tag

    @property
    def text(self) -> str:
        return self.element.text_content()


class FlowDocument:
    """Editable view over a flow template body."""

    def __init__(self, root: etree._Element, render: RenderConfig | None = None):
        render = render or settings.render
        self.step = render.indent_step
        self.max_indent = render.max_indent
        self.root = root
        self.blocks: list[Block] = []
        for el in root.iter(*BLOCK_TAGS):
            style = parse_style(el.get("style"))
            indent = parse_px(style.get("margin-left") or style.get("padding-left"))
            self.blocks.append(Block(el, indent=indent, text_indent=parse_px(style.get("text-indent"))))

    @classmethod
    def from_html(cls, html: str, render: RenderConfig | None = None) -> "FlowDocument":
        if html and html.strip():
            root = lxml.html.fragment_fromstring(html, create_parent="div")
        else:
            root = lxml.html.Element("div")
        return cls(root, render)

    # ---- indentation ----

    def _selected(self, start: int, end: int | None) -> list[Block]:
        end = start if end is None else end
        lo, hi = sorted((start, end))
        return self.blocks[max(lo, 0):hi + 1]

    def _shift(self, start: int, end: int | None, delta: int) -> bool:
        changed = False
        for block in self._selected(start, end):
            nxt = min(max(block.indent + delta, 0), self.max_indent)
            if nxt != block.indent:
                block.indent = nxt
                changed = True
        return changed

    def indent(self, start: int, end: int | None = None) -> bool:
        """Indent blocks ``start..end`` (inclusive). False when nothing moved."""
        return self._shift(start, end, self.step)

    def outdent(self, start: int, end: int | None = None) -> bool:
        return self._shift(start, end, -self.step)

    def set_text_indent(self, index: int, px: float) -> bool:
        block = self.blocks[index]
        if block.text_indent == px:
            return False
        block.text_indent = px
        return True

    # ---- variables ----

    def insert_variable(self, index: int, offset: int, path: str, label: str | None = None) -> None:
        """Insert a placeholder span at a text offset inside block ``index``."""
        span = lxml.html.Element("span")
        span.set(VARIABLE_ATTR, path)
        span.set("data-label", label or path)
        span.set("class", "template-variable")
        span.text = "{{%s}}" % path
        el = self.blocks[index].element
        if _insert_at(el, max(offset, 0), span) is not None:
            el.append(span)

    # ---- export ----

    def _apply_styles(self) -> None:
        for block in self.blocks:
            props = {
                k: v for k, v in parse_style(block.element.get("style")).items()
                if k not in _MANAGED_PROPS
            }
            if block.indent > 0:
                props["margin-left"] = format_px(block.indent)
            if block.text_indent:
                props["text-indent"] = format_px(block.text_indent)
            if props:
                block.element.set("style", format_style(props))
            elif "style" in block.element.attrib:
                del block.element.attrib["style"]

    def to_html(self) -> str:
        self._apply_styles()
        parts = [self.root.text or ""]
        parts += [lxml.html.tostring(child, encoding="unicode") for child in self.root]
        return "".join(parts)


def _insert_at(el: etree._Element, offset: int, new: etree._Element) -> int | None:
    """Insert ``new`` at a character offset of ``el``'s text. Returns the leftover offset."""
    text = el.text or ""
    if offset <= len(text):
        el.text = text[:offset] or None
        new.tail = text[offset:] or None
        el.insert(0, new)
        return None
    offset -= len(text)
    for child in list(el):
        if child.get(VARIABLE_ATTR) is not None or child.tag in ("img", "br"):
            offset -= len(child.text_content()) if child.tag == "span" else 0
            offset = max(offset, 0)
        else:
            left = _insert_at(child, offset, new)
            if left is None:
                return None
            offset = left
        tail = child.tail or ""
        if offset <= len(tail):
            child.tail = tail[:offset] or None
            new.tail = tail[offset:] or None
            child.addnext(new)
            return None
        offset -= len(tail)
    return offset
