"""
Minutas — Overlay field validation.

Runs when an overlay template is saved. A field must sit on an existing
page and its whole box must fit inside that page; nothing is clamped.
"""

from __future__ import annotations

from typing import Iterable

from minutas.errors import OverlayFieldOutOfBoundsError, OverlayPageNotFoundError
from minutas.models.template import OverlayField, PageInfo


def field_problems(f: OverlayField, page: PageInfo) -> list[str]:
    problems = []
    if f.x < 0:
        problems.append(f"x={f.x} is negative")
    if f.y < 0:
        problems.append(f"y={f.y} is negative")
    if f.width <= 0:
        problems.append(f"width={f.width} must be positive")
    if f.height <= 0:
        problems.append(f"height={f.height} must be positive")
    if f.x + f.width > page.width_pt:
        problems.append(f"right edge {f.x + f.width:g} exceeds page width {page.width_pt:g}")
    if f.y + f.height > page.height_pt:
        problems.append(f"bottom edge {f.y + f.height:g} exceeds page height {page.height_pt:g}")
    return problems


def validate_fields(fields: Iterable[OverlayField], pages: list[PageInfo]) -> None:
    """Raise on the first field that is off-page or out of bounds."""
    by_number = {p.page_number: p for p in pages}
    for f in fields:
        page = by_number.get(f.page)
        if page is None:
            raise OverlayPageNotFoundError(f.id, f.page, len(pages))
        problems = field_problems(f, page)
        if problems:
            raise OverlayFieldOutOfBoundsError(f.id, f.page, problems)
