"""
Minutas — Editor commands.

The variables sidebar does not reach into the editor. It emits an
``InsertVariable`` command through the callback it was constructed with;
the editor session consumes it at its current cursor.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from minutas.flow.document import FlowDocument
from minutas.models.variables import VariableGroup
from minutas.variables.registry import VariableRegistry


@dataclass(frozen=True)
class InsertVariable:
    path: str
    label: str


@dataclass
class Cursor:
    block: int = 0
    offset: int = 0


class VariablePicker:
    """Sidebar model: searchable catalog that emits insert commands."""

    def __init__(self, registry: VariableRegistry, on_insert: Callable[[InsertVariable], None]):
        self.registry = registry
        self.on_insert = on_insert

    def groups(self, query: str = "") -> list[VariableGroup]:
        return self.registry.search(query)

    def pick(self, path: str) -> InsertVariable:
        field = self.registry.find_field(path)
        if field is None:
            raise KeyError(path)
        group = next(g for g in self.registry.list_groups() if g.prefix == field.group)
        cmd = InsertVariable(path=path, label=f"{group.name} → {field.label}")
        self.on_insert(cmd)
        return cmd


class EditorSession:
    """One open flow editor: the document, its cursor and selection."""

    def __init__(self, document: FlowDocument):
        self.document = document
        self.cursor = Cursor()
        self.selection: tuple[int, int] = (0, 0)

    def move_to(self, block: int, offset: int = 0) -> None:
        self.cursor = Cursor(block, offset)
        self.selection = (block, block)

    def select(self, start: int, end: int) -> None:
        self.selection = (start, end)
        self.cursor = Cursor(end, 0)

    def insert_variable(self, cmd: InsertVariable) -> None:
        if not self.document.blocks:
            return
        self.document.insert_variable(self.cursor.block, self.cursor.offset, cmd.path, cmd.label)
        self.cursor.offset += len("{{%s}}" % cmd.path)

    def indent(self) -> bool:
        return self.document.indent(*self.selection)

    def outdent(self) -> bool:
        return self.document.outdent(*self.selection)

    def html(self) -> str:
        return self.document.to_html()
