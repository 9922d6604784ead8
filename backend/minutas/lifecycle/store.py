"""
Minutas — Template, header and blob storage.

The protocols are what the lifecycle manager and the generation pipeline
depend on; the in-memory implementations back the API process and tests.
Every write bumps a per-record ``version``. Regular saves are last write
wins; only the usage counter is guarded by compare-and-set.
"""

from __future__ import annotations

import threading
from typing import Protocol, Union

from minutas.errors import ConcurrentUsageCountConflictError, TemplateNotFoundError
from minutas.models.template import FlowTemplate, HeaderBlock, OverlayTemplate

AnyTemplate = Union[FlowTemplate, OverlayTemplate]


class TemplateStore(Protocol):
    def get(self, template_id: str) -> AnyTemplate | None: ...
    def save(self, template: AnyTemplate) -> AnyTemplate: ...
    def delete(self, template_id: str) -> None: ...
    def list(self) -> list[AnyTemplate]: ...
    def increment_usage(self, template_id: str, expected_version: int | None = None) -> AnyTemplate: ...


class HeaderStore(Protocol):
    def get(self, header_id: str) -> HeaderBlock | None: ...
    def save(self, header: HeaderBlock) -> HeaderBlock: ...
    def delete(self, header_id: str) -> None: ...
    def list(self) -> list[HeaderBlock]: ...


class BlobStore(Protocol):
    def get(self, key: str) -> bytes | None: ...
    def put(self, key: str, data: bytes) -> None: ...
    def delete(self, key: str) -> None: ...


class InMemoryTemplateStore:
    """Thread-safe dict store. Records go in and out as deep copies."""

    def __init__(self):
        self._lock = threading.Lock()
        self._items: dict[str, AnyTemplate] = {}

    def get(self, template_id: str) -> AnyTemplate | None:
        with self._lock:
            item = self._items.get(template_id)
            return item.model_copy(deep=True) if item is not None else None

    def save(self, template: AnyTemplate) -> AnyTemplate:
        with self._lock:
            current = self._items.get(template.id)
            version = current.version + 1 if current is not None else 1
            stored = template.model_copy(deep=True, update={"version": version})
            self._items[template.id] = stored
            return stored.model_copy(deep=True)

    def delete(self, template_id: str) -> None:
        with self._lock:
            self._items.pop(template_id, None)

    def list(self) -> list[AnyTemplate]:
        with self._lock:
            items = [t.model_copy(deep=True) for t in self._items.values()]
        return sorted(items, key=lambda t: t.updated_at, reverse=True)

    def increment_usage(self, template_id: str, expected_version: int | None = None) -> AnyTemplate:
        """
        Add one use if nobody wrote the record since ``expected_version`` was read.

        With ``expected_version=None`` the increment is unconditional (still atomic).
        """
        with self._lock:
            current = self._items.get(template_id)
            if current is None:
                raise TemplateNotFoundError(template_id)
            if expected_version is not None and current.version != expected_version:
                raise ConcurrentUsageCountConflictError(template_id)
            stored = current.model_copy(
                update={"usage_count": current.usage_count + 1, "version": current.version + 1},
            )
            self._items[template_id] = stored
            return stored.model_copy(deep=True)


class InMemoryHeaderStore:
    def __init__(self):
        self._lock = threading.Lock()
        self._items: dict[str, HeaderBlock] = {}

    def get(self, header_id: str) -> HeaderBlock | None:
        with self._lock:
            item = self._items.get(header_id)
            return item.model_copy() if item is not None else None

    def save(self, header: HeaderBlock) -> HeaderBlock:
        with self._lock:
            self._items[header.id] = header.model_copy()
            return header

    def delete(self, header_id: str) -> None:
        with self._lock:
            self._items.pop(header_id, None)

    def list(self) -> list[HeaderBlock]:
        with self._lock:
            items = list(self._items.values())
        return sorted(items, key=lambda h: h.name.lower())


class InMemoryBlobStore:
    def __init__(self):
        self._lock = threading.Lock()
        self._blobs: dict[str, bytes] = {}

    def get(self, key: str) -> bytes | None:
        with self._lock:
            return self._blobs.get(key)

    def put(self, key: str, data: bytes) -> None:
        with self._lock:
            self._blobs[key] = bytes(data)

    def delete(self, key: str) -> None:
        with self._lock:
            self._blobs.pop(key, None)
