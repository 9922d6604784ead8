"""
Minutas — Shared import plumbing: upload checks and timed worker threads.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable, TypeVar

from minutas.errors import ConversionTimeoutError, ImportFormatUnsupportedError, ImportSizeExceededError

T = TypeVar("T")

MB = 1024 * 1024


def extension(filename: str) -> str:
    return Path(filename or "").suffix.lower()


def check_upload(filename: str, content: bytes, allowed: tuple[str, ...], limit_bytes: int) -> str:
    """
    Size first, then extension. Returns the lower-cased extension.

    The size check runs before anything looks inside the file.
    """
    if len(content) > limit_bytes:
        raise ImportSizeExceededError(filename, len(content) / MB, limit_bytes / MB)
    ext = extension(filename)
    if ext not in allowed:
        raise ImportFormatUnsupportedError(filename, list(allowed))
    return ext


async def run_blocking(step: str, timeout: float, fn: Callable[..., T], *args) -> T:
    """Run ``fn(*args)`` in a worker thread; give up after ``timeout`` seconds."""
    try:
        return await asyncio.wait_for(asyncio.to_thread(fn, *args), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise ConversionTimeoutError(step, timeout) from exc
