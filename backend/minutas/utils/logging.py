"""
Minutas — Step logger with duration tracking and generation report summaries.
"""

import logging
import time
from contextlib import contextmanager
from typing import Generator, Iterable

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-7s | %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger("minutas")


@contextmanager
def step_timer(step_name: str) -> Generator[None, None, None]:
    """Context manager that logs the start and duration of a generation/import step."""
    logger.info("▶ %s — started", step_name)
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info("✔ %s — completed in %.0f ms", step_name, elapsed_ms)


def log_report(job_id: str, unresolved: Iterable[str], malformed: Iterable[str]) -> None:
    """Log the non-fatal findings of a generation run, one warning per kind."""
    unresolved = list(unresolved)
    malformed = list(malformed)
    if unresolved:
        logger.warning("[%s] %d unresolved variable(s): %s", job_id, len(unresolved), ", ".join(unresolved))
    if malformed:
        logger.warning("[%s] %d malformed token(s): %s", job_id, len(malformed), " | ".join(malformed))
    if not unresolved and not malformed:
        logger.info("[%s] all placeholders resolved", job_id)
