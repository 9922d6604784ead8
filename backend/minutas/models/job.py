"""
Minutas — Generation result and report contracts.

Every generation returns a GenerationResult with the document bytes, the
download filename, the non-fatal report and per-step timings.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, Field


class JobState(str, enum.Enum):
    RECEIVED = "RECEIVED"
    VALIDATED = "VALIDATED"
    RENDERED = "RENDERED"
    CONVERTED = "CONVERTED"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"


class StepTiming(BaseModel):
    step: str
    duration_ms: int
    status: str = "ok"  # ok | skipped | failed
    detail: str = ""


class GenerationReport(BaseModel):
    """Non-fatal findings. Never blocks the download."""

    unresolved: list[str] = Field(default_factory=list)
    malformed_tokens: list[str] = Field(default_factory=list)

    def merge(self, other: "GenerationReport") -> "GenerationReport":
        unresolved = list(dict.fromkeys(self.unresolved + other.unresolved))
        malformed = self.malformed_tokens + other.malformed_tokens
        return GenerationReport(unresolved=unresolved, malformed_tokens=malformed)

    @property
    def clean(self) -> bool:
        return not self.unresolved and not self.malformed_tokens


class ArtifactMetadata(BaseModel):
    filename: str
    media_type: str
    size_bytes: int
    content_hash: str = ""  # SHA-256 of the document


class GenerationResult(BaseModel):
    """Complete output contract for every generation job."""

    job_id: str
    template_id: str
    document: bytes = Field(exclude=True)
    artifact: ArtifactMetadata
    report: GenerationReport
    timings: list[StepTiming] = Field(default_factory=list)

    @property
    def filename(self) -> str:
        return self.artifact.filename
