"""Minutas data models — typed contracts for the registry, templates and generation."""

from minutas.models.variables import (
    VariableKind,
    VariableField,
    VariableGroup,
    ResolvedValue,
)
from minutas.models.template import (
    TemplateKind,
    TemplateState,
    PageInfo,
    OverlayField,
    FlowTemplate,
    OverlayTemplate,
    Template,
    HeaderBlock,
    to_record,
)
from minutas.models.context import GenerationContext
from minutas.models.imports import FlowImportResult, OverlayImportResult
from minutas.models.job import (
    JobState,
    StepTiming,
    GenerationReport,
    ArtifactMetadata,
    GenerationResult,
)

__all__ = [
    "VariableKind",
    "VariableField",
    "VariableGroup",
    "ResolvedValue",
    "TemplateKind",
    "TemplateState",
    "PageInfo",
    "OverlayField",
    "FlowTemplate",
    "OverlayTemplate",
    "Template",
    "HeaderBlock",
    "to_record",
    "GenerationContext",
    "FlowImportResult",
    "OverlayImportResult",
    "JobState",
    "StepTiming",
    "GenerationReport",
    "ArtifactMetadata",
    "GenerationResult",
]
