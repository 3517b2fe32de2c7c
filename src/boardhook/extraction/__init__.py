"""Extraction Engine - AI-assisted structured extraction of issue fields."""

from boardhook.extraction.backend import AnthropicBackend, GenerationBackend
from boardhook.extraction.engine import ExtractionEngine
from boardhook.extraction.exceptions import ExtractionError, GenerationBackendError
from boardhook.extraction.models import (
    FALLBACK_TITLE,
    Extracted,
    ExtractedIssue,
    ExtractionOutcome,
    Fallback,
    GenerationResult,
    GenerationStep,
    GenerationUsage,
    ToolInvocation,
    UsageReport,
)
from boardhook.extraction.usage import calculate_cost_cents

__all__ = [
    "FALLBACK_TITLE",
    "AnthropicBackend",
    "Extracted",
    "ExtractedIssue",
    "ExtractionEngine",
    "ExtractionError",
    "ExtractionOutcome",
    "Fallback",
    "GenerationBackend",
    "GenerationBackendError",
    "GenerationResult",
    "GenerationStep",
    "GenerationUsage",
    "ToolInvocation",
    "UsageReport",
    "calculate_cost_cents",
]
