"""Data models for the Extraction Engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

FALLBACK_TITLE = "Webhook issue"

StatusName = Literal["backlog", "todo", "in_progress", "done", "canceled"]


class ExtractedIssue(BaseModel):
    """Structured issue fields produced from a webhook payload."""

    model_config = ConfigDict(extra="ignore")

    title: str
    description: str | None = None
    status: StatusName | None = None
    priority: int | None = Field(default=None, ge=0, le=4)
    labels: list[str] | None = None


@dataclass(frozen=True)
class ToolInvocation:
    """A tool call emitted by the model."""

    name: str
    input: dict[str, Any]
    id: str | None = None


@dataclass(frozen=True)
class GenerationStep:
    """One model turn: its text and any tool calls."""

    text: str = ""
    tool_invocations: list[ToolInvocation] = field(default_factory=list)


@dataclass(frozen=True)
class GenerationUsage:
    """Token counts for a generation call.

    ``input_tokens`` is the total prompt size, cache reads and writes included.
    """

    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0


@dataclass(frozen=True)
class GenerationResult:
    """Normalized response from a generation backend."""

    model: str
    steps: list[GenerationStep] = field(default_factory=list)
    text: str | None = ""
    usage: GenerationUsage | None = None


@dataclass(frozen=True)
class Extracted:
    """The model called ``create_issue`` with structurally valid input."""

    fields: ExtractedIssue


@dataclass(frozen=True)
class Fallback:
    """The model produced no usable tool call; only its raw text is available."""

    raw_text: str

    @property
    def fields(self) -> ExtractedIssue:
        """Issue fields derived from the raw text: the text itself is the title."""
        return ExtractedIssue(title=self.raw_text.strip() or FALLBACK_TITLE)


ExtractionOutcome = Extracted | Fallback


@dataclass(frozen=True)
class UsageReport:
    """Token accounting record for one extraction call."""

    workspace_id: str
    model: str
    input_tokens: int
    output_tokens: int
    cache_creation_input_tokens: int
    cache_read_input_tokens: int
    cost_cents: int
    source: str = "webhook"
