"""ExtractionEngine - turns opaque webhook payloads into issue fields."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from pydantic import ValidationError

from boardhook.extraction.models import (
    Extracted,
    ExtractedIssue,
    ExtractionOutcome,
    Fallback,
    GenerationResult,
    UsageReport,
)
from boardhook.extraction.prompts import (
    CREATE_ISSUE_TOOL,
    CREATE_ISSUE_TOOL_NAME,
    SYSTEM_PROMPT,
    build_user_prompt,
)
from boardhook.extraction.usage import calculate_cost_cents
from boardhook.logging import truncate_output

if TYPE_CHECKING:
    from boardhook.extraction.backend import GenerationBackend

logger = logging.getLogger("boardhook.extraction")

USAGE_SOURCE = "webhook"


class ExtractionEngine:
    """Extracts structured issue fields with one tool-augmented generation call.

    The model is told it must call ``create_issue``. The first invocation of
    that tool whose input passes schema validation wins; if there is none the
    result is a Fallback carrying the model's raw text.

    Backend errors propagate unchanged. Usage reporting never does.
    """

    def __init__(
        self,
        backend: GenerationBackend,
        on_usage: Callable[[UsageReport], Any] | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            backend: Generation backend to call
            on_usage: Receives a UsageReport after every call. Expected to hand
                the report off without blocking.
        """
        self._backend = backend
        self._on_usage = on_usage

    def extract(self, prompt: str, data: Any, workspace_id: str) -> ExtractionOutcome:
        """Extract issue fields from a payload.

        Args:
            prompt: The webhook's stored extraction instructions
            data: Parsed JSON payload
            workspace_id: Workspace billed for token usage

        Returns:
            Extracted with validated fields, or Fallback with the raw text

        Raises:
            GenerationBackendError: If the backend call fails
        """
        result = self._backend.generate(
            SYSTEM_PROMPT,
            build_user_prompt(prompt, data),
            [CREATE_ISSUE_TOOL],
        )
        self._report_usage(workspace_id, result)

        for step in result.steps:
            for invocation in step.tool_invocations:
                if invocation.name != CREATE_ISSUE_TOOL_NAME:
                    continue
                try:
                    fields = ExtractedIssue.model_validate(invocation.input)
                except ValidationError as e:
                    logger.warning(
                        "Ignoring create_issue call with invalid input: %s",
                        e.errors(include_url=False),
                    )
                    continue
                return Extracted(fields=fields)

        text = result.text or ""
        logger.info(
            "Model did not call create_issue, falling back to raw text: %r",
            truncate_output(text, 200),
        )
        return Fallback(raw_text=text)

    def _report_usage(self, workspace_id: str, result: GenerationResult) -> None:
        if self._on_usage is None or result.usage is None:
            return
        usage = result.usage
        try:
            report = UsageReport(
                workspace_id=workspace_id,
                model=result.model,
                input_tokens=usage.input_tokens,
                output_tokens=usage.output_tokens,
                cache_creation_input_tokens=usage.cache_creation_input_tokens,
                cache_read_input_tokens=usage.cache_read_input_tokens,
                cost_cents=calculate_cost_cents(
                    result.model,
                    usage.input_tokens,
                    usage.output_tokens,
                    usage.cache_creation_input_tokens,
                    usage.cache_read_input_tokens,
                ),
                source=USAGE_SOURCE,
            )
            self._on_usage(report)
        except Exception as e:  # noqa: BLE001 - usage accounting must not fail extraction
            logger.warning("Failed to report token usage: %s", e)
