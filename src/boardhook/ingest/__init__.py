"""Ingest - the webhook-to-issue pipeline."""

from boardhook.ingest.exceptions import (
    ExtractionFailedError,
    IngestError,
    MalformedPayloadError,
    WorkspaceHasNoColumnsError,
)
from boardhook.ingest.labels import parse_default_label_ids, resolve_label_ids
from boardhook.ingest.pipeline import (
    IngestResult,
    ViewInvalidator,
    WebhookIngestor,
    WebhookTarget,
    board_path,
    parse_webhook_body,
)
from boardhook.ingest.policy import (
    DEFAULT_TARGET_STATUS,
    ResolvedIssueFields,
    WebhookDefaults,
    apply_defaults,
)

__all__ = [
    "DEFAULT_TARGET_STATUS",
    "ExtractionFailedError",
    "IngestError",
    "IngestResult",
    "MalformedPayloadError",
    "ResolvedIssueFields",
    "ViewInvalidator",
    "WebhookDefaults",
    "WebhookIngestor",
    "WebhookTarget",
    "WorkspaceHasNoColumnsError",
    "apply_defaults",
    "board_path",
    "parse_default_label_ids",
    "parse_webhook_body",
    "resolve_label_ids",
]
