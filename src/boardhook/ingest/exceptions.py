"""Custom exceptions for the webhook ingestion pipeline."""


class IngestError(Exception):
    """Base exception for ingestion errors."""


class MalformedPayloadError(IngestError):
    """Request body is not valid JSON."""


class ExtractionFailedError(IngestError):
    """The extraction call itself failed; no issue was created."""


class WorkspaceHasNoColumnsError(IngestError):
    """The workspace has no columns to place an issue in."""
