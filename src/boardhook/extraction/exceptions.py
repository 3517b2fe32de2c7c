"""Custom exceptions for the Extraction Engine."""


class ExtractionError(Exception):
    """Base exception for extraction errors."""


class GenerationBackendError(ExtractionError):
    """The language-model backend call failed (transport, HTTP or payload error)."""
