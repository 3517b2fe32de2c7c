"""REST API for boardhook."""

from boardhook.api.app import app, create_app
from boardhook.api.models import (
    ErrorResponse,
    HealthResponse,
    IssueSummary,
    WebhookIssueResponse,
)

__all__ = [
    "ErrorResponse",
    "HealthResponse",
    "IssueSummary",
    "WebhookIssueResponse",
    "app",
    "create_app",
]
