"""Pydantic models for REST API."""

from typing import Any

from pydantic import BaseModel, ConfigDict

from boardhook.board_store import PRIORITY_NONE


class ErrorResponse(BaseModel):
    """Error body returned by every failing endpoint."""

    error: str


class IssueSummary(BaseModel):
    """The created issue as reported back to the webhook sender."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    identifier: str
    title: str
    status: str
    priority: int = PRIORITY_NONE


def issue_to_summary(issue: Any) -> IssueSummary:
    """Convert an Issue model to IssueSummary."""
    return IssueSummary.model_validate(issue)


class WebhookIssueResponse(BaseModel):
    """Response model for a successful webhook delivery."""

    success: bool = True
    issue: IssueSummary


class HealthResponse(BaseModel):
    """Response model for the health check."""

    status: str = "ok"
