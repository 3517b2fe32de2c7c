"""Precedence rules between extracted fields and webhook defaults."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from boardhook.board_store import IssueStatus

if TYPE_CHECKING:
    from boardhook.board_store import Webhook
    from boardhook.extraction import ExtractedIssue

DEFAULT_TARGET_STATUS = IssueStatus.TODO.value


@dataclass(frozen=True)
class WebhookDefaults:
    """Values a webhook operator pinned for every issue it creates."""

    status: str | None = None
    priority: int | None = None

    @classmethod
    def from_webhook(cls, webhook: Webhook) -> WebhookDefaults:
        return cls(status=webhook.default_status, priority=webhook.default_priority)


@dataclass(frozen=True)
class ResolvedIssueFields:
    """Issue fields after defaults have been applied."""

    title: str
    description: str | None = None
    status: str | None = None
    priority: int | None = None
    labels: list[str] = field(default_factory=list)

    @property
    def target_status(self) -> str:
        """Status the issue is filed under; "todo" when none was resolved."""
        return self.status or DEFAULT_TARGET_STATUS


def apply_defaults(extracted: ExtractedIssue, defaults: WebhookDefaults) -> ResolvedIssueFields:
    """Merge webhook defaults over extracted fields.

    Precedence:
        - a non-empty default status always replaces the extracted status;
        - a default priority that is not None always replaces the extracted
          priority, including 0 (urgent).

    Title, description and labels always come from extraction.
    """
    status = defaults.status if defaults.status else extracted.status
    priority = defaults.priority if defaults.priority is not None else extracted.priority

    return ResolvedIssueFields(
        title=extracted.title,
        description=extracted.description,
        status=status,
        priority=priority,
        labels=list(extracted.labels or []),
    )
