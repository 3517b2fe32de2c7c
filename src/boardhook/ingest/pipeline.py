"""WebhookIngestor - turns one webhook delivery into one board issue."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from boardhook.auth import WorkspaceAccessDeniedError
from boardhook.board_store import (
    ACTIVITY_ISSUE_CREATED,
    WebhookNotFoundError,
)
from boardhook.extraction import Extracted
from boardhook.ingest.exceptions import (
    ExtractionFailedError,
    MalformedPayloadError,
    WorkspaceHasNoColumnsError,
)
from boardhook.ingest.labels import parse_default_label_ids, resolve_label_ids
from boardhook.ingest.policy import WebhookDefaults, apply_defaults

if TYPE_CHECKING:
    from collections.abc import Callable

    from boardhook.background import BackgroundRunner
    from boardhook.board_store import BoardStore, Issue, Webhook, Workspace
    from boardhook.extraction import ExtractionEngine

logger = logging.getLogger("boardhook.ingest")


class ViewInvalidator(Protocol):
    """Signals that a workspace's board view is stale."""

    def invalidate(self, workspace_id: str, path: str) -> None:
        """Mark the view at ``path`` as needing a refresh."""
        ...


@dataclass(frozen=True)
class WebhookTarget:
    """A resolved, active webhook and the workspace that owns it."""

    workspace: Workspace
    webhook: Webhook


@dataclass(frozen=True)
class IngestResult:
    """Outcome of a successful delivery."""

    issue: Issue
    label_ids: list[str] = field(default_factory=list)
    used_fallback: bool = False


def board_path(workspace_slug: str) -> str:
    """Path of a workspace's board view."""
    return f"/w/{workspace_slug}"


def parse_webhook_body(body: bytes) -> Any:
    """Decode a delivery body into the payload handed to extraction.

    A JSON object with a non-null ``data`` key is unwrapped; anything else is
    used as-is.

    Raises:
        MalformedPayloadError: If the body is not valid JSON
    """
    try:
        parsed = json.loads(body)
    except ValueError as e:
        raise MalformedPayloadError("Invalid JSON body") from e

    if isinstance(parsed, dict) and parsed.get("data") is not None:
        return parsed["data"]
    return parsed


class WebhookIngestor:
    """Runs the ingestion pipeline for authenticated webhook deliveries.

    Each step talks to the store in its own round trip; nothing is rolled
    back if a later step fails after the issue row has been written.
    """

    def __init__(
        self,
        store: BoardStore,
        engine: ExtractionEngine,
        invalidator: ViewInvalidator | None = None,
        runner: BackgroundRunner | None = None,
        on_issue_created: Callable[[str, Issue], None] | None = None,
    ) -> None:
        self._store = store
        self._engine = engine
        self._invalidator = invalidator
        self._runner = runner
        self._on_issue_created = on_issue_created

    def resolve_target(
        self, workspace_slug: str, webhook_slug: str, caller_workspace_id: str
    ) -> WebhookTarget:
        """Look up the webhook addressed by the URL and check the caller may use it.

        Raises:
            WorkspaceNotFoundError: If no workspace has the slug
            WorkspaceAccessDeniedError: If the API key belongs to another workspace
            WebhookNotFoundError: If the webhook is missing or disabled
        """
        workspace = self._store.get_workspace_by_slug(workspace_slug)

        if workspace.id != caller_workspace_id:
            raise WorkspaceAccessDeniedError(
                f"API key for workspace {caller_workspace_id} used on workspace {workspace.id}"
            )

        webhook = self._store.get_webhook(workspace.id, webhook_slug)
        if not webhook.is_active:
            raise WebhookNotFoundError(f"Webhook '{webhook_slug}' is disabled")

        return WebhookTarget(workspace=workspace, webhook=webhook)

    def ingest(self, target: WebhookTarget, payload: Any) -> IngestResult:
        """Create an issue from a parsed payload.

        Raises:
            ExtractionFailedError: If the extraction call fails
            WorkspaceHasNoColumnsError: If the workspace has no columns
        """
        workspace, webhook = target.workspace, target.webhook

        try:
            outcome = self._engine.extract(webhook.prompt, payload, workspace.id)
        except Exception as e:
            logger.exception("Webhook %s extraction failed", webhook.id)
            raise ExtractionFailedError(str(e)) from e

        fields = apply_defaults(outcome.fields, WebhookDefaults.from_webhook(webhook))
        target_status = fields.target_status

        column = self._store.resolve_column(workspace.id, target_status)
        if column is None:
            raise WorkspaceHasNoColumnsError(f"Workspace {workspace.id} has no columns")

        identifier = self._store.allocate_identifier(workspace.id)

        issue = self._store.create_issue(
            column_id=column.id,
            identifier=identifier,
            title=fields.title,
            description=fields.description,
            status=target_status,
            priority=fields.priority,
        )

        default_label_ids = parse_default_label_ids(webhook.default_label_ids)
        label_ids: list[str] = []
        if fields.labels or default_label_ids:
            label_ids = resolve_label_ids(
                fields.labels, self._store.list_labels(workspace.id), default_label_ids
            )
        self._store.add_issue_labels(issue.id, label_ids)

        self._store.log_activity(
            issue.id,
            ACTIVITY_ISSUE_CREATED,
            {"source": "webhook", "webhookId": webhook.id},
        )

        self._notify(workspace, issue)

        logger.info(
            "Webhook %s created issue %s in column %s (status=%s, priority=%s, labels=%d)",
            webhook.slug,
            issue.identifier,
            column.name,
            issue.status,
            issue.priority,
            len(label_ids),
        )

        return IngestResult(
            issue=issue,
            label_ids=label_ids,
            used_fallback=not isinstance(outcome, Extracted),
        )

    def _notify(self, workspace: Workspace, issue: Issue) -> None:
        if self._invalidator is not None:
            self._detached(
                "invalidate_view",
                self._invalidator.invalidate,
                workspace.id,
                board_path(workspace.slug),
            )
        if self._on_issue_created is not None:
            self._detached("issue_created", self._on_issue_created, workspace.id, issue)

    def _detached(self, name: str, fn: Callable[..., None], *args: Any) -> None:
        if self._runner is not None:
            self._runner.submit(name, fn, *args)
            return
        try:
            fn(*args)
        except Exception as e:  # noqa: BLE001 - the issue is already created
            logger.warning("%s for workspace %s failed: %s", name, args[0], e)
