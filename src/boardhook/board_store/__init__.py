"""Board Store - Persistent storage for workspaces, boards, issues and webhooks."""

from boardhook.board_store.exceptions import (
    ApiKeyNotFoundError,
    BoardStoreError,
    WebhookExistsError,
    WebhookNotFoundError,
    WorkspaceExistsError,
    WorkspaceNotFoundError,
)
from boardhook.board_store.models import (
    ACTIVITY_ISSUE_CREATED,
    PRIORITY_NONE,
    Activity,
    ApiKey,
    Column,
    Issue,
    IssueLabel,
    IssueStatus,
    Label,
    TokenUsage,
    Webhook,
    Workspace,
)
from boardhook.board_store.provisioning import (
    DEFAULT_COLUMNS,
    DEFAULT_LABELS,
    derive_identifier,
    provision_workspace,
)
from boardhook.board_store.store import BoardStore, slugify

__all__ = [
    "ACTIVITY_ISSUE_CREATED",
    "DEFAULT_COLUMNS",
    "DEFAULT_LABELS",
    "PRIORITY_NONE",
    "Activity",
    "ApiKey",
    "ApiKeyNotFoundError",
    "BoardStore",
    "BoardStoreError",
    "Column",
    "Issue",
    "IssueLabel",
    "IssueStatus",
    "Label",
    "TokenUsage",
    "Webhook",
    "WebhookExistsError",
    "WebhookNotFoundError",
    "Workspace",
    "WorkspaceExistsError",
    "WorkspaceNotFoundError",
    "derive_identifier",
    "provision_workspace",
    "slugify",
]
