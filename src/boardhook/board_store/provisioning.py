"""Workspace provisioning with the default board layout."""

from __future__ import annotations

from typing import TYPE_CHECKING

from boardhook.board_store.models import IssueStatus
from boardhook.board_store.store import slugify

if TYPE_CHECKING:
    from boardhook.board_store.models import Workspace
    from boardhook.board_store.store import BoardStore

IDENTIFIER_LENGTH = 4

# (name, status), in board order
DEFAULT_COLUMNS: list[tuple[str, IssueStatus]] = [
    ("Backlog", IssueStatus.BACKLOG),
    ("Todo", IssueStatus.TODO),
    ("In Progress", IssueStatus.IN_PROGRESS),
    ("Done", IssueStatus.DONE),
]

DEFAULT_LABELS: list[tuple[str, str]] = [
    ("Bug", "#ef4444"),
    ("Feature", "#3b82f6"),
    ("Improvement", "#22c55e"),
    ("Documentation", "#a855f7"),
]


def derive_identifier(name: str) -> str:
    """Issue identifier prefix for a workspace name, e.g. "Acme Ops" -> "ACME"."""
    prefix = name.upper()[:IDENTIFIER_LENGTH]
    return "".join(c if "A" <= c <= "Z" else "A" for c in prefix)


def provision_workspace(
    store: BoardStore,
    name: str,
    slug: str | None = None,
    identifier: str | None = None,
) -> Workspace:
    """Create a workspace with the default columns and labels.

    Raises:
        WorkspaceExistsError: If the slug is taken
    """
    workspace = store.create_workspace(
        name=name,
        slug=slug or slugify(name, fallback="workspace"),
        identifier=identifier or derive_identifier(name),
    )
    for position, (column_name, status) in enumerate(DEFAULT_COLUMNS):
        store.create_column(workspace.id, column_name, position=position, status=status.value)
    for label_name, color in DEFAULT_LABELS:
        store.create_label(workspace.id, label_name, color=color)
    return workspace
