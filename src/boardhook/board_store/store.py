"""BoardStore - Main API for Board Store operations."""

from __future__ import annotations

import json
import re
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import defer

from boardhook.board_store.database import Database
from boardhook.board_store.exceptions import (
    ApiKeyNotFoundError,
    WebhookExistsError,
    WebhookNotFoundError,
    WorkspaceExistsError,
    WorkspaceNotFoundError,
)
from boardhook.board_store.models import (
    PRIORITY_NONE,
    Activity,
    ApiKey,
    Column,
    Issue,
    IssueLabel,
    Label,
    TokenUsage,
    Webhook,
    Workspace,
)

SLUG_MAX_LENGTH = 50


def slugify(name: str, fallback: str = "webhook") -> str:
    """Turn a display name into a URL-safe slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")[:SLUG_MAX_LENGTH]
    return slug or fallback


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching what SQLite hands back."""
    return datetime.now(UTC).replace(tzinfo=None)


class BoardStore:
    """Main API for Board Store operations.

    Every method opens its own session and commits before returning, so each
    call is a standalone round trip to the database.
    """

    def __init__(self, db_path: str = "boardhook.db") -> None:
        """Initialize Board Store with SQLite database.

        Creates database and tables if they don't exist.

        Args:
            db_path: Path to SQLite database file
        """
        self._db = Database(db_path)
        self._db.create_tables()

    def close(self) -> None:
        """Close the database connection."""
        self._db.close()

    # --- Workspace Operations ---

    def create_workspace(self, name: str, slug: str, identifier: str) -> Workspace:
        """Create a new workspace.

        Args:
            name: Human-readable workspace name
            slug: URL slug, unique across workspaces
            identifier: Issue identifier prefix, e.g. "AUTO"

        Returns:
            Created Workspace with a zero issue counter

        Raises:
            WorkspaceExistsError: If the slug is taken
        """
        session = self._db.get_session()
        try:
            workspace = Workspace(name=name, slug=slug, identifier=identifier)
            session.add(workspace)
            session.commit()
            session.refresh(workspace)
            return workspace
        except IntegrityError as e:
            session.rollback()
            raise WorkspaceExistsError(f"Workspace with slug '{slug}' already exists") from e
        finally:
            session.close()

    def get_workspace(self, workspace_id: str) -> Workspace:
        """Get workspace by ID.

        Raises:
            WorkspaceNotFoundError: If workspace doesn't exist
        """
        session = self._db.get_session()
        try:
            workspace = session.get(Workspace, workspace_id)
            if workspace is None:
                raise WorkspaceNotFoundError(f"Workspace with id '{workspace_id}' not found")
            return workspace
        finally:
            session.close()

    def get_workspace_by_slug(self, slug: str) -> Workspace:
        """Get workspace by slug.

        Raises:
            WorkspaceNotFoundError: If workspace doesn't exist
        """
        session = self._db.get_session()
        try:
            stmt = select(Workspace).where(Workspace.slug == slug)
            workspace = session.execute(stmt).scalar_one_or_none()
            if workspace is None:
                raise WorkspaceNotFoundError(f"Workspace with slug '{slug}' not found")
            return workspace
        finally:
            session.close()

    def allocate_identifier(self, workspace_id: str) -> str:
        """Increment the workspace issue counter and return the new identifier.

        The increment and the read happen in one UPDATE ... RETURNING statement,
        so concurrent callers always observe distinct counter values.

        Args:
            workspace_id: The workspace's unique ID

        Returns:
            Identifier in "{prefix}-{counter}" form, e.g. "AUTO-42"

        Raises:
            WorkspaceNotFoundError: If workspace doesn't exist
        """
        session = self._db.get_session()
        try:
            stmt = (
                update(Workspace)
                .where(Workspace.id == workspace_id)
                .values(issue_counter=Workspace.issue_counter + 1)
                .returning(Workspace.identifier, Workspace.issue_counter)
                .execution_options(synchronize_session=False)
            )
            row = session.execute(stmt).one_or_none()
            if row is None:
                session.rollback()
                raise WorkspaceNotFoundError(f"Workspace with id '{workspace_id}' not found")
            session.commit()
            return f"{row.identifier}-{row.issue_counter}"
        finally:
            session.close()

    # --- Column Operations ---

    def create_column(
        self,
        workspace_id: str,
        name: str,
        position: int,
        status: str | None = None,
        is_system: bool = False,
    ) -> Column:
        """Create a board column in a workspace."""
        session = self._db.get_session()
        try:
            column = Column(
                workspace_id=workspace_id,
                name=name,
                position=position,
                status=status,
                is_system=is_system,
            )
            session.add(column)
            session.commit()
            session.refresh(column)
            return column
        finally:
            session.close()

    def list_columns(self, workspace_id: str) -> list[Column]:
        """List a workspace's columns ordered by position."""
        session = self._db.get_session()
        try:
            stmt = (
                select(Column)
                .where(Column.workspace_id == workspace_id)
                .order_by(Column.position, Column.id)
            )
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    def resolve_column(self, workspace_id: str, status: str) -> Column | None:
        """Find the column an issue with the given status should land in.

        Prefers a column tagged with the status; otherwise falls back to the
        lowest-position column of the workspace.

        Returns:
            The target Column, or None if the workspace has no columns
        """
        session = self._db.get_session()
        try:
            stmt = (
                select(Column)
                .where(Column.workspace_id == workspace_id, Column.status == status)
                .order_by(Column.position, Column.id)
                .limit(1)
            )
            column = session.execute(stmt).scalar_one_or_none()
            if column is not None:
                return column

            stmt = (
                select(Column)
                .where(Column.workspace_id == workspace_id)
                .order_by(Column.position, Column.id)
                .limit(1)
            )
            return session.execute(stmt).scalar_one_or_none()
        finally:
            session.close()

    # --- Label Operations ---

    def create_label(self, workspace_id: str, name: str, color: str = "#6b7280") -> Label:
        """Create a label in a workspace."""
        session = self._db.get_session()
        try:
            label = Label(workspace_id=workspace_id, name=name, color=color)
            session.add(label)
            session.commit()
            session.refresh(label)
            return label
        finally:
            session.close()

    def list_labels(self, workspace_id: str) -> list[Label]:
        """List a workspace's labels ordered by name."""
        session = self._db.get_session()
        try:
            stmt = select(Label).where(Label.workspace_id == workspace_id).order_by(Label.name)
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    # --- Webhook Operations ---

    def create_webhook(
        self,
        workspace_id: str,
        name: str,
        prompt: str,
        slug: str | None = None,
        default_status: str | None = None,
        default_priority: int | None = None,
        default_label_ids: list[str] | None = None,
    ) -> Webhook:
        """Create a webhook configuration.

        Args:
            workspace_id: Owning workspace
            name: Display name
            prompt: Fixed extraction instructions for the model
            slug: Explicit slug. When omitted one is derived from the name and
                made unique with a numeric suffix.
            default_status: Status that always overrides the extracted one
            default_priority: Priority (0-4) that always overrides the extracted one
            default_label_ids: Label ids always applied to created issues

        Returns:
            Created Webhook, active

        Raises:
            WebhookExistsError: If an explicit slug is already taken
        """
        session = self._db.get_session()
        try:
            if slug is not None:
                slug = slugify(slug)
            else:
                base = slugify(name)
                slug = base
                suffix = 0
                while self._webhook_slug_taken(session, workspace_id, slug):
                    suffix += 1
                    slug = f"{base}-{suffix}"

            webhook = Webhook(
                workspace_id=workspace_id,
                name=name,
                slug=slug,
                prompt=prompt,
                default_status=default_status,
                default_priority=default_priority,
                default_label_ids=json.dumps(default_label_ids) if default_label_ids else None,
            )
            session.add(webhook)
            session.commit()
            session.refresh(webhook)
            return webhook
        except IntegrityError as e:
            session.rollback()
            raise WebhookExistsError(
                f"A webhook with slug '{slug}' already exists in this workspace"
            ) from e
        finally:
            session.close()

    @staticmethod
    def _webhook_slug_taken(session: Any, workspace_id: str, slug: str) -> bool:
        stmt = select(Webhook.id).where(Webhook.workspace_id == workspace_id, Webhook.slug == slug)
        return session.execute(stmt).first() is not None

    def get_webhook(self, workspace_id: str, slug: str) -> Webhook:
        """Get a webhook by workspace and slug, active or not.

        Raises:
            WebhookNotFoundError: If webhook doesn't exist
        """
        session = self._db.get_session()
        try:
            stmt = select(Webhook).where(Webhook.workspace_id == workspace_id, Webhook.slug == slug)
            webhook = session.execute(stmt).scalar_one_or_none()
            if webhook is None:
                raise WebhookNotFoundError(f"Webhook '{slug}' not found in workspace")
            return webhook
        finally:
            session.close()

    def list_webhooks(self, workspace_id: str) -> list[Webhook]:
        """List a workspace's webhooks in creation order."""
        session = self._db.get_session()
        try:
            stmt = (
                select(Webhook)
                .where(Webhook.workspace_id == workspace_id)
                .order_by(Webhook.created_at, Webhook.slug)
            )
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    def set_webhook_active(self, webhook_id: str, is_active: bool) -> Webhook:
        """Enable or disable a webhook.

        Raises:
            WebhookNotFoundError: If webhook doesn't exist
        """
        session = self._db.get_session()
        try:
            webhook = session.get(Webhook, webhook_id)
            if webhook is None:
                raise WebhookNotFoundError(f"Webhook with id '{webhook_id}' not found")
            webhook.is_active = is_active
            session.commit()
            session.refresh(webhook)
            return webhook
        finally:
            session.close()

    def update_webhook(
        self,
        webhook_id: str,
        name: str | None = None,
        prompt: str | None = None,
        default_status: str | None = None,
        default_priority: int | None = None,
        default_label_ids: list[str] | None = None,
        is_active: bool | None = None,
        clear_defaults: bool = False,
    ) -> Webhook:
        """Update webhook fields. Only provided fields are updated.

        Args:
            webhook_id: The webhook's unique ID
            name: New display name (optional)
            prompt: New extraction instructions (optional)
            default_status: New overriding status (optional)
            default_priority: New overriding priority, 0-4 (optional)
            default_label_ids: New default labels; an empty list clears them (optional)
            is_active: Enable or disable the webhook (optional)
            clear_defaults: Drop the default status, priority and labels before
                applying any defaults passed in the same call

        Returns:
            The updated Webhook

        Raises:
            WebhookNotFoundError: If webhook doesn't exist
        """
        session = self._db.get_session()
        try:
            webhook = session.get(Webhook, webhook_id)
            if webhook is None:
                raise WebhookNotFoundError(f"Webhook with id '{webhook_id}' not found")

            if clear_defaults:
                webhook.default_status = None
                webhook.default_priority = None
                webhook.default_label_ids = None

            if name is not None:
                webhook.name = name
            if prompt is not None:
                webhook.prompt = prompt
            if default_status is not None:
                webhook.default_status = default_status
            if default_priority is not None:
                webhook.default_priority = default_priority
            if default_label_ids is not None:
                webhook.default_label_ids = (
                    json.dumps(default_label_ids) if default_label_ids else None
                )
            if is_active is not None:
                webhook.is_active = is_active

            session.commit()
            session.refresh(webhook)
            return webhook
        finally:
            session.close()

    def delete_webhook(self, webhook_id: str) -> None:
        """Delete a webhook. Issues it created are kept.

        Raises:
            WebhookNotFoundError: If webhook doesn't exist
        """
        session = self._db.get_session()
        try:
            webhook = session.get(Webhook, webhook_id)
            if webhook is None:
                raise WebhookNotFoundError(f"Webhook with id '{webhook_id}' not found")
            session.delete(webhook)
            session.commit()
        finally:
            session.close()

    # --- Issue Operations ---

    def create_issue(
        self,
        column_id: str,
        identifier: str,
        title: str,
        status: str,
        description: str | None = None,
        priority: int | None = None,
    ) -> Issue:
        """Create an issue at the end of a column.

        The position is one past the highest top-level issue position in the
        column, so the first issue lands at 0. Sub-issues are not counted. The
        position is a subquery of the INSERT itself, not a separate read.

        Args:
            column_id: Target column
            identifier: Pre-allocated "{prefix}-{n}" identifier
            title: Issue title
            status: Workflow status
            description: Optional longer text
            priority: 0-4; None means 4 (no priority)

        Returns:
            The created Issue
        """
        session = self._db.get_session()
        try:
            next_position = (
                select(func.coalesce(func.max(Issue.position), -1) + 1)
                .where(
                    Issue.column_id == column_id,
                    Issue.parent_issue_id.is_(None),
                )
                .correlate(None)
                .scalar_subquery()
            )

            issue = Issue(
                column_id=column_id,
                identifier=identifier,
                title=title,
                description=description,
                status=status,
                priority=priority if priority is not None else PRIORITY_NONE,
                position=next_position,
            )
            session.add(issue)
            session.commit()
            session.refresh(issue)
            return issue
        finally:
            session.close()

    def list_issues(self, workspace_id: str) -> list[Issue]:
        """List all issues of a workspace in creation order."""
        session = self._db.get_session()
        try:
            stmt = (
                select(Issue)
                .join(Column, Issue.column_id == Column.id)
                .where(Column.workspace_id == workspace_id)
                .order_by(Issue.created_at, Issue.identifier)
            )
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    def add_issue_labels(self, issue_id: str, label_ids: list[str]) -> None:
        """Attach labels to an issue in one batch. No-op for an empty list."""
        if not label_ids:
            return
        session = self._db.get_session()
        try:
            session.add_all([IssueLabel(issue_id=issue_id, label_id=lid) for lid in label_ids])
            session.commit()
        finally:
            session.close()

    def list_issue_label_ids(self, issue_id: str) -> list[str]:
        """Label ids attached to an issue."""
        session = self._db.get_session()
        try:
            stmt = select(IssueLabel.label_id).where(IssueLabel.issue_id == issue_id)
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    # --- Activity Operations ---

    def log_activity(
        self,
        issue_id: str,
        type: str,
        data: dict[str, Any] | None = None,
        user_id: str | None = None,
    ) -> Activity:
        """Append an activity record for an issue."""
        session = self._db.get_session()
        try:
            activity = Activity(
                issue_id=issue_id,
                type=type,
                user_id=user_id,
                data=json.dumps(data) if data is not None else None,
            )
            session.add(activity)
            session.commit()
            session.refresh(activity)
            return activity
        finally:
            session.close()

    def list_activities(self, issue_id: str) -> list[Activity]:
        """List an issue's activities, oldest first."""
        session = self._db.get_session()
        try:
            stmt = (
                select(Activity)
                .where(Activity.issue_id == issue_id)
                .order_by(Activity.created_at, Activity.id)
            )
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    # --- API Key Operations ---

    def create_api_key(
        self,
        workspace_id: str,
        name: str,
        key_hash: str,
        key_prefix: str,
        expires_at: datetime | None = None,
    ) -> ApiKey:
        """Store a hashed API key for a workspace."""
        session = self._db.get_session()
        try:
            api_key = ApiKey(
                workspace_id=workspace_id,
                name=name,
                key_hash=key_hash,
                key_prefix=key_prefix,
                expires_at=expires_at,
            )
            session.add(api_key)
            session.commit()
            session.refresh(api_key)
            return api_key
        finally:
            session.close()

    def find_api_keys_by_prefix(self, key_prefix: str) -> list[ApiKey]:
        """All stored keys sharing a display prefix."""
        session = self._db.get_session()
        try:
            stmt = select(ApiKey).where(ApiKey.key_prefix == key_prefix)
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    def touch_api_key(self, api_key_id: str) -> None:
        """Record that an API key was just used."""
        session = self._db.get_session()
        try:
            stmt = update(ApiKey).where(ApiKey.id == api_key_id).values(last_used_at=utcnow())
            session.execute(stmt)
            session.commit()
        finally:
            session.close()

    def list_api_keys(self, workspace_id: str) -> list[ApiKey]:
        """List a workspace's API keys in creation order.

        The stored hash is not loaded; reading ``key_hash`` on the returned
        objects raises.
        """
        session = self._db.get_session()
        try:
            stmt = (
                select(ApiKey)
                .options(defer(ApiKey.key_hash, raiseload=True))
                .where(ApiKey.workspace_id == workspace_id)
                .order_by(ApiKey.created_at, ApiKey.name)
            )
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    def delete_api_key(self, workspace_id: str, api_key_id: str) -> None:
        """Revoke an API key. The key stops authenticating immediately.

        Raises:
            ApiKeyNotFoundError: If the workspace has no key with that id
        """
        session = self._db.get_session()
        try:
            stmt = delete(ApiKey).where(
                ApiKey.id == api_key_id,
                ApiKey.workspace_id == workspace_id,
            )
            result = session.execute(stmt)
            if result.rowcount == 0:
                session.rollback()
                raise ApiKeyNotFoundError(f"API key '{api_key_id}' not found in workspace")
            session.commit()
        finally:
            session.close()

    # --- Token Usage Operations ---

    def record_token_usage(
        self,
        workspace_id: str,
        model: str,
        input_tokens: int,
        output_tokens: int,
        cost_cents: int,
        cache_creation_input_tokens: int = 0,
        cache_read_input_tokens: int = 0,
        source: str = "chat",
    ) -> TokenUsage:
        """Store one generation call's token counts and cost."""
        session = self._db.get_session()
        try:
            usage = TokenUsage(
                workspace_id=workspace_id,
                model=model,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                cost_cents=cost_cents,
                cache_creation_input_tokens=cache_creation_input_tokens,
                cache_read_input_tokens=cache_read_input_tokens,
                source=source,
            )
            session.add(usage)
            session.commit()
            session.refresh(usage)
            return usage
        finally:
            session.close()

    def list_token_usage(self, workspace_id: str) -> list[TokenUsage]:
        """List a workspace's token usage rows, oldest first."""
        session = self._db.get_session()
        try:
            stmt = (
                select(TokenUsage)
                .where(TokenUsage.workspace_id == workspace_id)
                .order_by(TokenUsage.created_at, TokenUsage.id)
            )
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()
