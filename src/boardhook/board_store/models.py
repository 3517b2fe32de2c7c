"""SQLAlchemy models for Board Store."""

from __future__ import annotations

import uuid
from datetime import datetime  # noqa: TC003 - used at runtime for SQLAlchemy
from enum import StrEnum
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
)


class IssueStatus(StrEnum):
    """Workflow status of an issue (and the status tag of a column)."""

    BACKLOG = "backlog"
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    CANCELED = "canceled"


# 0=urgent, 1=high, 2=medium, 3=low, 4=none
PRIORITY_NONE = 4

ACTIVITY_ISSUE_CREATED = "issue_created"


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class Workspace(Base):
    """Workspace model - tenant boundary and issue identifier counter."""

    __tablename__ = "workspaces"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    identifier: Mapped[str] = mapped_column(String(16), nullable=False)
    issue_counter: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    def __init__(
        self,
        name: str,
        slug: str,
        identifier: str,
        id: str | None = None,
        issue_counter: int = 0,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.name = name
        self.slug = slug
        self.identifier = identifier
        self.issue_counter = issue_counter

    def __repr__(self) -> str:
        return f"<Workspace(id={self.id!r}, slug={self.slug!r}, identifier={self.identifier!r})>"


class Column(Base):
    """Column model - a status-tagged, ordered bucket of issues."""

    __tablename__ = "columns"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    workspace_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    is_system: Mapped[bool] = mapped_column(Boolean, nullable=False)

    def __init__(
        self,
        workspace_id: str,
        name: str,
        position: int,
        id: str | None = None,
        status: str | None = None,
        is_system: bool = False,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.workspace_id = workspace_id
        self.name = name
        self.position = position
        self.status = status
        self.is_system = is_system

    def __repr__(self) -> str:
        return f"<Column(id={self.id!r}, name={self.name!r}, status={self.status!r})>"


class Issue(Base):
    """Issue model - a unit of work on the board."""

    __tablename__ = "issues"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    column_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("columns.id", ondelete="CASCADE"), nullable=False
    )
    identifier: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    priority: Mapped[int] = mapped_column(Integer, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    parent_issue_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    def __init__(
        self,
        column_id: str,
        identifier: str,
        title: str,
        position: int,
        id: str | None = None,
        description: str | None = None,
        status: str | None = None,
        priority: int = PRIORITY_NONE,
        parent_issue_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.column_id = column_id
        self.identifier = identifier
        self.title = title
        self.description = description
        self.status = status if status is not None else IssueStatus.TODO.value
        self.priority = priority
        self.position = position
        self.parent_issue_id = parent_issue_id

    def __repr__(self) -> str:
        return f"<Issue(id={self.id!r}, identifier={self.identifier!r}, status={self.status!r})>"


class Label(Base):
    """Label model - workspace-scoped name."""

    __tablename__ = "labels"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    workspace_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    color: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )

    def __init__(
        self,
        workspace_id: str,
        name: str,
        color: str = "#6b7280",
        id: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.workspace_id = workspace_id
        self.name = name
        self.color = color

    def __repr__(self) -> str:
        return f"<Label(id={self.id!r}, name={self.name!r})>"


class IssueLabel(Base):
    """Issue-label association."""

    __tablename__ = "issue_labels"

    issue_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("issues.id", ondelete="CASCADE"), primary_key=True
    )
    label_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("labels.id", ondelete="CASCADE"), primary_key=True
    )


class Activity(Base):
    """Activity model - append-only audit log entry for an issue."""

    __tablename__ = "activities"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    issue_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("issues.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    data: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )

    def __init__(
        self,
        issue_id: str,
        type: str,
        id: str | None = None,
        user_id: str | None = None,
        data: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.issue_id = issue_id
        self.type = type
        self.user_id = user_id
        self.data = data

    def __repr__(self) -> str:
        return f"<Activity(id={self.id!r}, issue_id={self.issue_id!r}, type={self.type!r})>"


class Webhook(Base):
    """Webhook model - a named ingestion endpoint with extraction prompt and defaults."""

    __tablename__ = "webhooks"
    __table_args__ = (UniqueConstraint("workspace_id", "slug", name="uq_webhooks_workspace_slug"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    workspace_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    default_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    default_priority: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # JSON-serialized list of label ids
    default_label_ids: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    def __init__(
        self,
        workspace_id: str,
        name: str,
        slug: str,
        prompt: str,
        id: str | None = None,
        default_status: str | None = None,
        default_priority: int | None = None,
        default_label_ids: str | None = None,
        is_active: bool = True,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.workspace_id = workspace_id
        self.name = name
        self.slug = slug
        self.prompt = prompt
        self.default_status = default_status
        self.default_priority = default_priority
        self.default_label_ids = default_label_ids
        self.is_active = is_active

    def __repr__(self) -> str:
        return f"<Webhook(id={self.id!r}, slug={self.slug!r}, is_active={self.is_active!r})>"


class ApiKey(Base):
    """API key model - stores only the SHA-256 hash and a display prefix."""

    __tablename__ = "api_keys"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    workspace_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    key_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    key_prefix: Mapped[str] = mapped_column(String(8), nullable=False, index=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    last_used_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )

    def __init__(
        self,
        workspace_id: str,
        name: str,
        key_hash: str,
        key_prefix: str,
        id: str | None = None,
        expires_at: datetime | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.workspace_id = workspace_id
        self.name = name
        self.key_hash = key_hash
        self.key_prefix = key_prefix
        self.expires_at = expires_at

    def __repr__(self) -> str:
        return f"<ApiKey(id={self.id!r}, key_prefix={self.key_prefix!r})>"


class TokenUsage(Base):
    """Token usage model - one row per generation call."""

    __tablename__ = "token_usage"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    workspace_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    input_tokens: Mapped[int] = mapped_column(Integer, nullable=False)
    output_tokens: Mapped[int] = mapped_column(Integer, nullable=False)
    total_tokens: Mapped[int] = mapped_column(Integer, nullable=False)
    cache_creation_input_tokens: Mapped[int] = mapped_column(Integer, nullable=False)
    cache_read_input_tokens: Mapped[int] = mapped_column(Integer, nullable=False)
    cost_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    source: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )

    def __init__(
        self,
        workspace_id: str,
        model: str,
        input_tokens: int,
        output_tokens: int,
        cost_cents: int,
        id: str | None = None,
        cache_creation_input_tokens: int = 0,
        cache_read_input_tokens: int = 0,
        source: str = "chat",
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.workspace_id = workspace_id
        self.model = model
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens
        self.total_tokens = input_tokens + output_tokens
        self.cache_creation_input_tokens = cache_creation_input_tokens
        self.cache_read_input_tokens = cache_read_input_tokens
        self.cost_cents = cost_cents
        self.source = source
