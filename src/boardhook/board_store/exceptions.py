"""Custom exceptions for Board Store."""


class BoardStoreError(Exception):
    """Base exception for Board Store errors."""


class WorkspaceNotFoundError(BoardStoreError):
    """Workspace with given slug or ID does not exist."""


class WorkspaceExistsError(BoardStoreError):
    """Workspace with given slug already exists."""


class WebhookNotFoundError(BoardStoreError):
    """Webhook does not exist in the workspace, or is disabled."""


class WebhookExistsError(BoardStoreError):
    """Webhook with given slug already exists in the workspace."""


class ApiKeyNotFoundError(BoardStoreError):
    """API key does not exist in the workspace."""
