"""Custom exceptions for request authentication and throttling."""


class AuthError(Exception):
    """Base exception for authentication and authorization failures."""


class InvalidApiKeyError(AuthError):
    """Missing, malformed, unknown or expired API key."""


class WorkspaceAccessDeniedError(AuthError):
    """API key belongs to a different workspace than the one addressed."""


class RateLimitExceededError(AuthError):
    """Too many requests for one API key in the current window."""

    def __init__(self, retry_after: int) -> None:
        super().__init__(f"Rate limit exceeded, retry after {retry_after}s")
        self.retry_after = retry_after
