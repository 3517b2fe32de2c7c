"""Auth - API key authentication and per-key rate limiting."""

from boardhook.auth.api_keys import (
    INVALID_KEY_MESSAGE,
    KEY_PREFIX,
    MISSING_HEADER_MESSAGE,
    ApiCaller,
    ApiKeyAuthenticator,
    GeneratedApiKey,
    generate_api_key,
    hash_api_key,
)
from boardhook.auth.exceptions import (
    AuthError,
    InvalidApiKeyError,
    RateLimitExceededError,
    WorkspaceAccessDeniedError,
)
from boardhook.auth.rate_limit import RateLimiter

__all__ = [
    "INVALID_KEY_MESSAGE",
    "KEY_PREFIX",
    "MISSING_HEADER_MESSAGE",
    "ApiCaller",
    "ApiKeyAuthenticator",
    "AuthError",
    "GeneratedApiKey",
    "InvalidApiKeyError",
    "RateLimitExceededError",
    "RateLimiter",
    "WorkspaceAccessDeniedError",
    "generate_api_key",
    "hash_api_key",
]
