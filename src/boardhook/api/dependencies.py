"""FastAPI dependencies for dependency injection."""

from __future__ import annotations

from collections.abc import Generator  # noqa: TC003
from typing import TYPE_CHECKING, Annotated

from fastapi import Depends, Header

from boardhook.auth import ApiCaller, ApiKeyAuthenticator, RateLimiter
from boardhook.board_store import BoardStore
from boardhook.ingest import WebhookIngestor

if TYPE_CHECKING:
    from boardhook.api.events import EventManager
    from boardhook.background import BackgroundRunner

# Global BoardStore instance (initialized on app startup)
_board_store: BoardStore | None = None


def init_board_store(db_path: str = "boardhook.db") -> BoardStore:
    """Initialize the global BoardStore instance."""
    global _board_store  # noqa: PLW0603
    _board_store = BoardStore(db_path)
    return _board_store


def close_board_store() -> None:
    """Close the global BoardStore instance."""
    global _board_store  # noqa: PLW0603
    if _board_store is not None:
        _board_store.close()
        _board_store = None


def get_board_store() -> Generator[BoardStore, None, None]:
    """Dependency that provides the BoardStore instance."""
    if _board_store is None:
        raise RuntimeError("BoardStore not initialized. Call init_board_store() first.")
    yield _board_store


# Type alias for dependency injection
BoardStoreDep = Annotated[BoardStore, Depends(get_board_store)]

# Global BackgroundRunner instance
_runner: BackgroundRunner | None = None


def init_background_runner(max_workers: int = 4) -> BackgroundRunner:
    """Initialize the global BackgroundRunner instance."""
    from boardhook.background import BackgroundRunner as BR  # noqa: PLC0415

    global _runner  # noqa: PLW0603
    _runner = BR(max_workers=max_workers)
    return _runner


def close_background_runner() -> None:
    """Shut down the global BackgroundRunner, waiting for in-flight tasks."""
    global _runner  # noqa: PLW0603
    if _runner is not None:
        _runner.shutdown(wait=True)
        _runner = None


# Global EventManager instance
_event_manager: EventManager | None = None


def init_event_manager() -> EventManager:
    """Initialize the global EventManager instance."""
    from boardhook.api.events import EventManager as EM  # noqa: PLC0415

    global _event_manager  # noqa: PLW0603
    _event_manager = EM()
    return _event_manager


def close_event_manager() -> None:
    """Drop the global EventManager instance."""
    global _event_manager  # noqa: PLW0603
    _event_manager = None


def get_event_manager() -> Generator[EventManager, None, None]:
    """Dependency that provides the EventManager instance."""
    if _event_manager is None:
        raise RuntimeError("EventManager not initialized. Call init_event_manager() first.")
    yield _event_manager


# Global authenticator and rate limiter (initialized on app startup)
_authenticator: ApiKeyAuthenticator | None = None
_rate_limiter: RateLimiter | None = None


def init_auth(authenticator: ApiKeyAuthenticator, rate_limiter: RateLimiter) -> None:
    """Initialize the global authenticator and rate limiter."""
    global _authenticator, _rate_limiter  # noqa: PLW0603
    _authenticator = authenticator
    _rate_limiter = rate_limiter


def close_auth() -> None:
    """Drop the global authenticator and rate limiter."""
    global _authenticator, _rate_limiter  # noqa: PLW0603
    _authenticator = None
    _rate_limiter = None


def get_authenticator() -> Generator[ApiKeyAuthenticator, None, None]:
    """Dependency that provides the ApiKeyAuthenticator instance."""
    if _authenticator is None:
        raise RuntimeError("Authenticator not initialized. Call init_auth() first.")
    yield _authenticator


def get_rate_limiter() -> Generator[RateLimiter, None, None]:
    """Dependency that provides the RateLimiter instance."""
    if _rate_limiter is None:
        raise RuntimeError("RateLimiter not initialized. Call init_auth() first.")
    yield _rate_limiter


AuthenticatorDep = Annotated[ApiKeyAuthenticator, Depends(get_authenticator)]
RateLimiterDep = Annotated[RateLimiter, Depends(get_rate_limiter)]


def get_api_caller(
    authenticator: AuthenticatorDep,
    rate_limiter: RateLimiterDep,
    authorization: Annotated[str | None, Header()] = None,
) -> ApiCaller:
    """Dependency that authenticates the request, then counts it against the key's limit.

    Raises:
        InvalidApiKeyError: 401
        RateLimitExceededError: 429
    """
    caller = authenticator.authenticate(authorization)
    rate_limiter.check(caller.api_key_id)
    return caller


ApiCallerDep = Annotated[ApiCaller, Depends(get_api_caller)]

# Global WebhookIngestor instance (initialized on app startup)
_ingestor: WebhookIngestor | None = None


def init_ingestor(ingestor: WebhookIngestor) -> None:
    """Initialize the global WebhookIngestor instance."""
    global _ingestor  # noqa: PLW0603
    _ingestor = ingestor


def close_ingestor() -> None:
    """Drop the global WebhookIngestor instance."""
    global _ingestor  # noqa: PLW0603
    _ingestor = None


def get_ingestor() -> Generator[WebhookIngestor, None, None]:
    """Dependency that provides the WebhookIngestor instance."""
    if _ingestor is None:
        raise RuntimeError("WebhookIngestor not initialized. Call init_ingestor() first.")
    yield _ingestor


IngestorDep = Annotated[WebhookIngestor, Depends(get_ingestor)]
