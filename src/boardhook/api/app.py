"""FastAPI application setup."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from boardhook.api.dependencies import (
    close_auth,
    close_background_runner,
    close_board_store,
    close_event_manager,
    close_ingestor,
    init_auth,
    init_background_runner,
    init_board_store,
    init_event_manager,
    init_ingestor,
)
from boardhook.api.events import EventViewInvalidator
from boardhook.api.models import ErrorResponse, HealthResponse
from boardhook.api.routes import events, webhooks
from boardhook.auth import (
    ApiKeyAuthenticator,
    InvalidApiKeyError,
    RateLimiter,
    RateLimitExceededError,
    WorkspaceAccessDeniedError,
)
from boardhook.board_store import (
    BoardStoreError,
    WebhookNotFoundError,
    WorkspaceNotFoundError,
)
from boardhook.config import Settings
from boardhook.extraction import AnthropicBackend, ExtractionEngine
from boardhook.ingest import (
    ExtractionFailedError,
    MalformedPayloadError,
    WebhookIngestor,
    WorkspaceHasNoColumnsError,
)

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from boardhook.background import BackgroundRunner
    from boardhook.board_store import BoardStore
    from boardhook.extraction import GenerationBackend, UsageReport

logger = logging.getLogger("boardhook.api")


def _error(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
        headers=headers,
    )


def usage_recorder(store: BoardStore, runner: BackgroundRunner):  # noqa: ANN201
    """Build an ExtractionEngine usage callback that persists reports off the request path."""

    def record(report: UsageReport) -> None:
        runner.submit(
            "record_token_usage",
            store.record_token_usage,
            workspace_id=report.workspace_id,
            model=report.model,
            input_tokens=report.input_tokens,
            output_tokens=report.output_tokens,
            cost_cents=report.cost_cents,
            cache_creation_input_tokens=report.cache_creation_input_tokens,
            cache_read_input_tokens=report.cache_read_input_tokens,
            source=report.source,
        )

    return record


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = app.state.settings

    # Startup
    store = init_board_store(settings.database_path)
    runner = init_background_runner(settings.background_workers)
    event_manager = init_event_manager()
    event_manager.bind_loop(asyncio.get_running_loop())

    init_auth(
        ApiKeyAuthenticator(store, runner=runner),
        RateLimiter(
            limit=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        ),
    )

    backend: GenerationBackend | None = app.state.backend
    owned_backend: AnthropicBackend | None = None
    if backend is None:
        owned_backend = AnthropicBackend(
            api_key=settings.anthropic_api_key,
            model=settings.extraction_model,
            base_url=settings.anthropic_base_url,
            max_tokens=settings.extraction_max_tokens,
            timeout=settings.request_timeout,
        )
        backend = owned_backend
        if not settings.anthropic_api_key:
            logger.warning("No Anthropic API key configured; webhook extraction will fail")

    engine = ExtractionEngine(backend, on_usage=usage_recorder(store, runner))
    init_ingestor(
        WebhookIngestor(
            store,
            engine,
            invalidator=EventViewInvalidator(event_manager),
            runner=runner,
            on_issue_created=event_manager.emit_issue_created,
        )
    )
    logger.info("boardhook API started (db=%s)", settings.database_path)

    yield
    # Shutdown
    close_ingestor()
    close_auth()
    close_background_runner()
    close_event_manager()
    close_board_store()
    if owned_backend is not None:
        owned_backend.close()


def register_exception_handlers(app: FastAPI) -> None:
    """Translate domain exceptions into ``{"error": ...}`` responses."""

    @app.exception_handler(InvalidApiKeyError)
    async def invalid_api_key_handler(_request: Request, exc: InvalidApiKeyError) -> JSONResponse:
        return _error(status.HTTP_401_UNAUTHORIZED, str(exc))

    @app.exception_handler(WorkspaceAccessDeniedError)
    async def access_denied_handler(
        _request: Request, exc: WorkspaceAccessDeniedError
    ) -> JSONResponse:
        logger.warning("Rejected cross-workspace webhook call: %s", exc)
        return _error(status.HTTP_403_FORBIDDEN, "API key does not have access to this workspace")

    @app.exception_handler(RateLimitExceededError)
    async def rate_limit_handler(_request: Request, exc: RateLimitExceededError) -> JSONResponse:
        return _error(
            status.HTTP_429_TOO_MANY_REQUESTS,
            "Rate limit exceeded. Try again later.",
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(WorkspaceNotFoundError)
    async def workspace_not_found_handler(
        _request: Request, _exc: WorkspaceNotFoundError
    ) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, "Workspace not found")

    @app.exception_handler(WebhookNotFoundError)
    async def webhook_not_found_handler(
        _request: Request, _exc: WebhookNotFoundError
    ) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, "Webhook not found or disabled")

    @app.exception_handler(MalformedPayloadError)
    async def malformed_payload_handler(
        _request: Request, _exc: MalformedPayloadError
    ) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid JSON body")

    @app.exception_handler(ExtractionFailedError)
    async def extraction_failed_handler(
        _request: Request, _exc: ExtractionFailedError
    ) -> JSONResponse:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to process webhook data")

    @app.exception_handler(WorkspaceHasNoColumnsError)
    async def no_columns_handler(
        _request: Request, exc: WorkspaceHasNoColumnsError
    ) -> JSONResponse:
        logger.error("Misconfigured workspace: %s", exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Workspace has no columns")

    @app.exception_handler(BoardStoreError)
    async def board_store_error_handler(_request: Request, exc: BoardStoreError) -> JSONResponse:
        logger.error("Board store error: %s", exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

    @app.exception_handler(Exception)
    async def unhandled_error_handler(_request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error: %s", exc, exc_info=exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def create_app(
    settings: Settings | None = None,
    backend: GenerationBackend | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Runtime settings; defaults are used when omitted.
        backend: Generation backend to use instead of the Anthropic API.
    """
    app = FastAPI(
        title="boardhook API",
        description="Turns arbitrary webhook payloads into board issues",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store config for lifespan manager
    app.state.settings = settings or Settings()
    app.state.backend = backend

    register_exception_handlers(app)

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    def health() -> HealthResponse:
        return HealthResponse()

    app.include_router(webhooks.router, prefix="/api")
    app.include_router(events.router, prefix="/api")

    return app


# Default app instance
app = create_app()
