"""Webhook ingestion endpoint."""

from fastapi import APIRouter, Request
from starlette.concurrency import run_in_threadpool

from boardhook.api.dependencies import ApiCallerDep, IngestorDep
from boardhook.api.models import ErrorResponse, WebhookIssueResponse, issue_to_summary
from boardhook.ingest import parse_webhook_body

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post(
    "/{workspace_slug}/{webhook_slug}",
    response_model=WebhookIssueResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def receive_webhook(
    workspace_slug: str,
    webhook_slug: str,
    request: Request,
    caller: ApiCallerDep,
    ingestor: IngestorDep,
) -> WebhookIssueResponse:
    """Create an issue from an arbitrary JSON payload.

    The body may be ``{"data": <payload>}`` or the payload itself. Store and
    model calls block, so they run on the thread pool.
    """
    target = await run_in_threadpool(
        ingestor.resolve_target, workspace_slug, webhook_slug, caller.workspace_id
    )
    payload = parse_webhook_body(await request.body())
    result = await run_in_threadpool(ingestor.ingest, target, payload)
    return WebhookIssueResponse(issue=issue_to_summary(result.issue))
