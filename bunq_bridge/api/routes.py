"""
FastAPI routes exposing one endpoint per Bunq node operation.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any, Dict, List

from fastapi import APIRouter, Body, Depends, Query

from bunq_bridge.clients.bunq_http import BunqHttpClient
from bunq_bridge.core.errors import BunqError
from bunq_bridge.dependencies import (
    get_account_service,
    get_app_settings,
    get_bunq_credential,
    get_callback_service,
    get_event_queue,
    get_payment_service,
    get_request_signer,
    get_session_manager,
    get_webhook_service,
)
from bunq_bridge.schemas import (
    CreatePaymentsRequest,
    NotificationCategory,
    OperationResult,
    RetryCallbacksRequest,
    SessionRequest,
    SignRequest,
    SignResponse,
    WebhookRegistration,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def _failure_items(exc: BunqError, continue_on_fail: bool) -> OperationResult:
    """Return an error item for ``exc`` or re-raise it when failures are fatal."""
    return OperationResult(
        items=BunqHttpClient.handle_execute_error(exc, 1, continue_on_fail)
    )


@router.get("/health", status_code=HTTPStatus.OK)
async def health(settings: Annotated[Any, Depends(get_app_settings)]) -> dict:
    return {"status": "ok", "environment": settings.bunq.environment}


@router.post("/session", response_model=OperationResult)
async def create_session(
    payload: SessionRequest,
    session_manager: Annotated[Any, Depends(get_session_manager)],
    credential: Annotated[Any, Depends(get_bunq_credential)],
) -> OperationResult:
    """Return a valid session, creating or renewing it when needed."""
    try:
        descriptor = await session_manager.ensure_session(
            credential, force_recreate=payload.force_recreate
        )
    except BunqError as exc:
        return _failure_items(exc, payload.continue_on_fail)
    return OperationResult(items=[descriptor.model_dump()])


@router.get("/monetary-accounts", response_model=OperationResult)
async def list_monetary_accounts(
    service: Annotated[Any, Depends(get_account_service)],
    account_types: str = Query(
        "bank,savings,joint",
        description="Comma separated subset of bank, savings and joint.",
    ),
    continue_on_fail: bool = Query(False),
) -> OperationResult:
    requested = [value for value in account_types.split(",") if value.strip()]
    try:
        accounts = await service.list_accounts(requested)
    except BunqError as exc:
        return _failure_items(exc, continue_on_fail)
    return OperationResult(items=accounts)


@router.get(
    "/monetary-accounts/{monetary_account_id}/payments",
    response_model=OperationResult,
)
async def list_payments(
    monetary_account_id: int,
    service: Annotated[Any, Depends(get_payment_service)],
    limit: int = Query(50, description="Maximum number of payments; 0 returns all."),
    last_days: int | None = Query(
        None, ge=1, description="Only return payments from the last N days."
    ),
    items_per_page: int = Query(50, description="Page size between 1 and 200."),
    continue_on_fail: bool = Query(False),
) -> OperationResult:
    """List payments for a monetary account, newest first."""
    try:
        payments = await service.list_payments(
            monetary_account_id=monetary_account_id,
            limit=limit,
            last_days=last_days,
            items_per_page=items_per_page,
        )
    except BunqError as exc:
        return _failure_items(exc, continue_on_fail)
    return OperationResult(items=payments)


@router.post(
    "/monetary-accounts/{monetary_account_id}/payments",
    response_model=OperationResult,
    status_code=HTTPStatus.CREATED,
)
async def create_payments(
    monetary_account_id: int,
    payload: CreatePaymentsRequest,
    service: Annotated[Any, Depends(get_payment_service)],
) -> OperationResult:
    """Create each payment in the batch; failures stop the batch unless allowed."""
    results = await service.create_payments(
        monetary_account_id=monetary_account_id,
        items=payload.items,
        continue_on_fail=payload.continue_on_fail,
    )
    return OperationResult(items=results)


@router.get("/callbacks/failed", response_model=OperationResult)
async def list_failed_callbacks(
    service: Annotated[Any, Depends(get_callback_service)],
    continue_on_fail: bool = Query(False),
) -> OperationResult:
    try:
        result = await service.list_failed()
    except BunqError as exc:
        return _failure_items(exc, continue_on_fail)
    return OperationResult(items=[result])


@router.post("/callbacks/failed/retry", response_model=OperationResult)
async def retry_failed_callbacks(
    payload: RetryCallbacksRequest,
    service: Annotated[Any, Depends(get_callback_service)],
) -> OperationResult:
    try:
        result = await service.retry_failed(payload.notification_ids)
    except BunqError as exc:
        return _failure_items(exc, payload.continue_on_fail)
    return OperationResult(items=[result])


@router.post("/sign", response_model=SignResponse)
async def sign_body(
    payload: SignRequest,
    signer: Annotated[Any, Depends(get_request_signer)],
) -> SignResponse:
    """Sign an arbitrary body with the configured private key."""
    return SignResponse(body=payload.body, signature=signer.sign(payload.body))


@router.get("/webhooks", status_code=HTTPStatus.OK)
async def check_webhook(
    service: Annotated[Any, Depends(get_webhook_service)],
    url: str = Query(..., description="Callback URL to look for."),
    categories: List[NotificationCategory] = Query(["MUTATION"]),
) -> dict:
    exists = await service.check_exists(url, categories)
    return {"url": url, "categories": categories, "exists": exists}


@router.post("/webhooks", status_code=HTTPStatus.CREATED)
async def register_webhook(
    payload: WebhookRegistration,
    service: Annotated[Any, Depends(get_webhook_service)],
) -> dict:
    """Route the requested notification categories to ``payload.url``."""
    created = await service.create(payload.url, payload.categories)
    return {"url": payload.url, "categories": payload.categories, "registered": created}


@router.delete("/webhooks", status_code=HTTPStatus.OK)
async def remove_webhook(
    service: Annotated[Any, Depends(get_webhook_service)],
    url: str = Query(..., description="Callback URL to unregister."),
) -> dict:
    deleted = await service.delete(url)
    return {"url": url, "deleted": deleted}


@router.post("/webhooks/bunq", status_code=HTTPStatus.ACCEPTED)
async def receive_bunq_notification(
    queue: Annotated[Any, Depends(get_event_queue)],
    payload: Dict[str, Any] = Body(...),
) -> dict:
    """Accept a Bunq callback and queue it for the workflow."""
    event_id = queue.enqueue_event(payload)
    logger.info("Queued Bunq notification %s", event_id)
    return {"status": "queued", "event_id": event_id}


__all__ = ["router"]
