"""Webhook management API router."""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from rwa_ledger.common.security import require_caller
from rwa_ledger.notifications.schemas import (
    WebhookDeliveryResponse,
    WebhookEndpointCreate,
    WebhookEndpointResponse,
    WebhookEndpointUpdate,
)

router = APIRouter()


def _get_service():
    from rwa_ledger.deps import get_webhook_service
    return get_webhook_service()


def _get_gate():
    from rwa_ledger.deps import get_gate
    return get_gate()


def _get_db():
    from rwa_ledger.deps import get_db
    return get_db()


@router.post("/webhooks", response_model=WebhookEndpointResponse, status_code=201)
async def create_webhook_endpoint(
    body: WebhookEndpointCreate, caller_id: str = Depends(require_caller),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await _get_gate().require_admin(session, caller_id)
        ep = await svc.create_endpoint(
            session,
            url=body.url,
            secret=body.secret,
            event_types=body.event_types,
            description=body.description,
            max_retries=body.max_retries,
            timeout_seconds=body.timeout_seconds,
        )
        return WebhookEndpointResponse.model_validate(ep)


@router.get("/webhooks", response_model=list[WebhookEndpointResponse])
async def list_webhook_endpoints(
    active: bool | None = Query(None),
    caller_id: str = Depends(require_caller),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await _get_gate().require_admin(session, caller_id)
        endpoints = await svc.list_endpoints(session, active=active)
        return [WebhookEndpointResponse.model_validate(ep) for ep in endpoints]


@router.get("/webhooks/{endpoint_id}", response_model=WebhookEndpointResponse)
async def get_webhook_endpoint(endpoint_id: str, caller_id: str = Depends(require_caller)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await _get_gate().require_admin(session, caller_id)
        return WebhookEndpointResponse.model_validate(await svc.get_endpoint(session, endpoint_id))


@router.patch("/webhooks/{endpoint_id}", response_model=WebhookEndpointResponse)
async def update_webhook_endpoint(
    endpoint_id: str,
    body: WebhookEndpointUpdate,
    caller_id: str = Depends(require_caller),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await _get_gate().require_admin(session, caller_id)
        ep = await svc.update_endpoint(session, endpoint_id, **body.model_dump(exclude_none=True))
        return WebhookEndpointResponse.model_validate(ep)


@router.delete("/webhooks/{endpoint_id}", status_code=204)
async def delete_webhook_endpoint(endpoint_id: str, caller_id: str = Depends(require_caller)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await _get_gate().require_admin(session, caller_id)
        await svc.delete_endpoint(session, endpoint_id)
    return Response(status_code=204)


@router.get(
    "/webhooks/{endpoint_id}/deliveries",
    response_model=list[WebhookDeliveryResponse],
)
async def list_endpoint_deliveries(
    endpoint_id: str,
    event_type: str | None = Query(None),
    status: str | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    caller_id: str = Depends(require_caller),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await _get_gate().require_admin(session, caller_id)
        await svc.get_endpoint(session, endpoint_id)
        deliveries = await svc.get_deliveries(
            session,
            endpoint_id=endpoint_id,
            event_type=event_type,
            status=status,
            limit=limit,
            offset=offset,
        )
        return [WebhookDeliveryResponse.model_validate(d) for d in deliveries]


@router.post(
    "/webhooks/{endpoint_id}/test",
    response_model=WebhookDeliveryResponse,
    status_code=202,
)
async def test_webhook_endpoint(endpoint_id: str, caller_id: str = Depends(require_caller)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await _get_gate().require_admin(session, caller_id)
        delivery, endpoint = await svc.create_test_delivery(session, endpoint_id)
    # Committed: the background sender can now see the delivery row.
    svc.deliver_later(delivery, endpoint)
    return WebhookDeliveryResponse.model_validate(delivery)


@router.post(
    "/webhooks/deliveries/{delivery_id}/retry",
    response_model=WebhookDeliveryResponse,
)
async def retry_webhook_delivery(delivery_id: str, caller_id: str = Depends(require_caller)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await _get_gate().require_admin(session, caller_id)
        delivery, endpoint = await svc.reset_delivery(session, delivery_id)
    svc.deliver_later(delivery, endpoint)
    return WebhookDeliveryResponse.model_validate(delivery)
