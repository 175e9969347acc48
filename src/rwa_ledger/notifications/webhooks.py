"""Webhook sink — endpoint CRUD, signed delivery and delivery records."""

import asyncio
import hashlib
import hmac
import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rwa_ledger.common.config import LedgerSettings
from rwa_ledger.common.database import DatabaseManager
from rwa_ledger.common.exceptions import NotFoundError, ValidationError
from rwa_ledger.notifications.base import Notification
from rwa_ledger.notifications.models import WebhookDeliveryModel, WebhookEndpointModel

logger = logging.getLogger(__name__)

VALID_EVENT_TYPES: frozenset[str] = frozenset({
    "asset.created",
    "asset.revalued",
    "tokens.minted",
    "tokens.revoked",
    "tokens.adjusted",
    "order.created",
    "order.approved",
    "order.rejected",
    "order.filled",
    "order.cancelled",
    "account.kyc_updated",
    "account.frozen",
    "account.unfrozen",
    "token_request.created",
    "token_request.resolved",
})


def sign_payload(payload_json: str, secret: str) -> str:
    """Compute HMAC-SHA256 hex digest for a JSON payload."""
    return hmac.new(
        secret.encode("utf-8"),
        payload_json.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def check_event_types(event_types: list[str]) -> None:
    for et in event_types:
        if et not in VALID_EVENT_TYPES:
            raise ValidationError(
                f"Invalid event type: {et}. Valid types: {sorted(VALID_EVENT_TYPES)}"
            )


class WebhookService:
    """Webhook endpoint management, and a notification sink that POSTs to them."""

    def __init__(self, settings: LedgerSettings, db: DatabaseManager):
        self.settings = settings
        self._db = db
        self._http_client: httpx.AsyncClient | None = None
        self._tasks: set[asyncio.Task] = set()

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient()
        return self._http_client

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    # ── CRUD ──

    async def create_endpoint(
        self,
        session: AsyncSession,
        url: str,
        secret: str,
        event_types: list[str] | None = None,
        description: str = "",
        max_retries: int = 3,
        timeout_seconds: int = 10,
    ) -> WebhookEndpointModel:
        check_event_types(event_types or [])
        endpoint = WebhookEndpointModel(
            url=url,
            secret=secret,
            event_types=event_types or [],
            description=description,
            max_retries=max_retries,
            timeout_seconds=timeout_seconds,
        )
        session.add(endpoint)
        await session.flush()
        return endpoint

    async def get_endpoint(
        self, session: AsyncSession, endpoint_id: str,
    ) -> WebhookEndpointModel:
        result = await session.execute(
            select(WebhookEndpointModel).where(WebhookEndpointModel.id == endpoint_id)
        )
        endpoint = result.scalar_one_or_none()
        if endpoint is None:
            raise NotFoundError("Webhook endpoint not found")
        return endpoint

    async def list_endpoints(
        self, session: AsyncSession, active: bool | None = None,
    ) -> list[WebhookEndpointModel]:
        query = select(WebhookEndpointModel)
        if active is not None:
            query = query.where(WebhookEndpointModel.active.is_(active))
        query = query.order_by(WebhookEndpointModel.created_at.desc())
        result = await session.execute(query)
        return list(result.scalars().all())

    async def update_endpoint(
        self, session: AsyncSession, endpoint_id: str, **updates: Any,
    ) -> WebhookEndpointModel:
        endpoint = await self.get_endpoint(session, endpoint_id)
        if updates.get("event_types") is not None:
            check_event_types(updates["event_types"])
        for field in ("url", "secret", "event_types", "description",
                      "max_retries", "timeout_seconds", "active"):
            if field in updates and updates[field] is not None:
                setattr(endpoint, field, updates[field])
        await session.flush()
        return endpoint

    async def delete_endpoint(self, session: AsyncSession, endpoint_id: str) -> None:
        endpoint = await self.get_endpoint(session, endpoint_id)
        await session.delete(endpoint)
        await session.flush()

    # ── Sink ──

    async def send(self, notification: Notification) -> None:
        """Record a delivery per subscribed endpoint, then POST them concurrently."""
        envelope = {
            "event_type": notification.event_type,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "data": {"user_id": notification.user_id, **notification.data},
        }
        jobs = []
        async with self._db.get_session() as session:
            endpoints = await self.list_endpoints(session, active=True)
            for ep in endpoints:
                # Empty event_types = wildcard (match all events)
                if ep.event_types and notification.event_type not in ep.event_types:
                    continue
                delivery = WebhookDeliveryModel(
                    endpoint_id=ep.id,
                    event_type=notification.event_type,
                    payload=envelope,
                    status="pending",
                )
                session.add(delivery)
                await session.flush()
                jobs.append(self._send_delivery(
                    delivery_id=delivery.id,
                    url=ep.url,
                    secret=ep.secret,
                    payload=envelope,
                    max_retries=ep.max_retries,
                    timeout=ep.timeout_seconds,
                ))
        if jobs:
            await asyncio.gather(*jobs)

    def deliver_later(
        self, delivery: WebhookDeliveryModel, endpoint: WebhookEndpointModel,
    ) -> None:
        """Fire a committed delivery in the background (test pings, retries)."""
        task = asyncio.get_running_loop().create_task(
            self._send_delivery(
                delivery_id=delivery.id,
                url=endpoint.url,
                secret=endpoint.secret,
                payload=delivery.payload,
                max_retries=endpoint.max_retries,
                timeout=endpoint.timeout_seconds,
            )
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _send_delivery(
        self,
        delivery_id: str,
        url: str,
        secret: str,
        payload: dict[str, Any],
        max_retries: int,
        timeout: int,
    ) -> None:
        """Send HTTP POST with HMAC signature and retry on failure."""
        payload_json = json.dumps(payload, default=str)
        signature = sign_payload(payload_json, secret)
        headers = {
            "Content-Type": "application/json",
            "X-Ledger-Signature": signature,
            "X-Ledger-Event": payload.get("event_type", ""),
        }

        last_error = None
        last_status = None

        for attempt in range(max_retries + 1):
            try:
                client = self._get_http_client()
                resp = await client.post(
                    url,
                    content=payload_json,
                    headers=headers,
                    timeout=timeout,
                )
                last_status = resp.status_code

                if 200 <= resp.status_code < 300:
                    await self._update_delivery_status(
                        delivery_id, "success", attempt + 1, last_status, None,
                    )
                    return

                last_error = f"HTTP {resp.status_code}"
            except httpx.TimeoutException:
                last_error = "timeout"
            except httpx.HTTPError as e:
                last_error = str(e)

            if attempt < max_retries:
                await asyncio.sleep(2 ** attempt)

        logger.warning("Webhook delivery %s to %s failed: %s", delivery_id, url, last_error)
        await self._update_delivery_status(
            delivery_id, "failed", max_retries + 1, last_status, last_error,
        )

    async def _update_delivery_status(
        self,
        delivery_id: str,
        status: str,
        attempts: int,
        response_code: int | None,
        error: str | None,
    ) -> None:
        """Update delivery record using a fresh DB session."""
        async with self._db.get_session() as session:
            result = await session.execute(
                select(WebhookDeliveryModel).where(WebhookDeliveryModel.id == delivery_id)
            )
            delivery = result.scalar_one_or_none()
            if delivery is None:
                return
            delivery.status = status
            delivery.attempts = attempts
            delivery.last_response_code = response_code
            delivery.last_error = error
            if status == "success":
                delivery.delivered_at = datetime.now(timezone.utc)

    # ── Delivery queries ──

    async def get_deliveries(
        self,
        session: AsyncSession,
        endpoint_id: str | None = None,
        event_type: str | None = None,
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[WebhookDeliveryModel]:
        query = select(WebhookDeliveryModel)
        if endpoint_id is not None:
            query = query.where(WebhookDeliveryModel.endpoint_id == endpoint_id)
        if event_type is not None:
            query = query.where(WebhookDeliveryModel.event_type == event_type)
        if status is not None:
            query = query.where(WebhookDeliveryModel.status == status)
        query = query.order_by(WebhookDeliveryModel.created_at.desc())
        query = query.offset(offset).limit(limit)
        result = await session.execute(query)
        return list(result.scalars().all())

    async def get_delivery(
        self, session: AsyncSession, delivery_id: str,
    ) -> Optional[WebhookDeliveryModel]:
        result = await session.execute(
            select(WebhookDeliveryModel).where(WebhookDeliveryModel.id == delivery_id)
        )
        return result.scalar_one_or_none()

    async def create_test_delivery(
        self, session: AsyncSession, endpoint_id: str,
    ) -> tuple[WebhookDeliveryModel, WebhookEndpointModel]:
        endpoint = await self.get_endpoint(session, endpoint_id)
        delivery = WebhookDeliveryModel(
            endpoint_id=endpoint.id,
            event_type="webhook.test",
            payload={
                "event_type": "webhook.test",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "data": {"message": "Test ping from RWA Ledger"},
            },
            status="pending",
        )
        session.add(delivery)
        await session.flush()
        return delivery, endpoint

    async def reset_delivery(
        self, session: AsyncSession, delivery_id: str,
    ) -> tuple[WebhookDeliveryModel, WebhookEndpointModel]:
        """Reset a delivery to pending so it can be re-fired."""
        delivery = await self.get_delivery(session, delivery_id)
        if delivery is None:
            raise NotFoundError("Delivery not found")
        endpoint = await self.get_endpoint(session, delivery.endpoint_id)
        delivery.status = "pending"
        delivery.attempts = 0
        delivery.last_error = None
        await session.flush()
        return delivery, endpoint
