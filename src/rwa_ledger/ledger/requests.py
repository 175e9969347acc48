"""Investor token requests: ask for primary allocation, admin approves into a mint."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rwa_ledger.assets.service import AssetService
from rwa_ledger.common.enums import RequestStatus
from rwa_ledger.common.exceptions import InsufficientSupplyError, NotFoundError, ValidationError
from rwa_ledger.common.models import utcnow
from rwa_ledger.common.validation import positive_int
from rwa_ledger.compliance.gate import ComplianceGate
from rwa_ledger.ledger.models import TokenRequestModel
from rwa_ledger.ledger.service import LedgerService
from rwa_ledger.notifications.base import Notification, NotificationDispatcher

logger = logging.getLogger(__name__)


class TokenRequestService:
    def __init__(
        self,
        gate: ComplianceGate,
        assets: AssetService,
        ledger: LedgerService,
        notifier: NotificationDispatcher | None = None,
    ):
        self.gate = gate
        self.assets = assets
        self.ledger = ledger
        self.notifier = notifier

    async def request_tokens(
        self, session: AsyncSession, user_id: str, asset_id: str, amount: int,
    ) -> TokenRequestModel:
        amount = positive_int(amount, "amount")
        user = await self.gate.load_user(session, user_id)
        self.gate.check_can_trade(user)
        asset = await self.assets.get_asset(session, asset_id)
        if amount > asset.remaining_supply:
            raise InsufficientSupplyError(
                f"Only {asset.remaining_supply} tokens of {asset.title} remain, {amount} requested"
            )

        request = TokenRequestModel(user_id=user.id, asset_id=asset.id, amount=amount)
        session.add(request)
        await session.flush()

        logger.info("Token request %s: %d of %s for %s", request.id, amount, asset.id, user.id)
        self._notify(session, Notification(
            event_type="token_request.created",
            title="Token request submitted",
            message=f"Your request for {amount} tokens of {asset.title} is awaiting review.",
            user_id=user.id,
            data={"request_id": request.id, "asset_id": asset.id, "amount": amount},
        ))
        return request

    async def get_request(
        self, session: AsyncSession, request_id: str, lock: bool = False,
    ) -> TokenRequestModel:
        query = select(TokenRequestModel).where(TokenRequestModel.id == request_id)
        if lock:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await session.execute(query)
        request = result.scalar_one_or_none()
        if request is None:
            raise NotFoundError(f"Token request '{request_id}' not found")
        return request

    async def list_requests(
        self,
        session: AsyncSession,
        status: RequestStatus | None = None,
        user_id: str | None = None,
    ) -> list[TokenRequestModel]:
        query = select(TokenRequestModel)
        if status is not None:
            query = query.where(TokenRequestModel.status == status)
        if user_id is not None:
            query = query.where(TokenRequestModel.user_id == user_id)
        query = query.order_by(TokenRequestModel.created_at.desc())
        result = await session.execute(query)
        return list(result.scalars().all())

    async def approve_request(
        self, session: AsyncSession, actor_id: str, request_id: str, notes: str | None = None,
    ) -> TokenRequestModel:
        """Mint the requested amount and close the request in one transaction."""
        await self.gate.require_admin(session, actor_id)
        request = await self._load_pending(session, request_id)
        await self.ledger.mint(
            session, actor_id, request.asset_id, request.user_id, request.amount,
            note=f"token request {request.id}",
        )
        return await self._resolve(session, request, RequestStatus.APPROVED, notes)

    async def reject_request(
        self, session: AsyncSession, actor_id: str, request_id: str, notes: str | None = None,
    ) -> TokenRequestModel:
        await self.gate.require_admin(session, actor_id)
        request = await self._load_pending(session, request_id)
        return await self._resolve(session, request, RequestStatus.REJECTED, notes)

    async def _load_pending(self, session: AsyncSession, request_id: str) -> TokenRequestModel:
        request = await self.get_request(session, request_id, lock=True)
        if request.status != RequestStatus.PENDING:
            raise ValidationError(f"Token request {request_id} is already {request.status.value}")
        return request

    async def _resolve(
        self,
        session: AsyncSession,
        request: TokenRequestModel,
        status: RequestStatus,
        notes: str | None,
    ) -> TokenRequestModel:
        request.status = status
        request.admin_notes = notes
        request.resolved_at = utcnow()
        await session.flush()

        user = await self.gate.load_user(session, request.user_id)
        verdict = "approved" if status == RequestStatus.APPROVED else "rejected"
        logger.info("Token request %s %s", request.id, verdict)
        self._notify(session, Notification(
            event_type="token_request.resolved",
            title=f"Token request {verdict}",
            message=f"Your request for {request.amount} tokens was {verdict}."
            + (f" Notes: {notes}" if notes else ""),
            user_id=user.id,
            email=user.email,
            data={"request_id": request.id, "asset_id": request.asset_id, "status": status.value},
        ))
        return request

    def _notify(self, session: AsyncSession, notification: Notification) -> None:
        if self.notifier is not None:
            self.notifier.publish(session, notification)
