"""Compliance gate: the one place role, KYC and freeze checks live.

Every mutating ledger operation resolves its caller (and any counterparty
whose eligibility matters) through this gate before touching balances.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rwa_ledger.common.enums import KycStatus, UserRole
from rwa_ledger.common.exceptions import (
    AuthorizationError,
    ComplianceError,
    NotFoundError,
    SellerIneligibleError,
)
from rwa_ledger.ledger.models import TokenModel
from rwa_ledger.users.models import UserModel

logger = logging.getLogger(__name__)


class ComplianceGate:
    """Resolves users and enforces who may do what."""

    async def load_user(
        self, session: AsyncSession, user_id: str, lock: bool = False,
    ) -> UserModel:
        query = select(UserModel).where(UserModel.id == user_id)
        if lock:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await session.execute(query)
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError(f"User '{user_id}' not found")
        return user

    async def require_admin(self, session: AsyncSession, actor_id: str) -> UserModel:
        user = await self.load_user(session, actor_id)
        if user.role != UserRole.ADMIN:
            logger.warning("Admin operation refused for user %s", actor_id)
            raise AuthorizationError("Admin access required")
        return user

    async def require_kyc_approved(self, session: AsyncSession, user_id: str) -> UserModel:
        user = await self.load_user(session, user_id)
        if user.kyc_status != KycStatus.APPROVED:
            raise ComplianceError("User must have approved KYC to receive tokens", code="KYC_REQUIRED")
        return user

    async def require_trader(self, session: AsyncSession, user_id: str) -> UserModel:
        """Investor with approved KYC and an unfrozen account."""
        user = await self.load_user(session, user_id, lock=True)
        if user.role != UserRole.INVESTOR:
            raise AuthorizationError("Only investors may trade")
        self.check_can_trade(user)
        return user

    @staticmethod
    def check_can_trade(user: UserModel) -> None:
        if user.kyc_status != KycStatus.APPROVED:
            raise ComplianceError("KYC approval required for this action", code="KYC_REQUIRED")
        if user.is_frozen:
            raise ComplianceError("Account is frozen", code="ACCOUNT_FROZEN")

    async def require_eligible_seller(self, session: AsyncSession, seller_id: str) -> UserModel:
        """Re-check the seller at fill time; eligibility can change after listing."""
        seller = await self.load_user(session, seller_id, lock=True)
        if seller.kyc_status != KycStatus.APPROVED or seller.is_frozen:
            raise SellerIneligibleError()
        return seller

    @staticmethod
    def check_holding_tradable(token: TokenModel) -> None:
        if token.frozen:
            raise ComplianceError("Token holding is frozen", code="HOLDING_FROZEN")
