"""User accounts, KYC review and account freezes."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rwa_ledger.common.enums import KycStatus, UserRole
from rwa_ledger.common.exceptions import ValidationError
from rwa_ledger.common.validation import coerce_enum
from rwa_ledger.compliance.gate import ComplianceGate
from rwa_ledger.ledger.service import LedgerService
from rwa_ledger.notifications.base import Notification, NotificationDispatcher
from rwa_ledger.users.models import UserModel

logger = logging.getLogger(__name__)


class UserService:
    def __init__(
        self,
        gate: ComplianceGate,
        ledger: LedgerService,
        notifier: NotificationDispatcher | None = None,
    ):
        self.gate = gate
        self.ledger = ledger
        self.notifier = notifier

    async def register(self, session: AsyncSession, name: str, email: str) -> UserModel:
        """Self-service sign-up: always an unfrozen investor with pending KYC."""
        return await self._insert(session, name, email, UserRole.INVESTOR, KycStatus.PENDING)

    async def create_user(
        self,
        session: AsyncSession,
        name: str,
        email: str,
        role: UserRole | str = UserRole.INVESTOR,
        kyc_status: KycStatus | str = KycStatus.PENDING,
        actor_id: str | None = None,
    ) -> UserModel:
        """Create an account with an explicit role and KYC state.

        ``actor_id`` must be an admin when given; seeding passes None.
        """
        if actor_id is not None:
            await self.gate.require_admin(session, actor_id)
        return await self._insert(
            session,
            name,
            email,
            coerce_enum(UserRole, role, "role"),
            coerce_enum(KycStatus, kyc_status, "kyc_status"),
        )

    async def get_user(self, session: AsyncSession, user_id: str) -> UserModel:
        return await self.gate.load_user(session, user_id)

    async def get_by_email(self, session: AsyncSession, email: str) -> UserModel | None:
        result = await session.execute(
            select(UserModel).where(UserModel.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def list_users(
        self,
        session: AsyncSession,
        kyc_status: KycStatus | str | None = None,
        role: UserRole | str | None = None,
    ) -> list[UserModel]:
        query = select(UserModel)
        if kyc_status is not None:
            query = query.where(
                UserModel.kyc_status == coerce_enum(KycStatus, kyc_status, "kyc_status")
            )
        if role is not None:
            query = query.where(UserModel.role == coerce_enum(UserRole, role, "role"))
        query = query.order_by(UserModel.created_at.desc())
        result = await session.execute(query)
        return list(result.scalars().all())

    async def set_kyc_status(
        self,
        session: AsyncSession,
        actor_id: str,
        user_id: str,
        status: KycStatus | str,
    ) -> UserModel:
        await self.gate.require_admin(session, actor_id)
        status = coerce_enum(KycStatus, status, "kyc_status")
        user = await self.gate.load_user(session, user_id, lock=True)
        previous = user.kyc_status
        user.kyc_status = status
        await session.flush()

        logger.info("KYC for %s: %s -> %s", user.id, previous.value, status.value)
        self._notify(session, Notification(
            event_type="account.kyc_updated",
            title=f"KYC {status.value.lower()}",
            message=f"Your identity verification status is now {status.value}.",
            user_id=user.id,
            email=user.email,
            data={"kyc_status": status.value, "previous": previous.value},
        ))
        return user

    async def freeze_user(
        self, session: AsyncSession, actor_id: str, user_id: str, reason: str | None = None,
    ) -> UserModel:
        return await self._set_frozen(session, actor_id, user_id, True, reason)

    async def unfreeze_user(
        self, session: AsyncSession, actor_id: str, user_id: str, reason: str | None = None,
    ) -> UserModel:
        return await self._set_frozen(session, actor_id, user_id, False, reason)

    async def _set_frozen(
        self,
        session: AsyncSession,
        actor_id: str,
        user_id: str,
        frozen: bool,
        reason: str | None,
    ) -> UserModel:
        """Flag the account, then place or lift the hold on each of its holdings."""
        await self.gate.require_admin(session, actor_id)
        user = await self.gate.load_user(session, user_id)
        user.is_frozen = frozen
        await session.flush()
        holdings = await self.ledger.set_holdings_frozen(session, actor_id, user.id, frozen, note=reason)

        verb = "frozen" if frozen else "unfrozen"
        logger.info("Account %s %s (%d holdings)", user.id, verb, holdings)
        self._notify(session, Notification(
            event_type=f"account.{verb}",
            title=f"Account {verb}",
            message=f"Your account has been {verb}." + (f" Reason: {reason}" if reason else ""),
            user_id=user.id,
            email=user.email,
            data={"holdings": holdings, "reason": reason},
        ))
        return user

    async def _insert(
        self,
        session: AsyncSession,
        name: str,
        email: str,
        role: UserRole,
        kyc_status: KycStatus,
    ) -> UserModel:
        name = (name or "").strip()
        email = (email or "").strip().lower()
        if not name:
            raise ValidationError("name must not be empty")
        if "@" not in email:
            raise ValidationError("email must be a valid address")
        if await self.get_by_email(session, email) is not None:
            raise ValidationError(f"Email '{email}' is already registered")

        user = UserModel(name=name, email=email, role=role, kyc_status=kyc_status, is_frozen=False)
        session.add(user)
        await session.flush()
        logger.info("User created: %s (%s)", user.id, role.value)
        return user

    def _notify(self, session: AsyncSession, notification: Notification) -> None:
        if self.notifier is not None:
            self.notifier.publish(session, notification)
