"""Token ledger — balances, minting, revocation and compliance holds.

Lock order inside one transaction is always asset row, then order row, then
user rows, then token rows. Every mutating operation records its transfer
and re-checks the asset's supply balance before returning.
"""

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rwa_ledger.assets.models import AssetModel
from rwa_ledger.assets.service import AssetService
from rwa_ledger.common.config import LedgerSettings
from rwa_ledger.common.enums import TransferReason
from rwa_ledger.common.exceptions import (
    InsufficientBalanceError,
    InsufficientSupplyError,
    NotFoundError,
)
from rwa_ledger.common.models import round_money
from rwa_ledger.common.validation import non_negative_int, positive_int
from rwa_ledger.compliance.gate import ComplianceGate
from rwa_ledger.ledger.invariants import assert_supply_balanced
from rwa_ledger.ledger.models import TokenModel
from rwa_ledger.notifications.base import Notification, NotificationDispatcher
from rwa_ledger.transfers.service import TransferLog
from rwa_ledger.users.models import UserModel

logger = logging.getLogger(__name__)


class LedgerService:
    """Per-(asset, owner) balances and the admin operations that move them."""

    def __init__(
        self,
        settings: LedgerSettings,
        gate: ComplianceGate,
        assets: AssetService,
        transfers: TransferLog,
        notifier: NotificationDispatcher | None = None,
    ):
        self.settings = settings
        self.gate = gate
        self.assets = assets
        self.transfers = transfers
        self.notifier = notifier

    # ── Reads ──

    async def get_token(
        self, session: AsyncSession, token_id: str, lock: bool = False,
    ) -> TokenModel:
        query = select(TokenModel).where(TokenModel.id == token_id)
        if lock:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await session.execute(query)
        token = result.scalar_one_or_none()
        if token is None:
            raise NotFoundError(f"Token '{token_id}' not found")
        return token

    async def get_holding(
        self, session: AsyncSession, asset_id: str, owner_id: str, lock: bool = False,
    ) -> TokenModel | None:
        query = select(TokenModel).where(
            TokenModel.asset_id == asset_id,
            TokenModel.owner_id == owner_id,
        )
        if lock:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await session.execute(query)
        return result.scalar_one_or_none()

    async def list_tokens(
        self,
        session: AsyncSession,
        asset_id: str | None = None,
        owner_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[TokenModel]:
        query = select(TokenModel)
        if asset_id:
            query = query.where(TokenModel.asset_id == asset_id)
        if owner_id:
            query = query.where(TokenModel.owner_id == owner_id)
        query = query.order_by(TokenModel.created_at.desc()).offset(offset).limit(limit)
        result = await session.execute(query)
        return list(result.scalars().all())

    async def portfolio(self, session: AsyncSession, user_id: str) -> list[dict[str, Any]]:
        """Holdings of one user valued at current NAV."""
        await self.gate.load_user(session, user_id)
        result = await session.execute(
            select(TokenModel, AssetModel)
            .join(AssetModel, AssetModel.id == TokenModel.asset_id)
            .where(TokenModel.owner_id == user_id)
            .order_by(AssetModel.title)
        )
        holdings = []
        for token, asset in result.all():
            market_value = round_money(asset.nav_price * token.amount)
            holdings.append({
                "token_id": token.id,
                "asset_id": asset.id,
                "asset_title": asset.title,
                "asset_type": asset.type.value,
                "amount": token.amount,
                "cost_basis": token.cost_basis,
                "nav_price": asset.nav_price,
                "market_value": market_value,
                "unrealized_gain": market_value - token.cost_basis,
                "frozen": token.frozen,
            })
        return holdings

    # ── Balance primitives (caller holds the asset lock) ──

    async def credit(
        self,
        session: AsyncSession,
        asset: AssetModel,
        owner: UserModel,
        amount: int,
        cost_basis: Decimal,
    ) -> TokenModel:
        """Add to the owner's holding, creating the row on first credit."""
        token = await self.get_holding(session, asset.id, owner.id, lock=True)
        if token is None:
            token = TokenModel(
                asset_id=asset.id,
                owner_id=owner.id,
                amount=amount,
                cost_basis=round_money(cost_basis),
                frozen=owner.is_frozen,
                account_hold=owner.is_frozen,
            )
            session.add(token)
        else:
            token.amount += amount
            token.cost_basis = round_money(token.cost_basis + cost_basis)
        await session.flush()
        return token

    async def debit(self, session: AsyncSession, token: TokenModel, amount: int) -> Decimal:
        """Take ``amount`` off a locked holding; returns the cost basis removed with it.

        The row is deleted when it reaches zero.
        """
        if amount > token.amount:
            raise InsufficientBalanceError(
                f"Holding {token.id} has {token.amount} tokens, {amount} requested"
            )
        if amount == token.amount:
            removed = token.cost_basis
        else:
            removed = round_money(token.cost_basis * amount / token.amount)
        token.amount -= amount
        token.cost_basis = token.cost_basis - removed
        if token.amount == 0:
            await session.delete(token)
        await session.flush()
        return removed

    # ── Admin operations ──

    async def mint(
        self,
        session: AsyncSession,
        actor_id: str,
        asset_id: str,
        owner_id: str,
        amount: int,
        note: str | None = None,
    ) -> TokenModel:
        """Allocate unissued supply to a KYC-approved owner at the current NAV."""
        await self.gate.require_admin(session, actor_id)
        amount = positive_int(amount, "amount")
        owner = await self.gate.require_kyc_approved(session, owner_id)
        asset = await self.assets.lock_asset(session, asset_id)
        if asset.remaining_supply < amount:
            raise InsufficientSupplyError(
                f"Only {asset.remaining_supply} tokens of {asset.title} remain, {amount} requested"
            )

        token = await self.credit(session, asset, owner, amount, asset.nav_price * amount)
        self.assets.adjust_remaining_supply(asset, -amount)
        await self.transfers.record(
            session, asset.id, TransferReason.MINT, amount,
            to_user_id=owner.id, actor_id=actor_id, note=note,
        )
        await assert_supply_balanced(session, asset)

        logger.info(
            "Minted %d of %s to %s", amount, asset.id, owner.id,
            extra={"asset_id": asset.id, "owner_id": owner.id, "amount": amount},
        )
        self._notify(session, Notification(
            event_type="tokens.minted",
            title="Tokens allocated",
            message=f"{amount} tokens of {asset.title} were added to your portfolio.",
            user_id=owner.id,
            email=owner.email,
            data={"asset_id": asset.id, "token_id": token.id, "amount": amount},
        ))
        return token

    async def revoke(
        self,
        session: AsyncSession,
        actor_id: str,
        token_id: str,
        amount: int,
        note: str | None = None,
    ) -> bool:
        """Return part or all of a holding to the asset's unallocated supply."""
        await self.gate.require_admin(session, actor_id)
        amount = positive_int(amount, "amount")
        token = await self.get_token(session, token_id)
        asset = await self.assets.lock_asset(session, token.asset_id)
        token = await self.get_token(session, token_id, lock=True)
        owner = await self.gate.load_user(session, token.owner_id)

        await self.debit(session, token, amount)
        self.assets.adjust_remaining_supply(asset, amount)
        await self.transfers.record(
            session, asset.id, TransferReason.ADMIN_REVOKE, amount,
            from_user_id=owner.id, actor_id=actor_id, note=note,
        )
        await assert_supply_balanced(session, asset)

        logger.info(
            "Revoked %d of %s from %s", amount, asset.id, owner.id,
            extra={"asset_id": asset.id, "owner_id": owner.id, "amount": amount},
        )
        self._notify(session, Notification(
            event_type="tokens.revoked",
            title="Tokens revoked",
            message=f"{amount} tokens of {asset.title} were revoked by an administrator.",
            user_id=owner.id,
            email=owner.email,
            data={"asset_id": asset.id, "token_id": token_id, "amount": amount, "note": note},
        ))
        return True

    async def admin_set_amount(
        self,
        session: AsyncSession,
        actor_id: str,
        token_id: str,
        new_amount: int,
        reason: str | None = None,
    ) -> TokenModel | None:
        """Set a holding to an exact amount. Returns None when the row was deleted."""
        await self.gate.require_admin(session, actor_id)
        new_amount = non_negative_int(new_amount, "new_amount")
        token = await self.get_token(session, token_id)
        asset = await self.assets.lock_asset(session, token.asset_id)
        token = await self.get_token(session, token_id, lock=True)
        owner = await self.gate.load_user(session, token.owner_id)

        old_amount = token.amount
        delta = new_amount - old_amount
        if delta == 0:
            return token

        if delta > 0:
            if asset.remaining_supply < delta:
                raise InsufficientSupplyError(
                    f"Only {asset.remaining_supply} tokens of {asset.title} remain, {delta} needed"
                )
            token = await self.credit(session, asset, owner, delta, asset.nav_price * delta)
            self.assets.adjust_remaining_supply(asset, -delta)
            await self.transfers.record(
                session, asset.id, TransferReason.MINT, delta,
                to_user_id=owner.id, actor_id=actor_id, note=reason,
                detail={"adjustment": True, "previous_amount": old_amount},
            )
            result: TokenModel | None = token
        else:
            await self.debit(session, token, -delta)
            self.assets.adjust_remaining_supply(asset, -delta)
            await self.transfers.record(
                session, asset.id, TransferReason.ADMIN_REVOKE, -delta,
                from_user_id=owner.id, actor_id=actor_id, note=reason,
                detail={"adjustment": True, "previous_amount": old_amount},
            )
            result = token if new_amount > 0 else None

        await assert_supply_balanced(session, asset)

        logger.info(
            "Holding %s adjusted %d -> %d", token_id, old_amount, new_amount,
            extra={"asset_id": asset.id, "owner_id": owner.id, "delta": delta},
        )
        self._notify(session, Notification(
            event_type="tokens.adjusted",
            title="Holding adjusted",
            message=(
                f"Your {asset.title} holding was adjusted from {old_amount} "
                f"to {new_amount} tokens."
            ),
            user_id=owner.id,
            email=owner.email,
            data={
                "asset_id": asset.id,
                "token_id": token_id,
                "previous_amount": old_amount,
                "amount": new_amount,
                "reason": reason,
            },
        ))
        return result

    # ── Compliance holds ──

    async def set_token_frozen(
        self,
        session: AsyncSession,
        actor_id: str,
        token_id: str,
        frozen: bool,
        note: str | None = None,
    ) -> TokenModel:
        await self.gate.require_admin(session, actor_id)
        token = await self.get_token(session, token_id)
        await self.assets.lock_asset(session, token.asset_id)
        token = await self.get_token(session, token_id, lock=True)
        if token.frozen != frozen:
            await self._apply_hold(session, token, frozen, actor_id, note)
        elif frozen and token.account_hold:
            # Already held by an account freeze; keep it held after the account is unfrozen.
            token.account_hold = False
            await session.flush()
        return token

    async def set_holdings_frozen(
        self,
        session: AsyncSession,
        actor_id: str,
        owner_id: str,
        frozen: bool,
        note: str | None = None,
    ) -> int:
        """Place or lift the account-level hold on one owner's holdings.

        Unfreezing only lifts holds the account freeze placed; holdings frozen
        individually with ``set_token_frozen`` stay frozen. Returns how many
        holdings changed.
        """
        result = await session.execute(
            select(TokenModel.id, TokenModel.asset_id)
            .where(TokenModel.owner_id == owner_id)
            .order_by(TokenModel.asset_id)
        )
        changed = 0
        for token_id, asset_id in result.all():
            await self.assets.lock_asset(session, asset_id)
            token = await self.get_token(session, token_id, lock=True)
            if frozen and not token.frozen:
                await self._apply_hold(session, token, True, actor_id, note, account_hold=True)
                changed += 1
            elif not frozen and token.frozen and token.account_hold:
                await self._apply_hold(session, token, False, actor_id, note)
                changed += 1
        return changed

    async def _apply_hold(
        self,
        session: AsyncSession,
        token: TokenModel,
        frozen: bool,
        actor_id: str,
        note: str | None,
        account_hold: bool = False,
    ) -> None:
        token.frozen = frozen
        token.account_hold = frozen and account_hold
        await session.flush()
        # Balance is unchanged; the entry records the hold against the amount it covers.
        await self.transfers.record(
            session,
            token.asset_id,
            TransferReason.FREEZE if frozen else TransferReason.UNFREEZE,
            token.amount,
            from_user_id=token.owner_id,
            to_user_id=token.owner_id,
            actor_id=actor_id,
            note=note,
        )
        logger.info("Holding %s %s", token.id, "frozen" if frozen else "unfrozen")

    def _notify(self, session: AsyncSession, notification: Notification) -> None:
        if self.notifier is not None:
            self.notifier.publish(session, notification)
