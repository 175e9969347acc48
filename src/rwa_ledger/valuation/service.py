"""Valuation history and market analytics.

NAV history and trade price history are separate append-only series; the
read side here combines them with the order book and balances for market
data, per-asset analytics and platform totals.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rwa_ledger.assets.models import AssetModel
from rwa_ledger.common.config import LedgerSettings
from rwa_ledger.common.enums import ApprovalStatus, KycStatus, OrderStatus
from rwa_ledger.common.exceptions import NotFoundError
from rwa_ledger.ledger.models import TokenModel
from rwa_ledger.orders.models import OrderModel
from rwa_ledger.users.models import UserModel
from rwa_ledger.valuation.models import NavHistoryModel, PriceHistoryModel

HISTORY_LIMIT = 100


class ValuationService:
    def __init__(self, settings: LedgerSettings):
        self.settings = settings

    # ── Write ──

    async def record_nav(
        self, session: AsyncSession, asset_id: str, nav_price: Decimal, reason: str | None = None,
    ) -> NavHistoryModel:
        row = NavHistoryModel(asset_id=asset_id, nav_price=nav_price, reason=reason)
        session.add(row)
        await session.flush()
        return row

    async def record_trade(
        self,
        session: AsyncSession,
        asset_id: str,
        price: Decimal,
        volume: int,
        order_id: str | None = None,
    ) -> PriceHistoryModel:
        row = PriceHistoryModel(asset_id=asset_id, price=price, volume=volume, order_id=order_id)
        session.add(row)
        await session.flush()
        return row

    # ── Series ──

    async def nav_history(
        self, session: AsyncSession, asset_id: str, limit: int = HISTORY_LIMIT,
    ) -> list[NavHistoryModel]:
        """Newest first."""
        result = await session.execute(
            select(NavHistoryModel)
            .where(NavHistoryModel.asset_id == asset_id)
            .order_by(NavHistoryModel.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def price_history(
        self, session: AsyncSession, asset_id: str, limit: int = HISTORY_LIMIT,
    ) -> list[PriceHistoryModel]:
        """The most recent ``limit`` trades, oldest first (chart order)."""
        result = await session.execute(
            select(PriceHistoryModel)
            .where(PriceHistoryModel.asset_id == asset_id)
            .order_by(PriceHistoryModel.created_at.desc())
            .limit(limit)
        )
        rows = list(result.scalars().all())
        rows.reverse()
        return rows

    # ── Market data ──

    async def market_data(self, session: AsyncSession, asset_id: str) -> dict[str, Any]:
        await self.require_asset(session, asset_id)

        ask_query = select(func.min(OrderModel.price_per_token)).where(
            OrderModel.asset_id == asset_id,
            OrderModel.status == OrderStatus.OPEN,
        )
        if self.settings.order_approval_required:
            ask_query = ask_query.where(OrderModel.approval_status == ApprovalStatus.APPROVED)
        best_ask = (await session.execute(ask_query)).scalar_one_or_none()

        last = (await session.execute(
            select(PriceHistoryModel.price)
            .where(PriceHistoryModel.asset_id == asset_id)
            .order_by(PriceHistoryModel.created_at.desc())
            .limit(1)
        )).scalar_one_or_none()

        since = datetime.now(timezone.utc) - timedelta(hours=24)
        volume_24h = (await session.execute(
            select(func.coalesce(func.sum(PriceHistoryModel.volume), 0)).where(
                PriceHistoryModel.asset_id == asset_id,
                PriceHistoryModel.created_at >= since,
            )
        )).scalar_one()

        return {
            "asset_id": asset_id,
            # Only sell orders exist, so there is never a bid.
            "best_bid": None,
            "best_ask": best_ask,
            "last_trade_price": last,
            "volume_24h": int(volume_24h),
        }

    async def asset_analytics(self, session: AsyncSession, asset_id: str) -> dict[str, Any]:
        asset = await self.require_asset(session, asset_id)

        totals = (await session.execute(
            select(
                func.coalesce(func.sum(PriceHistoryModel.volume), 0),
                func.count(PriceHistoryModel.id),
            ).where(PriceHistoryModel.asset_id == asset_id)
        )).one()

        holdings = (await session.execute(
            select(TokenModel.owner_id, TokenModel.amount)
            .where(TokenModel.asset_id == asset_id, TokenModel.amount > 0)
            .order_by(TokenModel.amount.desc())
        )).all()

        return {
            "asset": asset,
            "current_nav": asset.nav_price,
            "nav_history": await self.nav_history(session, asset_id),
            "price_history": await self.price_history(session, asset_id),
            "total_volume": int(totals[0]),
            "trade_count": int(totals[1]),
            "holders_count": len(holdings),
            "supply_distribution": [
                {"owner_id": owner_id, "amount": amount} for owner_id, amount in holdings
            ],
        }

    async def platform_stats(self, session: AsyncSession) -> dict[str, int]:
        total_users = (await session.execute(select(func.count(UserModel.id)))).scalar_one()
        pending_kyc = (await session.execute(
            select(func.count(UserModel.id)).where(UserModel.kyc_status == KycStatus.PENDING)
        )).scalar_one()
        total_assets = (await session.execute(select(func.count(AssetModel.id)))).scalar_one()
        tokens_held = (await session.execute(
            select(func.coalesce(func.sum(TokenModel.amount), 0))
        )).scalar_one()
        return {
            "total_users": total_users,
            "pending_kyc": pending_kyc,
            "total_assets": total_assets,
            "total_tokens_held": int(tokens_held),
        }

    async def require_asset(self, session: AsyncSession, asset_id: str) -> AssetModel:
        result = await session.execute(select(AssetModel).where(AssetModel.id == asset_id))
        asset = result.scalar_one_or_none()
        if asset is None:
            raise NotFoundError(f"Asset '{asset_id}' not found")
        return asset
