"""Supply accounting checks.

For every asset, tokens held in balances plus tokens escrowed by OPEN orders
plus unallocated supply must equal the total supply. Mutating operations
recompute this from the rows themselves before commit rather than trusting
the arithmetic that produced them.
"""

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rwa_ledger.assets.models import AssetModel
from rwa_ledger.common.enums import OrderStatus
from rwa_ledger.common.exceptions import InvariantViolation
from rwa_ledger.ledger.models import TokenModel
from rwa_ledger.orders.models import OrderModel

logger = logging.getLogger(__name__)


async def supply_breakdown(session: AsyncSession, asset: AssetModel) -> dict[str, Any]:
    held = (await session.execute(
        select(func.coalesce(func.sum(TokenModel.amount), 0))
        .where(TokenModel.asset_id == asset.id)
    )).scalar_one()
    escrowed = (await session.execute(
        select(func.coalesce(func.sum(OrderModel.token_amount), 0))
        .where(OrderModel.asset_id == asset.id, OrderModel.status == OrderStatus.OPEN)
    )).scalar_one()
    held, escrowed = int(held), int(escrowed)
    return {
        "asset_id": asset.id,
        "held": held,
        "escrowed": escrowed,
        "remaining": asset.remaining_supply,
        "total": asset.total_supply,
        "balanced": held + escrowed + asset.remaining_supply == asset.total_supply,
    }


async def assert_supply_balanced(session: AsyncSession, asset: AssetModel) -> None:
    breakdown = await supply_breakdown(session, asset)
    if not breakdown["balanced"]:
        logger.error("Supply imbalance detected", extra={"supply": breakdown})
        raise InvariantViolation(
            f"Supply mismatch for asset {asset.id}: held={breakdown['held']} "
            f"escrowed={breakdown['escrowed']} remaining={breakdown['remaining']} "
            f"total={breakdown['total']}"
        )


async def supply_report(session: AsyncSession) -> list[dict[str, Any]]:
    result = await session.execute(select(AssetModel).order_by(AssetModel.created_at))
    return [await supply_breakdown(session, asset) for asset in result.scalars().all()]
