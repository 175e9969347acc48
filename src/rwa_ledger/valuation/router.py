"""Valuation history and analytics API router."""

from fastapi import APIRouter, Depends

from rwa_ledger.assets.schemas import AssetResponse
from rwa_ledger.common.security import require_api_key, require_caller
from rwa_ledger.valuation.schemas import (
    AssetAnalytics,
    HolderShare,
    MarketData,
    NavPoint,
    PlatformStats,
    PricePoint,
)

router = APIRouter()


def _get_service():
    from rwa_ledger.deps import get_valuation_service
    return get_valuation_service()


def _get_gate():
    from rwa_ledger.deps import get_gate
    return get_gate()


def _get_db():
    from rwa_ledger.deps import get_db
    return get_db()


@router.get("/assets/{asset_id}/market", response_model=MarketData)
async def market_data(asset_id: str, _=Depends(require_api_key)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        return MarketData(**await svc.market_data(session, asset_id))


@router.get("/assets/{asset_id}/nav-history", response_model=list[NavPoint])
async def nav_history(asset_id: str, _=Depends(require_api_key)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await svc.require_asset(session, asset_id)
        return [NavPoint.model_validate(row) for row in await svc.nav_history(session, asset_id)]


@router.get("/assets/{asset_id}/price-history", response_model=list[PricePoint])
async def price_history(asset_id: str, _=Depends(require_api_key)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await svc.require_asset(session, asset_id)
        return [PricePoint.model_validate(row) for row in await svc.price_history(session, asset_id)]


@router.get("/analytics/assets/{asset_id}", response_model=AssetAnalytics)
async def asset_analytics(asset_id: str, caller_id: str = Depends(require_caller)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await _get_gate().require_admin(session, caller_id)
        data = await svc.asset_analytics(session, asset_id)
        return AssetAnalytics(
            asset=AssetResponse.model_validate(data["asset"]),
            current_nav=data["current_nav"],
            nav_history=[NavPoint.model_validate(r) for r in data["nav_history"]],
            price_history=[PricePoint.model_validate(r) for r in data["price_history"]],
            total_volume=data["total_volume"],
            trade_count=data["trade_count"],
            holders_count=data["holders_count"],
            supply_distribution=[HolderShare(**h) for h in data["supply_distribution"]],
        )


@router.get("/analytics/platform", response_model=PlatformStats)
async def platform_stats(caller_id: str = Depends(require_caller)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await _get_gate().require_admin(session, caller_id)
        return PlatformStats(**await svc.platform_stats(session))
