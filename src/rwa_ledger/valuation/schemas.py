"""Pydantic schemas for valuation history and analytics."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from rwa_ledger.assets.schemas import AssetResponse


class NavPoint(BaseModel):
    nav_price: Decimal
    reason: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class PricePoint(BaseModel):
    price: Decimal
    volume: int
    order_id: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class MarketData(BaseModel):
    asset_id: str
    best_bid: Optional[Decimal] = None
    best_ask: Optional[Decimal] = None
    last_trade_price: Optional[Decimal] = None
    volume_24h: int = 0


class HolderShare(BaseModel):
    owner_id: str
    amount: int


class AssetAnalytics(BaseModel):
    asset: AssetResponse
    current_nav: Decimal
    nav_history: list[NavPoint] = []
    price_history: list[PricePoint] = []
    total_volume: int = 0
    trade_count: int = 0
    holders_count: int = 0
    supply_distribution: list[HolderShare] = []


class PlatformStats(BaseModel):
    total_users: int
    pending_kyc: int
    total_assets: int
    total_tokens_held: int
