"""Pydantic schemas for asset registry endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from rwa_ledger.common.enums import AssetType


class AssetCreate(BaseModel):
    type: AssetType
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    total_supply: int
    nav_price: Decimal


class AssetUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None


class NavRevision(BaseModel):
    nav_price: Decimal
    reason: Optional[str] = Field(None, max_length=255)


class AssetResponse(BaseModel):
    id: str
    type: AssetType
    title: str
    description: str
    total_supply: int
    remaining_supply: int
    nav_price: Decimal
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
