"""Pydantic schemas for order book endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from rwa_ledger.common.enums import ApprovalStatus, OrderStatus


class OrderCreate(BaseModel):
    asset_id: str
    token_amount: int
    price_per_token: Decimal


class OrderResponse(BaseModel):
    id: str
    seller_id: str
    buyer_id: Optional[str] = None
    asset_id: str
    token_amount: int
    price_per_token: Decimal
    status: OrderStatus
    approval_status: ApprovalStatus
    created_at: datetime
    closed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
