"""Pydantic schemas for balances, admin ledger operations and token requests."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from rwa_ledger.common.enums import RequestStatus


class MintRequest(BaseModel):
    asset_id: str
    user_id: str
    amount: int
    note: Optional[str] = Field(None, max_length=1024)


class RevokeRequest(BaseModel):
    amount: int
    note: Optional[str] = Field(None, max_length=1024)


class SetAmountRequest(BaseModel):
    new_amount: int
    reason: Optional[str] = Field(None, max_length=1024)


class TokenFreezeRequest(BaseModel):
    frozen: bool
    note: Optional[str] = Field(None, max_length=1024)


class TokenResponse(BaseModel):
    id: str
    asset_id: str
    owner_id: str
    amount: int
    cost_basis: Decimal
    frozen: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class SetAmountResponse(BaseModel):
    token: Optional[TokenResponse] = None
    deleted: bool = False


class PortfolioItem(BaseModel):
    token_id: str
    asset_id: str
    asset_title: str
    asset_type: str
    amount: int
    cost_basis: Decimal
    nav_price: Decimal
    market_value: Decimal
    unrealized_gain: Decimal
    frozen: bool


class SupplyReport(BaseModel):
    asset_id: str
    held: int
    escrowed: int
    remaining: int
    total: int
    balanced: bool


class TokenRequestCreate(BaseModel):
    asset_id: str
    amount: int


class TokenRequestResolve(BaseModel):
    notes: Optional[str] = None


class TokenRequestResponse(BaseModel):
    id: str
    user_id: str
    asset_id: str
    amount: int
    status: RequestStatus
    admin_notes: Optional[str] = None
    created_at: datetime
    resolved_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
