"""Pydantic schemas for account endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from rwa_ledger.common.enums import KycStatus, UserRole


class UserRegister(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=255)


class UserCreate(UserRegister):
    role: UserRole = UserRole.INVESTOR
    kyc_status: KycStatus = KycStatus.PENDING


class KycUpdate(BaseModel):
    kyc_status: KycStatus


class FreezeRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=1024)


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: UserRole
    kyc_status: KycStatus
    is_frozen: bool
    created_at: datetime

    model_config = {"from_attributes": True}
