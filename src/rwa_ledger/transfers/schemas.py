"""Pydantic schemas for transfer log responses."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

from rwa_ledger.common.enums import TransferReason


class TransferResponse(BaseModel):
    id: str
    asset_id: str
    from_user_id: Optional[str] = None
    to_user_id: Optional[str] = None
    token_amount: int
    reason: TransferReason
    actor_id: Optional[str] = None
    order_id: Optional[str] = None
    note: Optional[str] = None
    detail: dict[str, Any] = {}
    sequence: int
    prev_hash: Optional[str] = None
    entry_hash: str
    signature: str
    created_at: datetime

    model_config = {"from_attributes": True}


class ChainVerification(BaseModel):
    valid: bool
    entries_checked: int
    break_at: Optional[str] = None
