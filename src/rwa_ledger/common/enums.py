"""Enumerations shared across ledger components."""

import enum


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    INVESTOR = "INVESTOR"


class KycStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class AssetType(str, enum.Enum):
    REAL_ESTATE = "real_estate"
    COMMODITY = "commodity"
    LOAN = "loan"


class OrderStatus(str, enum.Enum):
    OPEN = "OPEN"
    FILLED = "FILLED"
    CANCELLED = "CANCELLED"


class ApprovalStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class RequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class TransferReason(str, enum.Enum):
    MINT = "MINT"
    TRANSFER = "TRANSFER"
    TRADE = "TRADE"
    FREEZE = "FREEZE"
    UNFREEZE = "UNFREEZE"
    ADMIN_REVOKE = "ADMIN_REVOKE"


# Reasons that move tokens between a holding and somewhere else.
BALANCE_CHANGING_REASONS = frozenset({
    TransferReason.MINT,
    TransferReason.TRANSFER,
    TransferReason.TRADE,
    TransferReason.ADMIN_REVOKE,
})
