"""SQLAlchemy models for ledger balances and token requests."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from rwa_ledger.common.enums import RequestStatus
from rwa_ledger.common.models import MONEY, Base, TimestampMixin, enum_column, generate_uuid


class TokenModel(Base, TimestampMixin):
    """Balance of one owner in one asset. Deleted when the amount reaches zero."""

    __tablename__ = "tokens"
    __table_args__ = (
        UniqueConstraint("asset_id", "owner_id", name="uq_token_asset_owner"),
        CheckConstraint("amount >= 0", name="ck_token_amount_non_negative"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    asset_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("assets.id"), nullable=False, index=True
    )
    owner_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    cost_basis: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    frozen: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # True when the hold came from freezing the whole account rather than this holding.
    account_hold: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class TokenRequestModel(Base, TimestampMixin):
    __tablename__ = "token_requests"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_token_request_amount_positive"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )
    asset_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("assets.id"), nullable=False, index=True
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[RequestStatus] = mapped_column(
        enum_column(RequestStatus), nullable=False, default=RequestStatus.PENDING, index=True
    )
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
