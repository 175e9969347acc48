"""SQLAlchemy model for sell orders."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from rwa_ledger.common.enums import ApprovalStatus, OrderStatus
from rwa_ledger.common.models import MONEY, Base, TimestampMixin, enum_column, generate_uuid


class OrderModel(Base, TimestampMixin):
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("token_amount > 0", name="ck_order_token_amount_positive"),
        CheckConstraint("price_per_token > 0", name="ck_order_price_positive"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    seller_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )
    buyer_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=True, index=True
    )
    asset_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("assets.id"), nullable=False, index=True
    )
    token_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    price_per_token: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    # Cost basis taken off the seller's holding when the tokens were escrowed;
    # restored verbatim on cancel or reject.
    escrowed_cost_basis: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    status: Mapped[OrderStatus] = mapped_column(
        enum_column(OrderStatus), nullable=False, default=OrderStatus.OPEN, index=True
    )
    approval_status: Mapped[ApprovalStatus] = mapped_column(
        enum_column(ApprovalStatus), nullable=False, default=ApprovalStatus.PENDING, index=True
    )
    closed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
