"""SQLAlchemy model for tokenizable assets."""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rwa_ledger.common.enums import AssetType
from rwa_ledger.common.models import MONEY, Base, TimestampMixin, enum_column, generate_uuid


class AssetModel(Base, TimestampMixin):
    __tablename__ = "assets"
    __table_args__ = (
        CheckConstraint("total_supply > 0", name="ck_asset_total_supply_positive"),
        CheckConstraint(
            "remaining_supply >= 0 AND remaining_supply <= total_supply",
            name="ck_asset_remaining_supply_range",
        ),
        CheckConstraint("nav_price > 0", name="ck_asset_nav_positive"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    type: Mapped[AssetType] = mapped_column(enum_column(AssetType), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    total_supply: Mapped[int] = mapped_column(Integer, nullable=False)
    remaining_supply: Mapped[int] = mapped_column(Integer, nullable=False)
    nav_price: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
