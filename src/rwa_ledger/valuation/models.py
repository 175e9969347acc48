"""SQLAlchemy models for the NAV and trade-price time series.

The two streams are kept in separate tables: NAV is an administrative
appraisal, price history is what the market actually paid.
"""

from decimal import Decimal

from sqlalchemy import ForeignKey, Integer, String, event
from sqlalchemy.orm import Mapped, mapped_column

from rwa_ledger.common.exceptions import ImmutableRecordError
from rwa_ledger.common.models import MONEY, Base, CreatedAtMixin, generate_uuid


class NavHistoryModel(Base, CreatedAtMixin):
    __tablename__ = "nav_history"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    asset_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("assets.id"), nullable=False, index=True
    )
    nav_price: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    # 'initial', 'revaluation', 'income_distribution', ...
    reason: Mapped[str | None] = mapped_column(String(255), nullable=True)


class PriceHistoryModel(Base, CreatedAtMixin):
    __tablename__ = "price_history"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    asset_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("assets.id"), nullable=False, index=True
    )
    price: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    volume: Mapped[int] = mapped_column(Integer, nullable=False)
    order_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("orders.id"), nullable=True
    )


@event.listens_for(NavHistoryModel, "before_update")
@event.listens_for(PriceHistoryModel, "before_update")
def _prevent_history_update(mapper, connection, target):
    raise ImmutableRecordError(
        f"{type(target).__tablename__} row {target.id} is append-only and cannot be modified"
    )


@event.listens_for(NavHistoryModel, "before_delete")
@event.listens_for(PriceHistoryModel, "before_delete")
def _prevent_history_delete(mapper, connection, target):
    raise ImmutableRecordError(
        f"{type(target).__tablename__} row {target.id} is append-only and cannot be deleted"
    )
