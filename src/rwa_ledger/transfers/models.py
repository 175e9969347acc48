"""SQLAlchemy model for the append-only, hash-chained transfer log."""

from sqlalchemy import CheckConstraint, ForeignKey, Integer, JSON, String, UniqueConstraint, event
from sqlalchemy.orm import Mapped, mapped_column

from rwa_ledger.common.enums import TransferReason
from rwa_ledger.common.exceptions import ImmutableRecordError
from rwa_ledger.common.models import Base, CreatedAtMixin, enum_column, generate_uuid


class TransferModel(Base, CreatedAtMixin):
    __tablename__ = "transfers"
    __table_args__ = (
        UniqueConstraint("asset_id", "sequence", name="uq_transfer_asset_sequence"),
        CheckConstraint("token_amount > 0", name="ck_transfer_amount_positive"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    asset_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("assets.id"), nullable=False, index=True
    )
    # NULL source is the asset's unallocated supply (mint).
    from_user_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=True, index=True
    )
    # NULL destination returns tokens to the unallocated supply (revoke).
    to_user_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=True, index=True
    )
    token_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[TransferReason] = mapped_column(
        enum_column(TransferReason), nullable=False, index=True
    )
    actor_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    order_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("orders.id"), nullable=True
    )
    note: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    detail: Mapped[dict] = mapped_column(JSON, default=dict)

    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    entry_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    signature: Mapped[str] = mapped_column(String(64), nullable=False)


@event.listens_for(TransferModel, "before_update")
def _prevent_transfer_update(mapper, connection, target):
    raise ImmutableRecordError(f"Transfer {target.id} is append-only and cannot be modified")


@event.listens_for(TransferModel, "before_delete")
def _prevent_transfer_delete(mapper, connection, target):
    raise ImmutableRecordError(f"Transfer {target.id} is append-only and cannot be deleted")
