"""SQLAlchemy model for platform accounts."""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from rwa_ledger.common.enums import KycStatus, UserRole
from rwa_ledger.common.models import Base, TimestampMixin, enum_column, generate_uuid


class UserModel(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    role: Mapped[UserRole] = mapped_column(
        enum_column(UserRole), nullable=False, default=UserRole.INVESTOR
    )
    kyc_status: Mapped[KycStatus] = mapped_column(
        enum_column(KycStatus), nullable=False, default=KycStatus.PENDING, index=True
    )
    is_frozen: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
