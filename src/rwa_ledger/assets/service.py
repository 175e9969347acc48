"""Asset registry — creation, lookup, revaluation and supply accounting."""

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rwa_ledger.assets.models import AssetModel
from rwa_ledger.common.config import LedgerSettings
from rwa_ledger.common.enums import AssetType
from rwa_ledger.common.exceptions import InvariantViolation, NotFoundError, ValidationError
from rwa_ledger.common.validation import coerce_enum, positive_int, positive_money
from rwa_ledger.compliance.gate import ComplianceGate
from rwa_ledger.notifications.base import Notification, NotificationDispatcher
from rwa_ledger.valuation.service import ValuationService

logger = logging.getLogger(__name__)


class AssetService:
    """Registry of tokenizable assets. Assets are never deleted."""

    def __init__(
        self,
        settings: LedgerSettings,
        gate: ComplianceGate,
        valuation: ValuationService,
        notifier: NotificationDispatcher | None = None,
    ):
        self.settings = settings
        self.gate = gate
        self.valuation = valuation
        self.notifier = notifier

    async def create_asset(
        self,
        session: AsyncSession,
        actor_id: str,
        type: AssetType | str,
        title: str,
        total_supply: int,
        nav_price: Decimal | str | float,
        description: str = "",
    ) -> AssetModel:
        await self.gate.require_admin(session, actor_id)
        asset_type = coerce_enum(AssetType, type, "type")
        total_supply = positive_int(total_supply, "total_supply")
        nav = positive_money(nav_price, "nav_price")
        if not title or not title.strip():
            raise ValidationError("title must not be empty")

        asset = AssetModel(
            type=asset_type,
            title=title.strip(),
            description=description or "",
            total_supply=total_supply,
            remaining_supply=total_supply,
            nav_price=nav,
        )
        session.add(asset)
        await session.flush()
        await self.valuation.record_nav(session, asset.id, nav, reason="initial")

        logger.info(
            "Asset created: %s (%s) supply=%d nav=%s",
            asset.id, asset_type.value, total_supply, nav,
        )
        self._notify(session, Notification(
            event_type="asset.created",
            title="New asset listed",
            message=f"{asset.title} is now available with {total_supply} tokens at {nav} per token.",
            data={"asset_id": asset.id, "total_supply": total_supply, "nav_price": str(nav)},
        ))
        return asset

    async def get_asset(self, session: AsyncSession, asset_id: str) -> AssetModel:
        result = await session.execute(select(AssetModel).where(AssetModel.id == asset_id))
        asset = result.scalar_one_or_none()
        if asset is None:
            raise NotFoundError(f"Asset '{asset_id}' not found")
        return asset

    async def lock_asset(self, session: AsyncSession, asset_id: str) -> AssetModel:
        """Load the asset row FOR UPDATE; every supply or chain write goes through here."""
        result = await session.execute(
            select(AssetModel)
            .where(AssetModel.id == asset_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        asset = result.scalar_one_or_none()
        if asset is None:
            raise NotFoundError(f"Asset '{asset_id}' not found")
        return asset

    async def list_assets(
        self, session: AsyncSession, type: AssetType | str | None = None,
    ) -> list[AssetModel]:
        query = select(AssetModel)
        if type is not None:
            query = query.where(AssetModel.type == coerce_enum(AssetType, type, "type"))
        query = query.order_by(AssetModel.created_at.desc())
        result = await session.execute(query)
        return list(result.scalars().all())

    async def update_details(
        self,
        session: AsyncSession,
        actor_id: str,
        asset_id: str,
        title: str | None = None,
        description: str | None = None,
    ) -> AssetModel:
        """Edit descriptive fields. Supply and NAV are not editable here."""
        await self.gate.require_admin(session, actor_id)
        asset = await self.lock_asset(session, asset_id)
        if title is not None:
            if not title.strip():
                raise ValidationError("title must not be empty")
            asset.title = title.strip()
        if description is not None:
            asset.description = description
        await session.flush()
        return asset

    async def revise_nav(
        self,
        session: AsyncSession,
        actor_id: str,
        asset_id: str,
        nav_price: Decimal | str | float,
        reason: str | None = None,
    ) -> AssetModel:
        """Append the new NAV to history, then move the asset's current NAV."""
        await self.gate.require_admin(session, actor_id)
        nav = positive_money(nav_price, "nav_price")
        asset = await self.lock_asset(session, asset_id)
        previous = asset.nav_price

        await self.valuation.record_nav(session, asset.id, nav, reason=reason or "revaluation")
        asset.nav_price = nav
        await session.flush()

        logger.info("NAV revised for %s: %s -> %s", asset.id, previous, nav)
        self._notify(session, Notification(
            event_type="asset.revalued",
            title="Asset revalued",
            message=f"{asset.title} NAV changed from {previous} to {nav}.",
            data={
                "asset_id": asset.id,
                "previous_nav": str(previous),
                "nav_price": str(nav),
                "reason": reason or "revaluation",
            },
        ))
        return asset

    @staticmethod
    def adjust_remaining_supply(asset: AssetModel, delta: int) -> int:
        """Move unallocated supply by ``delta`` on a locked asset row."""
        new_remaining = asset.remaining_supply + delta
        if new_remaining < 0 or new_remaining > asset.total_supply:
            raise InvariantViolation(
                f"Remaining supply of asset {asset.id} would become {new_remaining} "
                f"(total {asset.total_supply})"
            )
        asset.remaining_supply = new_remaining
        return new_remaining

    def _notify(self, session: AsyncSession, notification: Notification) -> None:
        if self.notifier is not None:
            self.notifier.publish(session, notification)
