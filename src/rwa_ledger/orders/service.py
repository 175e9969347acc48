"""Order book — escrowed sell orders with admin approval.

An order escrows its tokens at creation: they leave the seller's holding and
live on the order until it is filled (credited to the buyer) or cancelled or
rejected (credited back to the seller with the cost basis they left with).
FILLED and CANCELLED are terminal.
"""

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rwa_ledger.assets.models import AssetModel
from rwa_ledger.assets.service import AssetService
from rwa_ledger.common.config import LedgerSettings
from rwa_ledger.common.enums import ApprovalStatus, OrderStatus, TransferReason
from rwa_ledger.common.exceptions import (
    AuthorizationError,
    InsufficientBalanceError,
    NotFoundError,
    OrderNotOpenError,
    OrderStateError,
    SelfTradeError,
)
from rwa_ledger.common.models import round_money, utcnow
from rwa_ledger.common.validation import positive_int, positive_money
from rwa_ledger.compliance.gate import ComplianceGate
from rwa_ledger.ledger.invariants import assert_supply_balanced
from rwa_ledger.ledger.service import LedgerService
from rwa_ledger.notifications.base import Notification, NotificationDispatcher
from rwa_ledger.orders.models import OrderModel
from rwa_ledger.transfers.service import TransferLog
from rwa_ledger.users.models import UserModel
from rwa_ledger.valuation.service import ValuationService

logger = logging.getLogger(__name__)


class OrderService:
    def __init__(
        self,
        settings: LedgerSettings,
        gate: ComplianceGate,
        assets: AssetService,
        ledger: LedgerService,
        transfers: TransferLog,
        valuation: ValuationService,
        notifier: NotificationDispatcher | None = None,
    ):
        self.settings = settings
        self.gate = gate
        self.assets = assets
        self.ledger = ledger
        self.transfers = transfers
        self.valuation = valuation
        self.notifier = notifier

    # ── Reads ──

    async def get_order(
        self, session: AsyncSession, order_id: str, lock: bool = False,
    ) -> OrderModel:
        query = select(OrderModel).where(OrderModel.id == order_id)
        if lock:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await session.execute(query)
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFoundError(f"Order '{order_id}' not found")
        return order

    async def list_open_orders(
        self, session: AsyncSession, asset_id: str | None = None,
    ) -> list[OrderModel]:
        """The public book: open orders buyers may fill, cheapest first."""
        query = select(OrderModel).where(OrderModel.status == OrderStatus.OPEN)
        if self.settings.order_approval_required:
            query = query.where(OrderModel.approval_status == ApprovalStatus.APPROVED)
        if asset_id:
            query = query.where(OrderModel.asset_id == asset_id)
        query = query.order_by(OrderModel.price_per_token.asc(), OrderModel.created_at.asc())
        result = await session.execute(query)
        return list(result.scalars().all())

    async def list_user_orders(self, session: AsyncSession, user_id: str) -> list[OrderModel]:
        """Orders the user sold or bought, newest first."""
        result = await session.execute(
            select(OrderModel)
            .where((OrderModel.seller_id == user_id) | (OrderModel.buyer_id == user_id))
            .order_by(OrderModel.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_pending_orders(self, session: AsyncSession, actor_id: str) -> list[OrderModel]:
        """Open orders awaiting an approval decision (admin queue)."""
        await self.gate.require_admin(session, actor_id)
        result = await session.execute(
            select(OrderModel)
            .where(
                OrderModel.status == OrderStatus.OPEN,
                OrderModel.approval_status == ApprovalStatus.PENDING,
            )
            .order_by(OrderModel.created_at.asc())
        )
        return list(result.scalars().all())

    # ── Lifecycle ──

    async def create_order(
        self,
        session: AsyncSession,
        seller_id: str,
        asset_id: str,
        token_amount: int,
        price_per_token: Decimal | str | float,
    ) -> OrderModel:
        """List tokens for sale, moving them into escrow on the order."""
        token_amount = positive_int(token_amount, "token_amount")
        price = positive_money(price_per_token, "price_per_token")

        asset = await self.assets.lock_asset(session, asset_id)
        seller = await self.gate.require_trader(session, seller_id)
        holding = await self.ledger.get_holding(session, asset.id, seller.id, lock=True)
        if holding is None:
            raise InsufficientBalanceError(f"You hold no tokens of {asset.title}")
        self.gate.check_holding_tradable(holding)
        if holding.amount < token_amount:
            raise InsufficientBalanceError(
                f"You hold {holding.amount} tokens of {asset.title}, {token_amount} requested"
            )

        escrowed_basis = await self.ledger.debit(session, holding, token_amount)
        order = OrderModel(
            seller_id=seller.id,
            asset_id=asset.id,
            token_amount=token_amount,
            price_per_token=price,
            escrowed_cost_basis=escrowed_basis,
            status=OrderStatus.OPEN,
            approval_status=(
                ApprovalStatus.PENDING
                if self.settings.order_approval_required
                else ApprovalStatus.APPROVED
            ),
        )
        session.add(order)
        await session.flush()
        await assert_supply_balanced(session, asset)

        logger.info(
            "Order %s created: %d of %s @ %s by %s",
            order.id, token_amount, asset.id, price, seller.id,
        )
        self._notify(session, Notification(
            event_type="order.created",
            title="Sell order created",
            message=(
                f"Your order to sell {token_amount} tokens of {asset.title} "
                f"at {price} per token was created."
            ),
            user_id=seller.id,
            data=self._order_data(order),
        ))
        return order

    async def approve_order(self, session: AsyncSession, actor_id: str, order_id: str) -> bool:
        await self.gate.require_admin(session, actor_id)
        order = await self.get_order(session, order_id, lock=True)
        self._require_pending_open(order)

        order.approval_status = ApprovalStatus.APPROVED
        await session.flush()

        seller = await self.gate.load_user(session, order.seller_id)
        logger.info("Order %s approved by %s", order.id, actor_id)
        self._notify(session, Notification(
            event_type="order.approved",
            title="Sell order approved",
            message="Your sell order is now visible in the marketplace.",
            user_id=seller.id,
            email=seller.email,
            data=self._order_data(order),
        ))
        return True

    async def reject_order(self, session: AsyncSession, actor_id: str, order_id: str) -> bool:
        """Reject a pending order; it is cancelled and its escrow returned."""
        await self.gate.require_admin(session, actor_id)
        order = await self.get_order(session, order_id)
        asset = await self.assets.lock_asset(session, order.asset_id)
        order = await self.get_order(session, order_id, lock=True)
        self._require_pending_open(order)

        order.approval_status = ApprovalStatus.REJECTED
        seller = await self._close_and_return_escrow(session, asset, order)

        logger.info("Order %s rejected by %s", order.id, actor_id)
        self._notify(session, Notification(
            event_type="order.rejected",
            title="Sell order rejected",
            message=(
                f"Your order for {order.token_amount} tokens of {asset.title} was rejected; "
                "the tokens were returned to your portfolio."
            ),
            user_id=seller.id,
            email=seller.email,
            data=self._order_data(order),
        ))
        return True

    async def cancel_order(self, session: AsyncSession, caller_id: str, order_id: str) -> bool:
        """Seller withdraws an open order; escrow goes back to their holding."""
        order = await self.get_order(session, order_id)
        asset = await self.assets.lock_asset(session, order.asset_id)
        order = await self.get_order(session, order_id, lock=True)
        if order.seller_id != caller_id:
            raise AuthorizationError("Only the seller can cancel this order")
        if order.status != OrderStatus.OPEN:
            raise OrderNotOpenError(f"Order {order.id} is {order.status.value}")

        seller = await self._close_and_return_escrow(session, asset, order)

        logger.info("Order %s cancelled by seller", order.id)
        self._notify(session, Notification(
            event_type="order.cancelled",
            title="Sell order cancelled",
            message=f"Your order for {order.token_amount} tokens of {asset.title} was cancelled.",
            user_id=seller.id,
            data=self._order_data(order),
        ))
        return True

    async def fill_order(self, session: AsyncSession, buyer_id: str, order_id: str) -> bool:
        """Buy an entire open order. No partial fills."""
        order = await self.get_order(session, order_id)
        if order.seller_id == buyer_id:
            raise SelfTradeError()
        asset = await self.assets.lock_asset(session, order.asset_id)
        order = await self.get_order(session, order_id, lock=True)
        if order.status != OrderStatus.OPEN:
            raise OrderNotOpenError(f"Order {order.id} is {order.status.value}")
        if (
            self.settings.order_approval_required
            and order.approval_status != ApprovalStatus.APPROVED
        ):
            raise OrderStateError(f"Order {order.id} has not been approved")

        buyer = await self.gate.require_trader(session, buyer_id)
        seller = await self.gate.require_eligible_seller(session, order.seller_id)

        price = order.price_per_token
        await self.ledger.credit(
            session, asset, buyer, order.token_amount, price * order.token_amount,
        )
        order.status = OrderStatus.FILLED
        order.buyer_id = buyer.id
        order.closed_at = utcnow()
        await session.flush()

        await self.transfers.record(
            session, asset.id, TransferReason.TRADE, order.token_amount,
            from_user_id=seller.id, to_user_id=buyer.id, actor_id=buyer.id,
            order_id=order.id, detail={"price_per_token": str(price)},
        )
        await self.valuation.record_trade(
            session, asset.id, price, order.token_amount, order_id=order.id,
        )
        await assert_supply_balanced(session, asset)

        total = round_money(price * order.token_amount)
        logger.info(
            "Order %s filled: %d of %s @ %s, %s -> %s",
            order.id, order.token_amount, asset.id, price, seller.id, buyer.id,
        )
        data = {**self._order_data(order), "total": str(total)}
        self._notify(session, Notification(
            event_type="order.filled",
            title="Order sold",
            message=f"You sold {order.token_amount} tokens of {asset.title} for {total}.",
            user_id=seller.id,
            email=seller.email,
            data=data,
        ))
        self._notify(session, Notification(
            event_type="order.filled",
            title="Purchase complete",
            message=f"You bought {order.token_amount} tokens of {asset.title} for {total}.",
            user_id=buyer.id,
            email=buyer.email,
            data=data,
        ))
        return True

    # ── Internal helpers ──

    @staticmethod
    def _require_pending_open(order: OrderModel) -> None:
        if order.status != OrderStatus.OPEN:
            raise OrderNotOpenError(f"Order {order.id} is {order.status.value}")
        if order.approval_status != ApprovalStatus.PENDING:
            raise OrderStateError(
                f"Order {order.id} was already {order.approval_status.value.lower()}"
            )

    async def _close_and_return_escrow(
        self, session: AsyncSession, asset: AssetModel, order: OrderModel,
    ) -> UserModel:
        order.status = OrderStatus.CANCELLED
        order.closed_at = utcnow()
        await session.flush()
        seller = await self.gate.load_user(session, order.seller_id)
        await self.ledger.credit(
            session, asset, seller, order.token_amount, order.escrowed_cost_basis,
        )
        await assert_supply_balanced(session, asset)
        return seller

    @staticmethod
    def _order_data(order: OrderModel) -> dict:
        return {
            "order_id": order.id,
            "asset_id": order.asset_id,
            "token_amount": order.token_amount,
            "price_per_token": str(order.price_per_token),
        }

    def _notify(self, session: AsyncSession, notification: Notification) -> None:
        if self.notifier is not None:
            self.notifier.publish(session, notification)
