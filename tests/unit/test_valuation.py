"""Tests for market data, price series and analytics."""

from decimal import Decimal

import pytest

from rwa_ledger.common.exceptions import NotFoundError


async def _trade(db, svc, people, asset, price, amount=10):
    async with db.get_session() as session:
        order = await svc.orders.create_order(session, people["alice"], asset.id, amount, price)
    async with db.get_session() as session:
        await svc.orders.approve_order(session, people["admin"], order.id)
    async with db.get_session() as session:
        await svc.orders.fill_order(session, people["bob"], order.id)
    return order


@pytest.fixture
async def traded(db, svc, people, asset):
    async with db.get_session() as session:
        await svc.ledger.mint(session, people["admin"], asset.id, people["alice"], 100)
    await _trade(db, svc, people, asset, "101", amount=10)
    await _trade(db, svc, people, asset, "104", amount=5)
    return asset


class TestMarketData:
    async def test_empty_market(self, db, svc, asset):
        async with db.get_session() as session:
            market = await svc.valuation.market_data(session, asset.id)
        assert market == {
            "asset_id": asset.id,
            "best_bid": None,
            "best_ask": None,
            "last_trade_price": None,
            "volume_24h": 0,
        }

    async def test_after_trades(self, db, svc, traded):
        async with db.get_session() as session:
            market = await svc.valuation.market_data(session, traded.id)
        assert market["last_trade_price"] == Decimal("104.00")
        assert market["volume_24h"] == 15

    async def test_missing_asset(self, db, svc):
        with pytest.raises(NotFoundError):
            async with db.get_session() as session:
                await svc.valuation.market_data(session, "missing")


class TestSeries:
    async def test_price_history_oldest_first(self, db, svc, traded):
        async with db.get_session() as session:
            history = await svc.valuation.price_history(session, traded.id)
        assert [p.price for p in history] == [Decimal("101.00"), Decimal("104.00")]
        assert [p.volume for p in history] == [10, 5]
        assert all(p.order_id for p in history)

    async def test_price_history_limit_keeps_latest(self, db, svc, traded):
        async with db.get_session() as session:
            [latest] = await svc.valuation.price_history(session, traded.id, limit=1)
        assert latest.price == Decimal("104.00")

    async def test_nav_history_newest_first(self, db, svc, people, asset):
        for nav in ("105", "110"):
            async with db.get_session() as session:
                await svc.assets.revise_nav(session, people["admin"], asset.id, nav)
        async with db.get_session() as session:
            history = await svc.valuation.nav_history(session, asset.id)
        assert [h.nav_price for h in history] == [
            Decimal("110.00"), Decimal("105.00"), Decimal("100.00"),
        ]

    async def test_trades_do_not_move_nav(self, db, svc, traded):
        async with db.get_session() as session:
            refreshed = await svc.assets.get_asset(session, traded.id)
            history = await svc.valuation.nav_history(session, traded.id)
        assert refreshed.nav_price == Decimal("100.00")
        assert len(history) == 1


class TestAnalytics:
    async def test_asset_analytics(self, db, svc, people, traded):
        async with db.get_session() as session:
            analytics = await svc.valuation.asset_analytics(session, traded.id)
        assert analytics["current_nav"] == Decimal("100.00")
        assert analytics["total_volume"] == 15
        assert analytics["trade_count"] == 2
        assert analytics["holders_count"] == 2
        assert analytics["supply_distribution"] == [
            {"owner_id": people["alice"], "amount": 85},
            {"owner_id": people["bob"], "amount": 15},
        ]

    async def test_platform_stats(self, db, svc, traded):
        async with db.get_session() as session:
            stats = await svc.valuation.platform_stats(session)
        assert stats == {
            "total_users": 4,
            "pending_kyc": 1,
            "total_assets": 1,
            "total_tokens_held": 100,
        }
