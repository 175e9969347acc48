"""Tests for client.py — LedgerClient SDK with resilience."""

import json
from decimal import Decimal
from unittest.mock import MagicMock, patch

import httpx
import pytest

from rwa_ledger.client import LedgerClient, LedgerClientError


def _mock_response(data, status_code: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = data
    return resp


ASSET = {
    "id": "asset-1",
    "type": "real_estate",
    "title": "Harbour View",
    "description": "",
    "total_supply": 1000,
    "remaining_supply": 800,
    "nav_price": "100.00",
}

ORDER = {
    "id": "order-1",
    "seller_id": "u-1",
    "asset_id": "asset-1",
    "token_amount": 50,
    "price_per_token": "110.00",
    "status": "FILLED",
    "approval_status": "APPROVED",
    "buyer_id": "u-2",
    "closed_at": "2026-01-05T10:00:00+00:00",
}


class TestLedgerClientInit:
    def test_defaults(self):
        client = LedgerClient()
        assert client.server_url == "http://localhost:8080"
        assert client.api_key is None
        assert client.user_id is None
        assert client.max_retries == 3
        client.close()

    def test_custom_params(self):
        client = LedgerClient(
            server_url="http://custom:9090/",
            api_key="gateway-key",
            user_id="u-1",
            timeout=10,
            max_retries=5,
        )
        assert client.server_url == "http://custom:9090"
        assert client._headers() == {
            "X-Ledger-Api-Key": "gateway-key",
            "X-Ledger-User-Id": "u-1",
        }
        client.close()

    def test_as_user_shares_transport(self):
        client = LedgerClient(api_key="k", user_id="admin")
        bob = client.as_user("bob")
        assert bob.user_id == "bob"
        assert client.user_id == "admin"
        assert bob._http is client._http
        client.close()


class TestClientCalls:
    def test_get_asset(self):
        client = LedgerClient(api_key="k", user_id="u-1")
        client._http = MagicMock()
        client._http.get.return_value = _mock_response(ASSET)

        asset = client.get_asset("asset-1")

        assert asset.id == "asset-1"
        assert asset.nav_price == Decimal("100.00")
        assert asset.remaining_supply == 800
        args, kwargs = client._http.get.call_args
        assert args == ("/assets/asset-1",)
        assert kwargs["headers"]["X-Ledger-User-Id"] == "u-1"

    def test_create_order_sends_price_as_string(self):
        client = LedgerClient(api_key="k", user_id="u-1")
        client._http = MagicMock()
        client._http.post.return_value = _mock_response(
            {**ORDER, "status": "OPEN", "buyer_id": None, "closed_at": None}, 201,
        )

        order = client.create_order("asset-1", 50, Decimal("110"))

        body = client._http.post.call_args.kwargs["json"]
        assert body == {"asset_id": "asset-1", "token_amount": 50, "price_per_token": "110"}
        assert order.status == "OPEN"
        assert order.closed_at is None

    def test_open_orders_parses_closed_at(self):
        client = LedgerClient()
        client._http = MagicMock()
        client._http.get.return_value = _mock_response([ORDER])

        [order] = client.open_orders(asset_id="asset-1")

        assert order.price_per_token == Decimal("110.00")
        assert order.closed_at.year == 2026
        assert client._http.get.call_args.kwargs["params"] == {"asset_id": "asset-1"}

    def test_set_amount_deleted(self):
        client = LedgerClient()
        client._http = MagicMock()
        client._http.put.return_value = _mock_response({"token": None, "deleted": True})
        assert client.set_amount("tok-1", 0) is None

    def test_fill_order(self):
        client = LedgerClient()
        client._http = MagicMock()
        client._http.post.return_value = _mock_response({"success": True, "message": "filled"})
        assert client.fill_order("order-1") is True
        assert client._http.post.call_args.args == ("/orders/order-1/fill",)

    def test_market_data_without_trades(self):
        client = LedgerClient()
        client._http = MagicMock()
        client._http.get.return_value = _mock_response({
            "asset_id": "asset-1", "best_bid": None, "best_ask": "99.50",
            "last_trade_price": None, "volume_24h": 0,
        })
        market = client.market_data("asset-1")
        assert market.best_bid is None
        assert market.best_ask == Decimal("99.50")
        assert market.last_trade_price is None

    def test_verify_chain(self):
        client = LedgerClient()
        client._http = MagicMock()
        client._http.get.return_value = _mock_response(
            {"valid": False, "entries_checked": 3, "break_at": "tr-4"},
        )
        result = client.verify_chain("asset-1")
        assert result.valid is False
        assert result.break_at == "tr-4"


class TestClientErrors:
    def test_4xx_raises_with_server_code(self):
        client = LedgerClient(max_retries=3)
        client._http = MagicMock()
        client._http.post.return_value = _mock_response(
            {"error": "Insufficient supply", "code": "INSUFFICIENT_SUPPLY", "detail": "Only 5 remain"},
            409,
        )
        with pytest.raises(LedgerClientError) as exc_info:
            client.mint("asset-1", "u-1", 10)
        assert exc_info.value.code == "INSUFFICIENT_SUPPLY"
        assert exc_info.value.status_code == 409
        assert exc_info.value.message == "Only 5 remain"
        assert client._http.post.call_count == 1  # no retry

    def test_4xx_without_json_body(self):
        client = LedgerClient()
        client._http = MagicMock()
        resp = _mock_response(None, 404)
        resp.json.side_effect = json.JSONDecodeError("x", "", 0)
        client._http.get.return_value = resp
        with pytest.raises(LedgerClientError) as exc_info:
            client.get_asset("missing")
        assert exc_info.value.code == "CLIENT_ERROR"
        assert exc_info.value.message == "HTTP 404"


class TestClientRetry:
    @patch("rwa_ledger.client.time.sleep")
    def test_retry_on_timeout(self, mock_sleep):
        client = LedgerClient(max_retries=3)
        client._http = MagicMock()
        client._http.get.side_effect = [
            httpx.TimeoutException("timeout"),
            _mock_response({"status": "ok", "version": "0.1.0"}),
        ]
        assert client.health() == {"status": "ok", "version": "0.1.0"}
        assert client._http.get.call_count == 2
        assert mock_sleep.call_count == 1

    @patch("rwa_ledger.client.time.sleep")
    def test_retry_on_500(self, mock_sleep):
        client = LedgerClient(max_retries=3)
        client._http = MagicMock()
        client._http.get.side_effect = [
            _mock_response({}, 500),
            _mock_response({}, 429),
            _mock_response([ASSET]),
        ]
        assets = client.list_assets()
        assert [a.id for a in assets] == ["asset-1"]
        assert mock_sleep.call_count == 2

    @patch("rwa_ledger.client.time.sleep")
    def test_all_retries_exhausted(self, mock_sleep):
        client = LedgerClient(max_retries=2)
        client._http = MagicMock()
        client._http.get.side_effect = httpx.TimeoutException("timeout")
        with pytest.raises(LedgerClientError) as exc_info:
            client.health()
        assert exc_info.value.code == "CONNECTION_ERROR"
        assert "2 retries exhausted" in exc_info.value.message

    @patch("rwa_ledger.client.time.sleep")
    def test_persistent_500_raises_server_error(self, mock_sleep):
        client = LedgerClient(max_retries=2)
        client._http = MagicMock()
        client._http.get.return_value = _mock_response(
            {"error": "Ledger invariant violated", "code": "INVARIANT_VIOLATION"}, 500,
        )
        with pytest.raises(LedgerClientError) as exc_info:
            client.health()
        assert exc_info.value.code == "INVARIANT_VIOLATION"
        assert exc_info.value.status_code == 500
