"""
LedgerClient SDK — sync client for RWA Ledger.

Used by the gateway, back-office scripts and other services to read the
registry and order book and to drive ledger operations on behalf of a user.
"""

import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

import httpx


class LedgerClientError(Exception):
    """Raised for any non-2xx answer or exhausted retries."""

    def __init__(self, message: str, code: str = "CLIENT_ERROR", status_code: Optional[int] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(message)


@dataclass
class ClientAsset:
    id: str
    type: str
    title: str
    description: str
    total_supply: int
    remaining_supply: int
    nav_price: Decimal


@dataclass
class ClientToken:
    id: str
    asset_id: str
    owner_id: str
    amount: int
    cost_basis: Decimal
    frozen: bool = False


@dataclass
class ClientOrder:
    id: str
    seller_id: str
    asset_id: str
    token_amount: int
    price_per_token: Decimal
    status: str
    approval_status: str
    buyer_id: Optional[str] = None
    closed_at: Optional[datetime] = None


@dataclass
class ClientMarketData:
    asset_id: str
    best_bid: Optional[Decimal] = None
    best_ask: Optional[Decimal] = None
    last_trade_price: Optional[Decimal] = None
    volume_24h: int = 0


@dataclass
class ClientChainVerification:
    valid: bool
    entries_checked: int
    break_at: Optional[str] = None


def _decimal(value: Any) -> Optional[Decimal]:
    return None if value is None else Decimal(str(value))


class LedgerClient:
    """
    Synchronous HTTP client for RWA Ledger.

    ``user_id`` is the identity the gateway vouches for; every call that acts
    on behalf of a user sends it alongside the gateway API key.
    """

    def __init__(
        self,
        server_url: str = "http://localhost:8080",
        api_key: Optional[str] = None,
        user_id: Optional[str] = None,
        timeout: int = 30,
        max_retries: int = 3,
        retry_backoff_base: float = 0.5,
    ):
        self.server_url = server_url.rstrip("/")
        self.api_key = api_key
        self.user_id = user_id
        self.max_retries = max_retries
        self.retry_backoff_base = retry_backoff_base
        self._http = httpx.Client(
            base_url=self.server_url,
            timeout=timeout,
        )

    def as_user(self, user_id: str) -> "LedgerClient":
        """Return a client sharing this configuration but acting as ``user_id``."""
        clone = LedgerClient.__new__(LedgerClient)
        clone.__dict__.update(self.__dict__)
        clone.user_id = user_id
        return clone

    def _headers(self) -> dict[str, str]:
        headers = {}
        if self.api_key:
            headers["X-Ledger-Api-Key"] = self.api_key
        if self.user_id:
            headers["X-Ledger-User-Id"] = self.user_id
        return headers

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Central HTTP method with retry and structured error handling.

        Retries on:
        - httpx.TimeoutException and transport errors
        - 5xx status codes
        - 429 (rate limit)

        No retry on other 4xx errors; those raise immediately with the
        server's error code.
        """
        kwargs.setdefault("headers", self._headers())
        last_error = None
        for attempt in range(self.max_retries):
            try:
                resp = getattr(self._http, method)(path, **kwargs)
                if resp.status_code >= 500 or resp.status_code == 429:
                    last_error = f"HTTP {resp.status_code}"
                    if attempt < self.max_retries - 1:
                        time.sleep(self.retry_backoff_base * (2 ** attempt))
                        continue
                    raise self._error_from(resp, default_code="SERVER_ERROR")
                if resp.status_code >= 400:
                    raise self._error_from(resp, default_code="CLIENT_ERROR")
                if resp.status_code == 204:
                    return None
                return resp.json()
            except httpx.TimeoutException:
                last_error = "timeout"
            except httpx.HTTPError as e:
                last_error = str(e)
            except json.JSONDecodeError as e:
                raise LedgerClientError("Invalid JSON response", code="JSON_ERROR") from e
            if attempt < self.max_retries - 1:
                time.sleep(self.retry_backoff_base * (2 ** attempt))

        raise LedgerClientError(
            f"All {self.max_retries} retries exhausted: {last_error}",
            code="CONNECTION_ERROR",
        )

    @staticmethod
    def _error_from(resp: Any, default_code: str) -> LedgerClientError:
        try:
            body = resp.json()
        except (json.JSONDecodeError, ValueError):
            body = {}
        if not isinstance(body, dict):
            body = {}
        message = body.get("detail") or body.get("error") or f"HTTP {resp.status_code}"
        return LedgerClientError(
            str(message),
            code=body.get("code", default_code),
            status_code=resp.status_code,
        )

    # ── Parsers ──

    @staticmethod
    def _parse_asset(data: dict) -> ClientAsset:
        return ClientAsset(
            id=data["id"],
            type=data.get("type", ""),
            title=data.get("title", ""),
            description=data.get("description", ""),
            total_supply=data.get("total_supply", 0),
            remaining_supply=data.get("remaining_supply", 0),
            nav_price=_decimal(data.get("nav_price", "0")),
        )

    @staticmethod
    def _parse_token(data: dict) -> ClientToken:
        return ClientToken(
            id=data["id"],
            asset_id=data.get("asset_id", ""),
            owner_id=data.get("owner_id", ""),
            amount=data.get("amount", 0),
            cost_basis=_decimal(data.get("cost_basis", "0")),
            frozen=data.get("frozen", False),
        )

    @staticmethod
    def _parse_order(data: dict) -> ClientOrder:
        closed_at = None
        if data.get("closed_at"):
            try:
                closed_at = datetime.fromisoformat(data["closed_at"])
            except (ValueError, TypeError):
                closed_at = None
        return ClientOrder(
            id=data["id"],
            seller_id=data.get("seller_id", ""),
            asset_id=data.get("asset_id", ""),
            token_amount=data.get("token_amount", 0),
            price_per_token=_decimal(data.get("price_per_token", "0")),
            status=data.get("status", ""),
            approval_status=data.get("approval_status", ""),
            buyer_id=data.get("buyer_id"),
            closed_at=closed_at,
        )

    # ── Health ──

    def health(self) -> dict[str, Any]:
        return self._request("get", "/health")

    # ── Assets ──

    def list_assets(self, type: Optional[str] = None) -> list[ClientAsset]:
        params = {"type": type} if type else None
        data = self._request("get", "/assets", params=params)
        return [self._parse_asset(a) for a in data]

    def get_asset(self, asset_id: str) -> ClientAsset:
        return self._parse_asset(self._request("get", f"/assets/{asset_id}"))

    def create_asset(
        self,
        type: str,
        title: str,
        total_supply: int,
        nav_price: Decimal | str,
        description: str = "",
    ) -> ClientAsset:
        body = {
            "type": type,
            "title": title,
            "description": description,
            "total_supply": total_supply,
            "nav_price": str(nav_price),
        }
        return self._parse_asset(self._request("post", "/assets", json=body))

    def revise_nav(
        self, asset_id: str, nav_price: Decimal | str, reason: Optional[str] = None,
    ) -> ClientAsset:
        body = {"nav_price": str(nav_price), "reason": reason}
        return self._parse_asset(self._request("post", f"/assets/{asset_id}/nav", json=body))

    def market_data(self, asset_id: str) -> ClientMarketData:
        data = self._request("get", f"/assets/{asset_id}/market")
        return ClientMarketData(
            asset_id=data.get("asset_id", asset_id),
            best_bid=_decimal(data.get("best_bid")),
            best_ask=_decimal(data.get("best_ask")),
            last_trade_price=_decimal(data.get("last_trade_price")),
            volume_24h=data.get("volume_24h", 0),
        )

    # ── Ledger ──

    def mint(self, asset_id: str, user_id: str, amount: int, note: Optional[str] = None) -> ClientToken:
        body = {"asset_id": asset_id, "user_id": user_id, "amount": amount, "note": note}
        return self._parse_token(self._request("post", "/ledger/mint", json=body))

    def revoke(self, token_id: str, amount: int, note: Optional[str] = None) -> bool:
        data = self._request(
            "post", f"/ledger/tokens/{token_id}/revoke", json={"amount": amount, "note": note},
        )
        return data.get("success", False)

    def set_amount(
        self, token_id: str, new_amount: int, reason: Optional[str] = None,
    ) -> Optional[ClientToken]:
        data = self._request(
            "put", f"/ledger/tokens/{token_id}/amount",
            json={"new_amount": new_amount, "reason": reason},
        )
        if data.get("token") is None:
            return None
        return self._parse_token(data["token"])

    def portfolio(self) -> list[dict[str, Any]]:
        return self._request("get", "/ledger/portfolio")

    # ── Orders ──

    def open_orders(self, asset_id: Optional[str] = None) -> list[ClientOrder]:
        params = {"asset_id": asset_id} if asset_id else None
        return [self._parse_order(o) for o in self._request("get", "/orders", params=params)]

    def create_order(
        self, asset_id: str, token_amount: int, price_per_token: Decimal | str,
    ) -> ClientOrder:
        body = {
            "asset_id": asset_id,
            "token_amount": token_amount,
            "price_per_token": str(price_per_token),
        }
        return self._parse_order(self._request("post", "/orders", json=body))

    def approve_order(self, order_id: str) -> bool:
        return self._request("post", f"/orders/{order_id}/approve").get("success", False)

    def reject_order(self, order_id: str) -> bool:
        return self._request("post", f"/orders/{order_id}/reject").get("success", False)

    def fill_order(self, order_id: str) -> bool:
        return self._request("post", f"/orders/{order_id}/fill").get("success", False)

    def cancel_order(self, order_id: str) -> bool:
        return self._request("post", f"/orders/{order_id}/cancel").get("success", False)

    # ── Transfer log ──

    def verify_chain(self, asset_id: str) -> ClientChainVerification:
        data = self._request("get", f"/transfers/verify/{asset_id}")
        return ClientChainVerification(
            valid=data.get("valid", False),
            entries_checked=data.get("entries_checked", 0),
            break_at=data.get("break_at"),
        )

    # ── Webhooks ──

    @staticmethod
    def verify_webhook_signature(
        payload_body: str | bytes,
        signature: str,
        secret: str,
    ) -> bool:
        """Verify an incoming webhook's HMAC-SHA256 signature.

        Args:
            payload_body: The raw request body (string or bytes).
            signature: The value of the X-Ledger-Signature header.
            secret: The webhook endpoint's shared secret.
        """
        if isinstance(payload_body, bytes):
            payload_body = payload_body.decode("utf-8")
        expected = hmac.new(
            secret.encode("utf-8"),
            payload_body.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()
        return hmac.compare_digest(expected, signature)

    # ── Lifecycle ──

    def close(self) -> None:
        """Close the HTTP client."""
        self._http.close()
