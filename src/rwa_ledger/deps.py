"""Dependency injection singletons for RWA Ledger."""

from rwa_ledger.assets.service import AssetService
from rwa_ledger.common.config import get_settings
from rwa_ledger.common.database import DatabaseManager
from rwa_ledger.compliance.gate import ComplianceGate
from rwa_ledger.ledger.requests import TokenRequestService
from rwa_ledger.ledger.service import LedgerService
from rwa_ledger.notifications.base import NotificationDispatcher
from rwa_ledger.notifications.inbox import InboxService, InboxSink
from rwa_ledger.notifications.sinks import EmailSink, LoggingSink
from rwa_ledger.notifications.webhooks import WebhookService
from rwa_ledger.orders.service import OrderService
from rwa_ledger.transfers.service import TransferLog
from rwa_ledger.users.service import UserService
from rwa_ledger.valuation.service import ValuationService

_db: DatabaseManager | None = None
_gate: ComplianceGate | None = None
_dispatcher: NotificationDispatcher | None = None
_webhook: WebhookService | None = None
_inbox: InboxService | None = None
_transfers: TransferLog | None = None
_valuation: ValuationService | None = None
_assets: AssetService | None = None
_ledger: LedgerService | None = None
_requests: TokenRequestService | None = None
_orders: OrderService | None = None
_users: UserService | None = None


def get_db() -> DatabaseManager:
    global _db
    if _db is None:
        _db = DatabaseManager(get_settings())
    return _db


def get_gate() -> ComplianceGate:
    global _gate
    if _gate is None:
        _gate = ComplianceGate()
    return _gate


def get_webhook_service() -> WebhookService:
    global _webhook
    if _webhook is None:
        _webhook = WebhookService(get_settings(), get_db())
    return _webhook


def get_inbox_service() -> InboxService:
    global _inbox
    if _inbox is None:
        _inbox = InboxService()
    return _inbox


def get_dispatcher() -> NotificationDispatcher:
    global _dispatcher
    if _dispatcher is None:
        settings = get_settings()
        sinks = [LoggingSink()]
        if settings.email_provider:
            sinks.append(EmailSink(
                provider=settings.email_provider,
                api_key=settings.email_api_key,
                from_email=settings.email_from,
                from_name=settings.email_from_name,
            ))
        if settings.inbox_enabled:
            sinks.append(InboxSink(get_db()))
        sinks.append(get_webhook_service())
        _dispatcher = NotificationDispatcher(sinks)
    return _dispatcher


def get_transfer_log() -> TransferLog:
    global _transfers
    if _transfers is None:
        _transfers = TransferLog(get_settings())
    return _transfers


def get_valuation_service() -> ValuationService:
    global _valuation
    if _valuation is None:
        _valuation = ValuationService(get_settings())
    return _valuation


def get_asset_service() -> AssetService:
    global _assets
    if _assets is None:
        _assets = AssetService(
            get_settings(), get_gate(), get_valuation_service(),
            notifier=get_dispatcher(),
        )
    return _assets


def get_ledger_service() -> LedgerService:
    global _ledger
    if _ledger is None:
        _ledger = LedgerService(
            get_settings(), get_gate(), get_asset_service(), get_transfer_log(),
            notifier=get_dispatcher(),
        )
    return _ledger


def get_token_request_service() -> TokenRequestService:
    global _requests
    if _requests is None:
        _requests = TokenRequestService(
            get_gate(), get_asset_service(), get_ledger_service(),
            notifier=get_dispatcher(),
        )
    return _requests


def get_order_service() -> OrderService:
    global _orders
    if _orders is None:
        _orders = OrderService(
            get_settings(), get_gate(), get_asset_service(), get_ledger_service(),
            get_transfer_log(), get_valuation_service(),
            notifier=get_dispatcher(),
        )
    return _orders


def get_user_service() -> UserService:
    global _users
    if _users is None:
        _users = UserService(get_gate(), get_ledger_service(), notifier=get_dispatcher())
    return _users


def reset_singletons() -> None:
    """Reset all singletons (for testing)."""
    global _db, _gate, _dispatcher, _webhook, _inbox, _transfers, _valuation
    global _assets, _ledger, _requests, _orders, _users
    _db = None
    _gate = None
    _dispatcher = None
    _webhook = None
    _inbox = None
    _transfers = None
    _valuation = None
    _assets = None
    _ledger = None
    _requests = None
    _orders = None
    _users = None
