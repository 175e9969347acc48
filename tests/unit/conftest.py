"""Service-level fixtures: an in-memory database and the full service graph."""

import logging
from dataclasses import dataclass

import pytest

from rwa_ledger.assets.service import AssetService
from rwa_ledger.common.config import LedgerSettings
from rwa_ledger.common.database import DatabaseManager
from rwa_ledger.common.enums import KycStatus, UserRole
from rwa_ledger.compliance.gate import ComplianceGate
from rwa_ledger.ledger.requests import TokenRequestService
from rwa_ledger.ledger.service import LedgerService
from rwa_ledger.notifications.base import Notification, NotificationDispatcher
from rwa_ledger.orders.service import OrderService
from rwa_ledger.transfers.service import TransferLog
from rwa_ledger.users.service import UserService
from rwa_ledger.valuation.service import ValuationService

HMAC_KEY = "test-hmac-key-for-unit-tests"


def make_settings(**overrides) -> LedgerSettings:
    defaults = {"hmac_key": HMAC_KEY, "db_url": "sqlite+aiosqlite://"}
    defaults.update(overrides)
    return LedgerSettings(**defaults)


class RecordingSink:
    def __init__(self):
        self.sent: list[Notification] = []

    async def send(self, notification: Notification) -> None:
        self.sent.append(notification)

    def events(self) -> list[str]:
        return [n.event_type for n in self.sent]


@dataclass
class Ledger:
    """The wired service graph, as deps.py builds it for the app."""

    settings: LedgerSettings
    gate: ComplianceGate
    transfers: TransferLog
    valuation: ValuationService
    assets: AssetService
    ledger: LedgerService
    requests: TokenRequestService
    orders: OrderService
    users: UserService
    dispatcher: NotificationDispatcher
    sink: RecordingSink


def build_services(settings: LedgerSettings) -> Ledger:
    sink = RecordingSink()
    dispatcher = NotificationDispatcher([sink])
    gate = ComplianceGate()
    transfers = TransferLog(settings)
    valuation = ValuationService(settings)
    assets = AssetService(settings, gate, valuation, notifier=dispatcher)
    ledger = LedgerService(settings, gate, assets, transfers, notifier=dispatcher)
    return Ledger(
        settings=settings,
        gate=gate,
        transfers=transfers,
        valuation=valuation,
        assets=assets,
        ledger=ledger,
        requests=TokenRequestService(gate, assets, ledger, notifier=dispatcher),
        orders=OrderService(
            settings, gate, assets, ledger, transfers, valuation, notifier=dispatcher,
        ),
        users=UserService(gate, ledger, notifier=dispatcher),
        dispatcher=dispatcher,
        sink=sink,
    )


@pytest.fixture
async def db():
    settings = make_settings()
    manager = DatabaseManager(settings)
    await manager.init()
    await manager.create_all()
    yield manager
    await manager.close()


@pytest.fixture
def svc():
    return build_services(make_settings())


@pytest.fixture
async def people(db, svc):
    """Admin, two approved investors and one investor still pending KYC."""
    async with db.get_session() as session:
        admin = await svc.users.create_user(
            session, "Admin", "admin@example.com",
            role=UserRole.ADMIN, kyc_status=KycStatus.APPROVED,
        )
        alice = await svc.users.create_user(
            session, "Alice", "alice@example.com", kyc_status=KycStatus.APPROVED,
        )
        bob = await svc.users.create_user(
            session, "Bob", "bob@example.com", kyc_status=KycStatus.APPROVED,
        )
        carol = await svc.users.register(session, "Carol", "carol@example.com")
    return {"admin": admin.id, "alice": alice.id, "bob": bob.id, "carol": carol.id}


@pytest.fixture
async def asset(db, svc, people):
    """A 1000-token real estate asset at NAV 100.00."""
    async with db.get_session() as session:
        created = await svc.assets.create_asset(
            session, people["admin"],
            type="real_estate",
            title="Harbour View Apartments",
            description="Residential block",
            total_supply=1000,
            nav_price="100.00",
        )
    await svc.dispatcher.drain()
    svc.sink.sent.clear()
    return created


@pytest.fixture
def make_services():
    """Build a second service graph with overridden settings against the same DB."""

    def _build(**overrides) -> Ledger:
        return build_services(make_settings(**overrides))
    return _build


@pytest.fixture
def ledger_logs(caplog, monkeypatch):
    """caplog, with the app logger propagating even after setup_logging ran."""
    monkeypatch.setattr(logging.getLogger("rwa_ledger"), "propagate", True)
    return caplog
