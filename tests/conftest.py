"""Shared test fixtures for RWA Ledger."""

import os
import pytest
from httpx import ASGITransport, AsyncClient


HMAC_KEY = "test-hmac-key-for-unit-tests"
API_KEY = "test-gateway-api-key"


@pytest.fixture
def hmac_key():
    return HMAC_KEY


@pytest.fixture
def api_key():
    return API_KEY


@pytest.fixture
def app(tmp_path):
    """Create a test app backed by a throwaway SQLite file.

    A file rather than ``:memory:`` so post-commit notification sinks get
    their own connections instead of sharing the request's.
    """
    os.environ["LEDGER_DB_URL"] = f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}"
    os.environ["LEDGER_HMAC_KEY"] = HMAC_KEY
    os.environ["LEDGER_API_KEY"] = API_KEY
    os.environ["LEDGER_ENVIRONMENT"] = "development"

    # Clear caches and singletons so new env vars take effect
    from rwa_ledger.common.config import get_settings
    get_settings.cache_clear()

    from rwa_ledger.deps import reset_singletons
    reset_singletons()

    from rwa_ledger.app import create_app
    return create_app()


@pytest.fixture
async def client(app):
    # Manually init DB since ASGITransport doesn't run lifespan
    from rwa_ledger.deps import get_db, get_dispatcher
    db = get_db()
    await db.init()
    await db.create_all()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await get_dispatcher().drain()
    await db.close()


@pytest.fixture
async def users(client):
    """An admin plus two KYC-approved investors, created directly in the DB."""
    from rwa_ledger.common.enums import KycStatus, UserRole
    from rwa_ledger.deps import get_db, get_user_service

    svc = get_user_service()
    async with get_db().get_session() as session:
        admin = await svc.create_user(
            session, "Admin", "admin@example.com",
            role=UserRole.ADMIN, kyc_status=KycStatus.APPROVED,
        )
        alice = await svc.create_user(
            session, "Alice", "alice@example.com", kyc_status=KycStatus.APPROVED,
        )
        bob = await svc.create_user(
            session, "Bob", "bob@example.com", kyc_status=KycStatus.APPROVED,
        )
    return {"admin": admin.id, "alice": alice.id, "bob": bob.id}


@pytest.fixture
def gateway_headers():
    return {"X-Ledger-Api-Key": API_KEY}


@pytest.fixture
def headers_for():
    def _headers(user_id: str) -> dict[str, str]:
        return {"X-Ledger-Api-Key": API_KEY, "X-Ledger-User-Id": user_id}
    return _headers
