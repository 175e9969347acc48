"""Demo data: an admin, two KYC-approved investors and three listed assets."""

from rwa_ledger.assets.service import AssetService
from rwa_ledger.common.config import get_settings
from rwa_ledger.common.database import DatabaseManager
from rwa_ledger.common.enums import AssetType, KycStatus, UserRole
from rwa_ledger.compliance.gate import ComplianceGate
from rwa_ledger.ledger.service import LedgerService
from rwa_ledger.transfers.service import TransferLog
from rwa_ledger.users.service import UserService
from rwa_ledger.valuation.service import ValuationService

DEMO_USERS = [
    ("Admin User", "admin@rwa-ledger.local", UserRole.ADMIN),
    ("Alice Investor", "alice@rwa-ledger.local", UserRole.INVESTOR),
    ("Bob Investor", "bob@rwa-ledger.local", UserRole.INVESTOR),
]

DEMO_ASSETS = [
    (
        AssetType.REAL_ESTATE,
        "Manhattan Office Tower",
        "Class A office space in Midtown Manhattan, 40 floors.",
        10000,
        "150.00",
    ),
    (
        AssetType.COMMODITY,
        "Gold Bullion Reserve",
        "Physical gold bullion held in an insured Swiss vault.",
        5000,
        "200.00",
    ),
    (
        AssetType.LOAN,
        "Commercial Mortgage Pool",
        "Diversified pool of commercial real estate loans.",
        25000,
        "100.00",
    ),
]


async def seed_demo(db: DatabaseManager) -> list[str]:
    """Create whatever demo rows are missing. Returns a line per action."""
    settings = get_settings()
    gate = ComplianceGate()
    valuation = ValuationService(settings)
    assets = AssetService(settings, gate, valuation)
    ledger = LedgerService(settings, gate, assets, TransferLog(settings))
    users = UserService(gate, ledger)

    report = []
    async with db.get_session() as session:
        admin_id = None
        for name, email, role in DEMO_USERS:
            user = await users.get_by_email(session, email)
            if user is not None:
                report.append(f"[skip] {email} already exists")
            else:
                user = await users.create_user(
                    session, name, email, role=role, kyc_status=KycStatus.APPROVED,
                )
                report.append(f"[created] {role.value.lower()} {email} ({user.id})")
            if role == UserRole.ADMIN:
                admin_id = user.id

        if await assets.list_assets(session):
            report.append("[skip] assets already exist")
        else:
            for asset_type, title, description, supply, nav in DEMO_ASSETS:
                asset = await assets.create_asset(
                    session, admin_id,
                    type=asset_type,
                    title=title,
                    description=description,
                    total_supply=supply,
                    nav_price=nav,
                )
                report.append(f"[created] asset {title} ({asset.id})")
    return report
