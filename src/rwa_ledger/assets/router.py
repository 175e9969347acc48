"""Asset registry API router."""

from fastapi import APIRouter, Depends, Query

from rwa_ledger.assets.schemas import AssetCreate, AssetResponse, AssetUpdate, NavRevision
from rwa_ledger.common.enums import AssetType
from rwa_ledger.common.security import require_api_key, require_caller

router = APIRouter()


def _get_service():
    from rwa_ledger.deps import get_asset_service
    return get_asset_service()


def _get_db():
    from rwa_ledger.deps import get_db
    return get_db()


@router.post("/assets", response_model=AssetResponse, status_code=201)
async def create_asset(body: AssetCreate, caller_id: str = Depends(require_caller)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        asset = await svc.create_asset(
            session, caller_id,
            type=body.type,
            title=body.title,
            description=body.description,
            total_supply=body.total_supply,
            nav_price=body.nav_price,
        )
        return AssetResponse.model_validate(asset)


@router.get("/assets", response_model=list[AssetResponse])
async def list_assets(
    type: AssetType | None = Query(None),
    _=Depends(require_api_key),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        assets = await svc.list_assets(session, type=type)
        return [AssetResponse.model_validate(a) for a in assets]


@router.get("/assets/{asset_id}", response_model=AssetResponse)
async def get_asset(asset_id: str, _=Depends(require_api_key)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        return AssetResponse.model_validate(await svc.get_asset(session, asset_id))


@router.patch("/assets/{asset_id}", response_model=AssetResponse)
async def update_asset(
    asset_id: str, body: AssetUpdate, caller_id: str = Depends(require_caller),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        asset = await svc.update_details(
            session, caller_id, asset_id,
            title=body.title, description=body.description,
        )
        return AssetResponse.model_validate(asset)


@router.post("/assets/{asset_id}/nav", response_model=AssetResponse)
async def revise_nav(
    asset_id: str, body: NavRevision, caller_id: str = Depends(require_caller),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        asset = await svc.revise_nav(
            session, caller_id, asset_id, body.nav_price, reason=body.reason,
        )
        return AssetResponse.model_validate(asset)
