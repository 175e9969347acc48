"""Transfer log API router."""

from fastapi import APIRouter, Depends, Query

from rwa_ledger.common.enums import TransferReason
from rwa_ledger.common.security import require_caller
from rwa_ledger.transfers.schemas import ChainVerification, TransferResponse

router = APIRouter()


def _get_service():
    from rwa_ledger.deps import get_transfer_log
    return get_transfer_log()


def _get_gate():
    from rwa_ledger.deps import get_gate
    return get_gate()


def _get_db():
    from rwa_ledger.deps import get_db
    return get_db()


@router.get("/transfers", response_model=list[TransferResponse])
async def list_transfers(
    asset_id: str | None = Query(None),
    user_id: str | None = Query(None),
    reason: TransferReason | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    caller_id: str = Depends(require_caller),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await _get_gate().require_admin(session, caller_id)
        transfers = await svc.list_transfers(
            session, asset_id=asset_id, user_id=user_id, reason=reason,
            limit=limit, offset=offset,
        )
        return [TransferResponse.model_validate(t) for t in transfers]


@router.get("/transfers/mine", response_model=list[TransferResponse])
async def my_transfers(
    asset_id: str | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    caller_id: str = Depends(require_caller),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        transfers = await svc.list_transfers(
            session, asset_id=asset_id, user_id=caller_id, limit=limit, offset=offset,
        )
        return [TransferResponse.model_validate(t) for t in transfers]


@router.get("/transfers/verify/{asset_id}", response_model=ChainVerification)
async def verify_transfer_chain(asset_id: str, caller_id: str = Depends(require_caller)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await _get_gate().require_admin(session, caller_id)
        return ChainVerification(**await svc.verify_chain(session, asset_id))
