"""Token ledger and token request API router."""

from fastapi import APIRouter, Depends, Query

from rwa_ledger.common.enums import RequestStatus
from rwa_ledger.common.schemas import SuccessResponse
from rwa_ledger.common.security import require_caller
from rwa_ledger.ledger.invariants import supply_report
from rwa_ledger.ledger.schemas import (
    MintRequest,
    PortfolioItem,
    RevokeRequest,
    SetAmountRequest,
    SetAmountResponse,
    SupplyReport,
    TokenFreezeRequest,
    TokenRequestCreate,
    TokenRequestResolve,
    TokenRequestResponse,
    TokenResponse,
)

router = APIRouter()


def _get_service():
    from rwa_ledger.deps import get_ledger_service
    return get_ledger_service()


def _get_request_service():
    from rwa_ledger.deps import get_token_request_service
    return get_token_request_service()


def _get_db():
    from rwa_ledger.deps import get_db
    return get_db()


# ── Balances ──

@router.post("/ledger/mint", response_model=TokenResponse, status_code=201)
async def mint_tokens(body: MintRequest, caller_id: str = Depends(require_caller)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        token = await svc.mint(
            session, caller_id, body.asset_id, body.user_id, body.amount, note=body.note,
        )
        return TokenResponse.model_validate(token)


@router.post("/ledger/tokens/{token_id}/revoke", response_model=SuccessResponse)
async def revoke_tokens(
    token_id: str, body: RevokeRequest, caller_id: str = Depends(require_caller),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        success = await svc.revoke(session, caller_id, token_id, body.amount, note=body.note)
        return SuccessResponse(success=success)


@router.put("/ledger/tokens/{token_id}/amount", response_model=SetAmountResponse)
async def set_token_amount(
    token_id: str, body: SetAmountRequest, caller_id: str = Depends(require_caller),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        token = await svc.admin_set_amount(
            session, caller_id, token_id, body.new_amount, reason=body.reason,
        )
        if token is None:
            return SetAmountResponse(token=None, deleted=True)
        return SetAmountResponse(token=TokenResponse.model_validate(token))


@router.post("/ledger/tokens/{token_id}/freeze", response_model=TokenResponse)
async def set_token_frozen(
    token_id: str, body: TokenFreezeRequest, caller_id: str = Depends(require_caller),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        token = await svc.set_token_frozen(
            session, caller_id, token_id, body.frozen, note=body.note,
        )
        return TokenResponse.model_validate(token)


@router.get("/ledger/tokens", response_model=list[TokenResponse])
async def list_tokens(
    asset_id: str | None = Query(None),
    owner_id: str | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    caller_id: str = Depends(require_caller),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await svc.gate.require_admin(session, caller_id)
        tokens = await svc.list_tokens(
            session, asset_id=asset_id, owner_id=owner_id, limit=limit, offset=offset,
        )
        return [TokenResponse.model_validate(t) for t in tokens]


@router.get("/ledger/portfolio", response_model=list[PortfolioItem])
async def my_portfolio(caller_id: str = Depends(require_caller)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        return [PortfolioItem(**item) for item in await svc.portfolio(session, caller_id)]


@router.get("/ledger/supply", response_model=list[SupplyReport])
async def get_supply_report(caller_id: str = Depends(require_caller)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await svc.gate.require_admin(session, caller_id)
        return [SupplyReport(**row) for row in await supply_report(session)]


# ── Token requests ──

@router.post("/token-requests", response_model=TokenRequestResponse, status_code=201)
async def request_tokens(body: TokenRequestCreate, caller_id: str = Depends(require_caller)):
    svc = _get_request_service()
    db = _get_db()
    async with db.get_session() as session:
        request = await svc.request_tokens(session, caller_id, body.asset_id, body.amount)
        return TokenRequestResponse.model_validate(request)


@router.get("/token-requests/mine", response_model=list[TokenRequestResponse])
async def my_token_requests(caller_id: str = Depends(require_caller)):
    svc = _get_request_service()
    db = _get_db()
    async with db.get_session() as session:
        requests = await svc.list_requests(session, user_id=caller_id)
        return [TokenRequestResponse.model_validate(r) for r in requests]


@router.get("/token-requests", response_model=list[TokenRequestResponse])
async def list_token_requests(
    status: RequestStatus | None = Query(None),
    caller_id: str = Depends(require_caller),
):
    svc = _get_request_service()
    db = _get_db()
    async with db.get_session() as session:
        await svc.gate.require_admin(session, caller_id)
        requests = await svc.list_requests(session, status=status)
        return [TokenRequestResponse.model_validate(r) for r in requests]


@router.post("/token-requests/{request_id}/approve", response_model=TokenRequestResponse)
async def approve_token_request(
    request_id: str,
    body: TokenRequestResolve | None = None,
    caller_id: str = Depends(require_caller),
):
    svc = _get_request_service()
    db = _get_db()
    async with db.get_session() as session:
        request = await svc.approve_request(
            session, caller_id, request_id, notes=body.notes if body else None,
        )
        return TokenRequestResponse.model_validate(request)


@router.post("/token-requests/{request_id}/reject", response_model=TokenRequestResponse)
async def reject_token_request(
    request_id: str,
    body: TokenRequestResolve | None = None,
    caller_id: str = Depends(require_caller),
):
    svc = _get_request_service()
    db = _get_db()
    async with db.get_session() as session:
        request = await svc.reject_request(
            session, caller_id, request_id, notes=body.notes if body else None,
        )
        return TokenRequestResponse.model_validate(request)
