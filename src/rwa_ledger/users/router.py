"""Account and KYC administration API router."""

from fastapi import APIRouter, Depends, Query

from rwa_ledger.common.enums import KycStatus
from rwa_ledger.common.security import require_api_key, require_caller
from rwa_ledger.users.schemas import (
    FreezeRequest,
    KycUpdate,
    UserCreate,
    UserRegister,
    UserResponse,
)

router = APIRouter()


def _get_service():
    from rwa_ledger.deps import get_user_service
    return get_user_service()


def _get_db():
    from rwa_ledger.deps import get_db
    return get_db()


@router.post("/users/register", response_model=UserResponse, status_code=201)
async def register_user(body: UserRegister, _=Depends(require_api_key)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        user = await svc.register(session, body.name, body.email)
        return UserResponse.model_validate(user)


@router.get("/users/me", response_model=UserResponse)
async def current_user(caller_id: str = Depends(require_caller)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        return UserResponse.model_validate(await svc.get_user(session, caller_id))


@router.post("/users", response_model=UserResponse, status_code=201)
async def create_user(body: UserCreate, caller_id: str = Depends(require_caller)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        user = await svc.create_user(
            session, body.name, body.email,
            role=body.role, kyc_status=body.kyc_status, actor_id=caller_id,
        )
        return UserResponse.model_validate(user)


@router.get("/users", response_model=list[UserResponse])
async def list_users(
    kyc_status: KycStatus | None = Query(None),
    caller_id: str = Depends(require_caller),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await svc.gate.require_admin(session, caller_id)
        users = await svc.list_users(session, kyc_status=kyc_status)
        return [UserResponse.model_validate(u) for u in users]


@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user(user_id: str, caller_id: str = Depends(require_caller)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await svc.gate.require_admin(session, caller_id)
        return UserResponse.model_validate(await svc.get_user(session, user_id))


@router.put("/users/{user_id}/kyc", response_model=UserResponse)
async def set_kyc_status(
    user_id: str, body: KycUpdate, caller_id: str = Depends(require_caller),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        user = await svc.set_kyc_status(session, caller_id, user_id, body.kyc_status)
        return UserResponse.model_validate(user)


@router.post("/users/{user_id}/freeze", response_model=UserResponse)
async def freeze_user(
    user_id: str,
    body: FreezeRequest | None = None,
    caller_id: str = Depends(require_caller),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        user = await svc.freeze_user(
            session, caller_id, user_id, reason=body.reason if body else None,
        )
        return UserResponse.model_validate(user)


@router.post("/users/{user_id}/unfreeze", response_model=UserResponse)
async def unfreeze_user(
    user_id: str,
    body: FreezeRequest | None = None,
    caller_id: str = Depends(require_caller),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        user = await svc.unfreeze_user(
            session, caller_id, user_id, reason=body.reason if body else None,
        )
        return UserResponse.model_validate(user)
