"""Order book API router."""

from fastapi import APIRouter, Depends, Query

from rwa_ledger.common.schemas import SuccessResponse
from rwa_ledger.common.security import require_api_key, require_caller
from rwa_ledger.orders.schemas import OrderCreate, OrderResponse

router = APIRouter()


def _get_service():
    from rwa_ledger.deps import get_order_service
    return get_order_service()


def _get_db():
    from rwa_ledger.deps import get_db
    return get_db()


@router.post("/orders", response_model=OrderResponse, status_code=201)
async def create_order(body: OrderCreate, caller_id: str = Depends(require_caller)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        order = await svc.create_order(
            session, caller_id, body.asset_id, body.token_amount, body.price_per_token,
        )
        return OrderResponse.model_validate(order)


@router.get("/orders", response_model=list[OrderResponse])
async def open_order_book(
    asset_id: str | None = Query(None),
    _=Depends(require_api_key),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        orders = await svc.list_open_orders(session, asset_id=asset_id)
        return [OrderResponse.model_validate(o) for o in orders]


@router.get("/orders/mine", response_model=list[OrderResponse])
async def my_orders(caller_id: str = Depends(require_caller)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        orders = await svc.list_user_orders(session, caller_id)
        return [OrderResponse.model_validate(o) for o in orders]


@router.get("/orders/pending", response_model=list[OrderResponse])
async def pending_orders(caller_id: str = Depends(require_caller)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        orders = await svc.list_pending_orders(session, caller_id)
        return [OrderResponse.model_validate(o) for o in orders]


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, _=Depends(require_api_key)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        return OrderResponse.model_validate(await svc.get_order(session, order_id))


@router.post("/orders/{order_id}/approve", response_model=SuccessResponse)
async def approve_order(order_id: str, caller_id: str = Depends(require_caller)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        return SuccessResponse(success=await svc.approve_order(session, caller_id, order_id))


@router.post("/orders/{order_id}/reject", response_model=SuccessResponse)
async def reject_order(order_id: str, caller_id: str = Depends(require_caller)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        return SuccessResponse(success=await svc.reject_order(session, caller_id, order_id))


@router.post("/orders/{order_id}/fill", response_model=SuccessResponse)
async def fill_order(order_id: str, caller_id: str = Depends(require_caller)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        return SuccessResponse(success=await svc.fill_order(session, caller_id, order_id))


@router.post("/orders/{order_id}/cancel", response_model=SuccessResponse)
async def cancel_order(order_id: str, caller_id: str = Depends(require_caller)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        return SuccessResponse(success=await svc.cancel_order(session, caller_id, order_id))
