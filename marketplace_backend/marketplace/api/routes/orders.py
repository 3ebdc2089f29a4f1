import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.api.deps import get_current_user
from marketplace.api.schemas import OrderCancel, OrderCreate, OrderStatusUpdate
from marketplace.db.session import get_db
from marketplace.identity import CurrentUser
from marketplace.services import orders

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post("", status_code=201, summary="Place an order")
def create_order(body: OrderCreate, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return orders.create_order(db, user.id, body.model_dump())


@router.get("/my-orders", summary="The caller's orders")
def my_orders(
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return orders.list_orders(db, user.id, status=status, page=page, limit=limit)


@router.get("/{order_id}", summary="Get one of the caller's orders")
def get_order(order_id: uuid.UUID, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return orders.get_order(db, user.id, order_id)


@router.patch("/{order_id}/status", summary="Change an order's status")
def change_status(
    order_id: uuid.UUID,
    body: OrderStatusUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    metadata = body.model_dump(exclude={"status"}, exclude_none=True)
    return orders.change_status(db, order_id, user, body.status, metadata)


@router.post("/{order_id}/cancel", summary="Cancel one of the caller's orders")
def cancel_order(
    order_id: uuid.UUID,
    body: Optional[OrderCancel] = None,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return orders.cancel_order(db, user.id, order_id, body.reason if body else None)
