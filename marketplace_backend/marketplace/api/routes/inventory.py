"""Stock management for the caller's vendor account."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.api.deps import get_current_user, get_current_vendor_id
from marketplace.api.schemas import InventoryCreate, InventoryUpdate
from marketplace.db.session import get_db
from marketplace.identity import CurrentUser
from marketplace.services import inventory

router = APIRouter(prefix="/inventory", tags=["Inventory"])


@router.get("", summary="List inventory records")
def list_inventory(
    product_id: Optional[uuid.UUID] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    vendor_id: uuid.UUID = Depends(get_current_vendor_id),
    db: Session = Depends(get_db),
):
    return inventory.list_inventory(db, vendor_id, product_id=product_id, page=page, limit=limit)


@router.post("", status_code=201, summary="Track stock for a variant")
def create_inventory(
    body: InventoryCreate,
    vendor_id: uuid.UUID = Depends(get_current_vendor_id),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return inventory.create_inventory(db, vendor_id, body.model_dump(), actor_id=user.id)


@router.get("/low-stock/items", summary="Records at or below their threshold")
def low_stock(vendor_id: uuid.UUID = Depends(get_current_vendor_id), db: Session = Depends(get_db)):
    return {"items": inventory.low_stock(db, vendor_id)}


@router.get("/{variant_id}", summary="One inventory record with its log")
def get_inventory(variant_id: uuid.UUID, vendor_id: uuid.UUID = Depends(get_current_vendor_id), db: Session = Depends(get_db)):
    return inventory.get_inventory(db, vendor_id, variant_id)


@router.patch("/{variant_id}", summary="Set the available quantity")
def update_inventory(
    variant_id: uuid.UUID,
    body: InventoryUpdate,
    vendor_id: uuid.UUID = Depends(get_current_vendor_id),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return inventory.update_inventory(
        db, vendor_id, variant_id, body.available_quantity, body.action, body.reason, actor_id=user.id
    )
