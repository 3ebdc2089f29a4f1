"""Vendor stock records (`inventory`) and their change log (`inventory_logs`)."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from marketplace.config import LOW_STOCK_THRESHOLD
from marketplace.db.models import Inventory, InventoryLog, ProductVariant
from marketplace.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError

logger = logging.getLogger(__name__)


def _serialize(record: Inventory) -> Dict[str, Any]:
    variant = record.variant
    return {
        "id": record.id,
        "variant_id": record.variant_id,
        "product_id": record.product_id,
        "vendor_id": record.vendor_id,
        "available_quantity": record.available_quantity,
        "manage_inventory": bool(record.manage_inventory),
        "low_stock_threshold": record.low_stock_threshold,
        "is_low_stock": record.available_quantity <= record.low_stock_threshold,
        "sku": variant.sku if variant is not None else None,
        "variant_title": variant.title if variant is not None else None,
        "updated_at": record.updated_at,
    }


def _as_uuid(value: Any, label: str) -> uuid.UUID:
    try:
        return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
    except ValueError:
        raise ValidationError(f"Invalid {label}: {value}")


def _quantity(value: Any) -> int:
    try:
        quantity = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Quantity must be a whole number")
    if quantity < 0:
        raise ValidationError("Quantity cannot be negative")
    return quantity


def _record(db: Session, vendor_id: uuid.UUID, variant_id: uuid.UUID) -> Inventory:
    record = db.scalars(
        select(Inventory)
        .where(Inventory.variant_id == variant_id, Inventory.vendor_id == vendor_id)
        .options(selectinload(Inventory.variant))
    ).first()
    if record is None:
        raise NotFoundError("Inventory not found")
    return record


# PUBLIC_INTERFACE
def create_inventory(
    db: Session, vendor_id: uuid.UUID, data: Mapping[str, Any], actor_id: Optional[uuid.UUID] = None
) -> Dict[str, Any]:
    """
    Start tracking stock for one of the vendor's variants. Each variant has at most one
    inventory record. `actor_id` is the profile recorded on the log entry.
    """
    variant_id = _as_uuid(data.get("variant_id"), "variant id")
    variant = db.get(ProductVariant, variant_id)
    if variant is None:
        raise NotFoundError(f"Variant {variant_id} not found")
    if variant.product is None or variant.product.vendor_id != vendor_id:
        raise PermissionDeniedError("You do not manage this variant")
    if db.scalar(select(Inventory.id).where(Inventory.variant_id == variant_id)) is not None:
        raise ConflictError("Inventory already exists for this variant")

    quantity = _quantity(data.get("available_quantity", 0))
    threshold = data.get("low_stock_threshold")
    record = Inventory(
        variant_id=variant_id,
        product_id=variant.product_id,
        vendor_id=vendor_id,
        available_quantity=quantity,
        manage_inventory=data.get("manage_inventory", True) is not False,
        low_stock_threshold=_quantity(threshold) if threshold is not None else LOW_STOCK_THRESHOLD,
    )
    record.variant = variant
    record.logs.append(InventoryLog(action="added", quantity_change=quantity, reason="Initial inventory", created_by=actor_id))
    db.add(record)
    db.commit()
    logger.info("Inventory created for variant %s with %d units", variant_id, quantity)
    return _serialize(record)


# PUBLIC_INTERFACE
def update_inventory(
    db: Session,
    vendor_id: uuid.UUID,
    variant_id: uuid.UUID,
    available_quantity: Any,
    action: str = "adjusted",
    reason: Optional[str] = None,
    actor_id: Optional[uuid.UUID] = None,
) -> Dict[str, Any]:
    """Set the available quantity and log the change as a delta."""
    quantity = _quantity(available_quantity)
    record = _record(db, vendor_id, variant_id)
    delta = quantity - record.available_quantity
    record.available_quantity = quantity
    record.logs.append(
        InventoryLog(action=action or "adjusted", quantity_change=delta, reason=reason or "Manual adjustment", created_by=actor_id)
    )
    db.commit()
    logger.info("Inventory for variant %s set to %d (%+d, %s)", variant_id, quantity, delta, action)
    return _serialize(record)


# PUBLIC_INTERFACE
def list_inventory(
    db: Session,
    vendor_id: uuid.UUID,
    product_id: Optional[uuid.UUID] = None,
    page: int = 1,
    limit: int = 50,
) -> Dict[str, Any]:
    page = max(1, page)
    conditions = [Inventory.vendor_id == vendor_id]
    if product_id is not None:
        conditions.append(Inventory.product_id == product_id)

    total = db.scalar(select(func.count()).select_from(Inventory).where(*conditions)) or 0
    rows = db.scalars(
        select(Inventory)
        .where(*conditions)
        .order_by(Inventory.updated_at.desc(), Inventory.id)
        .offset((page - 1) * limit)
        .limit(limit)
        .options(selectinload(Inventory.variant))
    ).all()
    return {
        "inventory": [_serialize(r) for r in rows],
        "pagination": {"page": page, "limit": limit, "total": total, "total_pages": -(-total // limit) if limit else 0},
    }


# PUBLIC_INTERFACE
def get_inventory(db: Session, vendor_id: uuid.UUID, variant_id: uuid.UUID) -> Dict[str, Any]:
    """One inventory record with its change log, newest entry first."""
    record = _record(db, vendor_id, variant_id)
    shaped = _serialize(record)
    logs = db.scalars(
        select(InventoryLog)
        .where(InventoryLog.inventory_id == record.id)
        .order_by(InventoryLog.created_at.desc(), InventoryLog.id)
    )
    shaped["logs"] = [
        {
            "action": log.action,
            "quantity_change": log.quantity_change,
            "reason": log.reason,
            "created_by": log.created_by,
            "created_at": log.created_at,
        }
        for log in logs
    ]
    return shaped


# PUBLIC_INTERFACE
def low_stock(db: Session, vendor_id: uuid.UUID) -> List[Dict[str, Any]]:
    """Records at or below their low-stock threshold, emptiest first."""
    rows = db.scalars(
        select(Inventory)
        .where(Inventory.vendor_id == vendor_id, Inventory.available_quantity <= Inventory.low_stock_threshold)
        .order_by(Inventory.available_quantity.asc(), Inventory.id)
        .options(selectinload(Inventory.variant))
    ).all()
    return [_serialize(r) for r in rows]
