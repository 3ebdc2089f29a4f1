"""
Orders and the order status lifecycle.

Status changes go through `change_status`, which validates the transition for the
caller's role, stamps lifecycle timestamps, moves stock and appends to the
`order_status_history` audit trail.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from marketplace.db.models import Inventory, InventoryLog, Order, OrderItem, OrderStatusHistory, Product, ProductVariant, Vendor
from marketplace.errors import NotFoundError, PermissionDeniedError, ValidationError
from marketplace.identity import CurrentUser
from marketplace.pricing import format_price, to_cents

logger = logging.getLogger(__name__)

ORDER_STATUSES = (
    "pending",
    "paid",
    "confirmed",
    "processing",
    "packed",
    "shipped",
    "delivered",
    "cancelled",
    "refunded",
    "disputed",
)

STATUS_TRANSITIONS: Dict[str, Tuple[str, ...]] = {
    "pending": ("paid", "cancelled", "disputed"),
    "paid": ("confirmed", "cancelled", "disputed"),
    "confirmed": ("processing", "cancelled", "disputed"),
    "processing": ("packed", "cancelled", "disputed"),
    "packed": ("shipped", "cancelled", "disputed"),
    "shipped": ("delivered", "cancelled", "disputed"),
    "delivered": ("refunded", "disputed"),
    "cancelled": ("disputed",),
    "refunded": ("disputed",),
    "disputed": ("cancelled", "refunded"),
}

# Roles allowed to move an order into a status; statuses not listed are open to any role.
STATUS_ROLES: Dict[str, Tuple[str, ...]] = {
    "confirmed": ("admin", "vendor"),
    "packed": ("admin", "vendor"),
    "shipped": ("admin", "vendor"),
    "delivered": ("admin", "vendor"),
    "refunded": ("admin",),
    "disputed": ("customer", "vendor", "admin"),
}

CUSTOMER_CANCELLABLE = ("pending", "confirmed")
_RESTOCK_STATUSES = ("cancelled", "refunded")


# PUBLIC_INTERFACE
def can_transition(current: str, new: str) -> bool:
    return new in STATUS_TRANSITIONS.get(current, ())


# PUBLIC_INTERFACE
def validate_status_transition(
    role: str, current: str, new: str, order_data: Optional[Mapping[str, Any]] = None
) -> Tuple[bool, Optional[str]]:
    """
    Check whether `role` may move an order from `current` to `new`.

    Returns `(True, None)` or `(False, reason)`.
    """
    order_data = order_data or {}
    if new not in ORDER_STATUSES or current not in ORDER_STATUSES or not can_transition(current, new):
        return False, f"Cannot transition from {current} to {new}"

    allowed = STATUS_ROLES.get(new)
    if new == "refunded" and role != "admin":
        return False, "Refund requires admin approval"
    if allowed and role not in allowed:
        return False, f"Role {role} cannot change status to {new}"

    if new == "shipped" and not (order_data.get("tracking_number") and order_data.get("shipping_carrier")):
        return False, "Tracking number and carrier required for shipping"
    if new == "cancelled" and not order_data.get("cancellation_reason"):
        return False, "Cancellation reason required"
    return True, None


def _serialize_item(item: OrderItem, currency: str) -> Dict[str, Any]:
    return {
        "id": item.id,
        "product_id": item.product_id,
        "variant_id": item.variant_id,
        "variant_title": item.variant.title if item.variant is not None else None,
        "quantity": item.quantity,
        "price_at_purchase_cents": item.price_at_purchase_cents,
        "subtotal_cents": item.subtotal_cents,
        "subtotal_formatted": format_price(item.subtotal_cents, currency),
    }


def _serialize(order: Order, with_history: bool = False) -> Dict[str, Any]:
    shaped = {
        "id": order.id,
        "user_id": order.user_id,
        "vendor_id": order.vendor_id,
        "status": order.status,
        "total_amount_cents": order.total_amount_cents,
        "total_formatted": format_price(order.total_amount_cents, order.currency),
        "currency": order.currency,
        "shipping_address": order.shipping_address,
        "payment_provider": order.payment_provider,
        "tracking_number": order.tracking_number,
        "shipping_carrier": order.shipping_carrier,
        "cancellation_reason": order.cancellation_reason,
        "shipped_at": order.shipped_at,
        "delivered_at": order.delivered_at,
        "cancelled_at": order.cancelled_at,
        "created_at": order.created_at,
        "items": [_serialize_item(i, order.currency) for i in order.items],
    }
    if with_history:
        shaped["history"] = [
            {
                "old_status": h.old_status,
                "new_status": h.new_status,
                "changed_by": h.changed_by,
                "note": h.note,
                "created_at": h.created_at,
            }
            for h in order.history
        ]
    return shaped


def _as_uuid(value: Any, label: str) -> uuid.UUID:
    try:
        return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
    except ValueError:
        raise ValidationError(f"Invalid {label}: {value}")


# PUBLIC_INTERFACE
def create_order(db: Session, user_id: uuid.UUID, data: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Create a pending order from `{items: [{variant_id, quantity, price_at_purchase?}],
    shipping_address, payment_provider}`.

    The unit price is `price_at_purchase` when given, else the variant's sale price, else
    its regular price. The order belongs to the vendor of the first item's product.
    """
    items = list(data.get("items") or [])
    if not items or not data.get("shipping_address"):
        raise ValidationError("Missing required fields")

    order_items: List[OrderItem] = []
    first_product_id: Optional[uuid.UUID] = None
    for raw in items:
        variant_id = _as_uuid(raw.get("variant_id"), "variant id")
        quantity = int(raw.get("quantity") or 0)
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        variant = db.get(ProductVariant, variant_id)
        if variant is None:
            raise NotFoundError(f"Variant {variant_id} not found")

        unit = to_cents(raw.get("price_at_purchase"), default=None)
        if unit is None:
            unit = variant.sale_price_in_cents if variant.sale_price_in_cents is not None else (variant.price_in_cents or 0)
        order_items.append(
            OrderItem(
                product_id=variant.product_id,
                variant_id=variant.id,
                quantity=quantity,
                price_at_purchase_cents=unit,
                subtotal_cents=unit * quantity,
            )
        )
        first_product_id = first_product_id or variant.product_id

    product = db.get(Product, first_product_id)
    if product is None:
        raise NotFoundError("Product not found")

    order = Order(
        user_id=user_id,
        vendor_id=product.vendor_id,
        status="pending",
        total_amount_cents=sum(i.subtotal_cents for i in order_items),
        currency=str(data.get("currency") or product.currency or "USD").upper(),
        shipping_address=dict(data["shipping_address"]),
        payment_provider=data.get("payment_provider"),
    )
    order.items = order_items
    order.history = [OrderStatusHistory(old_status=None, new_status="pending", changed_by=user_id, note="Order created")]
    db.add(order)
    db.commit()
    logger.info("Order %s created by %s: %d item(s), %d cents", order.id, user_id, len(order_items), order.total_amount_cents)
    return _serialize(order)


# PUBLIC_INTERFACE
def list_orders(
    db: Session, user_id: uuid.UUID, status: Optional[str] = None, page: int = 1, limit: int = 10
) -> Dict[str, Any]:
    """A customer's orders, newest first, with pagination totals."""
    page = max(1, page)
    conditions = [Order.user_id == user_id]
    if status:
        conditions.append(Order.status == status)

    total = db.scalar(select(func.count()).select_from(Order).where(*conditions)) or 0
    rows = db.scalars(
        select(Order)
        .where(*conditions)
        .order_by(Order.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .options(selectinload(Order.items).selectinload(OrderItem.variant))
    ).all()
    return {
        "orders": [_serialize(o) for o in rows],
        "pagination": {"page": page, "limit": limit, "total": total, "total_pages": -(-total // limit) if limit else 0},
    }


def _load(db: Session, order_id: uuid.UUID) -> Order:
    order = db.scalars(
        select(Order)
        .where(Order.id == order_id)
        .options(selectinload(Order.items).selectinload(OrderItem.variant), selectinload(Order.history))
    ).first()
    if order is None:
        raise NotFoundError("Order not found")
    return order


# PUBLIC_INTERFACE
def get_order(db: Session, user_id: uuid.UUID, order_id: uuid.UUID) -> Dict[str, Any]:
    order = _load(db, order_id)
    if order.user_id != user_id:
        raise NotFoundError("Order not found")
    return _serialize(order, with_history=True)


def _authorize(db: Session, order: Order, actor: CurrentUser) -> None:
    if actor.is_admin:
        return
    if actor.role == "vendor":
        vendor = db.get(Vendor, order.vendor_id) if order.vendor_id else None
        if vendor is None or vendor.owner_id != actor.id:
            raise PermissionDeniedError("Unauthorized")
        return
    if order.user_id != actor.id:
        raise PermissionDeniedError("Unauthorized")


def _adjust_stock(db: Session, order: Order, direction: int, actor_id: uuid.UUID, reason: str) -> None:
    """Move stock for every order line; direction -1 sells, +1 restocks. Stock never goes below zero."""
    for item in order.items:
        if item.variant is None:
            continue
        change = direction * item.quantity
        item.variant.inventory_quantity = max(0, (item.variant.inventory_quantity or 0) + change)

        record = db.scalars(select(Inventory).where(Inventory.variant_id == item.variant_id)).first()
        if record is not None and record.manage_inventory:
            before = record.available_quantity
            record.available_quantity = max(0, before + change)
            record.logs.append(
                InventoryLog(
                    action="sale" if direction < 0 else "restock",
                    quantity_change=record.available_quantity - before,
                    reason=reason,
                    created_by=actor_id,
                )
            )


# PUBLIC_INTERFACE
def change_status(
    db: Session,
    order_id: uuid.UUID,
    actor: CurrentUser,
    new_status: str,
    metadata: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Move an order to `new_status` on behalf of `actor`.

    `metadata` may carry tracking_number, shipping_carrier, cancellation_reason and a
    free-text note for the history entry. Paying an order takes its items out of stock;
    cancelling or refunding an order that was paid puts them back, once.
    """
    metadata = dict(metadata or {})
    order = _load(db, order_id)
    _authorize(db, order, actor)

    order_data = {
        "tracking_number": metadata.get("tracking_number") or order.tracking_number,
        "shipping_carrier": metadata.get("shipping_carrier") or order.shipping_carrier,
        "cancellation_reason": metadata.get("cancellation_reason") or metadata.get("reason"),
    }
    valid, reason = validate_status_transition(actor.role, order.status, new_status, order_data)
    if not valid:
        raise ValidationError(reason)

    old_status = order.status
    previously = {h.new_status for h in order.history}
    now = datetime.now(timezone.utc)

    order.status = new_status
    if new_status == "shipped":
        order.tracking_number = order_data["tracking_number"]
        order.shipping_carrier = order_data["shipping_carrier"]
        order.shipped_at = now
    elif new_status == "delivered":
        order.delivered_at = now
    elif new_status == "cancelled":
        order.cancellation_reason = order_data["cancellation_reason"]
        order.cancelled_at = now

    if new_status == "paid":
        _adjust_stock(db, order, -1, actor.id, f"Order paid: {order.id}")
    elif new_status in _RESTOCK_STATUSES and "paid" in previously and not previously & set(_RESTOCK_STATUSES):
        _adjust_stock(db, order, 1, actor.id, f"Order {new_status}: {order.id}")

    order.history.append(
        OrderStatusHistory(
            old_status=old_status,
            new_status=new_status,
            changed_by=actor.id,
            note=metadata.get("note") or order_data["cancellation_reason"],
        )
    )
    db.commit()
    logger.info("Order %s: %s -> %s by %s (%s)", order.id, old_status, new_status, actor.id, actor.role)
    return _serialize(order, with_history=True)


# PUBLIC_INTERFACE
def cancel_order(db: Session, user_id: uuid.UUID, order_id: uuid.UUID, reason: Optional[str]) -> Dict[str, Any]:
    """Customer-initiated cancellation, allowed only while the order is pending or confirmed."""
    order = _load(db, order_id)
    if order.user_id != user_id:
        raise PermissionDeniedError("Unauthorized")
    if order.status not in CUSTOMER_CANCELLABLE:
        raise ValidationError("Cannot cancel this order")
    return change_status(
        db,
        order_id,
        CurrentUser(id=user_id, role="customer"),
        "cancelled",
        {"cancellation_reason": reason or "Cancelled by customer"},
    )
