"""
Vendor sales dashboard.

Figures cover the vendor's own order lines in orders that have been paid and not
cancelled, refunded or disputed. An order holding products from several vendors counts
toward each of them, with only that vendor's lines in its revenue.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from marketplace.config import DEFAULT_CURRENCY
from marketplace.db.models import Order, OrderItem, Product, Vendor
from marketplace.errors import NotFoundError, ValidationError
from marketplace.pricing import format_price

logger = logging.getLogger(__name__)

REVENUE_STATUSES = ("paid", "confirmed", "processing", "packed", "shipped", "delivered")
TOP_PRODUCTS_LIMIT = 5


def _rate(part: int, whole: int) -> float:
    return round(part * 100 / whole, 1) if whole else 0.0


# PUBLIC_INTERFACE
def vendor_summary(
    db: Session,
    vendor_id: uuid.UUID,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Revenue, order count, average order value, quantity sold, shipping and fulfilment
    rates, status breakdown and best-selling products for one vendor.

    `start_date`/`end_date` bound the order creation time (inclusive). Rates are
    percentages of the counted orders that have shipped or been delivered.
    """
    if db.get(Vendor, vendor_id) is None:
        raise NotFoundError(f"Vendor {vendor_id} not found")
    if start_date is not None and end_date is not None and start_date > end_date:
        raise ValidationError("start_date must not be after end_date")

    conditions = [Product.vendor_id == vendor_id, Order.status.in_(REVENUE_STATUSES)]
    if start_date is not None:
        conditions.append(Order.created_at >= start_date)
    if end_date is not None:
        conditions.append(Order.created_at <= end_date)

    rows = db.execute(
        select(
            OrderItem.order_id,
            OrderItem.product_id,
            OrderItem.quantity,
            OrderItem.subtotal_cents,
            Product.title,
            Order.status,
            Order.currency,
            Order.shipped_at,
            Order.delivered_at,
        )
        .join(Order, Order.id == OrderItem.order_id)
        .join(Product, Product.id == OrderItem.product_id)
        .where(*conditions)
        .order_by(Order.created_at, OrderItem.id)
    ).all()

    orders: Dict[uuid.UUID, Any] = {}
    products: Dict[uuid.UUID, Dict[str, Any]] = {}
    revenue = 0
    quantity = 0
    for row in rows:
        orders.setdefault(row.order_id, row)
        revenue += row.subtotal_cents
        quantity += row.quantity
        product = products.setdefault(
            row.product_id,
            {"product_id": row.product_id, "title": row.title, "quantity": 0, "revenue_cents": 0, "order_ids": set()},
        )
        product["quantity"] += row.quantity
        product["revenue_cents"] += row.subtotal_cents
        product["order_ids"].add(row.order_id)

    currency = next((o.currency for o in orders.values() if o.currency), None) or DEFAULT_CURRENCY
    total_orders = len(orders)
    shipped = sum(1 for o in orders.values() if o.shipped_at is not None or o.status in ("shipped", "delivered"))
    delivered = sum(1 for o in orders.values() if o.delivered_at is not None or o.status == "delivered")
    average = round(revenue / total_orders) if total_orders else 0

    status_distribution: Dict[str, int] = {}
    for order in orders.values():
        status_distribution[order.status] = status_distribution.get(order.status, 0) + 1

    top_products = sorted(products.values(), key=lambda p: (-p["revenue_cents"], -p["quantity"], p["title"] or ""))
    top_products = [
        {
            "product_id": p["product_id"],
            "title": p["title"],
            "quantity": p["quantity"],
            "order_count": len(p["order_ids"]),
            "revenue_cents": p["revenue_cents"],
            "revenue_formatted": format_price(p["revenue_cents"], currency),
        }
        for p in top_products[:TOP_PRODUCTS_LIMIT]
    ]

    logger.debug("Dashboard for vendor %s: %d order(s), %d cents", vendor_id, total_orders, revenue)
    return {
        "vendor_id": vendor_id,
        "currency": currency,
        "total_revenue_cents": revenue,
        "total_revenue_formatted": format_price(revenue, currency),
        "total_orders": total_orders,
        "average_order_value_cents": average,
        "average_order_value_formatted": format_price(average, currency),
        "total_quantity": quantity,
        "shipping_rate": _rate(shipped, total_orders),
        "fulfillment_rate": _rate(delivered, total_orders),
        "status_distribution": status_distribution,
        "top_products": top_products,
        "period": {"start_date": start_date, "end_date": end_date},
    }
