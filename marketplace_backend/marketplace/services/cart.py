"""
Shopping cart arithmetic and server-side cart quotes.

The storefront keeps the cart in the browser; `quote_cart` re-prices it against the
database so checkout never trusts client-side prices.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from marketplace.config import DEFAULT_CURRENCY
from marketplace.db.models import Product, ProductVariant
from marketplace.errors import NotFoundError, ValidationError
from marketplace.pricing import format_price, to_cents, variant_price_cents
from marketplace.services.catalog import normalize_product, primary_image

logger = logging.getLogger(__name__)


@dataclass
class CartLine:
    product_id: Any
    variant_id: Any
    title: str
    variant_title: str
    image: Optional[str]
    price_in_cents: int
    quantity: int
    manage_inventory: bool = False
    available: Optional[int] = None

    @property
    def subtotal_cents(self) -> int:
        return self.price_in_cents * self.quantity

    def to_dict(self, currency: str) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "title": self.title,
            "variant_title": self.variant_title,
            "image": self.image,
            "price_in_cents": self.price_in_cents,
            "quantity": self.quantity,
            "subtotal_cents": self.subtotal_cents,
            "price_formatted": format_price(self.price_in_cents, currency),
        }


def _pseudo_variant(product: Mapping[str, Any]) -> Dict[str, Any]:
    """A product sold without variants behaves as one variant carrying the product's id and base price."""
    return {
        "id": product.get("id"),
        "title": "Default",
        "price_in_cents": to_cents(product.get("base_price")),
        "manage_inventory": False,
    }


class Cart:
    """In-memory cart keyed by variant id, preserving insertion order."""

    def __init__(self, currency: str = DEFAULT_CURRENCY) -> None:
        self.currency = currency
        self.lines: Dict[str, CartLine] = {}

    def __len__(self) -> int:
        return len(self.lines)

    # PUBLIC_INTERFACE
    def add(self, product: Mapping[str, Any], variant: Optional[Mapping[str, Any]] = None, quantity: int = 1) -> CartLine:
        """Add `quantity` of a variant; adding a variant already in the cart merges the quantities."""
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        variant = variant or _pseudo_variant(product)
        key = str(variant.get("id"))
        line = self.lines.get(key)
        if line is not None:
            line.quantity += quantity
            return line

        line = CartLine(
            product_id=product.get("id"),
            variant_id=variant.get("id"),
            title=product.get("title") or "Untitled",
            variant_title=variant.get("title") or "Default",
            image=variant.get("image_url") or primary_image(dict(product)),
            price_in_cents=variant_price_cents(variant) or 0,
            quantity=quantity,
            manage_inventory=bool(variant.get("manage_inventory")),
            available=variant.get("inventory_quantity"),
        )
        self.lines[key] = line
        return line

    # PUBLIC_INTERFACE
    def remove(self, variant_id: Any) -> None:
        self.lines.pop(str(variant_id), None)

    # PUBLIC_INTERFACE
    def update_quantity(
        self,
        variant_id: Any,
        quantity: int,
        available: Optional[int] = None,
        manage_inventory: bool = False,
    ) -> Optional[CartLine]:
        """Set a line's quantity, clamped to at least 1 and, for managed inventory, to what is available."""
        line = self.lines.get(str(variant_id))
        if line is None:
            return None
        quantity = max(1, int(quantity))
        if manage_inventory and available is not None:
            quantity = min(quantity, max(1, int(available)))
        line.quantity = quantity
        return line

    # PUBLIC_INTERFACE
    def clear(self) -> None:
        self.lines.clear()

    # PUBLIC_INTERFACE
    def total_cents(self) -> int:
        return sum(line.subtotal_cents for line in self.lines.values())

    # PUBLIC_INTERFACE
    def formatted_total(self) -> Optional[str]:
        return format_price(self.total_cents(), self.currency)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [line.to_dict(self.currency) for line in self.lines.values()],
            "total_cents": self.total_cents(),
            "total_formatted": self.formatted_total(),
            "currency": self.currency,
        }


def _as_uuid(value: Any, label: str) -> uuid.UUID:
    try:
        return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
    except ValueError:
        raise ValidationError(f"Invalid {label}: {value}")


def _load_product(db: Session, product_id: uuid.UUID) -> Optional[Product]:
    stmt = select(Product).where(Product.id == product_id).options(selectinload(Product.variants))
    return db.scalars(stmt).first()


# PUBLIC_INTERFACE
def quote_cart(db: Session, items: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Price a list of `{variant_id | product_id, quantity}` lines from the database.

    A `variant_id` that matches no variant is retried as a product id, since products
    without variants are added to the cart under their own id. Quantities of managed
    variants are clamped to the available stock.
    """
    cart: Optional[Cart] = None
    for item in items:
        raw_quantity = item.get("quantity")
        try:
            quantity = 1 if raw_quantity is None else int(raw_quantity)
        except (TypeError, ValueError):
            raise ValidationError("Quantity must be a whole number")
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")

        variant: Optional[ProductVariant] = None
        product: Optional[Product] = None
        if item.get("variant_id"):
            key = _as_uuid(item["variant_id"], "variant id")
            variant = db.get(ProductVariant, key)
            product = _load_product(db, variant.product_id if variant is not None else key)
        elif item.get("product_id"):
            product = _load_product(db, _as_uuid(item["product_id"], "product id"))
        else:
            raise ValidationError("Each cart item needs a variant_id or product_id")
        if product is None:
            raise NotFoundError(f"Cart item {item.get('variant_id') or item.get('product_id')} not found")

        shaped = normalize_product(product, {"variants"})
        if cart is None:
            cart = Cart(currency=shaped["currency"])
        shaped_variant = None
        if variant is not None:
            shaped_variant = next((v for v in shaped["variants"] if v["id"] == variant.id), None)
        elif shaped["variants"]:
            shaped_variant = shaped["variants"][0]

        line = cart.add(shaped, shaped_variant, quantity)
        cart.update_quantity(line.variant_id, line.quantity, line.available, line.manage_inventory)

    cart = cart or Cart()
    logger.debug("Quoted cart with %d line(s), total %d cents", len(cart), cart.total_cents())
    return cart.to_dict()
