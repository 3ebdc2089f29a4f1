"""Customer wishlists, one row per (user, variant)."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from marketplace.db.models import ProductVariant, WishlistItem
from marketplace.errors import ConflictError, NotFoundError
from marketplace.pricing import format_price, variant_price_cents

logger = logging.getLogger(__name__)


def _serialize(item: WishlistItem) -> Dict[str, Any]:
    product, variant = item.product, item.variant
    cents = variant_price_cents(variant)
    return {
        "id": item.id,
        "product_id": item.product_id,
        "variant_id": item.variant_id,
        "created_at": item.created_at,
        "product": {"id": product.id, "title": product.title, "slug": product.slug, "image_url": product.image_url},
        "variant": {
            "id": variant.id,
            "title": variant.title,
            "sku": variant.sku,
            "price_in_cents": cents,
            "price_formatted": format_price(cents, product.currency),
            "inventory_quantity": variant.inventory_quantity,
        },
    }


# PUBLIC_INTERFACE
def list_wishlist(db: Session, user_id: uuid.UUID) -> List[Dict[str, Any]]:
    rows = db.scalars(
        select(WishlistItem)
        .where(WishlistItem.user_id == user_id)
        .order_by(WishlistItem.created_at.desc())
        .options(selectinload(WishlistItem.product), selectinload(WishlistItem.variant))
    ).all()
    return [_serialize(i) for i in rows]


def _find(db: Session, user_id: uuid.UUID, variant_id: uuid.UUID):
    return db.scalars(
        select(WishlistItem).where(WishlistItem.user_id == user_id, WishlistItem.variant_id == variant_id)
    ).first()


# PUBLIC_INTERFACE
def add_to_wishlist(db: Session, user_id: uuid.UUID, variant_id: uuid.UUID) -> Dict[str, Any]:
    variant = db.get(ProductVariant, variant_id)
    if variant is None:
        raise NotFoundError(f"Variant {variant_id} not found")
    if _find(db, user_id, variant_id) is not None:
        raise ConflictError("Item already in wishlist")

    item = WishlistItem(user_id=user_id, product_id=variant.product_id, variant_id=variant_id)
    db.add(item)
    db.commit()
    logger.info("User %s added variant %s to wishlist", user_id, variant_id)
    return _serialize(item)


# PUBLIC_INTERFACE
def remove_from_wishlist(db: Session, user_id: uuid.UUID, variant_id: uuid.UUID) -> bool:
    item = _find(db, user_id, variant_id)
    if item is None:
        raise NotFoundError("Item not in wishlist")
    db.delete(item)
    db.commit()
    return True


# PUBLIC_INTERFACE
def in_wishlist(db: Session, user_id: uuid.UUID, variant_id: uuid.UUID) -> bool:
    return _find(db, user_id, variant_id) is not None
