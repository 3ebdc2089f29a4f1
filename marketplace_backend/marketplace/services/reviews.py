"""
Product reviews backed by the optional `product_ratings` table.

A review is stored as a rating plus one free-text comment; the API exposes it with a
title and body, so the comment is reported as both.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Mapping

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from marketplace.db.models import Product, ProductRating
from marketplace.db.schema_probe import product_ratings_exist
from marketplace.errors import NotFoundError, SchemaUnavailableError, ValidationError
from marketplace.services.catalog import resolve_product_id

logger = logging.getLogger(__name__)


def _as_uuid(value: Any, label: str) -> uuid.UUID:
    try:
        return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
    except ValueError:
        raise ValidationError(f"Invalid {label}: {value}")


def _serialize(rating: ProductRating) -> Dict[str, Any]:
    comment = (rating.comment or "").strip()
    return {
        "id": rating.id,
        "product_id": rating.product_id,
        "user_id": rating.user_id,
        "rating": rating.rating,
        "title": comment or f"{rating.rating}-star review",
        "body": comment,
        "created_at": rating.created_at,
    }


def _fetch(db: Session, product_id: uuid.UUID) -> List[ProductRating]:
    stmt = select(ProductRating).where(ProductRating.product_id == product_id).order_by(ProductRating.created_at.desc())
    return list(db.scalars(stmt))


# PUBLIC_INTERFACE
def list_reviews(db: Session, id_or_slug: Any) -> List[Dict[str, Any]]:
    """
    Reviews for a product, newest first.

    `id_or_slug` is tried as a product id first; when nothing matches it is resolved as a
    slug and the lookup repeated. Returns [] when the ratings table does not exist.
    """
    if not product_ratings_exist(db.connection()):
        return []

    ratings: List[ProductRating] = []
    try:
        ratings = _fetch(db, uuid.UUID(str(id_or_slug)))
    except ValueError:
        pass
    if not ratings:
        product_id = resolve_product_id(db, id_or_slug)
        if product_id is not None:
            ratings = _fetch(db, product_id)
    return [_serialize(r) for r in ratings]


# PUBLIC_INTERFACE
def create_review(db: Session, data: Mapping[str, Any]) -> Dict[str, Any]:
    """Store a 1-5 star review; the comment is the body, else the title."""
    if not product_ratings_exist(db.connection()):
        raise SchemaUnavailableError("Reviews are not available on this database")

    if not data.get("product_id") or not data.get("user_id"):
        raise ValidationError("product_id and user_id are required")
    try:
        stars = int(data.get("rating"))
    except (TypeError, ValueError):
        raise ValidationError("rating must be an integer between 1 and 5")
    if stars < 1 or stars > 5:
        raise ValidationError("rating must be an integer between 1 and 5")

    product_id = _as_uuid(data["product_id"], "product id")
    if db.get(Product, product_id) is None:
        raise NotFoundError(f"Product {product_id} not found")

    comment = str(data.get("body") or data.get("title") or "").strip() or None
    rating = ProductRating(
        product_id=product_id,
        user_id=_as_uuid(data["user_id"], "user id"),
        rating=stars,
        comment=comment,
    )
    db.add(rating)
    db.commit()
    logger.info("Review %s (%d stars) added to product %s", rating.id, stars, product_id)
    return _serialize(rating)


# PUBLIC_INTERFACE
def rating_summary(db: Session, product_id: uuid.UUID) -> Dict[str, Any]:
    if not product_ratings_exist(db.connection()):
        return {"average": None, "count": 0}
    average, count = db.execute(
        select(func.avg(ProductRating.rating), func.count(ProductRating.id)).where(ProductRating.product_id == product_id)
    ).one()
    return {"average": round(float(average), 2) if average is not None else None, "count": count or 0}
