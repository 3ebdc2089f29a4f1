"""Vendor directory and vendor profile updates."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from marketplace.db.models import Product, Vendor, VendorRating
from marketplace.db.schema_probe import vendor_ratings_exist
from marketplace.errors import NotFoundError, PermissionDeniedError, ValidationError
from marketplace.pricing import effective_price_cents, format_price

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "description", "website", "location")


def _featured(products: List[Product]) -> Optional[Dict[str, Any]]:
    if not products:
        return None
    product = next((p for p in products if p.is_published), products[0])
    cents, _source = effective_price_cents(product)
    return {
        "id": product.id,
        "title": product.title or "Untitled",
        "slug": product.slug,
        "image_url": product.image_url,
        "price_in_cents": cents,
        "price_formatted": format_price(cents, product.currency),
    }


def _serialize(vendor: Vendor, rating: Optional[VendorRating] = None, with_products: bool = False) -> Dict[str, Any]:
    shaped: Dict[str, Any] = {
        "id": vendor.id,
        "owner_id": vendor.owner_id,
        "name": vendor.name,
        "slug": vendor.slug,
        "description": vendor.description,
        "website": vendor.website,
        "location": vendor.location,
        "is_active": bool(vendor.is_active),
        "created_at": vendor.created_at,
    }
    if with_products:
        shaped["featured_product"] = _featured(vendor.products)
        shaped["total_products"] = len(vendor.products)
    if rating is not None:
        shaped["rating"] = {
            "average": float(rating.avg_rating) if rating.avg_rating is not None else None,
            "count": rating.rating_count or 0,
        }
    else:
        shaped["rating"] = None
    return shaped


def _ratings_by_vendor(db: Session, vendor_ids: List[uuid.UUID]) -> Dict[uuid.UUID, VendorRating]:
    if not vendor_ids or not vendor_ratings_exist(db.connection()):
        return {}
    rows = db.scalars(select(VendorRating).where(VendorRating.vendor_id.in_(vendor_ids)))
    return {r.vendor_id: r for r in rows}


# PUBLIC_INTERFACE
def list_vendors(db: Session) -> List[Dict[str, Any]]:
    """
    Vendors ordered by name, each with a featured product and its product count.

    `rating` comes from `vendor_ratings` and is None when that table does not exist.
    """
    vendors = db.scalars(
        select(Vendor).order_by(Vendor.name).options(selectinload(Vendor.products).selectinload(Product.variants))
    ).all()
    ratings = _ratings_by_vendor(db, [v.id for v in vendors])
    return [_serialize(v, ratings.get(v.id), with_products=True) for v in vendors]


def _load(db: Session, vendor_id: uuid.UUID) -> Vendor:
    vendor = db.get(Vendor, vendor_id)
    if vendor is None:
        raise NotFoundError(f"Vendor {vendor_id} not found")
    return vendor


# PUBLIC_INTERFACE
def get_vendor(db: Session, vendor_id: uuid.UUID) -> Dict[str, Any]:
    vendor = _load(db, vendor_id)
    ratings = _ratings_by_vendor(db, [vendor.id])
    return _serialize(vendor, ratings.get(vendor.id), with_products=True)


# PUBLIC_INTERFACE
def get_vendor_by_owner(db: Session, owner_id: uuid.UUID) -> Dict[str, Any]:
    """The vendor account owned by a profile; raises NotFoundError if the profile owns none."""
    vendor = db.scalars(select(Vendor).where(Vendor.owner_id == owner_id).order_by(Vendor.created_at).limit(1)).first()
    if vendor is None:
        raise NotFoundError(f"No vendor found for owner {owner_id}")
    return _serialize(vendor)


# PUBLIC_INTERFACE
def update_vendor(db: Session, vendor_id: uuid.UUID, owner_id: uuid.UUID, updates: Mapping[str, Any]) -> Dict[str, Any]:
    """Update the editable profile fields of a vendor. Only the owner may do this."""
    vendor = _load(db, vendor_id)
    if vendor.owner_id != owner_id:
        raise PermissionDeniedError("You are not authorized to edit this vendor")

    if "name" in updates and not str(updates.get("name") or "").strip():
        raise ValidationError("Vendor name cannot be empty")
    for name in EDITABLE_FIELDS:
        if name in updates and updates[name] is not None:
            setattr(vendor, name, str(updates[name]).strip())

    db.commit()
    logger.info("Vendor %s updated by owner %s", vendor_id, owner_id)
    return _serialize(vendor)

