"""Vendor-side product management: create, update, delete and list a vendor's products."""

from __future__ import annotations

import logging
import re
import uuid
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from marketplace.db.models import Category, Product, ProductVariant, Vendor
from marketplace.errors import NotFoundError, PermissionDeniedError, ValidationError
from marketplace.pricing import to_cents
from marketplace.services.catalog import normalize_product
from marketplace.services.categories import alert_missing_category, ensure_default_category, get_or_create_category, slugify

logger = logging.getLogger(__name__)

MIN_TITLE_LENGTH = 3
MIN_IMAGE_URL_LENGTH = 10


def _clean_title(title: Any) -> str:
    cleaned = str(title or "").strip()
    if len(cleaned) < MIN_TITLE_LENGTH:
        raise ValidationError(f"Title must be at least {MIN_TITLE_LENGTH} characters")
    return cleaned


def _sku_prefix(title: str) -> str:
    return re.sub(r"\s+", "-", title).upper()


def _as_category_id(value: Any) -> uuid.UUID:
    try:
        return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
    except ValueError:
        raise ValidationError(f"Invalid category id: {value}")


def _existing_category_id(db: Session, value: Any) -> uuid.UUID:
    category_id = _as_category_id(value)
    if db.get(Category, category_id) is None:
        raise NotFoundError(f"Category {category_id} not found")
    return category_id


def _get_vendor(db: Session, vendor_id: uuid.UUID) -> Vendor:
    vendor = db.get(Vendor, vendor_id)
    if vendor is None:
        raise NotFoundError(f"Vendor {vendor_id} not found")
    return vendor


def _get_owned_product(db: Session, vendor_id: uuid.UUID, product_id: uuid.UUID) -> Product:
    product = db.scalars(
        select(Product).where(Product.id == product_id).options(selectinload(Product.variants))
    ).first()
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")
    if product.vendor_id != vendor_id:
        raise PermissionDeniedError("You are not authorized to edit this product")
    return product


def _resolve_category(db: Session, data: Mapping[str, Any], product: Product) -> None:
    """Assign a category by name; unresolvable names fall back to Uncategorized and raise an admin alert."""
    if product.category_id is not None:
        return
    name = str(data.get("category") or "").strip()
    if not name:
        product.category_id = ensure_default_category(db).id
        return
    category = get_or_create_category(db, name, raise_on_blank=False)
    if category is None:
        product.category_id = ensure_default_category(db).id
        alert_missing_category(db, product.id, name, "AUTO_ASSIGNED")
        return
    product.category_id = category.id


def _build_variants(title: str, variants: List[Mapping[str, Any]], base_price_cents: int) -> List[ProductVariant]:
    prefix = _sku_prefix(title)
    if not variants:
        return [
            ProductVariant(
                title="Default",
                sku=f"{prefix}-DEFAULT",
                price_in_cents=base_price_cents,
                inventory_quantity=0,
                is_active=True,
                attributes={},
            )
        ]
    built = []
    for index, variant in enumerate(variants, start=1):
        built.append(
            ProductVariant(
                title=variant.get("title") or f"Variant {index}",
                sku=variant.get("sku") or f"{prefix}-{index}",
                price_in_cents=to_cents(variant.get("price_in_cents")),
                sale_price_in_cents=to_cents(variant.get("sale_price_in_cents"), default=None),
                inventory_quantity=int(variant.get("inventory_quantity") or 0),
                manage_inventory=variant.get("manage_inventory", True) is not False,
                image_url=variant.get("image_url"),
                images=list(variant.get("images") or []),
                attributes=dict(variant.get("attributes") or {}),
                is_active=True,
            )
        )
    return built


# PUBLIC_INTERFACE
def create_product(db: Session, vendor_id: uuid.UUID, data: Mapping[str, Any]) -> Dict[str, Any]:
    """Create a product for a vendor, with the given variants or a single default variant."""
    _get_vendor(db, vendor_id)
    title = _clean_title(data.get("title"))
    category_id = _existing_category_id(db, data["category_id"]) if data.get("category_id") else None
    base_price = to_cents(data.get("price_in_cents", data.get("base_price")))
    image_url = str(data.get("image_url") or "").strip() or None

    product = Product(
        id=uuid.uuid4(),
        vendor_id=vendor_id,
        category_id=category_id,
        title=title,
        slug=data.get("slug") or f"{slugify(title)}-{uuid.uuid4().hex[:6]}",
        description=str(data.get("description") or "").strip(),
        base_price=base_price,
        currency=str(data.get("currency") or "USD").upper(),
        image_url=image_url,
        gallery_images=list(data.get("gallery_images") or []),
        is_published=data.get("is_published", True) is not False,
    )
    product.variants = _build_variants(title, list(data.get("variants") or []), base_price)
    db.add(product)
    db.flush()
    _resolve_category(db, data, product)
    db.commit()
    logger.info("Created product %s for vendor %s with %d variant(s)", product.id, vendor_id, len(product.variants))
    return normalize_product(product, {"variants"})


# PUBLIC_INTERFACE
def update_product(db: Session, vendor_id: uuid.UUID, product_id: uuid.UUID, updates: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Apply a partial update from the vendor dashboard.

    Incoming field names differ from the columns: `price_in_cents` maps to `base_price`
    and `image` to `image_url` (ignored unless it looks like a real URL).
    """
    product = _get_owned_product(db, vendor_id, product_id)

    if updates.get("title") is not None:
        product.title = _clean_title(updates["title"])
    if updates.get("description") is not None:
        product.description = str(updates["description"]).strip()
    if updates.get("price_in_cents") is not None:
        product.base_price = to_cents(updates["price_in_cents"])
    image = updates.get("image", updates.get("image_url"))
    if image is not None:
        image_url = str(image).strip()
        if len(image_url) > MIN_IMAGE_URL_LENGTH:
            product.image_url = image_url
    if updates.get("category_id") is not None:
        product.category_id = _existing_category_id(db, updates["category_id"])
    if updates.get("is_published") is not None:
        product.is_published = bool(updates["is_published"])

    db.commit()
    logger.info("Updated product %s", product_id)
    return normalize_product(product, {"variants"})


# PUBLIC_INTERFACE
def delete_product(db: Session, vendor_id: uuid.UUID, product_id: uuid.UUID) -> bool:
    product = _get_owned_product(db, vendor_id, product_id)
    db.delete(product)
    db.commit()
    logger.info("Deleted product %s", product_id)
    return True


# PUBLIC_INTERFACE
def list_products_by_vendor(
    db: Session,
    vendor_id: uuid.UUID,
    page: int = 1,
    per_page: int = 20,
    search: Optional[str] = None,
) -> Dict[str, Any]:
    """All of a vendor's products (published or not), newest first, with pagination totals."""
    page = max(1, page)
    conditions = [Product.vendor_id == vendor_id]
    if search and search.strip():
        conditions.append(Product.title.icontains(search.strip(), autoescape=True))

    total = db.scalar(select(func.count()).select_from(Product).where(*conditions)) or 0
    rows = db.scalars(
        select(Product)
        .where(*conditions)
        .order_by(Product.created_at.desc(), Product.id)
        .offset((page - 1) * per_page)
        .limit(per_page)
        .options(selectinload(Product.variants))
    ).all()

    return {
        "products": [normalize_product(p, {"variants"}) for p in rows],
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": -(-total // per_page) if per_page else 0,
        },
    }
