"""
Product catalog query layer.

`list_products` composes a filtered, sorted, paginated product query and optionally joins
the `product_variants` and `product_ratings` relations. When a relation cannot be loaded
(the table is missing on this copy of the schema, or the query against it fails) the
query is retried without it and the response reports which relations were actually used.

Filters, date/title sorts and pagination run in SQL. Price filters and price sorts run as
a client-side pass over the full filtered set, on the normalized effective price: the
buyer may pay a variant price, and `products.base_price` holds cents on some rows and
dollars on others. Rating/popularity sorts do the same over the ratings relation.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set, TypeVar

from sqlalchemy import Select, func, or_, select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session, lazyload, selectinload

from marketplace.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from marketplace.db.models import Product, ProductRating, ProductVariant
from marketplace.db.schema_probe import schema_probe
from marketplace.errors import CatalogQueryError, NotFoundError
from marketplace.pricing import (
    effective_price_cents,
    format_price,
    parse_price_range,
    to_cents,
    variant_price_cents,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

PLACEHOLDER_IMAGE = (
    "data:image/svg+xml;utf8,<svg xmlns='http://www.w3.org/2000/svg' width='400' height='300'>"
    "<rect width='100%' height='100%' fill='%23eef2ff'/><text x='50%' y='50%' "
    "dominant-baseline='middle' text-anchor='middle' fill='%23728bd6' "
    "font-family='Arial,Helvetica,sans-serif' font-size='20'>No Image</text></svg>"
)

# Relation name -> backing table; ratings are dropped first when a query fails.
RELATION_TABLES = {"ratings": "product_ratings", "variants": "product_variants"}
_FALLBACK_ORDER = ("ratings", "variants")

SORT_ALIASES = {
    "newest": "newest",
    "oldest": "oldest",
    "price-low": "price-low",
    "price_low": "price-low",
    "price-asc": "price-low",
    "price-high": "price-high",
    "price_high": "price-high",
    "price-desc": "price-high",
    "title-asc": "title-asc",
    "title_asc": "title-asc",
    "title-desc": "title-desc",
    "title_desc": "title-desc",
    "rating": "rating",
    "popular": "popular",
}
PRICE_SORTS = {"price-low", "price-high"}
RATING_SORTS = {"rating", "popular"}


@dataclass
class ProductQuery:
    """Options accepted by `list_products`."""

    seller_id: Optional[uuid.UUID] = None
    category_id: Optional[str] = None
    search: Optional[str] = None
    price_range: Optional[str] = None
    page: int = 1
    per_page: int = DEFAULT_PAGE_SIZE
    sort_by: str = "newest"
    include_variants: bool = True
    include_ratings: bool = True
    include_unpublished: bool = False

    def filters(self) -> Dict[str, Any]:
        return {
            "seller_id": self.seller_id,
            "category_id": self.category_id,
            "search": self.search,
            "price_range": self.price_range,
            "sort_by": self.sort_by,
        }


@dataclass
class ProductPage:
    products: List[Dict[str, Any]]
    total: int
    page: int
    per_page: int
    filters: Dict[str, Any] = field(default_factory=dict)
    relations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "products": self.products,
            "total": self.total,
            "page": self.page,
            "per_page": self.per_page,
            "filters": self.filters,
            "relations": self.relations,
        }


# PUBLIC_INTERFACE
def resolve_sort(sort_by: Optional[str]) -> str:
    """Map a storefront sort token onto a supported sort; unknown tokens mean newest."""
    return SORT_ALIASES.get(str(sort_by or "").strip().lower(), "newest")


def _as_uuid(value: Any) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def _available_relations(db: Session, wanted: Iterable[str]) -> Set[str]:
    conn = db.connection()
    return {name for name in wanted if schema_probe.has_table(conn, RELATION_TABLES[name])}


def _with_relation_fallback(db: Session, relations: Set[str], attempt: Callable[[Set[str]], T]) -> T:
    """Run `attempt(relations)`, dropping one optional relation per database error."""
    relations = set(relations)
    while True:
        try:
            return attempt(relations)
        except DBAPIError as exc:
            db.rollback()
            remaining = [name for name in _FALLBACK_ORDER if name in relations]
            if not remaining:
                raise CatalogQueryError(f"Product query failed: {exc.orig}") from exc
            message = str(exc.orig)
            dropped = next((name for name in remaining if RELATION_TABLES[name] in message), remaining[0])
            schema_probe.mark_missing(db.connection(), RELATION_TABLES[dropped])
            logger.warning("Product query with %s failed, retrying without it: %s", dropped, message)
            relations.discard(dropped)


def _loader_options(relations: Set[str]) -> list:
    return [
        selectinload(Product.variants) if "variants" in relations else lazyload(Product.variants),
        selectinload(Product.ratings) if "ratings" in relations else lazyload(Product.ratings),
    ]


def _conditions(query: ProductQuery) -> list:
    conditions = []
    if not query.include_unpublished:
        conditions.append(Product.is_published.is_(True))
    if query.seller_id:
        conditions.append(Product.vendor_id == query.seller_id)
    if query.category_id:
        # Older rows carry the category only inside products.metadata.
        in_metadata = Product.metadata_["category_id"].as_string() == str(query.category_id)
        category_uuid = _as_uuid(query.category_id)
        if category_uuid is not None:
            conditions.append(or_(Product.category_id == category_uuid, in_metadata))
        else:
            conditions.append(in_metadata)
    search = (query.search or "").strip()
    if search:
        conditions.append(
            or_(
                Product.title.icontains(search, autoescape=True),
                Product.description.icontains(search, autoescape=True),
            )
        )
    return conditions


def _order_by(sort: str) -> list:
    if sort == "oldest":
        return [Product.created_at.asc(), Product.id]
    if sort == "title-asc":
        return [Product.title.asc(), Product.id]
    if sort == "title-desc":
        return [Product.title.desc(), Product.id]
    return [Product.created_at.desc(), Product.id]


def _serialize_variant(variant: ProductVariant, currency: str) -> Dict[str, Any]:
    return {
        "id": variant.id,
        "product_id": variant.product_id,
        "title": variant.title or "Default",
        "sku": variant.sku,
        "price_in_cents": variant.price_in_cents,
        "sale_price_in_cents": variant.sale_price_in_cents,
        "price_formatted": format_price(variant_price_cents(variant), currency),
        "inventory_quantity": variant.inventory_quantity or 0,
        "manage_inventory": bool(variant.manage_inventory),
        "image_url": variant.image_url,
        "images": list(variant.images) if isinstance(variant.images, list) else [],
        "attributes": dict(variant.attributes) if isinstance(variant.attributes, dict) else {},
        "is_active": bool(variant.is_active),
    }


def _rating_summary(ratings: Sequence[ProductRating]) -> Dict[str, Any]:
    count = len(ratings)
    average = round(sum(r.rating for r in ratings) / count, 2) if count else None
    return {"average": average, "count": count}


# PUBLIC_INTERFACE
def normalize_product(product: Product, relations: Iterable[str] = ()) -> Dict[str, Any]:
    """
    Shape a product row for API output with safe defaults.

    Only relations named in `relations` are read from the row; the others are reported
    as empty (`variants`) or unknown (`rating` is None).
    """
    relations = set(relations)
    currency = str(product.currency or "USD").strip().upper() or "USD"
    variants = [_serialize_variant(v, currency) for v in product.variants] if "variants" in relations else []

    shaped: Dict[str, Any] = {
        "id": product.id,
        "title": (product.title or "").strip() or "Untitled",
        "slug": (product.slug or "").strip() or "unknown",
        "description": (product.description or "").strip(),
        "ribbon_text": (product.ribbon_text or "").strip(),
        "vendor_id": product.vendor_id,
        "category_id": product.category_id,
        "base_price": to_cents(product.base_price),
        "currency": currency,
        "image_url": (product.image_url or "").strip() or None,
        "gallery_images": list(product.gallery_images) if isinstance(product.gallery_images, list) else [],
        "is_published": bool(product.is_published),
        "created_at": product.created_at,
        "variants": variants,
        "rating": _rating_summary(product.ratings) if "ratings" in relations else None,
    }
    cents, source = effective_price_cents(shaped)
    shaped["effective_price_cents"] = cents
    shaped["price_source"] = source
    shaped["price_formatted"] = format_price(cents, currency)
    shaped["image"] = primary_image(shaped)
    return shaped


# PUBLIC_INTERFACE
def primary_image(product: Dict[str, Any]) -> str:
    """Best image for a product: main image, first variant image, gallery, legacy images, placeholder."""
    if not product:
        return PLACEHOLDER_IMAGE
    if product.get("image_url"):
        return product["image_url"]
    variants = product.get("variants") or []
    if variants:
        first = variants[0]
        if first.get("image_url"):
            return first["image_url"]
        if first.get("images"):
            return first["images"][0]
    if product.get("gallery_images"):
        return product["gallery_images"][0]
    if product.get("images"):
        return product["images"][0]
    return PLACEHOLDER_IMAGE


# PUBLIC_INTERFACE
def all_images(product: Dict[str, Any]) -> List[str]:
    """Every image URL attached to a product or its variants, de-duplicated in order."""
    candidates: List[Any] = []
    if product.get("image_url"):
        candidates.append(product["image_url"])
    candidates.extend(product.get("gallery_images") or [])
    candidates.extend(product.get("images") or [])
    for variant in product.get("variants") or []:
        if variant.get("image_url"):
            candidates.append(variant["image_url"])
        candidates.extend(variant.get("images") or [])

    seen: Set[str] = set()
    images = []
    for url in candidates:
        if isinstance(url, str) and url and url not in seen:
            seen.add(url)
            images.append(url)
    return images


# PUBLIC_INTERFACE
def validate_for_display(product: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Check that a normalized product has the minimum data a product card needs."""
    errors: List[str] = []
    warnings: List[str] = []
    if not product:
        return {"valid": False, "errors": ["Product is missing"], "warnings": warnings, "is_displayable": False}

    if not product.get("id") or product.get("id") == "null":
        errors.append("Missing product ID")
    if not product.get("title") or product.get("title") == "Untitled":
        warnings.append("Product has no title")
    if not product.get("effective_price_cents"):
        warnings.append("Product has no price")
    if not product.get("image_url"):
        warnings.append("Product has no primary image (will use placeholder)")

    valid = not errors
    return {"valid": valid, "errors": errors, "warnings": warnings, "is_displayable": valid}


def _in_price_bounds(cents: int, low: Optional[int], high: Optional[int]) -> bool:
    if low is not None and cents < low:
        return False
    if high is not None and cents > high:
        return False
    return True


def _sort_client_side(products: List[Dict[str, Any]], sort: str) -> List[Dict[str, Any]]:
    # Input is already newest-first from SQL, and sorted() is stable, so ties stay newest-first.
    if sort == "price-low":
        return sorted(products, key=lambda p: p["effective_price_cents"])
    if sort == "price-high":
        return sorted(products, key=lambda p: p["effective_price_cents"], reverse=True)
    if sort == "rating":
        return sorted(products, key=lambda p: (p["rating"] or {}).get("average") or 0, reverse=True)
    if sort == "popular":
        return sorted(products, key=lambda p: (p["rating"] or {}).get("count") or 0, reverse=True)
    return products


# PUBLIC_INTERFACE
def list_products(db: Session, query: Optional[ProductQuery] = None) -> ProductPage:
    """
    Fetch one page of products.

    Returns a `ProductPage` whose `relations` lists the relations that were actually
    loaded after any fallback.
    """
    query = query or ProductQuery()
    page = max(1, int(query.page or 1))
    per_page = query.per_page if isinstance(query.per_page, int) and query.per_page > 0 else DEFAULT_PAGE_SIZE
    per_page = min(per_page, MAX_PAGE_SIZE)
    requested_sort = resolve_sort(query.sort_by)
    low, high = parse_price_range(query.price_range)
    has_price_filter = low is not None or high is not None
    conditions = _conditions(query)

    wanted = []
    if query.include_variants:
        wanted.append("variants")
    if query.include_ratings:
        wanted.append("ratings")

    def attempt(relations: Set[str]) -> ProductPage:
        sort = requested_sort
        if sort in RATING_SORTS and "ratings" not in relations:
            logger.info("Sort %r needs product ratings, which are unavailable; using newest", sort)
            sort = "newest"
        # base_price mixes cents and dollars, so prices are only compared after to_cents().
        client_side = has_price_filter or sort in PRICE_SORTS or ("ratings" in relations and sort in RATING_SORTS)

        if client_side:
            sql_sort = "newest" if sort in PRICE_SORTS | RATING_SORTS else sort
            stmt = select(Product).where(*conditions).order_by(*_order_by(sql_sort)).options(*_loader_options(relations))
            rows = db.scalars(stmt).all()
            shaped = [normalize_product(p, relations) for p in rows]
            if has_price_filter:
                shaped = [p for p in shaped if _in_price_bounds(p["effective_price_cents"], low, high)]
            shaped = _sort_client_side(shaped, sort)
            total = len(shaped)
            start = (page - 1) * per_page
            products = shaped[start : start + per_page]
            logger.debug("Client-side product pass: sort=%s total=%d", sort, total)
        else:
            total = db.scalar(select(func.count()).select_from(Product).where(*conditions)) or 0
            stmt = (
                select(Product)
                .where(*conditions)
                .order_by(*_order_by(sort))
                .offset((page - 1) * per_page)
                .limit(per_page)
                .options(*_loader_options(relations))
            )
            products = [normalize_product(p, relations) for p in db.scalars(stmt).all()]

        return ProductPage(
            products=products,
            total=total,
            page=page,
            per_page=per_page,
            filters=query.filters(),
            relations=sorted(relations),
        )

    return _with_relation_fallback(db, _available_relations(db, wanted), attempt)


def _product_lookup(id_or_slug: Any):
    product_id = _as_uuid(id_or_slug)
    if product_id is not None:
        return Product.id == product_id
    return Product.slug == str(id_or_slug)


# PUBLIC_INTERFACE
def get_product(db: Session, id_or_slug: Any, include_ratings: bool = True) -> Dict[str, Any]:
    """Fetch a single normalized product by id or slug, with variants and ratings when available."""
    wanted = ["variants", "ratings"] if include_ratings else ["variants"]

    def attempt(relations: Set[str]) -> Optional[Dict[str, Any]]:
        stmt: Select = select(Product).where(_product_lookup(id_or_slug)).options(*_loader_options(relations)).limit(1)
        product = db.scalars(stmt).first()
        return normalize_product(product, relations) if product is not None else None

    shaped = _with_relation_fallback(db, _available_relations(db, wanted), attempt)
    if shaped is None:
        raise NotFoundError(f"Product {id_or_slug} not found")
    return shaped


# PUBLIC_INTERFACE
def resolve_product_id(db: Session, id_or_slug: Any) -> Optional[uuid.UUID]:
    """Return the id of the product matching `id_or_slug`, or None."""
    return db.scalar(select(Product.id).where(_product_lookup(id_or_slug)).limit(1))


# PUBLIC_INTERFACE
def get_product_quantities(db: Session, product_ids: Sequence[Any]) -> Dict[str, Any]:
    """Inventory quantities of every variant belonging to `product_ids`."""
    ids = [pid for pid in (_as_uuid(p) for p in product_ids) if pid is not None]
    if not ids:
        return {"variants": []}
    rows = db.execute(
        select(ProductVariant.id, ProductVariant.product_id, ProductVariant.inventory_quantity).where(
            ProductVariant.product_id.in_(ids)
        )
    ).all()
    return {
        "variants": [
            {"id": row.id, "product_id": row.product_id, "inventory_quantity": row.inventory_quantity or 0}
            for row in rows
        ]
    }
