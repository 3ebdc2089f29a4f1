"""Storefront catalog routes and the vendor dashboard's product management routes."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.api.deps import require_vendor_owner
from marketplace.api.schemas import ProductCreate, ProductUpdate, QuantitiesRequest
from marketplace.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from marketplace.db.session import get_db
from marketplace.services import catalog, products

router = APIRouter(tags=["Products"])


@router.get("/products", summary="List products")
def list_products(
    seller_id: Optional[uuid.UUID] = None,
    category_id: Optional[str] = None,
    search: Optional[str] = None,
    price_range: Optional[str] = Query(None, description="all, under-50, over-100 or 25-50 (dollars)"),
    sort_by: str = Query("newest", description="newest, oldest, price-low, price-high, title-asc, title-desc, rating, popular"),
    page: int = Query(1, ge=1),
    per_page: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    include_variants: bool = True,
    include_ratings: bool = True,
    db: Session = Depends(get_db),
):
    """
    One page of published products.

    `relations` in the response names the optional relations that were actually loaded;
    a relation missing from it was unavailable and its fields are empty.
    """
    query = catalog.ProductQuery(
        seller_id=seller_id,
        category_id=category_id,
        search=search,
        price_range=price_range,
        page=page,
        per_page=per_page,
        sort_by=sort_by,
        include_variants=include_variants,
        include_ratings=include_ratings,
    )
    return catalog.list_products(db, query).to_dict()


@router.post("/products/quantities", summary="Inventory quantities for products")
def product_quantities(body: QuantitiesRequest, db: Session = Depends(get_db)):
    return catalog.get_product_quantities(db, body.product_ids)


@router.get("/products/{id_or_slug}", summary="Get a product by id or slug")
def get_product(id_or_slug: str, db: Session = Depends(get_db)):
    product = catalog.get_product(db, id_or_slug)
    product["display"] = catalog.validate_for_display(product)
    return product


@router.get("/products/{id_or_slug}/images", summary="All images of a product")
def product_images(id_or_slug: str, db: Session = Depends(get_db)):
    product = catalog.get_product(db, id_or_slug, include_ratings=False)
    return {"primary": catalog.primary_image(product), "images": catalog.all_images(product)}


@router.get("/vendors/{vendor_id}/products", summary="A vendor's products, including drafts")
def vendor_products(
    vendor_id: uuid.UUID = Depends(require_vendor_owner),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    search: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return products.list_products_by_vendor(db, vendor_id, page=page, per_page=per_page, search=search)


@router.post("/vendors/{vendor_id}/products", status_code=201, summary="Create a product")
def create_product(body: ProductCreate, vendor_id: uuid.UUID = Depends(require_vendor_owner), db: Session = Depends(get_db)):
    return products.create_product(db, vendor_id, body.model_dump())


@router.patch("/vendors/{vendor_id}/products/{product_id}", summary="Update a product")
def update_product(
    product_id: uuid.UUID,
    body: ProductUpdate,
    vendor_id: uuid.UUID = Depends(require_vendor_owner),
    db: Session = Depends(get_db),
):
    return products.update_product(db, vendor_id, product_id, body.model_dump(exclude_unset=True))


@router.delete("/vendors/{vendor_id}/products/{product_id}", summary="Delete a product")
def delete_product(product_id: uuid.UUID, vendor_id: uuid.UUID = Depends(require_vendor_owner), db: Session = Depends(get_db)):
    products.delete_product(db, vendor_id, product_id)
    return {"deleted": True, "id": product_id}
