"""
Request bodies accepted by the API.

Field rules here cover types and basic bounds; the services validate values and raise
`ValidationError` (400).
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class VariantIn(BaseModel):
    title: Optional[str] = None
    sku: Optional[str] = None
    price_in_cents: Optional[int] = Field(None, ge=0)
    sale_price_in_cents: Optional[int] = Field(None, ge=0)
    inventory_quantity: int = Field(0, ge=0)
    manage_inventory: bool = True
    image_url: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    attributes: Dict[str, Any] = Field(default_factory=dict)


class ProductCreate(BaseModel):
    title: str = Field(..., description="Product title (at least 3 characters)")
    description: Optional[str] = None
    price_in_cents: Optional[int] = Field(None, ge=0, description="Base price in cents")
    currency: str = "USD"
    image_url: Optional[str] = None
    gallery_images: List[str] = Field(default_factory=list)
    category_id: Optional[str] = None
    category: Optional[str] = Field(None, description="Category name; created when unknown")
    is_published: bool = True
    variants: List[VariantIn] = Field(default_factory=list)


class ProductUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    price_in_cents: Optional[int] = Field(None, ge=0)
    image: Optional[str] = None
    image_url: Optional[str] = None
    category_id: Optional[str] = None
    is_published: Optional[bool] = None


class QuantitiesRequest(BaseModel):
    product_ids: List[str] = Field(default_factory=list)


class VendorUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    location: Optional[str] = None


class CategoryCreate(BaseModel):
    name: str


class AlertResolution(BaseModel):
    category_id: str


class ReviewCreate(BaseModel):
    product_id: str
    rating: int
    title: Optional[str] = None
    body: Optional[str] = None


class CartItemIn(BaseModel):
    variant_id: Optional[str] = None
    product_id: Optional[str] = None
    quantity: int = 1


class CartQuoteRequest(BaseModel):
    items: List[CartItemIn] = Field(default_factory=list)


class OrderItemIn(BaseModel):
    variant_id: str
    quantity: int
    price_at_purchase: Optional[int] = Field(None, ge=0, description="Unit price in cents")


class OrderCreate(BaseModel):
    items: List[OrderItemIn]
    shipping_address: Dict[str, Any]
    payment_provider: Optional[str] = None
    currency: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: str
    tracking_number: Optional[str] = None
    shipping_carrier: Optional[str] = None
    cancellation_reason: Optional[str] = None
    note: Optional[str] = None


class OrderCancel(BaseModel):
    reason: Optional[str] = None


class InventoryCreate(BaseModel):
    variant_id: str
    available_quantity: int = 0
    low_stock_threshold: Optional[int] = None
    manage_inventory: bool = True


class InventoryUpdate(BaseModel):
    available_quantity: int
    action: str = "adjusted"
    reason: Optional[str] = None


class WishlistAdd(BaseModel):
    variant_id: str
