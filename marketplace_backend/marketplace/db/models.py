"""
SQLAlchemy ORM models for the marketplace schema.

Important:
- The production schema is owned by the hosted database and drifts: optional tables such
  as `product_ratings` and `vendor_ratings` may be missing, and `products.base_price`
  holds integer cents on some rows and decimal dollars on others.
- Types are the generic SQLAlchemy ones (Uuid, JSON with a JSONB variant) so the same
  mappings run against Postgres in production and SQLite in tests.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
    true,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.db.base import Base, JSONType, TimestampMixin, utcnow


def _uuid_pk() -> Mapped[uuid.UUID]:
    return mapped_column(Uuid, primary_key=True, default=uuid.uuid4)


class Profile(Base, TimestampMixin):
    """profiles table (one row per account of the hosted auth service)."""

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = _uuid_pk()
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    full_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    role: Mapped[str] = mapped_column(Text, nullable=False, default="customer", server_default="customer")
    avatar_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    vendors: Mapped[List["Vendor"]] = relationship("Vendor", back_populates="owner")

    __table_args__ = (CheckConstraint("role in ('customer','vendor','admin')", name="profiles_role_check"),)


class Vendor(Base, TimestampMixin):
    """vendors table."""

    __tablename__ = "vendors"

    id: Mapped[uuid.UUID] = _uuid_pk()
    owner_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)

    name: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    website: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())

    owner: Mapped[Optional[Profile]] = relationship("Profile", back_populates="vendors")
    products: Mapped[List["Product"]] = relationship("Product", back_populates="vendor", order_by="Product.created_at")


class VendorRating(Base):
    """vendor_ratings table (optional; absent on older schemas)."""

    __tablename__ = "vendor_ratings"

    id: Mapped[uuid.UUID] = _uuid_pk()
    vendor_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, unique=True)
    avg_rating: Mapped[Optional[Decimal]] = mapped_column(Numeric(3, 2), nullable=True)
    rating_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")


class Category(Base, TimestampMixin):
    """categories table."""

    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = _uuid_pk()
    name: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    metadata_: Mapped[Optional[dict]] = mapped_column("metadata", JSONType, nullable=True)

    products: Mapped[List["Product"]] = relationship("Product", back_populates="category")


class Product(Base, TimestampMixin):
    """products table."""

    __tablename__ = "products"

    id: Mapped[uuid.UUID] = _uuid_pk()
    vendor_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=True)
    category_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)

    title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    slug: Mapped[Optional[str]] = mapped_column(Text, nullable=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ribbon_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # NOTE: cents on most rows, decimal dollars on rows written by older seed scripts.
    base_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    currency: Mapped[Optional[str]] = mapped_column(String(3), nullable=True, default="USD", server_default="USD")

    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    gallery_images: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    metadata_: Mapped[Optional[dict]] = mapped_column("metadata", JSONType, nullable=True)

    vendor: Mapped[Optional[Vendor]] = relationship("Vendor", back_populates="products")
    category: Mapped[Optional[Category]] = relationship("Category", back_populates="products")
    variants: Mapped[List["ProductVariant"]] = relationship(
        "ProductVariant",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductVariant.created_at",
    )
    ratings: Mapped[List["ProductRating"]] = relationship(
        "ProductRating",
        back_populates="product",
        passive_deletes=True,
        order_by="ProductRating.created_at.desc()",
    )


class ProductVariant(Base, TimestampMixin):
    """product_variants table."""

    __tablename__ = "product_variants"

    id: Mapped[uuid.UUID] = _uuid_pk()
    product_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)

    title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sku: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    price_in_cents: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    sale_price_in_cents: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    inventory_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    manage_inventory: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())

    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    images: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    attributes: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())

    product: Mapped[Product] = relationship("Product", back_populates="variants")

    __table_args__ = (
        CheckConstraint("price_in_cents >= 0", name="product_variants_price_in_cents_check"),
        CheckConstraint("sale_price_in_cents >= 0", name="product_variants_sale_price_in_cents_check"),
    )


class ProductRating(Base):
    """product_ratings table (optional; absent on older schemas)."""

    __tablename__ = "product_ratings"

    id: Mapped[uuid.UUID] = _uuid_pk()
    product_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)

    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    product: Mapped[Product] = relationship("Product", back_populates="ratings")

    __table_args__ = (CheckConstraint("rating >= 1 and rating <= 5", name="product_ratings_rating_check"),)


class Order(Base, TimestampMixin):
    """orders table."""

    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = _uuid_pk()
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    vendor_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("vendors.id", ondelete="SET NULL"), nullable=True)

    status: Mapped[str] = mapped_column(Text, nullable=False, default="pending", server_default="pending")
    total_amount_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD", server_default="USD")

    shipping_address: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    payment_provider: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    payment_reference: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    tracking_number: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    shipping_carrier: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    shipped_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    items: Mapped[List["OrderItem"]] = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    history: Mapped[List["OrderStatusHistory"]] = relationship(
        "OrderStatusHistory",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderStatusHistory.created_at",
    )

    __table_args__ = (
        CheckConstraint(
            "status in ('pending','paid','confirmed','processing','packed','shipped',"
            "'delivered','cancelled','refunded','disputed')",
            name="orders_status_check",
        ),
        CheckConstraint("total_amount_cents >= 0", name="orders_total_amount_cents_check"),
    )


class OrderItem(Base):
    """order_items table."""

    __tablename__ = "order_items"

    id: Mapped[uuid.UUID] = _uuid_pk()
    order_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    variant_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("product_variants.id", ondelete="SET NULL"), nullable=True)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price_at_purchase_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    subtotal_cents: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    order: Mapped[Order] = relationship("Order", back_populates="items")
    variant: Mapped[Optional[ProductVariant]] = relationship("ProductVariant")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="order_items_quantity_check"),
        CheckConstraint("price_at_purchase_cents >= 0", name="order_items_price_at_purchase_cents_check"),
        CheckConstraint("subtotal_cents >= 0", name="order_items_subtotal_cents_check"),
    )


class OrderStatusHistory(Base):
    """order_status_history table (audit trail of status changes)."""

    __tablename__ = "order_status_history"

    id: Mapped[uuid.UUID] = _uuid_pk()
    order_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    old_status: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    new_status: Mapped[str] = mapped_column(Text, nullable=False)
    changed_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    order: Mapped[Order] = relationship("Order", back_populates="history")


class Inventory(Base):
    """inventory table (one row per managed variant)."""

    __tablename__ = "inventory"

    id: Mapped[uuid.UUID] = _uuid_pk()
    variant_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("product_variants.id", ondelete="CASCADE"), nullable=False, unique=True)
    product_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    vendor_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False)

    available_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    manage_inventory: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    low_stock_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=10, server_default="10")

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )

    variant: Mapped[ProductVariant] = relationship("ProductVariant")
    logs: Mapped[List["InventoryLog"]] = relationship("InventoryLog", back_populates="inventory", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("available_quantity >= 0", name="inventory_available_quantity_check"),
        CheckConstraint("low_stock_threshold >= 0", name="inventory_low_stock_threshold_check"),
    )


class InventoryLog(Base):
    """inventory_logs table."""

    __tablename__ = "inventory_logs"

    id: Mapped[uuid.UUID] = _uuid_pk()
    inventory_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("inventory.id", ondelete="CASCADE"), nullable=False)
    action: Mapped[str] = mapped_column(Text, nullable=False)
    quantity_change: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    inventory: Mapped[Inventory] = relationship("Inventory", back_populates="logs")


class WishlistItem(Base):
    """wishlist table."""

    __tablename__ = "wishlist"

    id: Mapped[uuid.UUID] = _uuid_pk()
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    product_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    variant_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("product_variants.id", ondelete="CASCADE"), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    product: Mapped[Product] = relationship("Product")
    variant: Mapped[ProductVariant] = relationship("ProductVariant")

    __table_args__ = (UniqueConstraint("user_id", "variant_id", name="wishlist_user_id_variant_id_key"),)


class AdminAlert(Base):
    """admin_alerts table (e.g. products whose requested category could not be resolved)."""

    __tablename__ = "admin_alerts"

    id: Mapped[uuid.UUID] = _uuid_pk()
    alert_type: Mapped[str] = mapped_column(Text, nullable=False)
    product_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    requested_category_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="unresolved", server_default="unresolved")
    resolved_category_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    metadata_: Mapped[Optional[dict]] = mapped_column("metadata", JSONType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    __table_args__ = (CheckConstraint("status in ('unresolved','resolved')", name="admin_alerts_status_check"),)
