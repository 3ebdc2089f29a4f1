"""
Category lookup/creation and the admin alerts raised when a product's category cannot be resolved.
"""

from __future__ import annotations

import logging
import re
import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from marketplace.db.models import AdminAlert, Category, Product
from marketplace.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_NAME = "Uncategorized"
MISSING_CATEGORY_ALERT = "missing_category"


def _serialize(category: Category) -> Dict[str, Any]:
    return {
        "id": category.id,
        "name": category.name,
        "slug": category.slug,
        "description": category.description,
    }


def _serialize_alert(alert: AdminAlert) -> Dict[str, Any]:
    return {
        "id": alert.id,
        "alert_type": alert.alert_type,
        "product_id": alert.product_id,
        "requested_category_name": alert.requested_category_name,
        "reason": alert.reason,
        "status": alert.status,
        "resolved_category_id": alert.resolved_category_id,
        "resolved_at": alert.resolved_at,
        "created_at": alert.created_at,
    }


# PUBLIC_INTERFACE
def slugify(name: str) -> str:
    """'Home & Garden' -> 'home-garden'."""
    return re.sub(r"^-+|-+$", "", re.sub(r"[^a-z0-9]+", "-", name.lower()))


# PUBLIC_INTERFACE
def list_categories(db: Session) -> List[Dict[str, Any]]:
    return [_serialize(c) for c in db.scalars(select(Category).order_by(Category.name))]


def _find_by_name(db: Session, name: str) -> Optional[Category]:
    return db.scalars(select(Category).where(func.lower(Category.name) == name.lower()).limit(1)).first()


# PUBLIC_INTERFACE
def get_or_create_category(db: Session, name: Any, raise_on_blank: bool = True) -> Optional[Category]:
    """
    Look up a category by case-insensitive name, creating it when missing.

    Returns None when the category cannot be created (its slug is already taken by a
    differently named category) or, with `raise_on_blank=False`, when the name is blank.
    """
    trimmed = str(name or "").strip() if isinstance(name, str) else ""
    if not trimmed:
        if raise_on_blank:
            raise ValidationError("Category name is required")
        return None

    existing = _find_by_name(db, trimmed)
    if existing is not None:
        return existing

    slug = slugify(trimmed) or uuid.uuid4().hex[:8]
    if db.scalar(select(Category.id).where(Category.slug == slug).limit(1)) is not None:
        logger.warning("Could not create category %r: slug %r is taken", trimmed, slug)
        return None

    category = Category(
        name=trimmed,
        slug=slug,
        metadata_={"auto_created": True, "created_at": datetime.now(timezone.utc).isoformat()},
    )
    db.add(category)
    db.flush()
    logger.info("Created category %r with slug %r", trimmed, category.slug)
    return category


# PUBLIC_INTERFACE
def ensure_default_category(db: Session) -> Category:
    """Return the 'Uncategorized' category, creating it on first use."""
    existing = _find_by_name(db, DEFAULT_CATEGORY_NAME)
    if existing is not None:
        return existing
    category = Category(
        name=DEFAULT_CATEGORY_NAME,
        slug=slugify(DEFAULT_CATEGORY_NAME),
        metadata_={"auto_created": True, "is_default": True},
    )
    db.add(category)
    db.flush()
    logger.info("Created default %s category", DEFAULT_CATEGORY_NAME)
    return category


# PUBLIC_INTERFACE
def alert_missing_category(db: Session, product_id: Optional[uuid.UUID], requested_name: str, reason: str) -> AdminAlert:
    """Record an unresolved admin alert for a product whose category could not be resolved."""
    now = datetime.now(timezone.utc)
    alert = AdminAlert(
        alert_type=MISSING_CATEGORY_ALERT,
        product_id=product_id,
        requested_category_name=requested_name,
        reason=reason,
        status="unresolved",
        metadata_={"request_timestamp": now.isoformat(), "request_reason": reason},
    )
    db.add(alert)
    db.flush()
    logger.warning("Admin alert %s: category %r for product %s (%s)", alert.id, requested_name, product_id, reason)
    return alert


# PUBLIC_INTERFACE
def list_alerts(db: Session, status: Optional[str] = "unresolved") -> List[Dict[str, Any]]:
    stmt = select(AdminAlert).where(AdminAlert.alert_type == MISSING_CATEGORY_ALERT)
    if status:
        stmt = stmt.where(AdminAlert.status == status)
    stmt = stmt.order_by(AdminAlert.created_at.desc())
    return [_serialize_alert(a) for a in db.scalars(stmt)]


# PUBLIC_INTERFACE
def resolve_alert(db: Session, alert_id: uuid.UUID, category_id: uuid.UUID) -> Dict[str, Any]:
    """Mark an alert resolved and assign the chosen category to the alert's product."""
    alert = db.get(AdminAlert, alert_id)
    if alert is None:
        raise NotFoundError(f"Alert {alert_id} not found")
    if db.get(Category, category_id) is None:
        raise NotFoundError(f"Category {category_id} not found")

    alert.status = "resolved"
    alert.resolved_category_id = category_id
    alert.resolved_at = datetime.now(timezone.utc)
    if alert.product_id is not None:
        db.execute(update(Product).where(Product.id == alert.product_id).values(category_id=category_id))
    db.commit()
    logger.info("Alert %s resolved with category %s", alert_id, category_id)
    return _serialize_alert(alert)


# PUBLIC_INTERFACE
def migrate_missing_categories(db: Session, dry_run: bool = True) -> Dict[str, Any]:
    """Move every product without a category to 'Uncategorized'. A dry run only counts them."""
    total = db.scalar(select(func.count()).select_from(Product).where(Product.category_id.is_(None))) or 0
    if total == 0 or dry_run:
        if dry_run and total:
            logger.info("Dry run: would migrate %d products to %s", total, DEFAULT_CATEGORY_NAME)
        return {"total": total, "updated": 0, "errors": []}

    default = ensure_default_category(db)
    result = db.execute(update(Product).where(Product.category_id.is_(None)).values(category_id=default.id))
    db.commit()
    logger.info("Migrated %d products to %s", result.rowcount, DEFAULT_CATEGORY_NAME)
    return {"total": total, "updated": result.rowcount or 0, "errors": []}


# PUBLIC_INTERFACE
def category_stats(db: Session) -> Dict[str, Dict[str, Any]]:
    """Product counts per category id; products without a category are reported under 'uncategorized'."""
    counts = Counter(db.scalars(select(Product.category_id)))
    uncategorized = counts.pop(None, 0)

    stats: Dict[str, Dict[str, Any]] = {}
    if counts:
        names = dict(db.execute(select(Category.id, Category.name).where(Category.id.in_(list(counts)))).all())
        for category_id, count in counts.items():
            stats[str(category_id)] = {"name": names.get(category_id, "Unknown"), "count": count}
    if uncategorized:
        stats["uncategorized"] = {"name": DEFAULT_CATEGORY_NAME, "count": uncategorized}
    return stats
