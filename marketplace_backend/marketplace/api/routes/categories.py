"""Category routes plus the admin tools for products whose category went missing."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.api.deps import get_current_user, require_admin
from marketplace.api.schemas import AlertResolution, CategoryCreate
from marketplace.db.session import get_db
from marketplace.errors import ValidationError
from marketplace.services import categories

router = APIRouter(tags=["Categories"])


@router.get("/categories", summary="List categories")
def list_categories(db: Session = Depends(get_db)):
    return {"categories": categories.list_categories(db)}


@router.post("/categories", status_code=201, summary="Get or create a category by name", dependencies=[Depends(get_current_user)])
def create_category(body: CategoryCreate, db: Session = Depends(get_db)):
    category = categories.get_or_create_category(db, body.name)
    if category is None:
        raise ValidationError(f"Category {body.name!r} could not be created")
    db.commit()
    return {"id": category.id, "name": category.name, "slug": category.slug}


@router.get("/categories/stats", summary="Product counts per category")
def category_stats(db: Session = Depends(get_db)):
    return categories.category_stats(db)


@router.get("/admin/alerts", summary="Category alerts", dependencies=[Depends(require_admin)])
def list_alerts(status: Optional[str] = "unresolved", db: Session = Depends(get_db)):
    return {"alerts": categories.list_alerts(db, status=status)}


@router.post("/admin/alerts/{alert_id}/resolve", summary="Resolve a category alert", dependencies=[Depends(require_admin)])
def resolve_alert(alert_id: uuid.UUID, body: AlertResolution, db: Session = Depends(get_db)):
    try:
        category_id = uuid.UUID(body.category_id)
    except ValueError:
        raise ValidationError(f"Invalid category id: {body.category_id}")
    return categories.resolve_alert(db, alert_id, category_id)


@router.post("/admin/categories/migrate", summary="Assign Uncategorized to products without a category", dependencies=[Depends(require_admin)])
def migrate_categories(dry_run: bool = True, db: Session = Depends(get_db)):
    return categories.migrate_missing_categories(db, dry_run=dry_run)
