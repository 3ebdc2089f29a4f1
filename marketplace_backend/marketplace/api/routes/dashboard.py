import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.api.deps import require_vendor_owner
from marketplace.db.session import get_db
from marketplace.services import dashboard

router = APIRouter(tags=["Dashboard"])


@router.get("/vendors/{vendor_id}/dashboard", summary="Sales summary for a vendor")
def vendor_dashboard(
    start_date: Optional[datetime] = Query(None, description="Only orders created at or after this time"),
    end_date: Optional[datetime] = Query(None, description="Only orders created at or before this time"),
    vendor_id: uuid.UUID = Depends(require_vendor_owner),
    db: Session = Depends(get_db),
):
    return dashboard.vendor_summary(db, vendor_id, start_date=start_date, end_date=end_date)
