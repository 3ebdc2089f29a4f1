import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.api.deps import get_current_user
from marketplace.api.schemas import VendorUpdate
from marketplace.db.session import get_db
from marketplace.identity import CurrentUser
from marketplace.services import vendors

router = APIRouter(prefix="/vendors", tags=["Vendors"])


@router.get("", summary="List vendors")
def list_vendors(db: Session = Depends(get_db)):
    return {"vendors": vendors.list_vendors(db)}


@router.get("/by-owner/{owner_id}", summary="Vendor owned by a profile")
def vendor_by_owner(owner_id: uuid.UUID, db: Session = Depends(get_db)):
    return vendors.get_vendor_by_owner(db, owner_id)


@router.get("/{vendor_id}", summary="Get a vendor")
def get_vendor(vendor_id: uuid.UUID, db: Session = Depends(get_db)):
    return vendors.get_vendor(db, vendor_id)


@router.patch("/{vendor_id}", summary="Update a vendor profile")
def update_vendor(
    vendor_id: uuid.UUID,
    body: VendorUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return vendors.update_vendor(db, vendor_id, user.id, body.model_dump(exclude_unset=True))
