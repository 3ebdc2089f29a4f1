import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.api.deps import get_current_user
from marketplace.api.schemas import WishlistAdd
from marketplace.db.session import get_db
from marketplace.errors import ValidationError
from marketplace.identity import CurrentUser
from marketplace.services import wishlist

router = APIRouter(prefix="/wishlist", tags=["Wishlist"])


@router.get("", summary="The caller's wishlist")
def list_wishlist(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"items": wishlist.list_wishlist(db, user.id)}


@router.post("", status_code=201, summary="Add a variant to the wishlist")
def add_to_wishlist(body: WishlistAdd, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        variant_id = uuid.UUID(body.variant_id)
    except ValueError:
        raise ValidationError(f"Invalid variant id: {body.variant_id}")
    return wishlist.add_to_wishlist(db, user.id, variant_id)


@router.delete("/{variant_id}", summary="Remove a variant from the wishlist")
def remove_from_wishlist(variant_id: uuid.UUID, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    wishlist.remove_from_wishlist(db, user.id, variant_id)
    return {"removed": True}


@router.get("/{variant_id}/check", summary="Whether a variant is in the wishlist")
def check_wishlist(variant_id: uuid.UUID, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"in_wishlist": wishlist.in_wishlist(db, user.id, variant_id)}
