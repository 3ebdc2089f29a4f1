from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.api.deps import get_current_user
from marketplace.api.schemas import ReviewCreate
from marketplace.db.session import get_db
from marketplace.identity import CurrentUser
from marketplace.services import reviews

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.get("/{id_or_slug}", summary="Reviews of a product")
def list_reviews(id_or_slug: str, db: Session = Depends(get_db)):
    return {"reviews": reviews.list_reviews(db, id_or_slug)}


@router.post("", status_code=201, summary="Review a product")
def create_review(body: ReviewCreate, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    data = body.model_dump()
    data["user_id"] = user.id
    return reviews.create_review(db, data)
