from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.api.schemas import CartQuoteRequest
from marketplace.db.session import get_db
from marketplace.services.cart import quote_cart

router = APIRouter(prefix="/cart", tags=["Cart"])


@router.post("/quote", summary="Price a cart")
def quote(body: CartQuoteRequest, db: Session = Depends(get_db)):
    """Re-price cart lines from the database; managed stock caps quantities."""
    return quote_cart(db, [item.model_dump() for item in body.items])
