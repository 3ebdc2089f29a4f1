from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.db.session import db_healthcheck, get_db

router = APIRouter(tags=["Health"])


@router.get("/", summary="Service health check")
def health_check():
    """Basic health check for the backend service (no external dependencies)."""
    return {"message": "Healthy"}


@router.get("/health/db", summary="Database health check")
def health_db_check(db: Session = Depends(get_db)):
    """
    Check database connectivity.

    Returns a JSON payload indicating whether the database is reachable.
    """
    ok = db_healthcheck(db.get_bind())
    return {"database": "ok" if ok else "unreachable", "ok": ok}
