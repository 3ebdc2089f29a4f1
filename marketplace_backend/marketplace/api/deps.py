"""
FastAPI dependencies for caller identity.

Authentication happens upstream; the gateway forwards the verified account as the
`X-User-Id` and `X-User-Role` headers.
"""

import uuid
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.orm import Session

from marketplace.db.models import Vendor
from marketplace.db.session import get_db
from marketplace.errors import AuthenticationRequiredError, NotFoundError, PermissionDeniedError
from marketplace.identity import ROLES, CurrentUser


# PUBLIC_INTERFACE
def get_current_user(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> CurrentUser:
    """Identity of the caller; raises AuthenticationRequiredError (401) when absent or malformed."""
    if not x_user_id:
        raise AuthenticationRequiredError("Authentication required")
    try:
        user_id = uuid.UUID(x_user_id)
    except ValueError:
        raise AuthenticationRequiredError("Invalid user identity")
    role = (x_user_role or "customer").strip().lower()
    return CurrentUser(id=user_id, role=role if role in ROLES else "customer")


# PUBLIC_INTERFACE
def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise PermissionDeniedError("Admin access required")
    return user


# PUBLIC_INTERFACE
def require_vendor_owner(
    vendor_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> uuid.UUID:
    """Path dependency: the caller must own `vendor_id` (admins may act for any vendor)."""
    vendor = db.get(Vendor, vendor_id)
    if vendor is None:
        raise NotFoundError(f"Vendor {vendor_id} not found")
    if not user.is_admin and vendor.owner_id != user.id:
        raise PermissionDeniedError("You do not manage this vendor")
    return vendor_id


# PUBLIC_INTERFACE
def get_current_vendor_id(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> uuid.UUID:
    """The vendor account owned by the caller."""
    vendor_id = db.scalar(select(Vendor.id).where(Vendor.owner_id == user.id).order_by(Vendor.created_at).limit(1))
    if vendor_id is None:
        raise PermissionDeniedError("A vendor account is required")
    return vendor_id
