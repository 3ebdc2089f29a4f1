"""Caller identity as handed to the API by the upstream auth layer."""

import uuid
from dataclasses import dataclass

ROLES = ("customer", "vendor", "admin")


@dataclass(frozen=True)
class CurrentUser:
    id: uuid.UUID
    role: str = "customer"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
