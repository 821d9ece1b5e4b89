"""
DevCamper Backend — Ownership Policy
======================================

What:  The single place that decides whether a requester may mutate an owned
       resource, and whether a publisher may create another bootcamp.
How:   Pure predicates plus `ensure_*` helpers that raise. Services call the
       helpers before touching the store, so a rejected request leaves no
       partial writes behind.
"""

import uuid
from typing import Any, Optional

from devcamper.exceptions import DuplicateOwnedResource, NotAuthorized
from devcamper.models.user import Role


def is_admin(role: Optional[str]) -> bool:
    return role == Role.ADMIN.value


def can_mutate(owner_id: uuid.UUID, requester_id: uuid.UUID, requester_role: str) -> bool:
    """Owner-or-admin rule."""
    return owner_id == requester_id or is_admin(requester_role)


def ensure_can_mutate(resource: Any, principal: Any, action: str = "modify") -> None:
    """
    Raise NotAuthorized unless `principal` owns `resource` or is an admin.

    `resource` is any model with a `user_id` owner column; `principal` is the
    authorization gate's Principal.
    """
    if not can_mutate(resource.user_id, principal.id, principal.role):
        kind = type(resource).__name__.lower()
        raise NotAuthorized(
            message=f"User {principal.id} is not authorized to {action} this {kind}",
            context={"resource_id": str(resource.id), "owner_id": str(resource.user_id)},
        )


def ensure_can_create_bootcamp(existing_count: int, principal: Any) -> None:
    """A non-admin may own at most one bootcamp."""
    if existing_count > 0 and not is_admin(principal.role):
        raise DuplicateOwnedResource(
            message=f"The user with ID {principal.id} has already published a bootcamp",
            context={"existing_count": existing_count},
        )
