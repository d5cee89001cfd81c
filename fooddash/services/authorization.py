"""
Ownership authorization guard.

Mutations on restaurants, driver profiles and menu items are allowed for the
owning user or for an admin. Callers must load the target first so that a
missing resource is reported as 404 before any 403.
"""
from typing import Iterable, Optional

from fooddash.errors import AuthorizationError

ADMIN_ROLE = 'admin'


def is_owner_or_admin(requester_id: Optional[int], requester_role: Optional[str],
                      owner_id: Optional[int]) -> bool:
    if requester_role == ADMIN_ROLE:
        return True
    return requester_id is not None and requester_id == owner_id


def ensure_owner_or_admin(user, owner_id, message='You do not have permission to modify this resource'):
    if not is_owner_or_admin(user.id, user.role, owner_id):
        raise AuthorizationError(message)


def ensure_any_owner_or_admin(user, owner_ids: Iterable[Optional[int]], message):
    """Guard for resources with more than one owning party (e.g. orders)."""
    if not any(is_owner_or_admin(user.id, user.role, owner_id) for owner_id in owner_ids):
        raise AuthorizationError(message)


def ensure_role(user, roles: Iterable[str], message):
    if user.role != ADMIN_ROLE and user.role not in roles:
        raise AuthorizationError(message)
