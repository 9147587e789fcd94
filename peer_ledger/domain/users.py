"""User registry rules: role seats, unique names, role gates"""

from dataclasses import replace
from datetime import datetime
from typing import Dict, Optional

from peer_ledger.domain.exceptions import (
    DuplicateName,
    InvalidInput,
    RoleCapacityExceeded,
    Unauthorized,
    UserNotFound,
)
from peer_ledger.domain.models import LedgerSnapshot, Role, User

MAX_LENDERS = 1
MAX_BORROWERS = 19

ROLE_CAPACITY: Dict[Role, int] = {
    Role.LENDER: MAX_LENDERS,
    Role.BORROWER: MAX_BORROWERS,
}


def count_by_role(snapshot: LedgerSnapshot) -> Dict[Role, int]:
    counts = {role: 0 for role in Role}
    for user in snapshot.users:
        counts[user.role] += 1
    return counts


def register_user(
    snapshot: LedgerSnapshot,
    user_id: str,
    name: str,
    role: Role,
    now: datetime,
) -> LedgerSnapshot:
    """
    Add a member and make them the acting user.

    Raises:
        InvalidInput: name is blank
        DuplicateName: another user has the same name ignoring case
        RoleCapacityExceeded: all seats for the role are taken
    """
    clean_name = name.strip()
    if not clean_name:
        raise InvalidInput("Name is required")

    folded = clean_name.casefold()
    if any(user.name.casefold() == folded for user in snapshot.users):
        raise DuplicateName(
            f"A user named '{clean_name}' already exists", {"name": clean_name}
        )

    capacity = ROLE_CAPACITY[role]
    if count_by_role(snapshot)[role] >= capacity:
        noun = "lender" if role == Role.LENDER else "borrowers"
        raise RoleCapacityExceeded(
            f"Maximum {capacity} {noun} allowed", {"role": role.value, "capacity": capacity}
        )

    user = User(id=user_id, name=clean_name, role=role, joined_at=now)
    return replace(snapshot, users=snapshot.users + (user,), current_user_id=user.id)


def switch_user(snapshot: LedgerSnapshot, user_id: str) -> LedgerSnapshot:
    if snapshot.get_user(user_id) is None:
        raise UserNotFound(f"User '{user_id}' not found", {"user_id": user_id})
    return replace(snapshot, current_user_id=user_id)


def require_actor(snapshot: LedgerSnapshot, actor_id: Optional[str], role: Role) -> User:
    """
    Resolve the acting user and check their role.

    Falls back to the session's current user when no explicit actor is given.
    """
    resolved_id = actor_id or snapshot.current_user_id
    if resolved_id is None:
        raise Unauthorized("No acting user")

    user = snapshot.get_user(resolved_id)
    if user is None:
        raise Unauthorized(f"Unknown acting user '{resolved_id}'", {"user_id": resolved_id})
    if user.role != role:
        raise Unauthorized(
            f"Only a {role.value} can do this",
            {"user_id": user.id, "role": user.role.value, "required_role": role.value},
        )
    return user
