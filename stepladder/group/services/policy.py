"""Authorization rules for group actions.

Roles are plain data; every rule is a small function over the caller's role
and, where relevant, the target member's role. Nothing here touches a store.
"""

from __future__ import annotations

from stepladder.errors import InvalidOperationError, UnauthorizedError
from stepladder.group.models import MemberRole

MANAGERS = frozenset({MemberRole.OWNER, MemberRole.ADMIN})


def is_manager(role: MemberRole | None) -> bool:
    return role in MANAGERS


def can_view_join_code(role: MemberRole | None) -> bool:
    """Only owners and admins see a private group's join code."""
    return is_manager(role)


def ensure_can_update_group(role: MemberRole | None) -> None:
    if not is_manager(role):
        raise UnauthorizedError("Only group owners and admins can update the group.")


def ensure_can_delete_group(role: MemberRole | None) -> None:
    if role is not MemberRole.OWNER:
        raise UnauthorizedError("Only the group owner can delete the group.")


def ensure_can_invite(role: MemberRole | None) -> None:
    if not is_manager(role):
        raise UnauthorizedError("Only group owners and admins can invite members.")


def ensure_can_regenerate_join_code(role: MemberRole | None) -> None:
    if not is_manager(role):
        raise UnauthorizedError(
            "Only group owners and admins can regenerate the join code."
        )


def ensure_can_remove(role: MemberRole | None, target_role: MemberRole) -> None:
    if not is_manager(role):
        raise UnauthorizedError("Only group owners and admins can remove members.")
    if target_role is MemberRole.OWNER:
        raise UnauthorizedError("Cannot remove the group owner.")
    if role is MemberRole.ADMIN and target_role is MemberRole.ADMIN:
        raise UnauthorizedError("Admins cannot remove other admins.")


def ensure_can_change_role(
    role: MemberRole | None, target_role: MemberRole, new_role: MemberRole
) -> None:
    """Check a member<->admin role change.

    Ownership never moves through a role change; see
    ``ensure_can_transfer_ownership``.
    """
    if not is_manager(role):
        raise UnauthorizedError("Only owners and admins can change member roles.")
    if target_role is MemberRole.OWNER:
        raise UnauthorizedError("Cannot change the owner's role.")
    if new_role is MemberRole.OWNER:
        raise UnauthorizedError(
            "Ownership can only be handed over by transferring it."
        )
    if (
        role is MemberRole.ADMIN
        and target_role is MemberRole.ADMIN
        and new_role is not MemberRole.ADMIN
    ):
        raise UnauthorizedError("Admins cannot demote other admins.")


def ensure_can_transfer_ownership(
    role: MemberRole | None, target_role: MemberRole
) -> None:
    if role is not MemberRole.OWNER:
        raise UnauthorizedError("Only the group owner can transfer ownership.")
    if target_role is MemberRole.OWNER:
        raise InvalidOperationError("You already own this group.")


def ensure_can_leave(role: MemberRole, member_count: int) -> None:
    """Owners may leave only as the last remaining member."""
    if role is MemberRole.OWNER and member_count > 1:
        raise InvalidOperationError(
            "Group owner cannot leave. Transfer ownership to another member "
            "first or delete the group."
        )
