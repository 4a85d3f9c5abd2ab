"""Tests for the group authorization rules."""

from __future__ import annotations

import pytest

from stepladder.errors import InvalidOperationError, UnauthorizedError
from stepladder.group.models import MemberRole
from stepladder.group.services import policy

OWNER = MemberRole.OWNER
ADMIN = MemberRole.ADMIN
MEMBER = MemberRole.MEMBER


@pytest.mark.parametrize("role", [OWNER, ADMIN])
def test_managers_can_update_invite_and_regenerate(role):
    policy.ensure_can_update_group(role)
    policy.ensure_can_invite(role)
    policy.ensure_can_regenerate_join_code(role)
    assert policy.can_view_join_code(role)  # nosec B101


@pytest.mark.parametrize("role", [MEMBER, None])
def test_members_and_outsiders_cannot_manage(role):
    with pytest.raises(UnauthorizedError):
        policy.ensure_can_update_group(role)
    with pytest.raises(UnauthorizedError):
        policy.ensure_can_invite(role)
    with pytest.raises(UnauthorizedError):
        policy.ensure_can_regenerate_join_code(role)
    assert not policy.can_view_join_code(role)  # nosec B101


@pytest.mark.parametrize("role", [ADMIN, MEMBER, None])
def test_only_owner_deletes(role):
    policy.ensure_can_delete_group(OWNER)
    with pytest.raises(UnauthorizedError):
        policy.ensure_can_delete_group(role)


@pytest.mark.parametrize(
    "role,target,allowed",
    [
        (OWNER, ADMIN, True),
        (OWNER, MEMBER, True),
        (ADMIN, MEMBER, True),
        (ADMIN, ADMIN, False),
        (OWNER, OWNER, False),
        (ADMIN, OWNER, False),
        (MEMBER, MEMBER, False),
        (None, MEMBER, False),
    ],
)
def test_remove_member_table(role, target, allowed):
    if allowed:
        policy.ensure_can_remove(role, target)
    else:
        with pytest.raises(UnauthorizedError):
            policy.ensure_can_remove(role, target)


@pytest.mark.parametrize(
    "role,target,new_role,allowed",
    [
        (OWNER, MEMBER, ADMIN, True),
        (OWNER, ADMIN, MEMBER, True),
        (ADMIN, MEMBER, ADMIN, True),
        (ADMIN, ADMIN, MEMBER, False),
        (OWNER, MEMBER, OWNER, False),
        (OWNER, OWNER, MEMBER, False),
        (MEMBER, MEMBER, ADMIN, False),
    ],
)
def test_change_role_table(role, target, new_role, allowed):
    if allowed:
        policy.ensure_can_change_role(role, target, new_role)
    else:
        with pytest.raises(UnauthorizedError):
            policy.ensure_can_change_role(role, target, new_role)


def test_transfer_ownership_rules():
    policy.ensure_can_transfer_ownership(OWNER, MEMBER)
    policy.ensure_can_transfer_ownership(OWNER, ADMIN)
    with pytest.raises(UnauthorizedError):
        policy.ensure_can_transfer_ownership(ADMIN, MEMBER)
    with pytest.raises(InvalidOperationError):
        policy.ensure_can_transfer_ownership(OWNER, OWNER)


def test_leave_rules():
    policy.ensure_can_leave(MEMBER, 5)
    policy.ensure_can_leave(ADMIN, 5)
    policy.ensure_can_leave(OWNER, 1)
    with pytest.raises(InvalidOperationError):
        policy.ensure_can_leave(OWNER, 2)
