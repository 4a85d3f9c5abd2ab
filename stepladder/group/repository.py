"""Interfaces of the stores the group service depends on."""

from __future__ import annotations

from typing import Iterable, Protocol

from stepladder.group.models import (
    CompetitionPeriod,
    DailyStepSummary,
    Group,
    GroupMembership,
    MemberRole,
    User,
)


class DuplicateRecordError(Exception):
    """Raised by a store when a unique key already exists.

    Stores raise this for a second membership of the same user in a group and
    for a join code already held by another group.
    """

    def __init__(self, message: str, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key


class GroupRepository(Protocol):
    """Persistence for groups and memberships."""

    def get_group(self, group_id: str) -> Group | None:
        """Get a group with its current member count."""
        ...

    def get_group_by_join_code(self, join_code: str) -> Group | None:
        """Get the group holding a join code."""
        ...

    def create_group(self, group: Group, owner: GroupMembership) -> Group:
        """Persist a new group together with its owner's membership, atomically.

        Raises DuplicateRecordError on a code clash, leaving nothing written.
        """
        ...

    def update_group(self, group: Group) -> Group:
        """Persist group metadata, moving the join code reservation if changed."""
        ...

    def delete_group(self, group_id: str) -> None:
        """Delete a group, its memberships and its join code."""
        ...

    def get_membership(self, group_id: str, user_id: str) -> GroupMembership | None:
        """Get a user's membership in a group."""
        ...

    def add_member(self, membership: GroupMembership) -> GroupMembership:
        """Insert a membership. Raises DuplicateRecordError if it exists."""
        ...

    def remove_member(self, group_id: str, user_id: str) -> None:
        """Delete a membership."""
        ...

    def update_member_role(
        self, group_id: str, user_id: str, role: MemberRole
    ) -> GroupMembership:
        """Change the role of an existing membership."""
        ...

    def transfer_ownership(
        self, group_id: str, from_user_id: str, to_user_id: str
    ) -> None:
        """Make ``to_user_id`` the owner and ``from_user_id`` an admin, atomically."""
        ...

    def get_members(self, group_id: str) -> list[GroupMembership]:
        """Get all memberships of a group, oldest first, in one query."""
        ...

    def get_user_groups(self, user_id: str) -> list[tuple[Group, MemberRole]]:
        """Get a user's groups with their role, in at most two queries."""
        ...

    def list_public_groups(self, limit: int) -> list[Group]:
        """Get the most recently created public groups."""
        ...

    def search_public_groups(self, query: str, limit: int) -> list[Group]:
        """Get public groups whose name starts with ``query``, ignoring case."""
        ...


class UserLookup(Protocol):
    """Batched resolution of user display data."""

    def get_users_by_ids(self, user_ids: Iterable[str]) -> list[User]:
        """Get users in one call; unknown ids are left out, never an error."""
        ...


class StepLookup(Protocol):
    """Per-day step totals of a user."""

    def get_daily_summaries(
        self, user_id: str, period: CompetitionPeriod
    ) -> list[DailyStepSummary]:
        """Get one summary per recorded day inside the period."""
        ...
