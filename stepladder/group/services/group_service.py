"""Service layer for group operations and data orchestration."""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Callable

from stepladder.core.constants import (
    JOIN_CODE_MAX_ATTEMPTS,
    LEADERBOARD_MAX_WORKERS,
    MAX_GROUP_NAME_LENGTH,
    MAX_SEARCH_LIMIT,
    MIN_GROUP_NAME_LENGTH,
    PUBLIC_GROUPS_LIMIT,
    UNKNOWN_DISPLAY_NAME,
)
from stepladder.errors import (
    ConflictError,
    InvalidArgumentError,
    InvalidOperationError,
    InvariantError,
    NotFoundError,
    UnauthorizedError,
)
from stepladder.group.models import (
    CompetitionPeriodType,
    Group,
    GroupMemberResponse,
    GroupMembership,
    GroupResponse,
    GroupSearchResult,
    LeaderboardResponse,
    MemberRole,
)
from stepladder.group.repository import DuplicateRecordError
from stepladder.group.services import policy
from stepladder.group.services.join_codes import (
    generate_join_code,
    is_valid_join_code,
    normalize_join_code,
)
from stepladder.group.services.leaderboard import build_leaderboard
from stepladder.group.services.periods import parse_period_type, resolve_period

if TYPE_CHECKING:
    from stepladder.group.repository import GroupRepository, StepLookup, UserLookup

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _require_id(value: str | None, label: str) -> str:
    """Trim an id that ends up as a Firestore document id."""
    if value is None or not str(value).strip():
        raise InvalidArgumentError(f"{label} cannot be empty.")
    value = str(value).strip()
    if "/" in value:
        raise InvalidArgumentError(f"{label} is not a valid identifier.")
    return value


def _validate_name(name: str | None) -> str:
    """Trim a group name and check its length."""
    if name is not None and not isinstance(name, str):
        raise InvalidArgumentError("Group name must be text.")
    if name is None or not name.strip():
        raise InvalidArgumentError("Group name cannot be empty.")
    name = name.strip()
    if not MIN_GROUP_NAME_LENGTH <= len(name) <= MAX_GROUP_NAME_LENGTH:
        raise InvalidArgumentError(
            f"Group name must be between {MIN_GROUP_NAME_LENGTH} and "
            f"{MAX_GROUP_NAME_LENGTH} characters."
        )
    return name


def _clean_description(description: str | None) -> str | None:
    if description is None:
        return None
    if not isinstance(description, str):
        raise InvalidArgumentError("Group description must be text.")
    return description.strip() or None


def _to_group_response(group: Group, role: MemberRole) -> GroupResponse:
    return GroupResponse(
        id=group.id,
        name=group.name,
        description=group.description,
        is_public=group.is_public,
        period_type=group.period_type,
        member_count=group.member_count,
        role=role,
        created_at=group.created_at,
        join_code=group.join_code if policy.can_view_join_code(role) else None,
    )


def _to_search_result(group: Group) -> GroupSearchResult:
    return GroupSearchResult(
        id=group.id,
        name=group.name,
        description=group.description,
        member_count=group.member_count,
        is_public=group.is_public,
    )


class GroupService:
    """Service class for group-related operations.

    All validation and authorization happens before the first write, so a
    failed call leaves the store untouched.
    """

    def __init__(
        self,
        repository: GroupRepository,
        user_lookup: UserLookup,
        step_lookup: StepLookup,
        *,
        clock: Callable[[], datetime] | None = None,
        join_code_attempts: int = JOIN_CODE_MAX_ATTEMPTS,
        leaderboard_workers: int = LEADERBOARD_MAX_WORKERS,
    ) -> None:
        self.repository = repository
        self.user_lookup = user_lookup
        self.step_lookup = step_lookup
        self.clock = clock or _utcnow
        self.join_code_attempts = max(1, join_code_attempts)
        self.leaderboard_workers = leaderboard_workers

    # Lookup helpers

    def _get_group_or_raise(self, group_id: str) -> Group:
        group = self.repository.get_group(group_id)
        if group is None:
            raise NotFoundError(f"Group not found: {group_id}")
        return group

    def _get_membership_or_raise(self, group_id: str, user_id: str) -> GroupMembership:
        membership = self.repository.get_membership(group_id, user_id)
        if membership is None:
            raise UnauthorizedError("You are not a member of this group.")
        return membership

    def _get_target_membership(
        self, group_id: str, target_user_id: str
    ) -> GroupMembership:
        membership = self.repository.get_membership(group_id, target_user_id)
        if membership is None:
            raise NotFoundError(f"Member not found: {target_user_id}")
        return membership

    def _refresh_group(self, group_id: str) -> Group:
        """Re-read a group after a write to get its authoritative member count."""
        group = self.repository.get_group(group_id)
        if group is None:
            raise InvariantError(f"Group {group_id} vanished after a write.")
        return group

    def _new_membership(
        self, group_id: str, user_id: str, role: MemberRole
    ) -> GroupMembership:
        return GroupMembership(
            id=str(uuid.uuid4()),
            group_id=group_id,
            user_id=user_id,
            role=role,
            joined_at=self.clock(),
        )

    def _with_fresh_join_code(self, group: Group, write: Callable[[Group], Group]) -> Group:
        """Run a group write with a new join code, retrying on code clashes."""
        for attempt in range(1, self.join_code_attempts + 1):
            group.join_code = generate_join_code()
            try:
                return write(group)
            except DuplicateRecordError:
                logger.warning(
                    f"Join code collision for group {group.id} "
                    f"(attempt {attempt}/{self.join_code_attempts})"
                )
        raise ConflictError("Could not allocate a unique join code. Please retry.")

    def _add_membership(self, membership: GroupMembership) -> GroupMembership:
        try:
            return self.repository.add_member(membership)
        except DuplicateRecordError:
            raise ConflictError("User is already a member of this group.") from None

    # Group lifecycle

    def create_group(
        self,
        user_id: str,
        name: str,
        description: str | None = None,
        is_public: bool = True,
        period_type: CompetitionPeriodType | str = CompetitionPeriodType.WEEKLY,
    ) -> GroupResponse:
        """Create a group and make the creator its owner."""
        user_id = _require_id(user_id, "User ID")
        name = _validate_name(name)
        period_type = parse_period_type(period_type)

        group = Group(
            id=str(uuid.uuid4()),
            name=name,
            description=_clean_description(description),
            creator_id=user_id,
            is_public=bool(is_public),
            period_type=period_type,
            created_at=self.clock(),
        )
        owner = self._new_membership(group.id, user_id, MemberRole.OWNER)

        def write(new_group: Group) -> Group:
            return self.repository.create_group(new_group, owner)

        if group.is_public:
            created = write(group)
        else:
            created = self._with_fresh_join_code(group, write)

        logger.info(f"Group {created.id} created by {user_id}")
        return _to_group_response(self._refresh_group(created.id), MemberRole.OWNER)

    def get_group(self, user_id: str, group_id: str) -> GroupResponse:
        """Fetch a group the caller belongs to."""
        user_id = _require_id(user_id, "User ID")
        group_id = _require_id(group_id, "Group ID")
        group = self._get_group_or_raise(group_id)
        membership = self._get_membership_or_raise(group_id, user_id)
        return _to_group_response(group, membership.role)

    def get_user_groups(self, user_id: str) -> list[GroupResponse]:
        """List every group of a user along with their role in it."""
        user_id = _require_id(user_id, "User ID")
        return [
            _to_group_response(group, role)
            for group, role in self.repository.get_user_groups(user_id)
        ]

    def update_group(
        self,
        user_id: str,
        group_id: str,
        name: str,
        description: str | None = None,
        is_public: bool | None = None,
    ) -> GroupResponse:
        """Update group metadata and keep the join code in step with visibility.

        Going private creates a code only when the group has none; going
        public clears it. An existing private code is never replaced here.
        """
        user_id = _require_id(user_id, "User ID")
        group_id = _require_id(group_id, "Group ID")
        name = _validate_name(name)
        group = self._get_group_or_raise(group_id)
        membership = self.repository.get_membership(group_id, user_id)
        policy.ensure_can_update_group(membership.role if membership else None)

        group.name = name
        group.description = _clean_description(description)
        if is_public is not None:
            group.is_public = bool(is_public)

        if group.is_public:
            group.join_code = None
            updated = self.repository.update_group(group)
        elif not group.join_code:
            updated = self._with_fresh_join_code(group, self.repository.update_group)
        else:
            updated = self.repository.update_group(group)

        logger.info(f"Group {group_id} updated by {user_id}")
        return _to_group_response(updated, membership.role)

    def delete_group(self, user_id: str, group_id: str) -> None:
        """Delete a group; the store removes its memberships."""
        user_id = _require_id(user_id, "User ID")
        group_id = _require_id(group_id, "Group ID")
        self._get_group_or_raise(group_id)
        membership = self.repository.get_membership(group_id, user_id)
        policy.ensure_can_delete_group(membership.role if membership else None)

        self.repository.delete_group(group_id)
        logger.info(f"Group {group_id} deleted by {user_id}")

    def regenerate_join_code(self, user_id: str, group_id: str) -> GroupResponse:
        """Replace a private group's join code with a fresh one."""
        user_id = _require_id(user_id, "User ID")
        group_id = _require_id(group_id, "Group ID")
        group = self._get_group_or_raise(group_id)
        membership = self.repository.get_membership(group_id, user_id)
        role = membership.role if membership else None
        policy.ensure_can_regenerate_join_code(role)
        if group.is_public:
            raise InvalidOperationError("Public groups do not have join codes.")

        updated = self._with_fresh_join_code(group, self.repository.update_group)
        logger.info(f"Join code of group {group_id} regenerated by {user_id}")
        return _to_group_response(updated, membership.role)

    # Joining and leaving

    def _join(self, user_id: str, group: Group) -> GroupResponse:
        self._add_membership(self._new_membership(group.id, user_id, MemberRole.MEMBER))
        logger.info(f"User {user_id} joined group {group.id}")
        return _to_group_response(self._refresh_group(group.id), MemberRole.MEMBER)

    def _ensure_not_member(self, group_id: str, user_id: str) -> None:
        if self.repository.get_membership(group_id, user_id) is not None:
            raise ConflictError("You are already a member of this group.")

    def join_group(
        self, user_id: str, group_id: str, join_code: str | None = None
    ) -> GroupResponse:
        """Join a public group, or a private one with its exact join code."""
        user_id = _require_id(user_id, "User ID")
        group_id = _require_id(group_id, "Group ID")
        group = self._get_group_or_raise(group_id)
        self._ensure_not_member(group_id, user_id)
        if not group.is_public and (not join_code or join_code != group.join_code):
            raise UnauthorizedError("Invalid join code.")
        return self._join(user_id, group)

    def join_by_code(self, user_id: str, code: str) -> GroupResponse:
        """Join whichever group holds the given code."""
        user_id = _require_id(user_id, "User ID")
        code = normalize_join_code(code)
        if not code:
            raise InvalidArgumentError("Join code cannot be empty.")
        group = None
        if is_valid_join_code(code):
            group = self.repository.get_group_by_join_code(code)
        if group is None:
            raise NotFoundError("Invalid join code. Group not found.")
        self._ensure_not_member(group.id, user_id)
        return self._join(user_id, group)

    def leave_group(self, user_id: str, group_id: str) -> None:
        """Leave a group. An owner can only leave as its last member."""
        user_id = _require_id(user_id, "User ID")
        group_id = _require_id(group_id, "Group ID")
        self._get_group_or_raise(group_id)
        membership = self.repository.get_membership(group_id, user_id)
        if membership is None:
            raise ConflictError("You are not a member of this group.")
        if membership.role is MemberRole.OWNER:
            # memberCount is a denormalized counter; count the rows instead.
            policy.ensure_can_leave(
                membership.role, len(self.repository.get_members(group_id))
            )

        self.repository.remove_member(group_id, user_id)
        logger.info(f"User {user_id} left group {group_id}")

    # Member management

    def invite_member(
        self, user_id: str, group_id: str, target_user_id: str
    ) -> GroupMemberResponse:
        """Add another user to the group as a member."""
        user_id = _require_id(user_id, "User ID")
        group_id = _require_id(group_id, "Group ID")
        target_user_id = _require_id(target_user_id, "User ID to invite")
        self._get_group_or_raise(group_id)
        membership = self.repository.get_membership(group_id, user_id)
        policy.ensure_can_invite(membership.role if membership else None)

        users = self.user_lookup.get_users_by_ids([target_user_id])
        target = next((u for u in users if u.id == target_user_id), None)
        if target is None:
            raise NotFoundError(f"User not found: {target_user_id}")
        if self.repository.get_membership(group_id, target_user_id) is not None:
            raise ConflictError("User is already a member of this group.")

        created = self._add_membership(
            self._new_membership(group_id, target_user_id, MemberRole.MEMBER)
        )
        logger.info(f"User {target_user_id} invited to group {group_id} by {user_id}")
        return GroupMemberResponse(
            user_id=target.id,
            display_name=target.display_name,
            avatar_url=target.avatar_url,
            role=created.role,
            joined_at=created.joined_at,
        )

    def remove_member(self, user_id: str, group_id: str, target_user_id: str) -> None:
        """Remove a member; owners are never removable, admins only by the owner."""
        user_id = _require_id(user_id, "User ID")
        group_id = _require_id(group_id, "Group ID")
        target_user_id = _require_id(target_user_id, "Target user ID")
        self._get_group_or_raise(group_id)
        membership = self.repository.get_membership(group_id, user_id)
        role = membership.role if membership else None
        if not policy.is_manager(role):
            raise UnauthorizedError("Only group owners and admins can remove members.")
        target = self._get_target_membership(group_id, target_user_id)
        policy.ensure_can_remove(role, target.role)

        self.repository.remove_member(group_id, target_user_id)
        logger.info(f"User {target_user_id} removed from group {group_id} by {user_id}")

    def update_member_role(
        self,
        user_id: str,
        group_id: str,
        target_user_id: str,
        new_role: MemberRole | str,
    ) -> GroupMemberResponse:
        """Promote a member to admin or demote an admin to member."""
        user_id = _require_id(user_id, "User ID")
        group_id = _require_id(group_id, "Group ID")
        target_user_id = _require_id(target_user_id, "Target user ID")
        try:
            new_role = MemberRole(new_role)
        except ValueError:
            raise InvalidArgumentError(f"Unknown role: {new_role}") from None
        self._get_group_or_raise(group_id)
        membership = self._get_membership_or_raise(group_id, user_id)
        target = self._get_target_membership(group_id, target_user_id)
        policy.ensure_can_change_role(membership.role, target.role, new_role)

        updated = target
        if target.role is not new_role:
            updated = self.repository.update_member_role(
                group_id, target_user_id, new_role
            )
            logger.info(
                f"User {target_user_id} in group {group_id} is now {new_role.value}"
            )
        return self._member_response(updated)

    def transfer_ownership(
        self, user_id: str, group_id: str, target_user_id: str
    ) -> GroupMemberResponse:
        """Hand the group to another member; the old owner stays on as admin."""
        user_id = _require_id(user_id, "User ID")
        group_id = _require_id(group_id, "Group ID")
        target_user_id = _require_id(target_user_id, "Target user ID")
        self._get_group_or_raise(group_id)
        membership = self._get_membership_or_raise(group_id, user_id)
        target = self._get_target_membership(group_id, target_user_id)
        policy.ensure_can_transfer_ownership(membership.role, target.role)

        self.repository.transfer_ownership(group_id, user_id, target_user_id)
        logger.info(f"Ownership of group {group_id} moved from {user_id} to {target_user_id}")
        target.role = MemberRole.OWNER
        return self._member_response(target)

    def _member_response(self, membership: GroupMembership) -> GroupMemberResponse:
        users = self.user_lookup.get_users_by_ids([membership.user_id])
        user = next((u for u in users if u.id == membership.user_id), None)
        return GroupMemberResponse(
            user_id=membership.user_id,
            display_name=user.display_name if user else UNKNOWN_DISPLAY_NAME,
            avatar_url=user.avatar_url if user else None,
            role=membership.role,
            joined_at=membership.joined_at,
        )

    def get_members(self, user_id: str, group_id: str) -> list[GroupMemberResponse]:
        """List members with display data using one batched user lookup."""
        user_id = _require_id(user_id, "User ID")
        group_id = _require_id(group_id, "Group ID")
        self._get_group_or_raise(group_id)
        self._get_membership_or_raise(group_id, user_id)

        memberships = self.repository.get_members(group_id)
        if not memberships:
            return []

        users = self.user_lookup.get_users_by_ids([m.user_id for m in memberships])
        users_by_id = {user.id: user for user in users}
        members = []
        for m in memberships:
            user = users_by_id.get(m.user_id)
            if user is None:
                continue
            members.append(
                GroupMemberResponse(
                    user_id=user.id,
                    display_name=user.display_name,
                    avatar_url=user.avatar_url,
                    role=m.role,
                    joined_at=m.joined_at,
                )
            )
        return members

    # Leaderboards and discovery

    def get_leaderboard(
        self, user_id: str, group_id: str, today: date | None = None
    ) -> LeaderboardResponse:
        """Rank the group's members for the period containing ``today``."""
        user_id = _require_id(user_id, "User ID")
        group_id = _require_id(group_id, "Group ID")
        group = self._get_group_or_raise(group_id)
        self._get_membership_or_raise(group_id, user_id)

        period = resolve_period(group.period_type, today or self.clock().date())
        memberships = self.repository.get_members(group_id)
        entries = build_leaderboard(
            memberships,
            self.user_lookup,
            self.step_lookup,
            period,
            max_workers=self.leaderboard_workers,
        )
        return LeaderboardResponse(group_id=group_id, period=period, entries=entries)

    def list_public_groups(self, limit: int = PUBLIC_GROUPS_LIMIT) -> list[GroupSearchResult]:
        """List the newest public groups; no membership needed."""
        limit = self._validate_limit(limit)
        return [_to_search_result(g) for g in self.repository.list_public_groups(limit)]

    def search_public_groups(
        self, query: str, limit: int = PUBLIC_GROUPS_LIMIT
    ) -> list[GroupSearchResult]:
        """Find public groups whose name starts with ``query``."""
        if query is None or not query.strip():
            raise InvalidArgumentError("Search query cannot be empty.")
        limit = self._validate_limit(limit)
        groups = self.repository.search_public_groups(query.strip(), limit)
        return [_to_search_result(g) for g in groups]

    @staticmethod
    def _validate_limit(limit: int) -> int:
        if not 1 <= limit <= MAX_SEARCH_LIMIT:
            raise InvalidArgumentError(
                f"Limit must be between 1 and {MAX_SEARCH_LIMIT}."
            )
        return limit
