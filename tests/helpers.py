"""In-memory collaborators for service tests."""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Iterable

from stepladder.group.models import (
    CompetitionPeriod,
    DailyStepSummary,
    Group,
    GroupMembership,
    MemberRole,
    User,
)
from stepladder.group.repository import DuplicateRecordError

START = datetime(2024, 1, 17, 9, 0, tzinfo=timezone.utc)  # a Wednesday


class TickingClock:
    """A clock that moves one minute forward on every read."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = current + timedelta(minutes=1)
        return current


class InMemoryGroupRepository:
    """Group store that keeps everything in dicts and counts each call."""

    def __init__(self) -> None:
        self.groups: dict[str, Group] = {}
        self.memberships: dict[tuple[str, str], GroupMembership] = {}
        self.codes: dict[str, str] = {}
        self.calls: Counter[str] = Counter()

    def _member_count(self, group_id: str) -> int:
        return sum(1 for gid, _ in self.memberships if gid == group_id)

    def _snapshot(self, group: Group) -> Group:
        return replace(group, member_count=self._member_count(group.id))

    def _reserve(self, group: Group) -> None:
        if not group.join_code:
            return
        holder = self.codes.get(group.join_code)
        if holder is not None and holder != group.id:
            raise DuplicateRecordError("Join code already in use.", key=group.join_code)

    def get_group(self, group_id: str) -> Group | None:
        self.calls["get_group"] += 1
        group = self.groups.get(group_id)
        return self._snapshot(group) if group else None

    def get_group_by_join_code(self, join_code: str) -> Group | None:
        self.calls["get_group_by_join_code"] += 1
        group = self.groups.get(self.codes.get(join_code, ""))
        if group is None or group.join_code != join_code:
            return None
        return self._snapshot(group)

    def create_group(self, group: Group, owner: GroupMembership) -> Group:
        self.calls["create_group"] += 1
        self._reserve(group)
        self.groups[group.id] = replace(group)
        if group.join_code:
            self.codes[group.join_code] = group.id
        self.memberships[(group.id, owner.user_id)] = replace(owner)
        return self._snapshot(group)

    def update_group(self, group: Group) -> Group:
        self.calls["update_group"] += 1
        self._reserve(group)
        old_code = self.groups[group.id].join_code
        if old_code and old_code != group.join_code:
            self.codes.pop(old_code, None)
        if group.join_code:
            self.codes[group.join_code] = group.id
        self.groups[group.id] = replace(group)
        return self._snapshot(group)

    def delete_group(self, group_id: str) -> None:
        self.calls["delete_group"] += 1
        group = self.groups.pop(group_id)
        if group.join_code:
            self.codes.pop(group.join_code, None)
        for key in [k for k in self.memberships if k[0] == group_id]:
            del self.memberships[key]

    def get_membership(self, group_id: str, user_id: str) -> GroupMembership | None:
        self.calls["get_membership"] += 1
        membership = self.memberships.get((group_id, user_id))
        return replace(membership) if membership else None

    def add_member(self, membership: GroupMembership) -> GroupMembership:
        self.calls["add_member"] += 1
        key = (membership.group_id, membership.user_id)
        if key in self.memberships:
            raise DuplicateRecordError("Membership already exists.", key=str(key))
        self.memberships[key] = replace(membership)
        return replace(membership)

    def remove_member(self, group_id: str, user_id: str) -> None:
        self.calls["remove_member"] += 1
        self.memberships.pop((group_id, user_id), None)

    def update_member_role(
        self, group_id: str, user_id: str, role: MemberRole
    ) -> GroupMembership:
        self.calls["update_member_role"] += 1
        membership = self.memberships[(group_id, user_id)]
        membership.role = role
        return replace(membership)

    def transfer_ownership(
        self, group_id: str, from_user_id: str, to_user_id: str
    ) -> None:
        self.calls["transfer_ownership"] += 1
        self.memberships[(group_id, from_user_id)].role = MemberRole.ADMIN
        self.memberships[(group_id, to_user_id)].role = MemberRole.OWNER

    def get_members(self, group_id: str) -> list[GroupMembership]:
        self.calls["get_members"] += 1
        members = [replace(m) for m in self.memberships.values() if m.group_id == group_id]
        return sorted(members, key=lambda m: m.joined_at)

    def get_user_groups(self, user_id: str) -> list[tuple[Group, MemberRole]]:
        self.calls["get_user_groups"] += 1
        return [
            (self._snapshot(self.groups[m.group_id]), m.role)
            for m in self.memberships.values()
            if m.user_id == user_id and m.group_id in self.groups
        ]

    def list_public_groups(self, limit: int) -> list[Group]:
        self.calls["list_public_groups"] += 1
        public = [g for g in self.groups.values() if g.is_public]
        public.sort(key=lambda g: g.created_at, reverse=True)
        return [self._snapshot(g) for g in public[:limit]]

    def search_public_groups(self, query: str, limit: int) -> list[Group]:
        self.calls["search_public_groups"] += 1
        term = query.lower()
        found = [
            g
            for g in self.groups.values()
            if g.is_public and g.name.lower().startswith(term)
        ]
        return [self._snapshot(g) for g in found[:limit]]


class FakeUserLookup:
    """User lookup over a dict that records every batch it is asked for."""

    def __init__(self, users: Iterable[User] = (), fail: bool = False) -> None:
        self.users = {user.id: user for user in users}
        self.fail = fail
        self.batches: list[list[str]] = []

    def add(self, user_id: str, display_name: str, avatar_url: str | None = None):
        self.users[user_id] = User(user_id, display_name, avatar_url)

    def get_users_by_ids(self, user_ids: Iterable[str]) -> list[User]:
        ids = list(user_ids)
        self.batches.append(ids)
        if self.fail:
            raise RuntimeError("user store offline")
        return [self.users[uid] for uid in ids if uid in self.users]


class FakeStepLookup:
    """Step lookup over canned summaries; listed users raise on fetch."""

    def __init__(self) -> None:
        self.summaries: dict[str, list[DailyStepSummary]] = {}
        self.failing: set[str] = set()
        self.requested: list[str] = []
        self._lock = threading.Lock()

    def add(self, user_id: str, day, steps: int, distance_meters: float = 0.0):
        self.summaries.setdefault(user_id, []).append(
            DailyStepSummary(date=day, steps=steps, distance_meters=distance_meters)
        )

    def get_daily_summaries(
        self, user_id: str, period: CompetitionPeriod
    ) -> list[DailyStepSummary]:
        with self._lock:
            self.requested.append(user_id)
        if user_id in self.failing:
            raise RuntimeError(f"steps unavailable for {user_id}")
        return list(self.summaries.get(user_id, []))
