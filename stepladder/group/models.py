"""Data models for the group blueprint."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

from stepladder.core.types import FirestoreDocument
from stepladder.errors import InvalidArgumentError


class MemberRole(str, Enum):
    """Role of a user within a group."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class CompetitionPeriodType(str, Enum):
    """Recurring scoring window of a group leaderboard."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class GroupDocument(FirestoreDocument, total=False):
    """A group document in Firestore."""

    name: str
    nameLower: str
    description: str | None
    creatorId: str
    isPublic: bool
    joinCode: str | None
    periodType: str
    memberCount: int


class MembershipDocument(FirestoreDocument, total=False):
    """A group membership document in Firestore."""

    groupId: str
    userId: str
    role: str
    joinedAt: Any


@dataclass
class Group:
    """A walking-competition group."""

    id: str
    name: str
    creator_id: str
    is_public: bool
    period_type: CompetitionPeriodType
    created_at: datetime
    description: str | None = None
    join_code: str | None = None
    member_count: int = 0


@dataclass
class GroupMembership:
    """The (user, group, role) relationship."""

    id: str
    group_id: str
    user_id: str
    role: MemberRole
    joined_at: datetime


@dataclass(frozen=True)
class CompetitionPeriod:
    """An inclusive calendar window over which step totals are ranked."""

    start_date: date
    end_date: date
    period_type: CompetitionPeriodType

    def __post_init__(self) -> None:
        if self.end_date < self.start_date:
            raise InvalidArgumentError(
                "End date must be greater than or equal to start date."
            )

    def contains(self, day: date) -> bool:
        """Return True if ``day`` falls inside the period."""
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class User:
    """Display data for a user, as resolved by the user lookup."""

    id: str
    display_name: str
    avatar_url: str | None = None


@dataclass(frozen=True)
class DailyStepSummary:
    """Aggregated steps and distance for one user on one day."""

    date: date
    steps: int
    distance_meters: float = 0.0


@dataclass
class LeaderboardEntry:
    """A single ranked row of a group leaderboard."""

    rank: int
    user_id: str
    display_name: str
    avatar_url: str | None
    total_steps: int
    total_distance_meters: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "rank": self.rank,
            "userId": self.user_id,
            "displayName": self.display_name,
            "avatarUrl": self.avatar_url,
            "totalSteps": self.total_steps,
            "totalDistanceMeters": self.total_distance_meters,
        }


# Response shapes


@dataclass
class GroupResponse:
    """A group as seen by one caller; the join code depends on their role."""

    id: str
    name: str
    description: str | None
    is_public: bool
    period_type: CompetitionPeriodType
    member_count: int
    role: MemberRole
    created_at: datetime
    join_code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "isPublic": self.is_public,
            "periodType": self.period_type.value,
            "memberCount": self.member_count,
            "joinCode": self.join_code,
            "role": self.role.value,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass
class GroupMemberResponse:
    """A group member with display data."""

    user_id: str
    display_name: str
    avatar_url: str | None
    role: MemberRole
    joined_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "displayName": self.display_name,
            "avatarUrl": self.avatar_url,
            "role": self.role.value,
            "joinedAt": self.joined_at.isoformat(),
        }


@dataclass
class GroupSearchResult:
    """A public group listed in search results."""

    id: str
    name: str
    description: str | None
    member_count: int
    is_public: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "memberCount": self.member_count,
            "isPublic": self.is_public,
        }


@dataclass
class LeaderboardResponse:
    """The ranked leaderboard of a group for its current period."""

    group_id: str
    period: CompetitionPeriod
    entries: list[LeaderboardEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "groupId": self.group_id,
            "periodType": self.period.period_type.value,
            "periodStart": self.period.start_date.isoformat(),
            "periodEnd": self.period.end_date.isoformat(),
            "entries": [entry.to_dict() for entry in self.entries],
        }
