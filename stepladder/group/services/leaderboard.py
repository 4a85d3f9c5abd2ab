"""Service for group leaderboard aggregation and ranking."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable

from stepladder.core.constants import LEADERBOARD_MAX_WORKERS, UNKNOWN_DISPLAY_NAME
from stepladder.errors import DependencyFailureError
from stepladder.group.models import (
    CompetitionPeriod,
    DailyStepSummary,
    GroupMembership,
    LeaderboardEntry,
    User,
)

if TYPE_CHECKING:
    from stepladder.group.repository import StepLookup, UserLookup

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MemberTotals:
    """Step and distance totals of one member for one period."""

    user_id: str
    display_name: str
    avatar_url: str | None
    total_steps: int
    total_distance_meters: float


def _sort_key(row: MemberTotals) -> tuple[int, str]:
    return (-row.total_steps, row.user_id)


def rank_leaderboard(rows: Iterable[MemberTotals]) -> list[LeaderboardEntry]:
    """Order totals by steps (ties by user id) and assign dense ranks.

    Tied step counts share a rank and the next distinct count takes the
    following rank, so 100, 100, 50 ranks as 1, 1, 2.
    """
    leaderboard: list[LeaderboardEntry] = []
    rank = 0
    previous_steps: int | None = None
    for row in sorted(rows, key=_sort_key):
        if row.total_steps != previous_steps:
            rank += 1
            previous_steps = row.total_steps
        leaderboard.append(
            LeaderboardEntry(
                rank=rank,
                user_id=row.user_id,
                display_name=row.display_name,
                avatar_url=row.avatar_url,
                total_steps=row.total_steps,
                total_distance_meters=row.total_distance_meters,
            )
        )
    return leaderboard


def _sum_summaries(
    summaries: Iterable[DailyStepSummary], period: CompetitionPeriod
) -> tuple[int, float]:
    """Sum the summaries that fall inside the period."""
    steps = 0
    distance = 0.0
    for summary in summaries:
        if period.contains(summary.date):
            steps += summary.steps
            distance += summary.distance_meters
    return steps, distance


def _fetch_users(user_lookup: UserLookup, user_ids: list[str]) -> dict[str, User]:
    try:
        users = user_lookup.get_users_by_ids(user_ids)
    except Exception as e:
        raise DependencyFailureError("Could not load group members.") from e
    return {user.id: user for user in users}


def _fetch_step_totals(
    step_lookup: StepLookup,
    user_ids: list[str],
    period: CompetitionPeriod,
    max_workers: int,
) -> dict[str, tuple[int, float]]:
    """Fetch every member's totals with a bounded pool of workers.

    A member whose fetch fails counts as zero. If every fetch fails the
    step ledger is treated as unavailable.
    """
    totals: dict[str, tuple[int, float]] = {}
    failures = 0
    workers = max(1, min(max_workers, len(user_ids)))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            user_id: executor.submit(step_lookup.get_daily_summaries, user_id, period)
            for user_id in user_ids
        }
        for user_id, future in futures.items():
            try:
                totals[user_id] = _sum_summaries(future.result(), period)
            except Exception as e:
                failures += 1
                logger.warning(f"Step data unavailable for user {user_id}: {e}")
                totals[user_id] = (0, 0.0)

    if user_ids and failures == len(user_ids):
        raise DependencyFailureError("Step data is unavailable.")
    return totals


def build_leaderboard(
    memberships: list[GroupMembership],
    user_lookup: UserLookup,
    step_lookup: StepLookup,
    period: CompetitionPeriod,
    max_workers: int = LEADERBOARD_MAX_WORKERS,
) -> list[LeaderboardEntry]:
    """Aggregate member step totals for a period and rank them.

    Every current member appears, with zero steps when nothing was recorded.
    """
    if not memberships:
        return []

    user_ids = [m.user_id for m in memberships]
    users = _fetch_users(user_lookup, user_ids)
    step_totals = _fetch_step_totals(step_lookup, user_ids, period, max_workers)

    rows = []
    for user_id in user_ids:
        user = users.get(user_id)
        steps, distance = step_totals[user_id]
        rows.append(
            MemberTotals(
                user_id=user_id,
                display_name=user.display_name if user else UNKNOWN_DISPLAY_NAME,
                avatar_url=user.avatar_url if user else None,
                total_steps=steps,
                total_distance_meters=distance,
            )
        )
    return rank_leaderboard(rows)
