"""Service layer for reading daily step totals from Firestore."""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from google.cloud.firestore import FieldFilter

from stepladder.core.constants import STEP_ENTRIES_COLLECTION
from stepladder.group.models import CompetitionPeriod, DailyStepSummary

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client


def _entry_date(value: Any) -> date | None:
    """Read an entry's date, stored as an ISO string or a timestamp."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


class FirestoreStepLedger:
    """Step ledger over the ``stepEntries`` collection.

    Entries carry ``userId``, ``date`` (``YYYY-MM-DD``), ``stepCount`` and
    ``distanceMeters``; several entries on one day are summed.
    """

    def __init__(self, db: Client) -> None:
        self.db = db

    def get_daily_summaries(
        self, user_id: str, period: CompetitionPeriod
    ) -> list[DailyStepSummary]:
        docs = (
            self.db.collection(STEP_ENTRIES_COLLECTION)
            .where(filter=FieldFilter("userId", "==", user_id))
            .where(filter=FieldFilter("date", ">=", period.start_date.isoformat()))
            .where(filter=FieldFilter("date", "<=", period.end_date.isoformat()))
            .stream()
        )

        steps: dict[date, int] = defaultdict(int)
        distance: dict[date, float] = defaultdict(float)
        for doc in docs:
            data = doc.to_dict() or {}
            day = _entry_date(data.get("date"))
            if day is None or not period.contains(day):
                continue
            steps[day] += int(data.get("stepCount") or 0)
            distance[day] += float(data.get("distanceMeters") or 0.0)

        return [
            DailyStepSummary(date=day, steps=steps[day], distance_meters=distance[day])
            for day in sorted(steps)
        ]
