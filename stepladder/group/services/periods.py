"""Resolution of competition periods into concrete date windows."""

from __future__ import annotations

import calendar
import logging
from datetime import date, datetime, timedelta

from stepladder.errors import InvalidPeriodTypeError
from stepladder.group.models import CompetitionPeriod, CompetitionPeriodType

logger = logging.getLogger(__name__)

SUNDAY = 6


def parse_period_type(value: CompetitionPeriodType | str) -> CompetitionPeriodType:
    """Coerce a stored or user-supplied value into a period type."""
    if isinstance(value, CompetitionPeriodType):
        return value
    try:
        return CompetitionPeriodType(str(value).strip().lower())
    except ValueError:
        raise InvalidPeriodTypeError(value) from None


def _weekly_window(day: date) -> tuple[date, date]:
    days_from_monday = 6 if day.weekday() == SUNDAY else day.weekday()
    start = day - timedelta(days=days_from_monday)
    return start, start + timedelta(days=6)


def _monthly_window(day: date) -> tuple[date, date]:
    last_day = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last_day)


def resolve_period(
    period_type: CompetitionPeriodType | str, reference_date: date | datetime
) -> CompetitionPeriod:
    """Map a period type and a reference date to an inclusive window.

    The caller supplies the reference date; nothing here reads the clock.
    Weeks run Monday to Sunday, so a Sunday closes its own week.
    """
    period_type = parse_period_type(period_type)
    if isinstance(reference_date, datetime):
        reference_date = reference_date.date()

    if period_type is CompetitionPeriodType.DAILY:
        start, end = reference_date, reference_date
    elif period_type is CompetitionPeriodType.WEEKLY:
        start, end = _weekly_window(reference_date)
    elif period_type is CompetitionPeriodType.MONTHLY:
        start, end = _monthly_window(reference_date)
    elif period_type is CompetitionPeriodType.CUSTOM:
        # TODO: custom periods need stored start/end dates on the group;
        # until then they resolve to the reference day only.
        logger.debug(f"Custom period resolved as a single day: {reference_date}")
        start, end = reference_date, reference_date
    else:
        raise InvalidPeriodTypeError(period_type)

    return CompetitionPeriod(start_date=start, end_date=end, period_type=period_type)
