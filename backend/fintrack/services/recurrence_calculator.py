"""
Occurrence calculation for recurring transaction templates.

Pure date arithmetic: given a template and a target date, return the calendar
dates on which the template is due, from its anchor date through the target
date (both inclusive).

Weekdays follow the convention stored in recurrence_day: 0 = Sunday .. 6 = Saturday.
"""
import calendar
import logging
from datetime import date, datetime, timedelta
from typing import Optional, Tuple, Union

from fintrack.models import (
    RECURRENCE_BIWEEKLY,
    RECURRENCE_MONTHLY,
    RECURRENCE_MONTHLY_VARIABLE,
    RECURRENCE_WEEKLY,
)

logger = logging.getLogger(__name__)

MONTHLY_TYPES = (RECURRENCE_MONTHLY, RECURRENCE_MONTHLY_VARIABLE)
WEEK_INTERVALS = {
    RECURRENCE_WEEKLY: 7,
    RECURRENCE_BIWEEKLY: 14,
}

DateLike = Union[date, datetime]


class InvalidTemplateError(ValueError):
    """Raised when a template's recurrence settings cannot produce dates."""


def as_calendar_date(value: DateLike) -> date:
    """Reduce a date or datetime to its calendar day."""
    if isinstance(value, datetime):
        return value.date()
    return value


def js_weekday(value: date) -> int:
    """Weekday with Sunday as 0, matching stored recurrence_day values."""
    return (value.weekday() + 1) % 7


def clamp_day_to_month(year: int, month: int, day: int) -> int:
    """Clamp day to the last valid day of the given month."""
    last_day = calendar.monthrange(year, month)[1]
    return min(day, last_day)


def add_months(year: int, month: int, offset: int) -> Tuple[int, int]:
    """Return (year, month) shifted by offset months."""
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def resolve_recurrence_day(template) -> Optional[int]:
    """
    The day the template recurs on, falling back to its anchor date.

    Monthly variants use the day of month; a stored 0 counts as unset.
    Weekly variants use the weekday (0 = Sunday); a stored 0 is Sunday.

    Raises:
        InvalidTemplateError: if the stored day is out of range or the
            template has no anchor date.
    """
    anchor = template.date
    if anchor is None:
        raise InvalidTemplateError("template has no anchor date")
    anchor = as_calendar_date(anchor)
    stored = template.recurrence_day

    if template.recurrence_type in MONTHLY_TYPES:
        if not stored:
            return anchor.day
        if not 1 <= stored <= 31:
            raise InvalidTemplateError(f"day of month {stored} outside 1-31")
        return stored

    if template.recurrence_type in WEEK_INTERVALS:
        if stored is None:
            return js_weekday(anchor)
        if not 0 <= stored <= 6:
            raise InvalidTemplateError(f"day of week {stored} outside 0-6")
        return stored

    return None


def _monthly_occurrences(anchor: date, target: date, day_of_month: int) -> Tuple[date, ...]:
    months_diff = (target.year - anchor.year) * 12 + (target.month - anchor.month)
    occurrences = []
    for month_offset in range(months_diff + 1):
        year, month = add_months(anchor.year, anchor.month, month_offset)
        occurrence = date(year, month, clamp_day_to_month(year, month, day_of_month))
        if anchor <= occurrence <= target:
            occurrences.append(occurrence)
    return tuple(occurrences)


def _weekly_occurrences(anchor: date, target: date, day_of_week: int, interval: int) -> Tuple[date, ...]:
    current = anchor + timedelta(days=(day_of_week - js_weekday(anchor)) % 7)
    occurrences = []
    while current <= target:
        occurrences.append(current)
        current += timedelta(days=interval)
    return tuple(occurrences)


def calculate_occurrences(template, target_date: DateLike) -> Tuple[date, ...]:
    """
    Calendar dates on which template is due between its anchor and target_date.

    Args:
        template: Transaction-like object exposing date, recurrence_type and
            recurrence_day
        target_date: Last day (inclusive) to generate occurrences for

    Returns:
        Ascending tuple of distinct dates. Empty for non-recurring types, for a
        target before the anchor, and for templates with invalid settings.
    """
    recurrence_type = template.recurrence_type
    if recurrence_type not in MONTHLY_TYPES and recurrence_type not in WEEK_INTERVALS:
        return ()

    try:
        day = resolve_recurrence_day(template)
    except InvalidTemplateError as e:
        logger.warning(
            f"[RECURRENCE] Skipping template {getattr(template, 'id', None)} "
            f"({recurrence_type}): {e}"
        )
        return ()

    anchor = as_calendar_date(template.date)
    target = as_calendar_date(target_date)
    if target < anchor:
        return ()

    if recurrence_type in MONTHLY_TYPES:
        return _monthly_occurrences(anchor, target, day)
    return _weekly_occurrences(anchor, target, day, WEEK_INTERVALS[recurrence_type])
