"""
Tests for occurrence date calculation.
"""
import logging
from datetime import date, datetime
from types import SimpleNamespace
from uuid import uuid4

import pytest

from fintrack.services.recurrence_calculator import (
    InvalidTemplateError,
    add_months,
    calculate_occurrences,
    clamp_day_to_month,
    js_weekday,
    resolve_recurrence_day,
)


def make_template(recurrence_type, anchor, recurrence_day=None):
    return SimpleNamespace(
        id=uuid4(),
        recurrence_type=recurrence_type,
        recurrence_day=recurrence_day,
        date=anchor,
    )


def test_monthly_day_31_clamps_to_leap_february():
    template = make_template("monthly", date(2024, 1, 31), 31)

    assert calculate_occurrences(template, date(2024, 3, 31)) == (
        date(2024, 1, 31),
        date(2024, 2, 29),
        date(2024, 3, 31),
    )


def test_monthly_day_31_clamps_to_short_months():
    template = make_template("monthly", date(2023, 1, 31), 31)

    assert calculate_occurrences(template, date(2023, 4, 30)) == (
        date(2023, 1, 31),
        date(2023, 2, 28),
        date(2023, 3, 31),
        date(2023, 4, 30),
    )


def test_monthly_clamp_does_not_drift_after_short_month():
    template = make_template("monthly", date(2024, 1, 30), 30)

    occurrences = calculate_occurrences(template, date(2024, 4, 30))

    assert occurrences == (
        date(2024, 1, 30),
        date(2024, 2, 29),
        date(2024, 3, 30),
        date(2024, 4, 30),
    )


def test_monthly_crosses_year_boundary():
    template = make_template("monthly", date(2024, 11, 30), None)

    assert calculate_occurrences(template, date(2025, 2, 28)) == (
        date(2024, 11, 30),
        date(2024, 12, 30),
        date(2025, 1, 30),
        date(2025, 2, 28),
    )


@pytest.mark.parametrize("stored_day", [None, 0])
def test_monthly_without_day_uses_anchor_day(stored_day):
    template = make_template("monthly", date(2024, 1, 15), stored_day)

    assert calculate_occurrences(template, date(2024, 3, 20)) == (
        date(2024, 1, 15),
        date(2024, 2, 15),
        date(2024, 3, 15),
    )


def test_monthly_skips_occurrence_before_anchor():
    template = make_template("monthly", date(2024, 1, 15), 10)

    assert calculate_occurrences(template, date(2024, 3, 31)) == (
        date(2024, 2, 10),
        date(2024, 3, 10),
    )


def test_monthly_excludes_occurrence_after_target():
    template = make_template("monthly", date(2024, 1, 20), 20)

    assert calculate_occurrences(template, date(2024, 3, 19)) == (
        date(2024, 1, 20),
        date(2024, 2, 20),
    )


def test_monthly_variable_follows_monthly_dates():
    fixed = make_template("monthly", date(2024, 1, 31), 31)
    variable = make_template("monthly_variable", date(2024, 1, 31), 31)

    target = date(2024, 6, 30)
    assert calculate_occurrences(variable, target) == calculate_occurrences(fixed, target)


def test_weekly_wednesday():
    template = make_template("weekly", date(2024, 6, 5), 3)

    assert calculate_occurrences(template, date(2024, 6, 20)) == (
        date(2024, 6, 5),
        date(2024, 6, 12),
        date(2024, 6, 19),
    )


def test_weekly_day_after_anchor_weekday_starts_same_week():
    template = make_template("weekly", date(2024, 6, 5), 5)

    assert calculate_occurrences(template, date(2024, 6, 20)) == (
        date(2024, 6, 7),
        date(2024, 6, 14),
    )


def test_weekly_zero_is_sunday():
    template = make_template("weekly", date(2024, 6, 5), 0)

    assert calculate_occurrences(template, date(2024, 6, 20)) == (
        date(2024, 6, 9),
        date(2024, 6, 16),
    )


def test_weekly_without_day_uses_anchor_weekday():
    template = make_template("weekly", date(2024, 6, 5), None)

    occurrences = calculate_occurrences(template, date(2024, 6, 30))

    assert occurrences[0] == date(2024, 6, 5)
    assert all(js_weekday(d) == 3 for d in occurrences)
    assert len(occurrences) == 4


def test_biweekly_spacing():
    template = make_template("biweekly", date(2024, 6, 5), 3)

    occurrences = calculate_occurrences(template, date(2024, 7, 10))

    assert occurrences == (date(2024, 6, 5), date(2024, 6, 19), date(2024, 7, 3))
    assert all((b - a).days == 14 for a, b in zip(occurrences, occurrences[1:]))


def test_target_before_anchor_is_empty():
    template = make_template("monthly", date(2024, 5, 1), 1)

    assert calculate_occurrences(template, date(2024, 4, 30)) == ()


def test_target_equal_to_anchor_includes_anchor():
    template = make_template("weekly", date(2024, 6, 5), 3)

    assert calculate_occurrences(template, date(2024, 6, 5)) == (date(2024, 6, 5),)


def test_non_recurring_type_has_no_occurrences():
    template = make_template("none", date(2024, 1, 1), None)

    assert calculate_occurrences(template, date(2024, 12, 31)) == ()


def test_datetime_inputs_use_calendar_days():
    template = make_template("monthly", datetime(2024, 1, 31, 15, 30), 31)

    assert calculate_occurrences(template, datetime(2024, 2, 29, 0, 0)) == (
        date(2024, 1, 31),
        date(2024, 2, 29),
    )


@pytest.mark.parametrize(
    "recurrence_type, recurrence_day, anchor",
    [
        ("monthly", 40, date(2024, 1, 1)),
        ("monthly_variable", -1, date(2024, 1, 1)),
        ("weekly", 7, date(2024, 1, 1)),
        ("biweekly", 3, None),
    ],
)
def test_invalid_template_yields_nothing_and_warns(caplog, recurrence_type, recurrence_day, anchor):
    template = make_template(recurrence_type, anchor, recurrence_day)

    with caplog.at_level(logging.WARNING, logger="fintrack.services.recurrence_calculator"):
        assert calculate_occurrences(template, date(2024, 12, 31)) == ()

    assert "[RECURRENCE] Skipping template" in caplog.text


def test_resolve_recurrence_day_rejects_out_of_range():
    with pytest.raises(InvalidTemplateError):
        resolve_recurrence_day(make_template("monthly", date(2024, 1, 1), 32))


def test_resolve_recurrence_day_defaults():
    assert resolve_recurrence_day(make_template("monthly", date(2024, 3, 17), None)) == 17
    assert resolve_recurrence_day(make_template("biweekly", date(2024, 6, 9), None)) == 0
    assert resolve_recurrence_day(make_template("none", date(2024, 6, 9), 4)) is None


def test_js_weekday_counts_from_sunday():
    assert js_weekday(date(2024, 6, 9)) == 0  # Sunday
    assert js_weekday(date(2024, 6, 10)) == 1
    assert js_weekday(date(2024, 6, 15)) == 6


def test_clamp_day_to_month():
    assert clamp_day_to_month(2024, 2, 31) == 29
    assert clamp_day_to_month(2023, 2, 31) == 28
    assert clamp_day_to_month(2024, 4, 31) == 30
    assert clamp_day_to_month(2024, 1, 15) == 15


def test_add_months():
    assert add_months(2024, 1, 1) == (2024, 2)
    assert add_months(2024, 12, 1) == (2025, 1)
    assert add_months(2024, 11, 14) == (2026, 1)
    assert add_months(2024, 3, -3) == (2023, 12)
