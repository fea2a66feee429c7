from datetime import date, datetime, timezone

import pytest

from backoffice.models.enums import RecurrenceKind
from backoffice.utils.recurrence import add_months, advance_by_days, next_due_date


@pytest.mark.parametrize("kind, expected", [
    (RecurrenceKind.WEEKLY, date(2024, 1, 17)),
    (RecurrenceKind.BIWEEKLY, date(2024, 1, 25)),
    (RecurrenceKind.MONTHLY, date(2024, 2, 10)),
    (RecurrenceKind.BIMONTHLY, date(2024, 3, 10)),
    (RecurrenceKind.QUARTERLY, date(2024, 4, 10)),
    (RecurrenceKind.YEARLY, date(2025, 1, 10)),
])
def test_next_due_date_from_jan_10(kind, expected):
    assert next_due_date(date(2024, 1, 10), kind) == expected


def test_next_due_date_accepts_string_kind():
    assert next_due_date(date(2024, 1, 10), "monthly") == date(2024, 2, 10)


def test_month_end_is_clamped():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
    assert add_months(date(2024, 8, 31), 1) == date(2024, 9, 30)


def test_leap_day_yearly_lands_on_feb_28():
    assert next_due_date(date(2024, 2, 29), RecurrenceKind.YEARLY) == date(2025, 2, 28)


def test_quarterly_crosses_year_boundary():
    assert next_due_date(date(2024, 11, 15), RecurrenceKind.QUARTERLY) == date(2025, 2, 15)


def test_datetime_anchor_is_reduced_to_date():
    anchor = datetime(2024, 1, 10, 18, 30, tzinfo=timezone.utc)
    assert advance_by_days(anchor, 7) == date(2024, 1, 17)
    assert add_months(anchor, 1) == date(2024, 2, 10)
