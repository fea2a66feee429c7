"""Due-date arithmetic for recurring obligations."""
import calendar
from datetime import date, datetime, timedelta

from backoffice.models.enums import RecurrenceKind

_DAY_STEPS = {
    RecurrenceKind.WEEKLY: 7,
    RecurrenceKind.BIWEEKLY: 15,
}

_MONTH_STEPS = {
    RecurrenceKind.MONTHLY: 1,
    RecurrenceKind.BIMONTHLY: 2,
    RecurrenceKind.QUARTERLY: 3,
    RecurrenceKind.YEARLY: 12,
}


def as_date(value: date) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def add_months(anchor: date, months: int) -> date:
    """Add calendar months, clamping to the last day of the target month."""
    anchor = as_date(anchor)
    y = anchor.year + (anchor.month - 1 + months) // 12
    m = (anchor.month - 1 + months) % 12 + 1
    d = min(anchor.day, calendar.monthrange(y, m)[1])
    return date(y, m, d)


def advance_by_days(anchor: date, days: int) -> date:
    return as_date(anchor) + timedelta(days=days)


def next_due_date(anchor: date, kind: RecurrenceKind) -> date:
    """
    Map an anchor due date to the next installment's due date.

    weekly +7 days, biweekly +15 days, monthly/bimonthly/quarterly +1/2/3
    months, yearly +1 year (Feb 29 lands on Feb 28).
    """
    kind = RecurrenceKind(kind)
    if kind in _DAY_STEPS:
        return advance_by_days(anchor, _DAY_STEPS[kind])
    return add_months(anchor, _MONTH_STEPS[kind])
