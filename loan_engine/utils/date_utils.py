"""Date manipulation utilities"""

from datetime import date, datetime, timezone

from dateutil.relativedelta import relativedelta


def add_months(from_date: date, months: int) -> date:
    """Add calendar months, clamping to the last day of shorter months"""
    return from_date + relativedelta(months=months)


def first_day_of_next_month(from_date: date) -> date:
    """First calendar day of the month following from_date"""
    return from_date.replace(day=1) + relativedelta(months=1)


def days_between(start: date, end: date) -> int:
    """Whole days from start to end (negative if end precedes start)"""
    return (end - start).days


def utcnow() -> datetime:
    """Timezone-aware current time for transition timestamps"""
    return datetime.now(timezone.utc)
