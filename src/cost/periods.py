"""Billing period date helpers."""

from datetime import date, timedelta


def add_months(day: date, months: int) -> date:
    """Shift a date by whole months, clamping to the last day of the month."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    next_month_start = date(year + month // 12, month % 12 + 1, 1)
    last_day = (next_month_start - timedelta(days=1)).day
    return date(year, month, min(day.day, last_day))


def current_month_range(today: date | None = None) -> tuple[date, date]:
    """First day of this month and first day of next month."""
    today = today or date.today()
    start = today.replace(day=1)
    return start, add_months(start, 1)


def current_billing_period(today: date | None = None) -> tuple[date, date]:
    """Today and the same day next month."""
    today = today or date.today()
    return today, add_months(today, 1)


def last_n_months(months: int, today: date | None = None) -> tuple[date, date]:
    """The date ``months`` months ago and today."""
    today = today or date.today()
    return add_months(today, -months), today
