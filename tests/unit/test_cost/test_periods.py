"""Tests for billing period date helpers."""

from datetime import date

import pytest

from src.cost.periods import add_months, current_billing_period, current_month_range, last_n_months


@pytest.mark.parametrize(
    "day,months,expected",
    [
        (date(2024, 1, 31), 1, date(2024, 2, 29)),
        (date(2024, 12, 15), 1, date(2025, 1, 15)),
        (date(2024, 3, 31), -1, date(2024, 2, 29)),
        (date(2024, 1, 10), -13, date(2022, 12, 10)),
    ],
)
def test_add_months(day, months, expected):
    assert add_months(day, months) == expected


def test_current_month_range():
    assert current_month_range(date(2024, 12, 18)) == (date(2024, 12, 1), date(2025, 1, 1))


def test_current_billing_period():
    assert current_billing_period(date(2024, 5, 31)) == (date(2024, 5, 31), date(2024, 6, 30))


def test_last_n_months():
    assert last_n_months(3, date(2024, 5, 20)) == (date(2024, 2, 20), date(2024, 5, 20))


def test_defaults_to_today():
    start, end = current_month_range()

    assert start == date.today().replace(day=1)
    assert start < end
