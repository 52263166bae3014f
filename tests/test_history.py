"""Tests for the History time series and the multi-series date merge."""

from datetime import date
from decimal import Decimal

from ledgerfolio.history import History, merge_dates


def test_append_keeps_dates_sorted():
    """Out-of-order appends are inserted at their place."""
    h = History()
    h.append(date(2025, 1, 10), Decimal("10"))
    h.append(date(2025, 1, 1), Decimal("1"))
    h.append(date(2025, 1, 5), Decimal("5"))

    assert h.dates() == [date(2025, 1, 1), date(2025, 1, 5), date(2025, 1, 10)]
    assert list(h.values())[1] == (date(2025, 1, 5), Decimal("5"))


def test_append_same_day_overwrites():
    """The last write on a given day wins and no duplicate is kept."""
    h = History([(date(2025, 1, 1), Decimal("1"))])
    h.append(date(2025, 1, 1), Decimal("2"))

    assert len(h) == 1
    assert h.get(date(2025, 1, 1)) == Decimal("2")


def test_get_is_exact():
    h = History([(date(2025, 1, 1), Decimal("1"))])
    assert h.get(date(2025, 1, 2)) is None


def test_value_as_of():
    """
    As-of lookups return the closest earlier value.

    Series: Jan 1 -> 100, Jan 10 -> 110
    - Dec 31 precedes the series: no value
    - Jan 1: 100 (exact)
    - Jan 9: 100 (carried forward)
    - Feb 1: 110
    """
    h = History([(date(2025, 1, 1), Decimal("100")), (date(2025, 1, 10), Decimal("110"))])

    assert h.value_as_of(date(2024, 12, 31)) is None
    assert h.value_as_of(date(2025, 1, 1)) == Decimal("100")
    assert h.value_as_of(date(2025, 1, 9)) == Decimal("100")
    assert h.value_as_of(date(2025, 2, 1)) == Decimal("110")


def test_add_accumulates():
    """add() sums onto the existing value: 3 + 4 = 7."""
    h = History()
    h.add(date(2025, 1, 1), Decimal("3"))
    h.add(date(2025, 1, 1), Decimal("4"))
    assert h.get(date(2025, 1, 1)) == Decimal("7")


def test_copy_is_independent():
    h = History([(date(2025, 1, 1), Decimal("1"))])
    clone = h.copy()
    clone.append(date(2025, 1, 2), Decimal("2"))

    assert len(h) == 1
    assert len(clone) == 2
    assert clone != h


def test_empty_history():
    h = History()
    assert not h
    assert h.latest() is None
    assert h.first_date() is None
    assert h.value_as_of(date(2025, 1, 1)) is None


def test_merge_dates_union():
    """The merge yields every distinct date once, in ascending order."""
    a = History([(date(2025, 1, 1), Decimal("1")), (date(2025, 1, 3), Decimal("3"))])
    b = History([(date(2025, 1, 2), Decimal("2")), (date(2025, 1, 3), Decimal("3"))])
    c = History()

    assert list(merge_dates(a, b, c)) == [date(2025, 1, 1), date(2025, 1, 2), date(2025, 1, 3)]


def test_merge_dates_stops_early():
    a = History([(date(2025, 1, d), Decimal(d)) for d in range(1, 29)])
    merged = merge_dates(a)
    assert next(merged) == date(2025, 1, 1)
    assert next(merged) == date(2025, 1, 2)
