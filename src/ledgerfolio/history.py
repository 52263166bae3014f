"""Date-indexed time series used for prices and exchange rates."""

from bisect import bisect_left, bisect_right
from datetime import date
from decimal import Decimal
from typing import Iterable, Iterator


class History:
    """An ordered series of (date, value) pairs with at most one value per day.

    Dates are kept sorted ascending so that as-of lookups can binary search.
    """

    def __init__(self, values: Iterable[tuple[date, Decimal]] | None = None):
        """Initialize a History.

        Args:
            values: Optional initial (date, value) pairs, in any order.
                Later pairs overwrite earlier ones on the same date.
        """
        self._dates: list[date] = []
        self._values: list[Decimal] = []
        if values is not None:
            for day, value in values:
                self.append(day, value)

    def append(self, day: date, value: Decimal) -> None:
        """Set the value for ``day``, replacing any existing value on that day."""
        if not self._dates or day > self._dates[-1]:
            self._dates.append(day)
            self._values.append(value)
            return
        i = bisect_left(self._dates, day)
        if i < len(self._dates) and self._dates[i] == day:
            self._values[i] = value
        else:
            self._dates.insert(i, day)
            self._values.insert(i, value)

    def add(self, day: date, value: Decimal) -> None:
        """Add ``value`` to the value recorded on ``day`` (zero if none)."""
        current = self.get(day)
        self.append(day, value if current is None else current + value)

    def get(self, day: date) -> Decimal | None:
        """Return the value recorded exactly on ``day``, or None."""
        i = bisect_left(self._dates, day)
        if i < len(self._dates) and self._dates[i] == day:
            return self._values[i]
        return None

    def value_as_of(self, day: date) -> Decimal | None:
        """Return the last value recorded on or before ``day``.

        Returns:
            The value, or None when ``day`` precedes the first recorded date.
        """
        i = bisect_right(self._dates, day)
        if i == 0:
            return None
        return self._values[i - 1]

    def latest(self) -> tuple[date, Decimal] | None:
        """Return the most recent (date, value) pair, or None if empty."""
        if not self._dates:
            return None
        return self._dates[-1], self._values[-1]

    def first_date(self) -> date | None:
        return self._dates[0] if self._dates else None

    def dates(self) -> list[date]:
        return list(self._dates)

    def values(self) -> Iterator[tuple[date, Decimal]]:
        """Yield (date, value) pairs in ascending date order."""
        yield from zip(self._dates, self._values)

    def copy(self) -> "History":
        clone = History()
        clone._dates = list(self._dates)
        clone._values = list(self._values)
        return clone

    def __len__(self) -> int:
        return len(self._dates)

    def __bool__(self) -> bool:
        return bool(self._dates)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, History):
            return NotImplemented
        return self._dates == other._dates and self._values == other._values

    def __repr__(self):
        return f"History(len={len(self)}, latest={self.latest()})"


def merge_dates(*histories: History) -> Iterator[date]:
    """Yield the sorted union of distinct dates across several histories.

    The series are walked in lock step, so the generator can be stopped
    early without scanning every series to the end.
    """
    series = [h._dates for h in histories]
    indexes = [0] * len(series)
    while True:
        heads = [s[i] for s, i in zip(series, indexes) if i < len(s)]
        if not heads:
            return
        smallest = min(heads)
        yield smallest
        for k, s in enumerate(series):
            if indexes[k] < len(s) and s[indexes[k]] == smallest:
                indexes[k] += 1
