"""Calendar helpers: periods, date ranges and lenient date parsing."""

import calendar
import re
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Iterator

DATE_FORMAT = "%Y-%m-%d"

_RELATIVE_DATE_RE = re.compile(r"^([+-])(\d+)([dwmqy])$")
_LENIENT_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")


class Period(Enum):
    """Canonical reporting periods."""

    DAILY = "day"
    WEEKLY = "week"
    MONTHLY = "month"
    QUARTERLY = "quarter"
    YEARLY = "year"

    @property
    def to_date_name(self) -> str:
        """Short label used for "period to date" performance columns."""
        return {
            Period.DAILY: "Daily",
            Period.WEEKLY: "WTD",
            Period.MONTHLY: "MTD",
            Period.QUARTERLY: "QTD",
            Period.YEARLY: "YTD",
        }[self]


def parse_period(text: str) -> Period:
    """Parse a period name such as ``"month"`` or ``"q"``.

    Args:
        text: Period name, full or abbreviated to its first letter.

    Returns:
        The matching Period.

    Raises:
        ValueError: If the text names no known period.
    """
    text = text.strip().lower()
    for period in Period:
        if text in (period.value, period.value[0], period.name.lower()):
            return period
    raise ValueError(f"Unknown period {text!r}, want one of day, week, month, quarter, year")


def add_months(day: date, months: int) -> date:
    """Shift a date by a number of calendar months, clamping the day of month."""
    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last))


def start_of(day: date, period: Period) -> date:
    """Return the first day of the period containing ``day``.

    Weeks start on Monday.
    """
    if period is Period.DAILY:
        return day
    if period is Period.WEEKLY:
        return day - timedelta(days=day.weekday())
    if period is Period.MONTHLY:
        return day.replace(day=1)
    if period is Period.QUARTERLY:
        return date(day.year, 3 * ((day.month - 1) // 3) + 1, 1)
    return date(day.year, 1, 1)


def end_of(day: date, period: Period) -> date:
    """Return the last day of the period containing ``day``."""
    if period is Period.DAILY:
        return day
    if period is Period.WEEKLY:
        return start_of(day, period) + timedelta(days=6)
    if period is Period.MONTHLY:
        return add_months(start_of(day, period), 1) - timedelta(days=1)
    if period is Period.QUARTERLY:
        return add_months(start_of(day, period), 3) - timedelta(days=1)
    return date(day.year, 12, 31)


@dataclass(frozen=True)
class Range:
    """A closed interval of days ``[start, end]``."""

    start: date
    end: date

    def __post_init__(self):
        if self.start > self.end:
            start, end = self.end, self.start
            object.__setattr__(self, "start", start)
            object.__setattr__(self, "end", end)

    @classmethod
    def of(cls, day: date, period: Period) -> "Range":
        """Return the canonical period range containing ``day``."""
        return cls(start_of(day, period), end_of(day, period))

    def __contains__(self, day: date) -> bool:
        return self.start <= day <= self.end

    def days(self) -> Iterator[date]:
        """Yield every day in the range, boundaries included."""
        day = self.start
        while day <= self.end:
            yield day
            day += timedelta(days=1)

    def periods(self, period: Period) -> Iterator["Range"]:
        """Yield the canonical periods that overlap this range, in order."""
        day = self.start
        while day <= self.end:
            current = Range.of(day, period)
            yield current
            day = current.end + timedelta(days=1)

    def period(self) -> Period | None:
        """Return the period this range spans exactly, or None."""
        for period in Period:
            if Range.of(self.start, period) == self:
                return period
        return None

    def __str__(self) -> str:
        return f"{format_date(self.start)}..{format_date(self.end)}"


def format_date(day: date) -> str:
    """Format a date in ISO ``YYYY-MM-DD`` form."""
    return day.strftime(DATE_FORMAT)


def parse_date(text: str, today: date | None = None) -> date:
    """Parse a date leniently.

    Accepted forms:
        - ``YYYY-MM-DD`` and the relaxed ``YYYY-M-D``.
        - ``0d`` for today.
        - Relative offsets ``[+-]N[dwmqy]`` (days, weeks, months, quarters,
          years) applied to today.

    Args:
        text: The text to parse.
        today: Reference day for relative forms. Defaults to ``date.today()``.

    Returns:
        The parsed date.

    Raises:
        ValueError: If the text is not a recognised date.
    """
    text = text.strip()
    if today is None:
        today = date.today()

    if text == "0d":
        return today

    match = _RELATIVE_DATE_RE.match(text)
    if match:
        sign, number, unit = match.groups()
        n = int(number) if sign == "+" else -int(number)
        if unit == "d":
            return today + timedelta(days=n)
        if unit == "w":
            return today + timedelta(weeks=n)
        if unit == "m":
            return add_months(today, n)
        if unit == "q":
            return add_months(today, 3 * n)
        return add_months(today, 12 * n)

    return parse_iso_date(text)


def parse_iso_date(text: str) -> date:
    """Parse a ``YYYY-M-D`` date and nothing else.

    Data files go through this parser, so a stored date never depends on
    the day it is read.

    Raises:
        ValueError: If the text is not a valid calendar date in that form.
    """
    match = _LENIENT_DATE_RE.fullmatch(text)
    if not match:
        raise ValueError(f"Invalid date {text!r}, want format YYYY-MM-DD")
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError as e:
        raise ValueError(f"Invalid date {text!r}: {e}") from e
