from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from ..balance import Balance, CostBasisMethod
from ..currency import Money
from ..dates import Period, start_of
from ..journal import Journal


@dataclass
class Performance:
    """Portfolio value at both ends of a period and the time-weighted return between them."""
    start: Money
    end: Money
    returns: Decimal

    @property
    def percent(self) -> Decimal:
        return self.returns * 100


@dataclass
class Summary:
    """At-a-glance state and performance of the portfolio on a date."""
    date: date
    reporting_currency: str
    total_value: Money
    daily: Performance
    wtd: Performance
    mtd: Performance
    qtd: Performance
    ytd: Performance
    inception: Performance

    def periods(self) -> list[tuple[str, Performance]]:
        """Return the performances with their column labels, shortest period first."""
        return [
            (Period.DAILY.to_date_name, self.daily),
            (Period.WEEKLY.to_date_name, self.wtd),
            (Period.MONTHLY.to_date_name, self.mtd),
            (Period.QUARTERLY.to_date_name, self.qtd),
            (Period.YEARLY.to_date_name, self.ytd),
            ("Inception", self.inception),
        ]


def _performance(start: Balance, end: Balance) -> Performance:
    return Performance(
        start=start.total_portfolio_value(),
        end=end.total_portfolio_value(),
        returns=end.linked_twr / start.linked_twr - 1,
    )


def summary_report(journal: Journal, on: date) -> Summary:
    """
    Summarize the portfolio at ``on``.

    Each period-to-date performance compares the Balance at ``on`` with the
    Balance at the end of the day before the period started. Balances use
    average cost, which does not change the total value or the return.

    Args:
        journal: The journal to report on.
        on: The as-of date.

    Returns:
        The Summary.
    """
    end = Balance(journal, on, CostBasisMethod.AVERAGE_COST)

    def since(period: Period) -> Performance:
        start = Balance(journal, start_of(on, period) - timedelta(days=1), CostBasisMethod.AVERAGE_COST)
        return _performance(start, end)

    inception = journal.ledger.oldest_transaction_date() or on
    before_inception = Balance(journal, inception - timedelta(days=1), CostBasisMethod.AVERAGE_COST)

    return Summary(
        date=on,
        reporting_currency=end.reporting_currency,
        total_value=end.total_portfolio_value(),
        daily=since(Period.DAILY),
        wtd=since(Period.WEEKLY),
        mtd=since(Period.MONTHLY),
        qtd=since(Period.QUARTERLY),
        ytd=since(Period.YEARLY),
        inception=_performance(before_inception, end),
    )
