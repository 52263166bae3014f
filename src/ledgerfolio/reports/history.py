from datetime import date
from decimal import Decimal

import pandas as pd

from ..balance import Balance, CostBasisMethod
from ..dates import Range
from ..journal import Journal


def portfolio_value_by_day(
    journal: Journal,
    period: Range | None = None,
    method: CostBasisMethod | str = CostBasisMethod.FIFO,
) -> dict[date, Decimal]:
    """
    Calculate the total portfolio value for each day in a range.

    Args:
        journal: The journal to report on.
        period: Days to value, both ends included. If None, runs from the
                first to the last transaction date.
        method: Cost basis method of the daily balances.

    Returns:
        A dictionary mapping each date to the total portfolio value in the
        reporting currency. Empty if the ledger is empty.
    """
    if period is None:
        first = journal.ledger.oldest_transaction_date()
        last = journal.ledger.newest_transaction_date()
        if first is None:
            return {}
        period = Range(first, last)

    return {
        day: Balance(journal, day, method).total_portfolio_value().amount
        for day in period.days()
    }


def history_frame(
    journal: Journal,
    period: Range | None = None,
    method: CostBasisMethod | str = CostBasisMethod.FIFO,
) -> pd.DataFrame:
    """Return :func:`portfolio_value_by_day` as a DataFrame with ``Date`` and ``Value`` columns."""
    values = portfolio_value_by_day(journal, period, method)
    return pd.DataFrame(
        {"Date": list(values), "Value": list(values.values())},
        columns=["Date", "Value"],
    )
