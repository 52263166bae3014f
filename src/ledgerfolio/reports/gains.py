from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal

from ..balance import Balance, CostBasisMethod
from ..currency import Money
from ..dates import Range
from ..journal import Journal


@dataclass
class SecurityGains:
    """Gains of one security over a range, in the reporting currency."""
    security: str
    realized: Money
    unrealized: Money
    total: Money
    cost_basis: Money
    market_value: Money
    quantity: Decimal


@dataclass
class GainsReport:
    """Realized and unrealized gains over a date range."""
    range: Range
    method: CostBasisMethod
    reporting_currency: str
    securities: list[SecurityGains] = field(default_factory=list)
    realized: Money = field(default_factory=Money)
    unrealized: Money = field(default_factory=Money)
    total: Money = field(default_factory=Money)


def gains_report(journal: Journal, period: Range, method: CostBasisMethod | str = CostBasisMethod.FIFO) -> GainsReport:
    """
    Compute the gains of every security over ``period``.

    The realized gain is what sales within the range realized. The
    unrealized gain is the change of unrealized gain between the day before
    the range and its last day. Securities with neither are left out.

    Args:
        journal: The journal to report on.
        period: The date range, both ends included.
        method: Cost basis method.

    Returns:
        A GainsReport with one row per security that gained or lost.
    """
    start = Balance(journal, period.start - timedelta(days=1), method)
    end = Balance(journal, period.end, method)
    report = GainsReport(
        range=period,
        method=end.method,
        reporting_currency=end.reporting_currency,
        realized=Money.zero(end.reporting_currency),
        unrealized=Money.zero(end.reporting_currency),
        total=Money.zero(end.reporting_currency),
    )

    for ticker in end.securities():
        realized = end.convert(end.realized_gain(ticker)) - start.convert(start.realized_gain(ticker))
        unrealized = end.convert(end.unrealized_gain(ticker)) - start.convert(start.unrealized_gain(ticker))
        if realized.is_zero() and unrealized.is_zero():
            continue
        total = realized + unrealized
        report.securities.append(SecurityGains(
            security=ticker,
            realized=realized,
            unrealized=unrealized,
            total=total,
            cost_basis=end.convert(end.cost_basis(ticker)),
            market_value=end.convert(end.market_value(ticker)),
            quantity=end.position(ticker),
        ))
        report.realized += realized
        report.unrealized += unrealized
        report.total += total

    return report
