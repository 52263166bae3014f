from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from ..balance import Balance, CostBasisMethod
from ..currency import Money
from ..journal import Journal


@dataclass
class SecurityHolding:
    """One held security. ``market_value`` is in the reporting currency."""
    ticker: str
    id: str
    currency: str
    quantity: Decimal
    price: Money | None
    market_value: Money


@dataclass
class CashHolding:
    """Cash in one currency, in that currency and converted."""
    currency: str
    balance: Money
    value: Money


@dataclass
class CounterpartyHolding:
    """An open counterparty account, in its currency and converted."""
    name: str
    currency: str
    balance: Money
    value: Money


@dataclass
class HoldingReport:
    """What the portfolio holds at the end of a day."""
    date: date
    reporting_currency: str
    securities: list[SecurityHolding] = field(default_factory=list)
    cash: list[CashHolding] = field(default_factory=list)
    counterparties: list[CounterpartyHolding] = field(default_factory=list)
    total_value: Money = field(default_factory=Money)


def holding_report(journal: Journal, on: date, method: CostBasisMethod | str = CostBasisMethod.FIFO) -> HoldingReport:
    """
    Build the holding report of a journal at a date.

    Securities with a zero position are left out, as are zero counterparty
    accounts. Every cash currency is listed, even when empty.

    Args:
        journal: The journal to report on.
        on: The as-of date.
        method: Cost basis method used for the underlying Balance.

    Returns:
        A HoldingReport whose total equals the Balance's total portfolio value.
    """
    balance = Balance(journal, on, method)
    report = HoldingReport(date=on, reporting_currency=balance.reporting_currency)

    for ticker in balance.securities():
        quantity = balance.position(ticker)
        if quantity == 0:
            continue
        security = balance.security(ticker)
        report.securities.append(SecurityHolding(
            ticker=ticker,
            id=security.id,
            currency=security.currency,
            quantity=quantity,
            price=balance.price(ticker),
            market_value=balance.convert(balance.market_value(ticker)),
        ))

    for currency in balance.currencies():
        cash = balance.cash(currency)
        report.cash.append(CashHolding(currency, cash, balance.convert(cash)))

    for account in balance.counterparties():
        amount = balance.counterparty(account)
        if amount.is_zero():
            continue
        report.counterparties.append(
            CounterpartyHolding(account, amount.currency, amount, balance.convert(amount))
        )

    report.total_value = balance.total_portfolio_value()
    return report
