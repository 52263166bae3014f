"""Point-in-time portfolio snapshots.

A Balance replays every journal transaction up to a date and freezes the
result: positions and cost bases per security, cash per currency,
counterparty accounts, the exchange rates used for conversion, the
portfolio cost basis at historical rates and a chain-linked
time-weighted performance index.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from itertools import groupby
from typing import Iterator, assert_never

from .currency import Money
from .errors import InvalidFieldError, MissingPriceError, MissingRateError
from .journal import Journal
from .transactions import (
    Accrue,
    Buy,
    Convert,
    Declare,
    Deposit,
    Dividend,
    Sell,
    Split,
    Transaction,
    UpdatePrice,
    Withdraw,
)


class CostBasisMethod(Enum):
    """Lot accounting methods."""

    AVERAGE_COST = "average"
    FIFO = "fifo"


def parse_cost_basis_method(text: str) -> CostBasisMethod:
    """Parse ``"average"`` or ``"fifo"`` (case insensitive).

    Raises:
        InvalidFieldError: For any other value.
    """
    try:
        return CostBasisMethod(text.strip().lower())
    except ValueError:
        raise InvalidFieldError(f"invalid cost basis method {text!r}, want 'average' or 'fifo'") from None


@dataclass(frozen=True)
class Lot:
    """An unconsumed purchase: ``quantity`` units still held, bought for ``cost`` in total."""

    date: date
    quantity: Decimal
    cost: Decimal


class _Holding:
    """Replay state of one security."""

    def __init__(self, currency: str, method: CostBasisMethod):
        self.currency = currency
        self.method = method
        self.position = Decimal(0)
        self.lots: list[Lot] = []
        self.total_cost = Decimal(0)
        self.realized = Decimal(0)
        self.buys = Decimal(0)
        self.sells = Decimal(0)
        self.dividends = Decimal(0)

    @property
    def cost_basis(self) -> Decimal:
        if self.method is CostBasisMethod.FIFO:
            return sum((lot.cost for lot in self.lots), Decimal(0))
        return self.total_cost

    def buy(self, day: date, quantity: Decimal, amount: Decimal) -> None:
        self.position += quantity
        self.buys += amount
        if self.method is CostBasisMethod.FIFO:
            self.lots.append(Lot(day, quantity, amount))
        else:
            self.total_cost += amount

    def sell(self, quantity: Decimal, proceeds: Decimal) -> None:
        if self.method is CostBasisMethod.FIFO:
            cost = self._consume_lots(quantity)
        else:
            cost = Decimal(0)
            if self.position != 0:
                cost = self.total_cost * quantity / self.position
            self.total_cost -= cost
        self.realized += proceeds - cost
        self.sells += proceeds
        self.position -= quantity

    def _consume_lots(self, quantity: Decimal) -> Decimal:
        # Oldest lots first; a lot larger than what is left to sell is split.
        remaining = quantity
        cost = Decimal(0)
        while remaining > 0 and self.lots:
            lot = self.lots[0]
            if lot.quantity <= remaining:
                self.lots.pop(0)
                cost += lot.cost
                remaining -= lot.quantity
            else:
                part = lot.cost * remaining / lot.quantity
                self.lots[0] = Lot(lot.date, lot.quantity - remaining, lot.cost - part)
                cost += part
                remaining = Decimal(0)
        return cost

    def split(self, ratio: Decimal) -> None:
        self.position *= ratio
        self.lots = [Lot(lot.date, lot.quantity * ratio, lot.cost) for lot in self.lots]


def _is_external_flow(tx: Transaction) -> bool:
    return isinstance(tx, (Deposit, Withdraw)) and not tx.settles


class Balance:
    """An immutable snapshot of the portfolio at the end of a day.

    Amounts per security are in the security's currency, amounts per
    currency in that currency, and totals in the journal's reporting
    currency. Conversions use exchange rates frozen when the Balance was
    built, never a live lookup.
    """

    def __init__(self, journal: Journal, on: date, method: CostBasisMethod | str = CostBasisMethod.FIFO):
        """Replay the journal up to and including ``on``.

        Args:
            journal: The journal to replay.
            on: The as-of date.
            method: Cost basis method, as a CostBasisMethod or its name.

        Raises:
            InvalidFieldError: If the method is not a known cost basis method.
            MissingPriceError: If a held security has no price on or before
                a date where it must be valued.
            MissingRateError: If a currency carrying value has no exchange
                rate on or before a date where it must be converted.
        """
        if isinstance(method, str):
            method = parse_cost_basis_method(method)
        if not isinstance(method, CostBasisMethod):
            raise InvalidFieldError(f"invalid cost basis method {method!r}")

        self.on = on
        self.method = method
        self.reporting_currency = journal.reporting_currency
        self._journal = journal
        self._valuate = journal.strict

        self._holdings: dict[str, _Holding] = {}
        self._cash: dict[str, Decimal] = {}
        self._cash_flow: dict[str, Decimal] = {}
        self._accounts: dict[str, Decimal] = {}
        self._account_currency: dict[str, str] = {}
        self._forex: dict[str, Decimal] = {}
        self._prices: dict[str, Decimal] = {}
        self._cost_basis = Decimal(0)
        self._linked_twr = Decimal(1)

        inception = journal.ledger.oldest_transaction_date()
        if inception is not None and on >= inception:
            self._replay()

    def _replay(self) -> None:
        journal = self._journal
        splits = sorted(
            (split.date, security.ticker, split.ratio)
            for security in journal.securities()
            for split in journal.splits(security.ticker)
            if split.date <= self.on
        )
        applied = 0
        previous_value: Decimal | None = None

        for day, group in groupby(journal.transactions(until=self.on), key=lambda t: t.when()):
            transactions = list(group)
            applied = self._apply_splits(splits, applied, day)

            has_flow = self._valuate and any(_is_external_flow(tx) for tx in transactions)
            if has_flow:
                # Link the sub-period that ends just before today's flows.
                value = self._valuation(day)
                if previous_value is not None and previous_value > 0:
                    self._linked_twr *= value / previous_value

            for tx in transactions:
                self._apply(tx)

            if has_flow:
                previous_value = self._valuation(day)

        self._apply_splits(splits, applied, self.on)
        self._freeze()

        if previous_value is not None and previous_value > 0:
            self._linked_twr *= self.total_portfolio_value().amount / previous_value

    def _apply_splits(self, splits: list[tuple[date, str, Decimal]], applied: int, day: date) -> int:
        # A split on a given day applies before that day's transactions.
        while applied < len(splits) and splits[applied][0] <= day:
            _, ticker, ratio = splits[applied]
            if ticker in self._holdings:
                self._holdings[ticker].split(ratio)
            applied += 1
        return applied

    def _holding(self, ticker: str) -> _Holding:
        holding = self._holdings.get(ticker)
        if holding is None:
            security = self._journal.security(ticker)
            holding = _Holding(security.currency, self.method)
            self._holdings[ticker] = holding
        return holding

    def _credit(self, currency: str, amount: Decimal) -> None:
        self._cash[currency] = self._cash.get(currency, Decimal(0)) + amount

    def _flow(self, currency: str, amount: Decimal) -> None:
        self._cash_flow[currency] = self._cash_flow.get(currency, Decimal(0)) + amount

    def _account(self, account: str, currency: str, amount: Decimal) -> None:
        self._account_currency.setdefault(account, currency)
        self._accounts[account] = self._accounts.get(account, Decimal(0)) + amount

    def _apply(self, tx: Transaction) -> None:
        match tx:
            case Declare():
                self._holding(tx.ticker)
            case Buy():
                holding = self._holding(tx.security)
                holding.buy(tx.when(), tx.quantity, tx.amount)
                self._credit(holding.currency, -tx.amount)
            case Sell():
                holding = self._holding(tx.security)
                holding.sell(tx.quantity, tx.amount)
                self._credit(holding.currency, tx.amount)
            case Dividend():
                holding = self._holding(tx.security)
                holding.dividends += tx.amount
                self._credit(holding.currency, tx.amount)
            case Deposit():
                self._credit(tx.currency, tx.amount)
                if tx.settles:
                    self._account(tx.settles, tx.currency, -tx.amount)
                else:
                    self._flow(tx.currency, tx.amount)
                    self._cost_basis += self._historical(tx.amount, tx.currency, tx.when())
            case Withdraw():
                self._credit(tx.currency, -tx.amount)
                if tx.settles:
                    self._account(tx.settles, tx.currency, tx.amount)
                else:
                    self._flow(tx.currency, -tx.amount)
                    self._cost_basis -= self._historical(tx.amount, tx.currency, tx.when())
            case Convert():
                self._credit(tx.from_currency, -tx.from_amount)
                self._credit(tx.to_currency, tx.to_amount)
                self._flow(tx.from_currency, -tx.from_amount)
                self._flow(tx.to_currency, tx.to_amount)
            case Accrue():
                currency = self._journal.ledger.counterparty_currency(tx.counterparty) or tx.currency
                self._account(tx.counterparty, currency, tx.amount)
            case UpdatePrice() | Split():
                # Prices and splits are read from the journal's series.
                pass
            case _:
                assert_never(tx)

    def _historical(self, amount: Decimal, currency: str, day: date) -> Decimal:
        """Convert an amount at the rate prevailing on ``day``."""
        if not self._valuate:
            return Decimal(0)
        if amount == 0 or currency == self.reporting_currency:
            return amount
        rate = self._journal.rate_as_of(currency, day)
        if rate is None:
            raise MissingRateError(currency, self.reporting_currency, day)
        return amount * rate

    def _valuation(self, day: date) -> Decimal:
        """Total value of the current replay state at ``day``'s prices and rates."""
        total = Decimal(0)
        for currency, amount in self._cash.items():
            total += self._historical(amount, currency, day)
        for ticker, holding in self._holdings.items():
            if holding.position == 0:
                continue
            price = self._journal.price_as_of(ticker, day)
            if price is None:
                raise MissingPriceError(ticker, day)
            total += self._historical(holding.position * price, holding.currency, day)
        for account, amount in self._accounts.items():
            total += self._historical(amount, self._account_currency[account], day)
        return total

    def _freeze(self) -> None:
        """Resolve, once, the prices and exchange rates used by this snapshot."""
        carrying: dict[str, bool] = {}
        for currency, amount in self._cash.items():
            carrying[currency] = carrying.get(currency, False) or amount != 0
        for ticker, holding in self._holdings.items():
            price = self._journal.price_as_of(ticker, self.on)
            if price is not None:
                self._prices[ticker] = price
            elif holding.position != 0 and self._valuate:
                raise MissingPriceError(ticker, self.on)
            held = holding.position != 0 or holding.cost_basis != 0 or holding.realized != 0
            carrying[holding.currency] = carrying.get(holding.currency, False) or held
        for account, amount in self._accounts.items():
            currency = self._account_currency[account]
            carrying[currency] = carrying.get(currency, False) or amount != 0

        for currency, needed in carrying.items():
            if currency == self.reporting_currency:
                continue
            rate = self._journal.rate_as_of(currency, self.on)
            if rate is not None:
                self._forex[currency] = rate
            elif needed and self._valuate:
                raise MissingRateError(currency, self.reporting_currency, self.on)

    # Securities

    def securities(self) -> Iterator[str]:
        """Yield the tickers known at this date, in declaration order."""
        yield from self._holdings

    def security(self, ticker: str):
        return self._journal.security(ticker)

    def _currency_of(self, ticker: str) -> str:
        holding = self._holdings.get(ticker)
        if holding is not None:
            return holding.currency
        security = self._journal.security(ticker)
        return security.currency if security is not None else ""

    def _money(self, ticker: str, attribute: str) -> Money:
        holding = self._holdings.get(ticker)
        amount = getattr(holding, attribute) if holding is not None else Decimal(0)
        return Money(amount, self._currency_of(ticker))

    def position(self, ticker: str) -> Decimal:
        """Return the quantity held, split adjusted. Zero for unknown tickers."""
        holding = self._holdings.get(ticker)
        return holding.position if holding is not None else Decimal(0)

    def lots(self, ticker: str) -> tuple[Lot, ...]:
        """Return the open FIFO lots, oldest first. Empty under AverageCost."""
        holding = self._holdings.get(ticker)
        return tuple(holding.lots) if holding is not None else ()

    def price(self, ticker: str) -> Money | None:
        """Return the last known price on or before the balance date, or None."""
        price = self._prices.get(ticker)
        if price is None:
            return None
        return Money(price, self._currency_of(ticker))

    def market_value(self, ticker: str) -> Money:
        """Return position times price, in the security currency."""
        price = self._prices.get(ticker)
        if price is None:
            return Money.zero(self._currency_of(ticker))
        return Money(self.position(ticker) * price, self._currency_of(ticker))

    def cost_basis(self, ticker: str) -> Money:
        return self._money(ticker, "cost_basis")

    def realized_gain(self, ticker: str) -> Money:
        return self._money(ticker, "realized")

    def unrealized_gain(self, ticker: str) -> Money:
        return self.market_value(ticker) - self.cost_basis(ticker)

    def buys(self, ticker: str) -> Money:
        return self._money(ticker, "buys")

    def sells(self, ticker: str) -> Money:
        return self._money(ticker, "sells")

    def dividends_received(self, ticker: str) -> Money:
        return self._money(ticker, "dividends")

    # Currencies

    def currencies(self) -> Iterator[str]:
        """Yield currencies with a cash account, the reporting currency first."""
        if self.reporting_currency in self._cash:
            yield self.reporting_currency
        for currency in sorted(self._cash):
            if currency != self.reporting_currency:
                yield currency

    def cash(self, currency: str) -> Money:
        return Money(self._cash.get(currency, Decimal(0)), currency)

    def cash_flow(self, currency: str) -> Money:
        """Return the net external flow in ``currency``: deposits, withdrawals and conversion legs."""
        return Money(self._cash_flow.get(currency, Decimal(0)), currency)

    # Counterparties

    def counterparties(self) -> Iterator[str]:
        yield from sorted(self._accounts)

    def counterparty(self, account: str) -> Money:
        """Return what ``account`` owes (positive) or is owed (negative)."""
        return Money(self._accounts.get(account, Decimal(0)), self.counterparty_currency(account) or "")

    def counterparty_currency(self, account: str) -> str | None:
        return self._account_currency.get(account) or self._journal.ledger.counterparty_currency(account)

    # Conversion

    def exchange_rate(self, currency: str) -> Decimal:
        """Return the frozen value of one unit of ``currency`` in the reporting currency.

        Raises:
            MissingRateError: If no rate was resolved for the currency.
        """
        if currency == self.reporting_currency:
            return Decimal(1)
        rate = self._forex.get(currency)
        if rate is None:
            raise MissingRateError(currency, self.reporting_currency, self.on)
        return rate

    def convert(self, money: Money, currency: str | None = None) -> Money:
        """Convert ``money`` to ``currency`` (the reporting currency by default) at frozen rates."""
        target = currency or self.reporting_currency
        if money.currency == target:
            return money
        if money.amount == 0:
            return Money.zero(target)
        amount = money.amount * self.exchange_rate(money.currency)
        if target != self.reporting_currency:
            amount = amount / self.exchange_rate(target)
        return Money(amount, target)

    # Totals, in the reporting currency

    def _total(self, values: Iterator[Money]) -> Money:
        total = Money.zero(self.reporting_currency)
        for value in values:
            total += self.convert(value)
        return total

    def total_market_value(self) -> Money:
        return self._total(self.market_value(t) for t in self._holdings)

    def total_cash(self) -> Money:
        return self._total(self.cash(c) for c in self._cash)

    def total_counterparty(self) -> Money:
        return self._total(self.counterparty(a) for a in self._accounts)

    def total_portfolio_value(self) -> Money:
        """Market value plus cash plus counterparty balances."""
        return self.total_market_value() + self.total_cash() + self.total_counterparty()

    def total_unrealized_gain(self) -> Money:
        return self._total(self.unrealized_gain(t) for t in self._holdings)

    def total_realized_gain(self) -> Money:
        return self._total(self.realized_gain(t) for t in self._holdings)

    def total_dividends(self) -> Money:
        return self._total(self.dividends_received(t) for t in self._holdings)

    def total_cash_flow(self) -> Money:
        """Net external flows converted at the balance date's rates."""
        return self._total(self.cash_flow(c) for c in self._cash_flow)

    def portfolio_cost_basis(self) -> Money:
        """Net external deposits less withdrawals, each converted at the rate of its own date."""
        return Money(self._cost_basis, self.reporting_currency)

    @property
    def linked_twr(self) -> Decimal:
        """Chain-linked time-weighted index, 1 at inception.

        ``end.linked_twr / start.linked_twr - 1`` is the time-weighted return
        between two balances.
        """
        return self._linked_twr

    def __repr__(self):
        return f"Balance(on={self.on}, method={self.method.value}, currency={self.reporting_currency})"


def new_balance(journal: Journal, on: date, method: CostBasisMethod | str = CostBasisMethod.FIFO) -> Balance:
    """Build the Balance of ``journal`` at the end of ``on``."""
    return Balance(journal, on, method)
