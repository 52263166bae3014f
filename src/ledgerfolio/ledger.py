"""The ledger: an append-only, date-ordered log of transactions."""

from datetime import date
from decimal import Decimal
from typing import Callable, Iterable, Iterator, assert_never
import sys

from .currency import Money
from .errors import InvalidFieldError
from .pricingdata import PricingDataManager, Security, SplitEvent
from .transactions import (
    ALL,
    Accrue,
    Buy,
    Convert,
    Declare,
    Deposit,
    Dividend,
    Remaining,
    Sell,
    Split,
    Transaction,
    UpdatePrice,
    Withdraw,
    referenced_tickers,
)

# When True, report merges and replacements done by append_or_update on stderr.
verbose: bool = False

TransactionFilter = Callable[[Transaction], bool]


def _concrete(value: Decimal | Remaining, tx: Transaction) -> Decimal:
    if value is ALL:
        raise InvalidFieldError(
            f"{tx.what()} transaction on {tx.date} still holds an unresolved 'all' amount"
        )
    return value


class Ledger:
    """A collection of transactions kept in stable date order.

    The ledger owns two indices derived from its content: declared
    securities by ticker and counterparty account currencies by account name.
    Both are extended on every append.
    """

    def __init__(self, transactions: Iterable[Transaction] | None = None):
        """Initialize a Ledger.

        Args:
            transactions: Optional transactions to append, in any order.
        """
        self._transactions: list[Transaction] = []
        self._securities: dict[str, Security] = {}
        self._counterparties: dict[str, str] = {}
        if transactions is not None:
            self.append(*transactions)

    def append(self, *transactions: Transaction) -> None:
        """Append transactions and restore date order.

        The sort is stable: a transaction lands after every existing
        transaction on the same or an earlier date, and transactions sharing
        a date keep their append order.
        """
        self._transactions.extend(transactions)
        self._index(transactions)
        self._transactions.sort(key=lambda t: t.when())

    def _index(self, transactions: Iterable[Transaction]) -> None:
        for tx in transactions:
            match tx:
                case Declare():
                    self._securities[tx.ticker] = Security(tx.security_id, tx.ticker, tx.currency)
                case Accrue():
                    if tx.create or tx.counterparty not in self._counterparties:
                        self._counterparties[tx.counterparty] = tx.currency

    def append_or_update(self, *transactions: Transaction) -> None:
        """Append transactions, merging market data recorded for the same day.

        An UpdatePrice merges its prices into an existing UpdatePrice of the
        same day. A Split or Dividend replaces an existing one for the same
        ticker and day. Anything else is appended.
        """
        for tx in transactions:
            if not self._merge(tx):
                self.append(tx)
                if verbose:
                    print(f"{tx.when()}: append {tx.what()!r} {tx}", file=sys.stderr)

    def _merge(self, tx: Transaction) -> bool:
        for i, existing in enumerate(self._transactions):
            if type(existing) is not type(tx) or existing.date != tx.date:
                continue
            match tx:
                case UpdatePrice():
                    prices = dict(existing.prices)
                    for ticker, price in tx.prices.items():
                        if prices.get(ticker) != price:
                            if verbose:
                                print(f"{tx.date}: update {ticker} price from {prices.get(ticker)} with {price}", file=sys.stderr)
                            prices[ticker] = price
                    self._transactions[i] = UpdatePrice(existing.date, dict(sorted(prices.items())), memo=existing.memo)
                    return True
                case Split() | Dividend():
                    if existing.security != tx.security:
                        continue
                    if existing != tx:
                        if verbose:
                            print(f"{tx.date}: update {tx.security} {tx.what()} {existing} with {tx}", file=sys.stderr)
                        self._transactions[i] = tx
                    return True
                case _:
                    return False
        return False

    def transactions(self, *filters: TransactionFilter) -> Iterator[Transaction]:
        """Yield transactions in ledger order.

        Args:
            *filters: Predicates. A transaction is yielded when any of them
                accepts it. With no filters every transaction is yielded.
        """
        for tx in self._transactions:
            if not filters or any(f(tx) for f in filters):
                yield tx

    def __iter__(self) -> Iterator[Transaction]:
        return iter(list(self._transactions))

    def __len__(self) -> int:
        return len(self._transactions)

    def security(self, ticker: str) -> Security | None:
        """Return the security declared under ``ticker``, or None."""
        return self._securities.get(ticker)

    def securities(self) -> Iterator[Security]:
        """Yield declared securities sorted by ticker."""
        for ticker in sorted(self._securities):
            yield self._securities[ticker]

    def counterparty_currency(self, account: str) -> str | None:
        return self._counterparties.get(account)

    def counterparties(self) -> Iterator[str]:
        """Yield counterparty account names, sorted."""
        yield from sorted(self._counterparties)

    def currencies(self) -> Iterator[str]:
        """Yield every currency used by a security, cash movement or account, sorted."""
        found: set[str] = set(self._counterparties.values())
        found.update(s.currency for s in self._securities.values())
        for tx in self._transactions:
            match tx:
                case Deposit() | Withdraw() | Accrue():
                    found.add(tx.currency)
                case Convert():
                    found.update((tx.from_currency, tx.to_currency))
        yield from sorted(found)

    def oldest_transaction_date(self) -> date | None:
        return self._transactions[0].when() if self._transactions else None

    def newest_transaction_date(self) -> date | None:
        return self._transactions[-1].when() if self._transactions else None

    def _trade_currency(self, tx: Buy | Sell | Dividend) -> str:
        if tx.currency is not None:
            return tx.currency
        security = self.security(tx.security)
        return security.currency if security is not None else ""

    def cash_balance(self, currency: str, on: date) -> Money:
        """Return the cash held in ``currency`` at the end of ``on``."""
        balance = Money.zero(currency)
        for tx in self._transactions:
            if tx.when() > on:
                break
            match tx:
                case Buy():
                    if self._trade_currency(tx) == currency:
                        balance -= Money(tx.amount, currency)
                case Sell() | Dividend():
                    if self._trade_currency(tx) == currency:
                        balance += Money(tx.amount, currency)
                case Deposit():
                    if tx.currency == currency:
                        balance += Money(tx.amount, currency)
                case Withdraw():
                    if tx.currency == currency:
                        balance -= Money(_concrete(tx.amount, tx), currency)
                case Convert():
                    if tx.from_currency == currency:
                        balance -= Money(_concrete(tx.from_amount, tx), currency)
                    if tx.to_currency == currency:
                        balance += Money(tx.to_amount, currency)
                case Declare() | Accrue() | UpdatePrice() | Split():
                    pass
                case _:
                    assert_never(tx)
        return balance

    def counterparty_account_balance(self, account: str, on: date) -> Money:
        """Return what ``account`` owes us (positive) or we owe it (negative) at the end of ``on``."""
        balance = Money.zero(self._counterparties.get(account, ""))
        for tx in self._transactions:
            if tx.when() > on:
                break
            match tx:
                case Accrue():
                    if tx.counterparty == account:
                        balance += Money(tx.amount, tx.currency)
                case Deposit():
                    if tx.settles == account:
                        balance -= Money(tx.amount, tx.currency)
                case Withdraw():
                    if tx.settles == account:
                        balance += Money(_concrete(tx.amount, tx), tx.currency)
        return balance

    def security_transactions(self, ticker: str, until: date) -> Iterator[Transaction]:
        """Yield the transactions referring to ``ticker`` up to and including ``until``."""
        for tx in self._transactions:
            if tx.when() > until:
                return
            if ticker in referenced_tickers(tx):
                yield tx

    def splits(self, ticker: str, market: PricingDataManager | None = None) -> list[SplitEvent]:
        """Return the splits of ``ticker`` from the ledger and, if given, the market.

        Ledger splits win over market splits on the same day. Market splits
        are ignored when the market stores split-adjusted prices.
        """
        found: dict[date, SplitEvent] = {}
        security = self.security(ticker)
        if market is not None and security is not None and not market.split_adjusted:
            for split in market.splits(security.id):
                found[split.date] = split
        for tx in self._transactions:
            if isinstance(tx, Split) and tx.security == ticker:
                found[tx.when()] = SplitEvent(tx.when(), tx.numerator, tx.denominator)
        return [found[day] for day in sorted(found)]

    def position(self, ticker: str, on: date, market: PricingDataManager | None = None) -> Decimal:
        """Return the quantity of ``ticker`` held at the end of ``on``.

        Each trade is adjusted by the splits effective strictly after the
        trade date and on or before ``on``.
        """
        splits = self.splits(ticker, market)
        position = Decimal(0)
        for tx in self.security_transactions(ticker, on):
            match tx:
                case Buy():
                    quantity = tx.quantity
                case Sell():
                    quantity = -_concrete(tx.quantity, tx)
                case _:
                    continue
            for split in splits:
                if tx.when() < split.date <= on:
                    quantity = quantity * split.ratio
            position += quantity
        return position

    def inception_date(self, ticker: str) -> date | None:
        """Return the date of the first transaction that refers to ``ticker``."""
        for tx in self._transactions:
            if isinstance(tx, Declare):
                if tx.ticker == ticker:
                    return tx.when()
            elif ticker in referenced_tickers(tx):
                return tx.when()
        return None

    def last_known_market_data_date(self, ticker: str) -> date | None:
        """Return the date of the most recent price update or split for ``ticker``."""
        for tx in reversed(self._transactions):
            if isinstance(tx, (UpdatePrice, Split)) and ticker in referenced_tickers(tx):
                return tx.when()
        return None


def by_security(ticker: str) -> TransactionFilter:
    """Filter accepting transactions that refer to ``ticker``."""

    def accept(tx: Transaction) -> bool:
        if isinstance(tx, Declare):
            return tx.ticker == ticker
        return ticker in referenced_tickers(tx)

    return accept


def by_currency(ledger: Ledger, currency: str) -> TransactionFilter:
    """Filter accepting transactions that move cash or value in ``currency``."""

    def accept(tx: Transaction) -> bool:
        match tx:
            case Buy() | Sell() | Dividend():
                return ledger._trade_currency(tx) == currency
            case Deposit() | Withdraw() | Accrue() | Declare():
                return tx.currency == currency
            case Convert():
                return currency in (tx.from_currency, tx.to_currency)
            case UpdatePrice():
                return any(
                    (s := ledger.security(t)) is not None and s.currency == currency
                    for t in tx.prices
                )
            case Split():
                security = ledger.security(tx.security)
                return security is not None and security.currency == currency
            case _:
                assert_never(tx)

    return accept
