"""Validation and quick fixes for transactions before they enter a ledger."""

from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal
from typing import assert_never

from .balance import Balance, CostBasisMethod
from .currency import validate_currency
from .errors import (
    CurrencyMismatchError,
    InsufficientFundsError,
    InsufficientPositionError,
    InvalidFieldError,
    PortfolioError,
    UnknownCounterpartyError,
    UnknownSecurityError,
)
from .journal import Journal
from .ledger import Ledger
from .pricingdata import PricingDataManager, Security
from .transactions import (
    ALL,
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


def _invalid(tx: Transaction, error: PortfolioError) -> PortfolioError:
    # Keeps the error type, prefixes the message with the offending transaction.
    error.args = (f"invalid {tx.what()} transaction on {tx.when()}: {error}",)
    return error


class Validator:
    """Checks candidate transactions against the state of a ledger.

    Quick fixes fill in what the user left out: today's date, the security
    currency, and the whole position or balance for ``ALL`` amounts. A
    transaction is checked against the Balance at the end of the day before
    its date. The ledger is never modified.
    """

    def __init__(
        self,
        ledger: Ledger,
        market: PricingDataManager | None = None,
        reporting_currency: str = "EUR",
        method: CostBasisMethod | str = CostBasisMethod.FIFO,
        today: date | None = None,
    ):
        """Initialize a Validator.

        Args:
            ledger: The ledger the transactions are destined for.
            market: Market data, used for split information.
            reporting_currency: Reporting currency of the balances used.
            method: Cost basis method of the balances used.
            today: The date given to undated transactions. Defaults to the
                current date at validation time.
        """
        self.ledger = ledger
        self.market = market
        self.reporting_currency = reporting_currency
        self.method = method
        self.today = today

    def balance(self, on: date) -> Balance:
        """Return the holdings-only Balance of the ledger at the end of ``on``."""
        journal = Journal(self.ledger, self.market, self.reporting_currency, strict=False)
        return Balance(journal, on, self.method)

    def validate(self, tx: Transaction) -> Transaction:
        """Validate ``tx`` and return a copy with quick fixes applied.

        Args:
            tx: The candidate transaction.

        Returns:
            A new transaction free of placeholders. ``tx`` itself is unchanged.

        Raises:
            PortfolioError: A subclass naming the failed rule, e.g.
                InsufficientFundsError when cash would go negative.
        """
        if tx.date is None:
            tx = replace(tx, date=self.today or date.today())
        previous = self.balance(tx.when() - timedelta(days=1))

        match tx:
            case Buy():
                return self._buy(tx, previous)
            case Sell():
                return self._sell(tx, previous)
            case Dividend():
                return self._dividend(tx)
            case Deposit():
                return self._deposit(tx)
            case Withdraw():
                return self._withdraw(tx, previous)
            case Convert():
                return self._convert(tx, previous)
            case Declare():
                return self._declare(tx)
            case Accrue():
                return self._accrue(tx)
            case UpdatePrice():
                return self._update_price(tx)
            case Split():
                return self._split(tx)
            case _:
                assert_never(tx)

    def _security(self, tx: Transaction, ticker: str) -> Security:
        security = self.ledger.security(ticker)
        if security is None:
            raise _invalid(tx, UnknownSecurityError(ticker))
        return security

    def _currency(self, tx: Transaction, currency: str) -> str:
        try:
            return validate_currency(currency)
        except InvalidFieldError as e:
            raise _invalid(tx, e) from None

    def _trade_currency(self, tx: Buy | Sell | Dividend) -> str:
        security = self._security(tx, tx.security)
        if tx.currency is None:
            return security.currency
        currency = self._currency(tx, tx.currency)
        if currency != security.currency:
            raise _invalid(tx, CurrencyMismatchError(
                f"currency {currency} does not match {tx.security} currency {security.currency}"
            ))
        return currency

    def _positive(self, tx: Transaction, name: str, value: Decimal) -> None:
        if value <= 0:
            raise _invalid(tx, InvalidFieldError(f"{name} must be positive, got {value}"))

    def _funds(self, tx: Transaction, balance: Balance, currency: str, amount: Decimal) -> None:
        cash = balance.cash(currency)
        if cash.amount < amount:
            raise _invalid(tx, InsufficientFundsError(f"cannot spend {amount} {currency}, cash balance is {cash}"))

    def _settles(self, tx: Deposit | Withdraw) -> None:
        if not tx.settles:
            return
        currency = self.ledger.counterparty_currency(tx.settles)
        if currency is None:
            raise _invalid(tx, UnknownCounterpartyError(tx.settles))
        if currency != tx.currency:
            raise _invalid(tx, CurrencyMismatchError(
                f"counterparty {tx.settles!r} is in {currency}, not {tx.currency}"
            ))

    def _buy(self, tx: Buy, balance: Balance) -> Buy:
        currency = self._trade_currency(tx)
        self._positive(tx, "quantity", tx.quantity)
        self._positive(tx, "amount", tx.amount)
        self._funds(tx, balance, currency, tx.amount)
        return replace(tx, currency=currency)

    def _sell(self, tx: Sell, balance: Balance) -> Sell:
        currency = self._trade_currency(tx)
        self._positive(tx, "amount", tx.amount)
        position = balance.position(tx.security)
        quantity = position if tx.quantity is ALL else tx.quantity
        self._positive(tx, "quantity", quantity)
        if position < quantity:
            raise _invalid(tx, InsufficientPositionError(
                f"cannot sell {quantity} of {tx.security}, position is only {position}"
            ))
        return replace(tx, quantity=quantity, currency=currency)

    def _dividend(self, tx: Dividend) -> Dividend:
        currency = self._trade_currency(tx)
        self._positive(tx, "amount", tx.amount)
        return replace(tx, currency=currency)

    def _deposit(self, tx: Deposit) -> Deposit:
        self._currency(tx, tx.currency)
        self._positive(tx, "amount", tx.amount)
        self._settles(tx)
        return tx

    def _withdraw(self, tx: Withdraw, balance: Balance) -> Withdraw:
        self._currency(tx, tx.currency)
        self._settles(tx)
        amount = balance.cash(tx.currency).amount if tx.amount is ALL else tx.amount
        self._positive(tx, "amount", amount)
        self._funds(tx, balance, tx.currency, amount)
        return replace(tx, amount=amount)

    def _convert(self, tx: Convert, balance: Balance) -> Convert:
        self._currency(tx, tx.from_currency)
        self._currency(tx, tx.to_currency)
        if tx.from_currency == tx.to_currency:
            raise _invalid(tx, InvalidFieldError(f"cannot convert {tx.from_currency} into itself"))
        from_amount = balance.cash(tx.from_currency).amount if tx.from_amount is ALL else tx.from_amount
        self._positive(tx, "from amount", from_amount)
        self._positive(tx, "to amount", tx.to_amount)
        self._funds(tx, balance, tx.from_currency, from_amount)
        return replace(tx, from_amount=from_amount)

    def _declare(self, tx: Declare) -> Declare:
        if not tx.ticker:
            raise _invalid(tx, InvalidFieldError("ticker is required"))
        if self.ledger.security(tx.ticker) is not None:
            raise _invalid(tx, InvalidFieldError(f"security {tx.ticker!r} is already declared"))
        if not tx.security_id:
            raise _invalid(tx, InvalidFieldError("security id is required"))
        self._currency(tx, tx.currency)
        return tx

    def _accrue(self, tx: Accrue) -> Accrue:
        if not tx.counterparty:
            raise _invalid(tx, InvalidFieldError("counterparty is required"))
        self._currency(tx, tx.currency)
        if tx.amount == 0:
            raise _invalid(tx, InvalidFieldError("amount must not be zero"))
        existing = self.ledger.counterparty_currency(tx.counterparty)
        if existing is None:
            return replace(tx, create=True)
        if existing != tx.currency:
            raise _invalid(tx, CurrencyMismatchError(
                f"counterparty {tx.counterparty!r} is in {existing}, not {tx.currency}"
            ))
        return tx

    def _update_price(self, tx: UpdatePrice) -> UpdatePrice:
        if not tx.prices:
            raise _invalid(tx, InvalidFieldError("no price given"))
        for ticker, price in tx.prices.items():
            self._security(tx, ticker)
            self._positive(tx, f"{ticker} price", price)
        return tx

    def _split(self, tx: Split) -> Split:
        self._security(tx, tx.security)
        if tx.numerator <= 0 or tx.denominator <= 0:
            raise _invalid(tx, InvalidFieldError(
                f"split ratio must be positive, got {tx.numerator}/{tx.denominator}"
            ))
        return tx


def validate_transaction(
    ledger: Ledger,
    tx: Transaction,
    market: PricingDataManager | None = None,
    reporting_currency: str = "EUR",
    method: CostBasisMethod | str = CostBasisMethod.FIFO,
    today: date | None = None,
) -> Transaction:
    """Validate one transaction against ``ledger``. See Validator.validate."""
    return Validator(ledger, market, reporting_currency, method, today).validate(tx)
