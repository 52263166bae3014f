"""Transaction kinds recorded in a ledger.

Each kind is an immutable dataclass. ``Transaction`` is the union of all
kinds, and code that needs per-kind behaviour dispatches with ``match``
and ends with ``assert_never`` so a new kind cannot be silently ignored.
"""

import datetime as dt
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Mapping, Union, assert_never


class TransactionType(Enum):
    """Enumeration of supported ledger commands, valued by their persisted name."""

    DECLARE = "declare"
    BUY = "buy"
    SELL = "sell"
    DIVIDEND = "dividend"
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    CONVERT = "convert"
    ACCRUE = "accrue"
    UPDATE_PRICE = "update-price"
    SPLIT = "split"


class Remaining(Enum):
    """Placeholder for "everything available", resolved by the Validator.

    Kept distinct from ``Decimal(0)`` so that withdrawing nothing and
    withdrawing everything cannot be confused.
    """

    ALL = "all"


ALL = Remaining.ALL


@dataclass(frozen=True)
class BaseTransaction:
    """Fields shared by every transaction.

    A ``date`` of None asks the Validator to use today's date.
    """

    date: dt.date | None
    memo: str = field(default="", kw_only=True)

    command: ClassVar[TransactionType]

    def when(self) -> dt.date:
        """Return the transaction date.

        Raises:
            ValueError: If the date is still unset.
        """
        if self.date is None:
            raise ValueError(f"{self.command.value} transaction has no date")
        return self.date

    def what(self) -> str:
        """Return the command name, e.g. ``"buy"``."""
        return self.command.value


@dataclass(frozen=True)
class Declare(BaseTransaction):
    """Introduces a tradable security under a ledger-local ticker."""

    ticker: str
    security_id: str
    currency: str

    command: ClassVar[TransactionType] = TransactionType.DECLARE


@dataclass(frozen=True)
class Buy(BaseTransaction):
    """Purchase of ``quantity`` units for a gross ``amount``.

    A ``currency`` of None means the security's declared currency.
    """

    security: str
    quantity: Decimal
    amount: Decimal
    currency: str | None = None

    command: ClassVar[TransactionType] = TransactionType.BUY


@dataclass(frozen=True)
class Sell(BaseTransaction):
    """Sale of ``quantity`` units for gross proceeds ``amount``.

    ``quantity`` may be ``ALL`` to sell the whole position.
    """

    security: str
    quantity: Decimal | Remaining
    amount: Decimal
    currency: str | None = None

    command: ClassVar[TransactionType] = TransactionType.SELL


@dataclass(frozen=True)
class Dividend(BaseTransaction):
    """Cash dividend received, ``amount`` being the total paid."""

    security: str
    amount: Decimal
    currency: str | None = None

    command: ClassVar[TransactionType] = TransactionType.DIVIDEND


@dataclass(frozen=True)
class Deposit(BaseTransaction):
    """Cash entering the portfolio.

    When ``settles`` names a counterparty account, the deposit is that
    counterparty paying back what it owes rather than an external flow.
    """

    amount: Decimal
    currency: str
    settles: str = ""

    command: ClassVar[TransactionType] = TransactionType.DEPOSIT


@dataclass(frozen=True)
class Withdraw(BaseTransaction):
    """Cash leaving the portfolio. ``amount`` may be ``ALL``."""

    amount: Decimal | Remaining
    currency: str
    settles: str = ""

    command: ClassVar[TransactionType] = TransactionType.WITHDRAW


@dataclass(frozen=True)
class Convert(BaseTransaction):
    """Atomic exchange of ``from_amount`` for ``to_amount``.

    ``from_amount`` may be ``ALL`` to convert the whole balance.
    """

    from_currency: str
    from_amount: Decimal | Remaining
    to_currency: str
    to_amount: Decimal

    command: ClassVar[TransactionType] = TransactionType.CONVERT


@dataclass(frozen=True)
class Accrue(BaseTransaction):
    """Receivable (positive amount) or payable (negative amount) on a counterparty."""

    counterparty: str
    amount: Decimal
    currency: str
    create: bool = False

    command: ClassVar[TransactionType] = TransactionType.ACCRUE


@dataclass(frozen=True)
class UpdatePrice(BaseTransaction):
    """Market price observations for one day, keyed by ticker."""

    prices: Mapping[str, Decimal]

    command: ClassVar[TransactionType] = TransactionType.UPDATE_PRICE


@dataclass(frozen=True)
class Split(BaseTransaction):
    """Stock split: every held unit becomes ``numerator / denominator`` units."""

    security: str
    numerator: int = 1
    denominator: int = 1

    command: ClassVar[TransactionType] = TransactionType.SPLIT


Transaction = Union[
    Declare, Buy, Sell, Dividend, Deposit, Withdraw, Convert, Accrue, UpdatePrice, Split
]

TRANSACTION_CLASSES: dict[TransactionType, type] = {
    cls.command: cls
    for cls in (Declare, Buy, Sell, Dividend, Deposit, Withdraw, Convert, Accrue, UpdatePrice, Split)
}


def referenced_tickers(tx: Transaction) -> list[str]:
    """Return the tickers a transaction refers to (empty for cash-only kinds)."""
    match tx:
        case Buy() | Sell() | Dividend() | Split():
            return [tx.security]
        case UpdatePrice():
            return sorted(tx.prices)
        case Declare() | Deposit() | Withdraw() | Convert() | Accrue():
            return []
        case _:
            assert_never(tx)


def has_placeholder(tx: Transaction) -> bool:
    """Return True if the transaction still holds an unresolved default request."""
    if tx.date is None:
        return True
    match tx:
        case Sell():
            return tx.quantity is ALL
        case Withdraw():
            return tx.amount is ALL
        case Convert():
            return tx.from_amount is ALL
        case _:
            return False
