"""JSONL persistence of ledgers: one transaction per line, fixed key order."""

from decimal import Decimal
from pathlib import Path
from typing import Any, assert_never
import json

from .dates import format_date, parse_iso_date
from .errors import LedgerDecodeError
from .ledger import Ledger
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
    TransactionType,
    UpdatePrice,
    Withdraw,
)


def _number(value: Decimal | int) -> str:
    if isinstance(value, int):
        return str(value)
    return format(value, "f")


def _string(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


class _ObjectWriter:
    """Builds a compact JSON object whose keys keep their insertion order."""

    def __init__(self):
        self._parts: list[str] = []

    def append(self, key: str, fragment: str) -> "_ObjectWriter":
        self._parts.append(f"{_string(key)}:{fragment}")
        return self

    def string(self, key: str, value: str) -> "_ObjectWriter":
        return self.append(key, _string(value))

    def optional_string(self, key: str, value: str | None) -> "_ObjectWriter":
        if value:
            self.string(key, value)
        return self

    def number(self, key: str, value: Decimal | int | Remaining) -> "_ObjectWriter":
        # An "all" request is persisted by leaving the field out.
        if value is ALL:
            return self
        return self.append(key, _number(value))

    def __str__(self) -> str:
        return "{" + ",".join(self._parts) + "}"


def encode_transaction(tx: Transaction) -> str:
    """Serialize one transaction as a single-line JSON object.

    Args:
        tx: The transaction. Its date must be set.

    Returns:
        The JSON text, without a trailing newline.
    """
    w = _ObjectWriter()
    w.string("command", tx.what())
    w.string("date", format_date(tx.when()))
    w.optional_string("memo", tx.memo)

    match tx:
        case Buy() | Sell():
            w.string("security", tx.security)
            w.number("quantity", tx.quantity)
            w.optional_string("currency", tx.currency)
            w.number("amount", tx.amount)
        case Dividend():
            w.string("security", tx.security)
            w.optional_string("currency", tx.currency)
            w.number("amount", tx.amount)
        case Deposit() | Withdraw():
            w.string("currency", tx.currency)
            w.number("amount", tx.amount)
            w.optional_string("settles", tx.settles)
        case Convert():
            w.string("fromCurrency", tx.from_currency)
            w.number("fromAmount", tx.from_amount)
            w.string("toCurrency", tx.to_currency)
            w.number("toAmount", tx.to_amount)
        case Declare():
            w.string("ticker", tx.ticker)
            w.string("id", tx.security_id)
            w.string("currency", tx.currency)
        case Accrue():
            w.string("counterparty", tx.counterparty)
            if tx.create:
                w.append("create", "true")
            w.string("currency", tx.currency)
            w.number("amount", tx.amount)
        case UpdatePrice():
            prices = _ObjectWriter()
            for ticker in sorted(tx.prices):
                prices.number(ticker, tx.prices[ticker])
            w.append("prices", str(prices))
        case Split():
            w.string("security", tx.security)
            w.number("num", tx.numerator)
            w.number("den", tx.denominator)
        case _:
            assert_never(tx)
    return str(w)


def _require(data: dict[str, Any], key: str) -> Any:
    if key not in data:
        raise ValueError(f"missing property {key!r}")
    return data[key]


def _decimal(data: dict[str, Any], key: str) -> Decimal:
    value = _require(data, key)
    if not isinstance(value, Decimal):
        raise ValueError(f"property {key!r} must be a number")
    return value


def _optional_decimal(data: dict[str, Any], key: str) -> Decimal | Remaining:
    if key not in data:
        return ALL
    return _decimal(data, key)


def _text(data: dict[str, Any], key: str) -> str:
    value = _require(data, key)
    if not isinstance(value, str):
        raise ValueError(f"property {key!r} must be a string")
    return value


def _optional_text(data: dict[str, Any], key: str, default: str | None = "") -> str | None:
    if key not in data:
        return default
    return _text(data, key)


def _flag(data: dict[str, Any], key: str) -> bool:
    value = data.get(key, False)
    if not isinstance(value, bool):
        raise ValueError(f"property {key!r} must be true or false")
    return value


def _integer(data: dict[str, Any], key: str) -> int:
    if key not in data:
        return 1
    value = _decimal(data, key)
    if value != value.to_integral_value():
        raise ValueError(f"property {key!r} must be an integer")
    return int(value)


def decode_transaction(line: str) -> Transaction:
    """Parse one JSON line into a transaction.

    Raises:
        ValueError: If the line is not valid JSON or misses a required field.
    """
    data = json.loads(line, parse_float=Decimal, parse_int=Decimal)
    if not isinstance(data, dict):
        raise ValueError("a transaction must be a JSON object")

    try:
        command = TransactionType(_text(data, "command"))
    except ValueError:
        raise ValueError(f"unknown command {data.get('command')!r}") from None
    day = parse_iso_date(_text(data, "date"))
    memo = _optional_text(data, "memo")

    match command:
        case TransactionType.BUY:
            return Buy(day, _text(data, "security"), _decimal(data, "quantity"), _decimal(data, "amount"),
                       _optional_text(data, "currency", None), memo=memo)
        case TransactionType.SELL:
            return Sell(day, _text(data, "security"), _optional_decimal(data, "quantity"), _decimal(data, "amount"),
                        _optional_text(data, "currency", None), memo=memo)
        case TransactionType.DIVIDEND:
            return Dividend(day, _text(data, "security"), _decimal(data, "amount"),
                            _optional_text(data, "currency", None), memo=memo)
        case TransactionType.DEPOSIT:
            return Deposit(day, _decimal(data, "amount"), _text(data, "currency"), _optional_text(data, "settles"),
                           memo=memo)
        case TransactionType.WITHDRAW:
            return Withdraw(day, _optional_decimal(data, "amount"), _text(data, "currency"), _optional_text(data, "settles"),
                            memo=memo)
        case TransactionType.CONVERT:
            return Convert(day, _text(data, "fromCurrency"), _optional_decimal(data, "fromAmount"),
                           _text(data, "toCurrency"), _decimal(data, "toAmount"), memo=memo)
        case TransactionType.DECLARE:
            return Declare(day, _text(data, "ticker"), _text(data, "id"), _text(data, "currency"), memo=memo)
        case TransactionType.ACCRUE:
            return Accrue(day, _text(data, "counterparty"), _decimal(data, "amount"), _text(data, "currency"),
                          _flag(data, "create"), memo=memo)
        case TransactionType.UPDATE_PRICE:
            prices = _require(data, "prices")
            if not isinstance(prices, dict) or not all(isinstance(p, Decimal) for p in prices.values()):
                raise ValueError("property 'prices' must map tickers to numbers")
            return UpdatePrice(day, dict(sorted(prices.items())), memo=memo)
        case TransactionType.SPLIT:
            return Split(day, _text(data, "security"), _integer(data, "num"), _integer(data, "den"), memo=memo)
        case _:
            assert_never(command)


def decode_ledger(text: str, filename: str = "<ledger>") -> Ledger:
    """Decode JSONL text into a Ledger.

    Blank lines are skipped. The first bad line aborts the whole decode.

    Args:
        text: The JSONL content.
        filename: Name used in error messages.

    Returns:
        A new Ledger holding every decoded transaction.

    Raises:
        LedgerDecodeError: With the file name and 1-based line number of the
            first line that cannot be decoded.
    """
    transactions: list[Transaction] = []
    for number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            transactions.append(decode_transaction(line))
        except ValueError as e:
            raise LedgerDecodeError(filename, number, str(e)) from e
    return Ledger(transactions)


def encode_ledger(ledger: Ledger) -> str:
    """Serialize a ledger as JSONL, one transaction per line in ledger order."""
    return "".join(encode_transaction(tx) + "\n" for tx in ledger.transactions())


def load_ledger(file_path: str, create_if_missing: bool = False) -> Ledger:
    """
    Load a ledger from a JSONL file.

    Args:
        file_path: Path to the ledger file.
        create_if_missing: If True and the file doesn't exist, return an
            empty ledger instead of raising.

    Returns:
        The decoded Ledger.

    Raises:
        FileNotFoundError: If the file is missing and create_if_missing is False.
        LedgerDecodeError: If any line cannot be decoded.
    """
    path = Path(file_path)
    if not path.exists():
        if create_if_missing:
            return Ledger()
        raise FileNotFoundError(f"Ledger file not found: {file_path}")
    return decode_ledger(path.read_text(encoding="utf-8"), filename=str(path))


def save_ledger(ledger: Ledger, file_path: str) -> None:
    """Write a ledger to a JSONL file, replacing its content."""
    Path(file_path).write_text(encode_ledger(ledger), encoding="utf-8")
