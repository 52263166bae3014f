from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
import json
import sys
import warnings

import pandas as pd

from .currency import split_currency_pair, validate_currency
from .dates import format_date, parse_iso_date
from .errors import LedgerDecodeError
from .history import History, merge_dates

# When True, print status messages while loading market data.
verbose: bool = False


@dataclass(frozen=True)
class Security:
    """A tradable instrument: global ``id``, ledger-local ``ticker`` and quote currency."""

    id: str
    ticker: str
    currency: str

    @property
    def currency_pair(self) -> tuple[str, str] | None:
        """(base, quote) when the security is a currency pair, else None."""
        return split_currency_pair(self.id)


@dataclass(frozen=True)
class SplitEvent:
    """A stock split effective on ``date``: each unit becomes numerator/denominator units."""

    date: date
    numerator: int = 1
    denominator: int = 1

    @property
    def ratio(self) -> Decimal:
        return Decimal(self.numerator) / Decimal(self.denominator)


class PricingDataManager(ABC):
    """Abstract base class for all market data providers.

    Prices are keyed by security id, never by ticker, so that several
    ledgers can map their own tickers onto the same price series.
    """

    #: True when stored prices are already split adjusted, in which case
    #: positions must not be adjusted again.
    split_adjusted: bool = False

    @abstractmethod
    def history(self, security_id: str) -> History | None:
        """Return a copy of the full price history of a security, or None."""
        raise NotImplementedError("This method should be overridden by subclasses.")

    @abstractmethod
    def splits(self, security_id: str) -> list[SplitEvent]:
        """Return the splits of a security, oldest first."""
        raise NotImplementedError("This method should be overridden by subclasses.")

    @abstractmethod
    def security(self, ticker: str) -> Security | None:
        raise NotImplementedError("This method should be overridden by subclasses.")

    def value_as_of(self, security_id: str, on: date) -> Decimal | None:
        """Return the last known price on or before ``on``, or None."""
        history = self.history(security_id)
        if history is None:
            return None
        return history.value_as_of(on)

    def has(self, ticker: str) -> bool:
        return self.security(ticker) is not None

    def security_ids(self) -> list[str]:
        """Return the ids that carry a price history."""
        return []


class MarketData(PricingDataManager):
    """In-memory market data: securities, price histories and splits."""

    def __init__(self, split_adjusted: bool = False):
        """Initialize an empty market.

        Args:
            split_adjusted: Whether the prices stored here are split adjusted.
        """
        self.split_adjusted = split_adjusted
        self._securities: dict[str, Security] = {}
        self._tickers: dict[str, str] = {}
        self._prices: dict[str, History] = {}
        self._splits: dict[str, list[SplitEvent]] = {}

    def add(self, security: Security) -> None:
        """Register a security, replacing any previous one with the same id."""
        self._securities[security.id] = security
        self._tickers[security.ticker] = security.id

    def security(self, ticker: str) -> Security | None:
        security_id = self._tickers.get(ticker)
        if security_id is None:
            return None
        return self._securities[security_id]

    def resolve(self, ticker: str) -> str | None:
        """Return the security id registered under ``ticker``, or None."""
        return self._tickers.get(ticker)

    def securities(self) -> list[Security]:
        return sorted(self._securities.values(), key=lambda s: s.ticker)

    def append(self, security_id: str, on: date, price: Decimal) -> None:
        """Record a price observation, overwriting any value on the same day."""
        self._prices.setdefault(security_id, History()).append(on, Decimal(price))

    def history(self, security_id: str) -> History | None:
        history = self._prices.get(security_id)
        if history is None:
            return None
        return history.copy()

    def security_ids(self) -> list[str]:
        return sorted(self._prices)

    def add_split(self, security_id: str, split: SplitEvent) -> None:
        """Record a split, replacing any split on the same day for the same security."""
        splits = [s for s in self._splits.get(security_id, []) if s.date != split.date]
        splits.append(split)
        splits.sort(key=lambda s: s.date)
        self._splits[security_id] = splits

    def splits(self, security_id: str) -> list[SplitEvent]:
        return list(self._splits.get(security_id, []))


class FixedPricingDataManager(PricingDataManager):
    """Pricing manager that returns a fixed price for any security on any date.

    Useful as a test double when valuation details do not matter.
    """

    def __init__(self, price_for_everything: Decimal = Decimal("1.0"), securities: list[Security] | None = None):
        """Initialize with a fixed price.

        Args:
            price_for_everything: The constant price returned for every query.
            securities: Optional securities to resolve by ticker.
        """
        self.price = price_for_everything
        self._securities = {s.ticker: s for s in securities or []}

    def history(self, security_id: str) -> History | None:
        return History([(date.min, self.price)])

    def splits(self, security_id: str) -> list[SplitEvent]:
        return []

    def security(self, ticker: str) -> Security | None:
        return self._securities.get(ticker)


def _decode_split(data: dict) -> SplitEvent:
    return SplitEvent(
        date=parse_iso_date(str(data["date"])),
        numerator=int(data.get("num", 1)),
        denominator=int(data.get("den", 1)),
    )


def decode_securities(text: str, market: MarketData | None = None, filename: str = "<securities>") -> MarketData:
    """Parse a securities file into a MarketData.

    Each non-blank line is a JSON object with ``ticker``, ``id``,
    ``currency`` and optional ``splits``. A duplicate ticker is skipped with
    a warning.

    Args:
        text: The file content.
        market: Market to add the securities to. A new one is created if None.
        filename: Name used in error messages.

    Returns:
        The populated MarketData.

    Raises:
        LedgerDecodeError: If a line is not a valid security definition.
    """
    if market is None:
        market = MarketData()
    duplicates: list[str] = []
    for number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            data = json.loads(line)
            security = Security(
                id=str(data["id"]),
                ticker=str(data["ticker"]),
                currency=validate_currency(data["currency"]),
            )
            splits = [_decode_split(s) for s in data.get("splits", [])]
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise LedgerDecodeError(filename, number, str(e)) from e

        if market.has(security.ticker):
            duplicates.append(security.ticker)
            continue
        market.add(security)
        for split in splits:
            market.add_split(security.id, split)

    if duplicates:
        warnings.warn(
            f"Tickers {', '.join(duplicates)} are defined more than once in '{filename}'. "
            f"Keeping the first definition.",
            UserWarning
        )
    return market


def encode_securities(market: MarketData) -> str:
    """Serialize the securities of a market, one JSON object per line, sorted by ticker."""
    lines = []
    for security in market.securities():
        data: dict = {"ticker": security.ticker, "id": security.id, "currency": security.currency}
        splits = market.splits(security.id)
        if splits:
            data["splits"] = [
                {"date": format_date(s.date), "num": s.numerator, "den": s.denominator}
                for s in splits
            ]
        lines.append(json.dumps(data, ensure_ascii=False, separators=(",", ":")) + "\n")
    return "".join(lines)


def load_securities(file_path: str, market: MarketData | None = None) -> MarketData:
    """Load a securities file. A missing file yields an empty market."""
    path = Path(file_path)
    if not path.exists():
        return market if market is not None else MarketData()
    return decode_securities(path.read_text(encoding="utf-8"), market, filename=str(path))


def save_securities(market: MarketData, file_path: str) -> None:
    Path(file_path).write_text(encode_securities(market), encoding="utf-8")


def load_prices(market: MarketData, file_path: str) -> MarketData:
    """
    Load a wide price table into a market.

    Cells are read as text, so prices keep every digit written in the file.

    Args:
        market: The market to fill.
        file_path: Path to a ``.csv`` or ``.xlsx`` file.

    Returns:
        The same market, for chaining.

    Expected columns:
        - Date: Observation date (ISO format).
        - One column per security id holding that day's price. Empty cells
          are skipped.
    """
    if file_path.lower().endswith((".xlsx", ".xls")):
        df = pd.read_excel(file_path, dtype=str)
    else:
        df = pd.read_csv(file_path, dtype=str)

    if "Date" not in df.columns:
        raise ValueError(f"Missing required column 'Date' in {file_path}")

    if verbose:
        print(f"  Loading prices from {file_path} …", file=sys.stderr, flush=True)

    skipped = 0
    for _, row in df.iterrows():
        on = pd.to_datetime(row["Date"]).date()
        for column in df.columns:
            if column == "Date":
                continue
            value = row[column]
            if pd.isna(value) or not value.strip():
                continue
            try:
                price = Decimal(value.strip())
            except InvalidOperation:
                skipped += 1
                continue
            market.append(str(column), on, price)

    # Emit warnings once after processing all rows
    if skipped:
        warnings.warn(
            f"{skipped} price cells in '{file_path}' could not be parsed and were skipped.",
            UserWarning
        )
    return market


def prices_to_frame(market: PricingDataManager) -> pd.DataFrame:
    """Export every price history of a market as a wide DataFrame.

    Returns:
        DataFrame with a ``Date`` column and one column per security id
        holding ``Decimal`` prices, sorted by date.
    """
    histories: dict[str, History] = {}
    for security_id in market.security_ids():
        history = market.history(security_id)
        if history:
            histories[security_id] = history
    rows = [
        {"Date": day, **{security_id: h.get(day) for security_id, h in histories.items()}}
        for day in merge_dates(*histories.values())
    ]
    return pd.DataFrame(rows, columns=["Date", *histories])


def save_prices(market: PricingDataManager, file_path: str) -> None:
    """Write the price table of a market to CSV or Excel, depending on the suffix."""
    df = prices_to_frame(market)
    if file_path.lower().endswith(".xlsx"):
        df.to_excel(file_path, index=False)
    else:
        df.to_csv(file_path, index=False)
