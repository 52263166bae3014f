"""Binding of a ledger to a reporting currency and its market data."""

from datetime import date
from decimal import Decimal
from typing import Iterator

from .currency import split_currency_pair, validate_currency
from .errors import InvalidFieldError, MissingPriceError, MissingRateError, UnknownSecurityError
from .history import History
from .ledger import Ledger
from .pricingdata import MarketData, PricingDataManager, Security, SplitEvent
from .transactions import Transaction, UpdatePrice, has_placeholder, referenced_tickers


class Journal:
    """A reporting-currency view over a ledger and its price and rate series.

    Construction resolves, once, the price series of every declared
    security and the exchange-rate series of every non-reporting currency.
    Individual dates are looked up lazily, so a series that exists but
    lacks a given date only matters when a Balance needs that date.
    """

    def __init__(
        self,
        ledger: Ledger,
        market: PricingDataManager | None = None,
        reporting_currency: str = "EUR",
        strict: bool = True,
    ):
        """Initialize a Journal.

        Args:
            ledger: The ledger to report on.
            market: Market data providing price histories and splits by
                security id. Defaults to an empty market, in which case prices
                come only from the ledger's price updates.
            reporting_currency: Currency all totals are converted to.
            strict: If True, fail when a declared security has no price
                series or a used currency has no exchange-rate series. The
                Validator builds non-strict journals because it only needs
                holdings, not valuations.

        Raises:
            InvalidFieldError: If the reporting currency is malformed or a
                transaction still holds an unresolved placeholder.
            UnknownSecurityError: If a transaction cites an undeclared ticker.
            MissingPriceError: In strict mode, if a declared security has no
                price series at all.
            MissingRateError: In strict mode, if a currency has no
                exchange-rate series at all.
        """
        self.ledger = ledger
        self.market = market if market is not None else MarketData()
        self.reporting_currency = validate_currency(reporting_currency)
        self.strict = strict

        for tx in ledger.transactions():
            if has_placeholder(tx):
                raise InvalidFieldError(
                    f"{tx.what()} transaction on {tx.date} holds an unresolved default; validate it first"
                )
            for ticker in referenced_tickers(tx):
                if ledger.security(ticker) is None:
                    raise UnknownSecurityError(ticker, f"{tx.what()} on {tx.when()}")

        self._prices = self._resolve_prices()
        self._splits = {
            security.ticker: ledger.splits(security.ticker, self.market)
            for security in ledger.securities()
        }
        self._rates = self._resolve_rates()

    def _series_by_id(self) -> dict[str, History]:
        # Market histories overlaid with the ledger's own price updates.
        series: dict[str, History] = {}
        ids = set(self.market.security_ids())
        ids.update(s.id for s in self.ledger.securities())
        for security_id in ids:
            history = self.market.history(security_id)
            if history is not None:
                series[security_id] = history
        for tx in self.ledger.transactions(lambda t: isinstance(t, UpdatePrice)):
            for ticker, price in tx.prices.items():
                security = self.ledger.security(ticker)
                series.setdefault(security.id, History()).append(tx.when(), price)
        return series

    def _resolve_prices(self) -> dict[str, History]:
        self._series = self._series_by_id()
        prices: dict[str, History] = {}
        for security in self.ledger.securities():
            history = self._series.get(security.id)
            if not history:
                if self.strict:
                    raise MissingPriceError(security.ticker)
                continue
            prices[security.ticker] = history
        return prices

    def _resolve_rates(self) -> dict[str, History]:
        rates: dict[str, History] = {}
        for currency in self.ledger.currencies():
            if currency == self.reporting_currency:
                continue
            history = self._rate_series(currency)
            if history is None:
                if self.strict:
                    raise MissingRateError(currency, self.reporting_currency)
                continue
            rates[currency] = history
        return rates

    def _rate_series(self, currency: str) -> History | None:
        direct = self._series.get(currency + self.reporting_currency)
        if direct:
            return direct
        inverse = self._series.get(self.reporting_currency + currency)
        if inverse:
            return History((day, Decimal(1) / price) for day, price in inverse.values())
        return None

    def transactions(self, until: date | None = None) -> Iterator[Transaction]:
        """Yield ledger transactions in order, stopping after ``until``."""
        for tx in self.ledger.transactions():
            if until is not None and tx.when() > until:
                return
            yield tx

    def security(self, ticker: str) -> Security | None:
        return self.ledger.security(ticker)

    def securities(self) -> Iterator[Security]:
        return self.ledger.securities()

    def price_history(self, ticker: str) -> History | None:
        return self._prices.get(ticker)

    def price_as_of(self, ticker: str, on: date) -> Decimal | None:
        """Return the last price of ``ticker`` on or before ``on``, or None."""
        history = self._prices.get(ticker)
        if history is None:
            return None
        return history.value_as_of(on)

    def rate_as_of(self, currency: str, on: date) -> Decimal | None:
        """Return the value of one unit of ``currency`` in the reporting currency.

        Returns:
            The rate, 1 for the reporting currency itself, or None when no
            rate is known on or before ``on``.
        """
        if currency == self.reporting_currency:
            return Decimal(1)
        history = self._rates.get(currency)
        if history is None:
            return None
        return history.value_as_of(on)

    def splits(self, ticker: str) -> list[SplitEvent]:
        return list(self._splits.get(ticker, []))

    def is_currency_pair(self, ticker: str) -> bool:
        security = self.ledger.security(ticker)
        return security is not None and split_currency_pair(security.id) is not None
