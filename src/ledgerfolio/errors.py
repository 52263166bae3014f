"""Exceptions raised by the accounting engine.

Every error is a ``ValueError`` so callers that only care about bad input
can keep catching ``ValueError``.
"""


class PortfolioError(ValueError):
    """Base class for all ledgerfolio errors."""


class UnknownSecurityError(PortfolioError):
    """A transaction cites a ticker that was never declared."""

    def __init__(self, ticker: str, context: str = ""):
        self.ticker = ticker
        message = f"security {ticker!r} is not declared"
        if context:
            message = f"{message} ({context})"
        super().__init__(message)


class UnknownCounterpartyError(PortfolioError):
    """A transaction settles against a counterparty account that does not exist."""

    def __init__(self, account: str):
        self.account = account
        super().__init__(f"counterparty account {account!r} not found")


class MissingRateError(PortfolioError):
    """No exchange rate can be resolved for a currency."""

    def __init__(self, currency: str, reporting_currency: str, on=None):
        self.currency = currency
        self.reporting_currency = reporting_currency
        self.on = on
        where = f" on {on}" if on is not None else ""
        super().__init__(
            f"no exchange rate from {currency} to {reporting_currency}{where}"
        )


class MissingPriceError(PortfolioError):
    """No price can be resolved for a security that needs valuation."""

    def __init__(self, ticker: str, on=None):
        self.ticker = ticker
        self.on = on
        where = f" on {on}" if on is not None else ""
        super().__init__(f"no price for {ticker!r}{where}")


class InsufficientFundsError(PortfolioError):
    """A transaction would drive a cash balance negative."""


class InsufficientPositionError(PortfolioError):
    """A transaction would drive a security position negative."""


class InvalidFieldError(PortfolioError):
    """A transaction field is malformed or out of range."""


class CurrencyMismatchError(PortfolioError):
    """Arithmetic was attempted between amounts in different currencies."""


class LedgerDecodeError(PortfolioError):
    """A persisted line could not be decoded."""

    def __init__(self, filename: str, line: int, message: str):
        self.filename = filename
        self.line = line
        super().__init__(f"parse error {filename}:{line}: {message}")
