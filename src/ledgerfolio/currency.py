import re
from dataclasses import dataclass
from decimal import Decimal

from .errors import CurrencyMismatchError, InvalidFieldError

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")
_CURRENCY_PAIR_RE = re.compile(r"^[A-Z]{6}$")


def validate_currency(code: str) -> str:
    """Check that a currency code is three uppercase letters.

    Args:
        code: The ISO 4217 style code, e.g. "USD".

    Returns:
        The code, unchanged.

    Raises:
        InvalidFieldError: If the code is not exactly three uppercase letters.
    """
    if not isinstance(code, str) or not _CURRENCY_RE.match(code):
        raise InvalidFieldError(f"invalid currency {code!r}: must be 3 uppercase letters")
    return code


def currency_pair(base: str, quote: str) -> str:
    """Build the security id of a currency pair, e.g. ``("EUR", "USD") -> "EURUSD"``.

    The price of such a security is the value of one ``base`` in ``quote``.
    """
    validate_currency(base)
    validate_currency(quote)
    return base + quote


def split_currency_pair(security_id: str) -> tuple[str, str] | None:
    """Return ``(base, quote)`` if ``security_id`` is a currency pair, else None."""
    if not _CURRENCY_PAIR_RE.match(security_id):
        return None
    return security_id[:3], security_id[3:]


def _pick_currency(a: "Money", b: "Money") -> str:
    # An empty currency is weak and adopts the other one.
    if not a.currency:
        return b.currency
    if not b.currency or a.currency == b.currency:
        return a.currency
    raise CurrencyMismatchError(f"currency mismatch: {a.currency} != {b.currency}")


@dataclass(frozen=True)
class Money:
    """An exact decimal amount in a currency."""

    amount: Decimal = Decimal(0)
    currency: str = ""

    @classmethod
    def zero(cls, currency: str = "") -> "Money":
        return cls(Decimal(0), currency)

    def __add__(self, other: "Money") -> "Money":
        return Money(self.amount + other.amount, _pick_currency(self, other))

    def __sub__(self, other: "Money") -> "Money":
        return Money(self.amount - other.amount, _pick_currency(self, other))

    def __neg__(self) -> "Money":
        return Money(-self.amount, self.currency)

    def __mul__(self, factor: Decimal) -> "Money":
        return Money(self.amount * factor, self.currency)

    __rmul__ = __mul__

    def __truediv__(self, divisor: Decimal) -> "Money":
        return Money(self.amount / divisor, self.currency)

    def __lt__(self, other: "Money") -> bool:
        _pick_currency(self, other)
        return self.amount < other.amount

    def __le__(self, other: "Money") -> bool:
        _pick_currency(self, other)
        return self.amount <= other.amount

    def __gt__(self, other: "Money") -> bool:
        _pick_currency(self, other)
        return self.amount > other.amount

    def __ge__(self, other: "Money") -> bool:
        _pick_currency(self, other)
        return self.amount >= other.amount

    def is_zero(self) -> bool:
        return self.amount == 0

    def is_positive(self) -> bool:
        return self.amount > 0

    def is_negative(self) -> bool:
        return self.amount < 0

    def __str__(self) -> str:
        return f"{self.amount:,.2f} {self.currency}".strip()
