"""Tests for currency codes, currency pairs and Money arithmetic."""

from decimal import Decimal

import pytest

from ledgerfolio.currency import Money, currency_pair, split_currency_pair, validate_currency
from ledgerfolio.errors import CurrencyMismatchError, InvalidFieldError


@pytest.mark.parametrize("code", ["USD", "EUR", "GBP"])
def test_validate_currency_accepts_iso_codes(code):
    assert validate_currency(code) == code


@pytest.mark.parametrize("code", ["usd", "US", "USDT", "", "U5D"])
def test_validate_currency_rejects_malformed(code):
    with pytest.raises(InvalidFieldError, match="3 uppercase letters"):
        validate_currency(code)


def test_currency_pair():
    assert currency_pair("EUR", "USD") == "EURUSD"
    assert split_currency_pair("EURUSD") == ("EUR", "USD")
    assert split_currency_pair("US0378331005") is None


def test_money_addition():
    """10.50 USD + 2.25 USD = 12.75 USD"""
    total = Money(Decimal("10.50"), "USD") + Money(Decimal("2.25"), "USD")
    assert total == Money(Decimal("12.75"), "USD")


def test_money_weak_currency_adopts_other():
    """A zero Money with no currency takes the currency of the other operand."""
    total = Money() + Money(Decimal("5"), "EUR")
    assert total.currency == "EUR"
    assert (Money(Decimal("5"), "EUR") - Money()).currency == "EUR"


def test_money_mismatch_raises():
    with pytest.raises(CurrencyMismatchError, match="USD != EUR"):
        Money(Decimal("1"), "USD") + Money(Decimal("1"), "EUR")
    with pytest.raises(CurrencyMismatchError):
        Money(Decimal("1"), "USD") < Money(Decimal("2"), "EUR")


def test_money_scaling_and_sign():
    m = Money(Decimal("10"), "USD")
    assert m * Decimal("3") == Money(Decimal("30"), "USD")
    assert Decimal("3") * m == Money(Decimal("30"), "USD")
    assert m / Decimal("4") == Money(Decimal("2.5"), "USD")
    assert -m == Money(Decimal("-10"), "USD")
    assert (-m).is_negative()
    assert m.is_positive()
    assert Money.zero("USD").is_zero()


def test_money_comparisons():
    assert Money(Decimal("1"), "USD") < Money(Decimal("2"), "USD")
    assert Money(Decimal("2"), "USD") >= Money(Decimal("2"), "USD")


def test_money_str():
    assert str(Money(Decimal("1234.5"), "USD")) == "1,234.50 USD"
