"""Tests for transactions and the Ledger: ordering, indices and queries."""

from datetime import date
from decimal import Decimal

import pytest

from ledgerfolio import ledger as ledger_module
from ledgerfolio.errors import InvalidFieldError
from ledgerfolio.ledger import Ledger, by_currency, by_security
from ledgerfolio.pricingdata import MarketData, SplitEvent
from ledgerfolio.transactions import (
    ALL,
    Accrue,
    Buy,
    Convert,
    Declare,
    Deposit,
    Dividend,
    Sell,
    Split,
    UpdatePrice,
    Withdraw,
    has_placeholder,
    referenced_tickers,
)

D = Decimal


def _sample_ledger() -> Ledger:
    o = date(2025, 1, 1)
    return Ledger([
        Declare(o, "AAPL", "US0378331005.XNAS", "USD"),
        Declare(o, "GOOG", "US38259P5089.XNAS", "USD"),
        Deposit(date(2025, 1, 5), D("10000"), "EUR"),
        Deposit(date(2025, 1, 10), D("50000"), "USD"),
        Buy(date(2025, 1, 15), "AAPL", D("100"), D("15000")),
        Sell(date(2025, 2, 1), "AAPL", D("25"), D("4000")),
        Dividend(date(2025, 2, 15), "AAPL", D("75")),
        Withdraw(date(2025, 3, 1), D("1000"), "USD"),
        Convert(date(2025, 3, 10), "USD", D("2000"), "EUR", D("1800")),
        Withdraw(date(2025, 4, 1), D("500"), "EUR"),
    ])


class TestTransactions:

    def test_when_requires_a_date(self):
        with pytest.raises(ValueError, match="has no date"):
            Deposit(None, D("1"), "USD").when()

    def test_what_is_the_persisted_command(self):
        assert UpdatePrice(date(2025, 1, 1), {"A": D("1")}).what() == "update-price"

    def test_referenced_tickers(self):
        assert referenced_tickers(Buy(date(2025, 1, 1), "AAPL", D("1"), D("1"))) == ["AAPL"]
        assert referenced_tickers(UpdatePrice(date(2025, 1, 1), {"B": D("1"), "A": D("2")})) == ["A", "B"]
        assert referenced_tickers(Deposit(date(2025, 1, 1), D("1"), "USD")) == []

    def test_placeholders(self):
        """ALL and a missing date are placeholders, a literal zero is not."""
        day = date(2025, 1, 1)
        assert has_placeholder(Sell(day, "AAPL", ALL, D("10")))
        assert has_placeholder(Withdraw(day, ALL, "USD"))
        assert has_placeholder(Convert(day, "USD", ALL, "EUR", D("1")))
        assert has_placeholder(Deposit(None, D("1"), "USD"))
        assert not has_placeholder(Withdraw(day, D("0"), "USD"))


class TestAppend:

    def test_stable_date_sort(self):
        """A late append with an earlier date lands after existing same-day items."""
        first = Deposit(date(2025, 1, 2), D("1"), "USD", memo="first")
        second = Deposit(date(2025, 1, 2), D("2"), "USD", memo="second")
        later = Deposit(date(2025, 1, 3), D("3"), "USD", memo="later")
        ledger = Ledger([first, later])

        ledger.append(second, Deposit(date(2025, 1, 1), D("0.5"), "USD", memo="earliest"))

        assert [tx.memo for tx in ledger] == ["earliest", "first", "second", "later"]

    def test_indices_follow_appends(self):
        ledger = Ledger()
        assert ledger.security("AAPL") is None

        ledger.append(
            Declare(date(2025, 1, 1), "AAPL", "US0378331005.XNAS", "USD"),
            Accrue(date(2025, 1, 2), "Alice", D("100"), "EUR", create=True),
        )

        assert ledger.security("AAPL").id == "US0378331005.XNAS"
        assert ledger.counterparty_currency("Alice") == "EUR"
        assert list(ledger.counterparties()) == ["Alice"]

    def test_append_or_update_merges_prices(self):
        day = date(2025, 1, 2)
        ledger = Ledger([UpdatePrice(day, {"AAPL": D("150")})])

        ledger.append_or_update(UpdatePrice(day, {"GOOG": D("2800"), "AAPL": D("151")}))

        assert len(ledger) == 1
        assert dict(next(ledger.transactions()).prices) == {"AAPL": D("151"), "GOOG": D("2800")}

    def test_append_or_update_replaces_same_day_split(self, capsys, monkeypatch):
        monkeypatch.setattr(ledger_module, "verbose", True)
        day = date(2025, 1, 2)
        ledger = Ledger([Split(day, "AAPL", 2, 1)])

        ledger.append_or_update(Split(day, "AAPL", 4, 1), Split(day, "GOOG", 3, 1))

        assert [(s.security, s.numerator) for s in ledger] == [("AAPL", 4), ("GOOG", 3)]
        assert "update AAPL split" in capsys.readouterr().err


class TestQueries:

    def test_cash_balance(self):
        """
        USD: 50000 - 15000 + 4000 + 75 - 1000 - 2000 = 36075
        EUR: 10000 + 1800 - 500 = 11300
        """
        ledger = _sample_ledger()
        assert ledger.cash_balance("USD", date(2025, 1, 9)).amount == 0
        assert ledger.cash_balance("USD", date(2025, 2, 15)).amount == D("39075")
        assert ledger.cash_balance("USD", date(2025, 4, 1)).amount == D("36075")
        assert ledger.cash_balance("EUR", date(2025, 4, 1)).amount == D("11300")

    def test_cash_balance_refuses_placeholders(self):
        ledger = Ledger([Withdraw(date(2025, 1, 1), ALL, "USD")])
        with pytest.raises(InvalidFieldError, match="unresolved 'all'"):
            ledger.cash_balance("USD", date(2025, 1, 1))

    def test_counterparty_account_balance(self):
        """Alice owes 300, pays back 100 through a settling deposit: 200 left."""
        ledger = Ledger([
            Accrue(date(2025, 1, 1), "Alice", D("300"), "EUR", create=True),
            Deposit(date(2025, 1, 5), D("100"), "EUR", settles="Alice"),
        ])
        assert ledger.counterparty_account_balance("Alice", date(2025, 1, 4)).amount == D("300")
        assert ledger.counterparty_account_balance("Alice", date(2025, 1, 5)).amount == D("200")

    def test_position(self):
        ledger = _sample_ledger()
        assert ledger.position("AAPL", date(2025, 1, 14)) == 0
        assert ledger.position("AAPL", date(2025, 2, 1)) == D("75")

    def test_position_is_split_adjusted(self):
        """
        Buy 10 before a 2:1 split and 5 after it.
        - before the split: 10
        - on the split day: 10 * 2 + 0 = 20
        - after the second buy: 20 + 5 = 25
        """
        ledger = Ledger([
            Declare(date(2025, 1, 1), "AAPL", "AAPL.ID", "USD"),
            Buy(date(2025, 1, 2), "AAPL", D("10"), D("1000")),
            Split(date(2025, 1, 10), "AAPL", 2, 1),
            Buy(date(2025, 1, 12), "AAPL", D("5"), D("250")),
        ])
        assert ledger.position("AAPL", date(2025, 1, 9)) == D("10")
        assert ledger.position("AAPL", date(2025, 1, 10)) == D("20")
        assert ledger.position("AAPL", date(2025, 1, 12)) == D("25")

    def test_market_splits_skipped_when_split_adjusted(self):
        ledger = Ledger([
            Declare(date(2025, 1, 1), "AAPL", "AAPL.ID", "USD"),
            Buy(date(2025, 1, 2), "AAPL", D("10"), D("1000")),
        ])
        market = MarketData()
        market.add_split("AAPL.ID", SplitEvent(date(2025, 1, 10), 3, 1))
        adjusted = MarketData(split_adjusted=True)
        adjusted.add_split("AAPL.ID", SplitEvent(date(2025, 1, 10), 3, 1))

        assert ledger.position("AAPL", date(2025, 2, 1), market) == D("30")
        assert ledger.position("AAPL", date(2025, 2, 1), adjusted) == D("10")

    def test_dates(self):
        ledger = _sample_ledger()
        assert ledger.oldest_transaction_date() == date(2025, 1, 1)
        assert ledger.newest_transaction_date() == date(2025, 4, 1)
        assert ledger.inception_date("AAPL") == date(2025, 1, 1)
        assert ledger.last_known_market_data_date("AAPL") is None
        assert Ledger().oldest_transaction_date() is None

    def test_currencies(self):
        assert list(_sample_ledger().currencies()) == ["EUR", "USD"]


class TestFilters:

    def test_no_filter_yields_everything(self):
        ledger = _sample_ledger()
        assert len(list(ledger.transactions())) == len(ledger)

    def test_by_security(self):
        ledger = _sample_ledger()
        kinds = [tx.what() for tx in ledger.transactions(by_security("AAPL"))]
        assert kinds == ["declare", "buy", "sell", "dividend"]

    def test_filters_are_or_combined(self):
        ledger = _sample_ledger()
        found = list(ledger.transactions(by_security("GOOG"), by_currency(ledger, "EUR")))
        assert [tx.what() for tx in found] == ["declare", "deposit", "convert", "withdraw"]

    def test_generator_can_stop_early(self):
        ledger = _sample_ledger()
        first = next(ledger.transactions(lambda tx: isinstance(tx, Buy)))
        assert first.security == "AAPL"
