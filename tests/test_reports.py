"""Tests for the holding, gains, summary and history reports."""

from datetime import date
from decimal import Decimal

import pytest

from ledgerfolio.balance import CostBasisMethod
from ledgerfolio.currency import Money
from ledgerfolio.dates import Period, Range
from ledgerfolio.journal import Journal
from ledgerfolio.ledger import Ledger
from ledgerfolio.reports import (
    gains_report,
    history_frame,
    holding_report,
    portfolio_value_by_day,
    summary_report,
)
from ledgerfolio.transactions import Buy, Declare, Deposit, Sell, UpdatePrice

D = Decimal


@pytest.fixture
def journal() -> Journal:
    """
    Deposit 20000 EUR on Jan 1.
    Jan 2: buy 100 X for 10000 and 10 Y for 1000, both priced 100.
    Jan 31: X is 110.
    Feb 10: sell the 10 Y for 1200.
    """
    ledger = Ledger([
        Declare(date(2025, 1, 1), "X", "X.ID", "EUR"),
        Declare(date(2025, 1, 1), "Y", "Y.ID", "EUR"),
        Deposit(date(2025, 1, 1), D("20000"), "EUR"),
        Buy(date(2025, 1, 2), "X", D("100"), D("10000")),
        Buy(date(2025, 1, 2), "Y", D("10"), D("1000")),
        UpdatePrice(date(2025, 1, 2), {"X": D("100"), "Y": D("100")}),
        UpdatePrice(date(2025, 1, 31), {"X": D("110")}),
        Sell(date(2025, 2, 10), "Y", D("10"), D("1200")),
    ])
    return Journal(ledger, reporting_currency="EUR")


class TestHolding:

    def test_holding(self, journal):
        """Cash: 20000 - 10000 - 1000 + 1200 = 10200. Total: 11000 + 10200 = 21200."""
        report = holding_report(journal, date(2025, 2, 28))

        assert [h.ticker for h in report.securities] == ["X"]
        x = report.securities[0]
        assert x.quantity == D("100")
        assert x.price == Money(D("110"), "EUR")
        assert x.market_value == Money(D("11000"), "EUR")
        assert [(c.currency, c.balance.amount) for c in report.cash] == [("EUR", D("10200"))]
        assert report.counterparties == []
        assert report.total_value == Money(D("21200"), "EUR")


class TestGains:

    def test_january(self, journal):
        """X gained 10 * 100 = 1000 unrealized; Y is flat and left out."""
        report = gains_report(journal, Range.of(date(2025, 1, 15), Period.MONTHLY))

        assert [row.security for row in report.securities] == ["X"]
        assert report.securities[0].unrealized == Money(D("1000"), "EUR")
        assert report.realized == Money(D("0"), "EUR")
        assert report.total == Money(D("1000"), "EUR")

    def test_unchanged_security_has_no_row(self, journal):
        """
        In February X neither trades nor moves: no row.
        Y realizes 1200 - 1000 = 200 and its unrealized gain stays 0.
        """
        report = gains_report(journal, Range.of(date(2025, 2, 1), Period.MONTHLY), CostBasisMethod.AVERAGE_COST)

        assert [row.security for row in report.securities] == ["Y"]
        y = report.securities[0]
        assert y.realized == Money(D("200"), "EUR")
        assert y.unrealized.is_zero()
        assert y.quantity == 0
        assert report.total == Money(D("200"), "EUR")

    def test_quiet_period_is_empty(self, journal):
        report = gains_report(journal, Range(date(2025, 3, 1), date(2025, 3, 31)))
        assert report.securities == []
        assert report.total.is_zero()


class TestSummary:

    def test_summary(self, journal):
        """
        The only external flow is the 20000 deposit.
        - Feb 28: 21200, index 21200 / 20000 = 1.06
        - Jan 31: 11000 + 1000 + 9000 = 21000, index 1.05
        """
        summary = summary_report(journal, date(2025, 2, 28))

        assert summary.total_value == Money(D("21200"), "EUR")
        assert summary.daily.returns == 0
        assert summary.mtd.start == Money(D("21000"), "EUR")
        assert summary.mtd.returns == D("1.06") / D("1.05") - 1
        assert summary.ytd.returns == D("0.06")
        assert summary.inception.returns == D("0.06")
        assert summary.inception.start.is_zero()
        assert summary.ytd.percent == D("6.00")
        assert [label for label, _ in summary.periods()] == ["Daily", "WTD", "MTD", "QTD", "YTD", "Inception"]


class TestHistory:

    def test_value_by_day(self, journal):
        values = portfolio_value_by_day(journal, Range(date(2025, 1, 30), date(2025, 2, 1)))
        assert values == {
            date(2025, 1, 30): D("20000"),
            date(2025, 1, 31): D("21000"),
            date(2025, 2, 1): D("21000"),
        }

    def test_defaults_to_ledger_span(self, journal):
        values = portfolio_value_by_day(journal)
        assert min(values) == date(2025, 1, 1)
        assert max(values) == date(2025, 2, 10)

    def test_frame(self, journal):
        df = history_frame(journal, Range(date(2025, 1, 30), date(2025, 1, 31)))
        assert list(df.columns) == ["Date", "Value"]
        assert df["Value"].tolist() == [D("20000"), D("21000")]

    def test_empty_ledger(self):
        assert portfolio_value_by_day(Journal(Ledger(), reporting_currency="EUR")) == {}
