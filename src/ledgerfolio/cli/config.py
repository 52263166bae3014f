"""Shared settings and loaders for the ledgerfolio subcommands."""

import argparse
import os
import warnings
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from dotenv import load_dotenv

load_dotenv()

from .. import ledger as ledger_module
from .. import pricingdata
from ..balance import CostBasisMethod, parse_cost_basis_method
from ..codec import load_ledger
from ..dates import parse_date
from ..journal import Journal
from ..ledger import Ledger
from ..pricingdata import MarketData, load_prices, load_securities

DEFAULT_LEDGER = "transactions.jsonl"
DEFAULT_SECURITIES = "securities.jsonl"
DEFAULT_CURRENCY = "EUR"
DEFAULT_METHOD = "fifo"


@dataclass
class Settings:
    """Where the data lives and how to report on it."""
    ledger: str
    securities: str
    prices: str | None
    currency: str
    method: CostBasisMethod


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    """Add the data-location and reporting options every subcommand accepts.

    Defaults come from the ``LEDGERFOLIO_*`` environment variables, which
    may be set in a ``.env`` file.
    """
    parser.add_argument(
        "--ledger",
        "-l",
        default=os.getenv("LEDGERFOLIO_LEDGER", DEFAULT_LEDGER),
        help=f"Path to the JSONL ledger (default: $LEDGERFOLIO_LEDGER or {DEFAULT_LEDGER})",
    )
    parser.add_argument(
        "--securities",
        default=os.getenv("LEDGERFOLIO_SECURITIES", DEFAULT_SECURITIES),
        help=f"Path to the securities file (default: $LEDGERFOLIO_SECURITIES or {DEFAULT_SECURITIES})",
    )
    parser.add_argument(
        "--prices",
        default=os.getenv("LEDGERFOLIO_PRICES"),
        help="CSV or XLSX price table with a Date column and one column per security id",
    )
    parser.add_argument(
        "--currency",
        "-c",
        default=os.getenv("LEDGERFOLIO_CURRENCY", DEFAULT_CURRENCY),
        help=f"Reporting currency (default: $LEDGERFOLIO_CURRENCY or {DEFAULT_CURRENCY})",
    )
    parser.add_argument(
        "--method",
        "-m",
        default=os.getenv("LEDGERFOLIO_METHOD", DEFAULT_METHOD),
        help=f"Cost basis method, 'average' or 'fifo' (default: $LEDGERFOLIO_METHOD or {DEFAULT_METHOD})",
    )
    parser.add_argument(
        "--ignore-errors",
        action="store_true",
        help="Silence data-quality warnings",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Print loading and merge details on stderr",
    )


def settings_from_args(args: argparse.Namespace) -> Settings:
    """Apply the common options and return the resulting settings.

    Raises:
        InvalidFieldError: If the method is unknown.
    """
    if args.ignore_errors:
        warnings.filterwarnings("ignore", category=UserWarning)
    if args.verbose:
        ledger_module.verbose = True
        pricingdata.verbose = True
    return Settings(
        ledger=args.ledger,
        securities=args.securities,
        prices=args.prices,
        currency=args.currency.upper(),
        method=parse_cost_basis_method(args.method),
    )


def load_market(settings: Settings) -> MarketData:
    """Load the securities file and, if configured, the price table."""
    market = load_securities(settings.securities)
    if settings.prices:
        load_prices(market, settings.prices)
    return market


def open_journal(settings: Settings) -> Journal:
    """Load ledger and market data and bind them in a strict Journal."""
    ledger = load_ledger(settings.ledger)
    return Journal(ledger, load_market(settings), settings.currency)


def open_ledger(settings: Settings) -> Ledger:
    return load_ledger(settings.ledger, create_if_missing=True)


def decimal_argument(text: str) -> Decimal:
    """argparse type for exact decimal amounts."""
    try:
        return Decimal(text)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"invalid number: {text!r}") from None


def date_argument(text: str):
    """argparse type accepting the same dates as the ledger, plus relative forms."""
    try:
        return parse_date(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None
