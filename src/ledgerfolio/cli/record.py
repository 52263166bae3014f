"""Transaction subcommands - Validate a transaction and append it to the ledger.

One subcommand per transaction kind: buy, sell, dividend, deposit,
withdraw, convert, declare, accrue, update-price and split. Amounts left
out where "all" is allowed are resolved against the ledger at validation.
"""

import argparse

from ..codec import encode_transaction, save_ledger
from ..errors import PortfolioError
from ..transactions import (
    ALL,
    Accrue,
    Buy,
    Convert,
    Declare,
    Deposit,
    Dividend,
    Sell,
    Split,
    Transaction,
    UpdatePrice,
    Withdraw,
)
from ..validation import Validator
from .config import (
    add_common_arguments,
    date_argument,
    decimal_argument,
    load_market,
    open_ledger,
    settings_from_args,
)


def _price_argument(text: str):
    ticker, sep, price = text.partition("=")
    if not sep or not ticker:
        raise argparse.ArgumentTypeError(f"expected TICKER=PRICE, got {text!r}")
    return ticker, decimal_argument(price)


def _build(args) -> Transaction:
    day, memo = args.date, args.memo
    match args.command:
        case "buy":
            return Buy(day, args.security, args.quantity, args.amount, args.trade_currency, memo=memo)
        case "sell":
            quantity = ALL if args.quantity is None else args.quantity
            return Sell(day, args.security, quantity, args.amount, args.trade_currency, memo=memo)
        case "dividend":
            return Dividend(day, args.security, args.amount, args.trade_currency, memo=memo)
        case "deposit":
            return Deposit(day, args.amount, args.cash_currency, args.settles, memo=memo)
        case "withdraw":
            amount = ALL if args.amount is None else args.amount
            return Withdraw(day, amount, args.cash_currency, args.settles, memo=memo)
        case "convert":
            from_amount = ALL if args.from_amount is None else args.from_amount
            return Convert(day, args.from_currency, from_amount, args.to_currency, args.to_amount, memo=memo)
        case "declare":
            return Declare(day, args.ticker, args.id, args.cash_currency, memo=memo)
        case "accrue":
            return Accrue(day, args.counterparty, args.amount, args.cash_currency, args.create, memo=memo)
        case "update-price":
            return UpdatePrice(day, dict(sorted(args.price_updates)), memo=memo)
        case "split":
            return Split(day, args.security, args.num, args.den, memo=memo)
    raise ValueError(f"unknown transaction command {args.command!r}")


def _add_parser(subparsers, name: str, help: str):
    parser = subparsers.add_parser(name, help=help, description=help)
    parser.add_argument(
        "--date",
        "-d",
        type=date_argument,
        default=None,
        help="Transaction date, YYYY-MM-DD or relative like -2d (default: today)",
    )
    parser.add_argument("--memo", default="", help="Free text note")
    parser.add_argument("--dry-run", action="store_true", help="Validate and print, but do not write")
    add_common_arguments(parser)
    parser.set_defaults(func=run)
    return parser


def register_subcommand(subparsers):
    """Register every transaction subcommand with the argument parser.

    Args:
        subparsers: The argparse subparsers action to add the commands to.
    """
    number = decimal_argument
    trade_currency = dict(dest="trade_currency", default=None, help="Trade currency (default: the security's)")

    p = _add_parser(subparsers, "buy", "Record a purchase")
    p.add_argument("security", help="Ticker")
    p.add_argument("quantity", type=number, help="Units bought")
    p.add_argument("amount", type=number, help="Total cost")
    p.add_argument("--trade-currency", **trade_currency)

    p = _add_parser(subparsers, "sell", "Record a sale")
    p.add_argument("security", help="Ticker")
    p.add_argument("amount", type=number, help="Total proceeds")
    p.add_argument("--quantity", "-q", type=number, default=None, help="Units sold (default: the whole position)")
    p.add_argument("--trade-currency", **trade_currency)

    p = _add_parser(subparsers, "dividend", "Record a cash dividend")
    p.add_argument("security", help="Ticker")
    p.add_argument("amount", type=number, help="Total amount received")
    p.add_argument("--trade-currency", **trade_currency)

    p = _add_parser(subparsers, "deposit", "Record cash coming in")
    p.add_argument("amount", type=number)
    p.add_argument("cash_currency", metavar="currency")
    p.add_argument("--settles", default="", help="Counterparty account this deposit settles")

    p = _add_parser(subparsers, "withdraw", "Record cash going out")
    p.add_argument("cash_currency", metavar="currency")
    p.add_argument("--amount", "-a", type=number, default=None, help="Amount (default: the whole balance)")
    p.add_argument("--settles", default="", help="Counterparty account this withdrawal settles")

    p = _add_parser(subparsers, "convert", "Record a currency conversion")
    p.add_argument("from_currency")
    p.add_argument("to_currency")
    p.add_argument("to_amount", type=number, help="Amount received")
    p.add_argument("--from-amount", type=number, default=None, help="Amount given (default: the whole balance)")

    p = _add_parser(subparsers, "declare", "Declare a security under a ticker")
    p.add_argument("ticker")
    p.add_argument("id", help="Global security id, e.g. an ISIN or a currency pair like EURUSD")
    p.add_argument("cash_currency", metavar="currency")

    p = _add_parser(subparsers, "accrue", "Record a receivable (positive) or payable (negative)")
    p.add_argument("counterparty")
    p.add_argument("amount", type=number)
    p.add_argument("cash_currency", metavar="currency")
    p.add_argument("--create", action="store_true", help="Open the counterparty account")

    p = _add_parser(subparsers, "update-price", "Record market prices")
    p.add_argument("price_updates", nargs="+", type=_price_argument, metavar="TICKER=PRICE")

    p = _add_parser(subparsers, "split", "Record a stock split")
    p.add_argument("security", help="Ticker")
    p.add_argument("num", type=int, help="New units")
    p.add_argument("den", type=int, help="Old units")


def run(args):
    """Validate the transaction described by ``args`` and append it to the ledger.

    Returns:
        int: Exit code (0 for success, 1 when the transaction is rejected).
    """
    try:
        settings = settings_from_args(args)
        ledger = open_ledger(settings)
        validator = Validator(ledger, load_market(settings), settings.currency, settings.method)
        tx = validator.validate(_build(args))
    except (PortfolioError, FileNotFoundError) as e:
        print(f"Error: {e}")
        return 1

    print(encode_transaction(tx))
    if args.dry_run:
        return 0
    ledger.append_or_update(tx)
    save_ledger(ledger, settings.ledger)
    return 0
