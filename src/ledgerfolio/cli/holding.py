"""Holding subcommand - Display what the portfolio holds on a date."""

from datetime import date

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..errors import PortfolioError
from ..reports import holding_report
from .config import add_common_arguments, date_argument, open_journal, settings_from_args


def register_subcommand(subparsers):
    """Register the holding subcommand with the argument parser.

    Args:
        subparsers: The argparse subparsers action to add the command to.
    """
    parser = subparsers.add_parser(
        "holding",
        help="Display portfolio holdings",
        description="Display positions, cash balances and counterparty accounts on a date.",
    )
    parser.add_argument(
        "--date",
        "-d",
        type=date_argument,
        default=None,
        help="As-of date, YYYY-MM-DD or relative like -1m (default: today)",
    )
    add_common_arguments(parser)
    parser.set_defaults(func=run)


def run(args):
    """Print the holding report.

    Returns:
        int: Exit code (0 for success, 1 for errors).
    """
    try:
        settings = settings_from_args(args)
        journal = open_journal(settings)
        report = holding_report(journal, args.date or date.today(), settings.method)
    except (PortfolioError, FileNotFoundError) as e:
        print(f"Error: {e}")
        return 1

    console = Console()
    currency = report.reporting_currency

    securities_table = Table(title=f"Holdings on {report.date}")
    securities_table.add_column("Ticker", style="cyan", justify="left")
    securities_table.add_column("Id", justify="left")
    securities_table.add_column("Quantity", style="magenta", justify="right")
    securities_table.add_column("Price", justify="right")
    securities_table.add_column(f"Market Value ({currency})", style="green", justify="right")
    for holding in report.securities:
        securities_table.add_row(
            holding.ticker,
            holding.id,
            f"{holding.quantity:,f}",
            str(holding.price) if holding.price is not None else "N/A",
            f"{holding.market_value.amount:,.2f}",
        )
    console.print(securities_table)

    cash_table = Table(title="Cash Balances")
    cash_table.add_column("Currency", style="cyan", justify="left")
    cash_table.add_column("Balance", style="yellow", justify="right")
    cash_table.add_column(f"Value ({currency})", style="green", justify="right")
    for cash in report.cash:
        cash_table.add_row(cash.currency, f"{cash.balance.amount:,.2f}", f"{cash.value.amount:,.2f}")
    console.print(cash_table)

    if report.counterparties:
        accounts_table = Table(title="Counterparty Accounts")
        accounts_table.add_column("Account", style="cyan", justify="left")
        accounts_table.add_column("Balance", style="yellow", justify="right")
        accounts_table.add_column(f"Value ({currency})", style="green", justify="right")
        for account in report.counterparties:
            accounts_table.add_row(account.name, str(account.balance), f"{account.value.amount:,.2f}")
        console.print(accounts_table)

    console.print(
        Panel(
            f"[bold green]Total Portfolio Value: {report.total_value}[/bold green]",
            title="Summary",
        )
    )
    return 0
