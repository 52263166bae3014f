"""Gains subcommand - Display realized and unrealized gains over a period."""

from datetime import date

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..dates import Range, parse_period
from ..reports import gains_report
from .config import add_common_arguments, date_argument, open_journal, settings_from_args


def register_subcommand(subparsers):
    """Register the gains subcommand with the argument parser.

    Args:
        subparsers: The argparse subparsers action to add the command to.
    """
    parser = subparsers.add_parser(
        "gains",
        help="Display capital gains over a period",
        description="Display realized gains and the change in unrealized gains per security. "
                    "Use --period for a calendar period containing --date, or --start for a custom range.",
    )
    parser.add_argument("--date", "-d", type=date_argument, default=None, help="End date (default: today)")
    parser.add_argument("--start", "-s", type=date_argument, default=None, help="Start date of a custom range")
    parser.add_argument(
        "--period",
        "-p",
        default="month",
        help="Calendar period containing the end date: day, week, month, quarter or year (default: month)",
    )
    add_common_arguments(parser)
    parser.set_defaults(func=run)


def run(args):
    """Print the gains report.

    Returns:
        int: Exit code (0 for success, 1 for errors).
    """
    end = args.date or date.today()
    try:
        if args.start is not None:
            period = Range(args.start, end)
        else:
            period = Range.of(end, parse_period(args.period))
        settings = settings_from_args(args)
        journal = open_journal(settings)
        report = gains_report(journal, period, settings.method)
    except (ValueError, FileNotFoundError) as e:
        print(f"Error: {e}")
        return 1

    console = Console()
    currency = report.reporting_currency
    table = Table(title=f"Gains {report.range} ({report.method.value})")
    table.add_column("Security", style="cyan", justify="left")
    table.add_column("Quantity", style="magenta", justify="right")
    table.add_column(f"Cost Basis ({currency})", style="yellow", justify="right")
    table.add_column(f"Market Value ({currency})", style="green", justify="right")
    table.add_column("Realized", justify="right")
    table.add_column("Unrealized", justify="right")
    table.add_column("Total", justify="right")
    for row in report.securities:
        table.add_row(
            row.security,
            f"{row.quantity:,f}",
            f"{row.cost_basis.amount:,.2f}",
            f"{row.market_value.amount:,.2f}",
            f"{row.realized.amount:,.2f}",
            f"{row.unrealized.amount:,.2f}",
            f"{row.total.amount:,.2f}",
        )
    console.print(table)

    style = "green" if report.total.amount >= 0 else "red"
    console.print(
        Panel(
            f"Realized: {report.realized}\nUnrealized: {report.unrealized}\n"
            f"[bold {style}]Total: {report.total}[/bold {style}]",
            title="Gains",
        )
    )
    return 0
