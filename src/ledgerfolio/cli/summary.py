"""Summary subcommand - Display portfolio value and period-to-date returns."""

from datetime import date

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..errors import PortfolioError
from ..reports import summary_report
from .config import add_common_arguments, date_argument, open_journal, settings_from_args


def register_subcommand(subparsers):
    """Register the summary subcommand with the argument parser.

    Args:
        subparsers: The argparse subparsers action to add the command to.
    """
    parser = subparsers.add_parser(
        "summary",
        help="Display portfolio performance summary",
        description="Display the total value and the time-weighted returns for the day, "
                    "week, month, quarter and year to date, and since inception.",
    )
    parser.add_argument(
        "--date",
        "-d",
        type=date_argument,
        default=None,
        help="As-of date (default: today)",
    )
    add_common_arguments(parser)
    parser.set_defaults(func=run)


def _format_return(value) -> str:
    percent = value * 100
    if percent >= 0:
        return f"[green]+{percent:.2f}%[/green]"
    return f"[red]{percent:.2f}%[/red]"


def run(args):
    """Print the summary report.

    Returns:
        int: Exit code (0 for success, 1 for errors).
    """
    try:
        settings = settings_from_args(args)
        journal = open_journal(settings)
        summary = summary_report(journal, args.date or date.today())
    except (PortfolioError, FileNotFoundError) as e:
        print(f"Error: {e}")
        return 1

    console = Console()
    table = Table(title=f"Performance on {summary.date}")
    table.add_column("Period", style="cyan", justify="left")
    table.add_column(f"Start ({summary.reporting_currency})", style="yellow", justify="right")
    table.add_column(f"End ({summary.reporting_currency})", style="green", justify="right")
    table.add_column("Return", justify="right")
    for label, performance in summary.periods():
        table.add_row(
            label,
            f"{performance.start.amount:,.2f}",
            f"{performance.end.amount:,.2f}",
            _format_return(performance.returns),
        )
    console.print(table)
    console.print(
        Panel(
            f"[bold green]Total Portfolio Value: {summary.total_value}[/bold green]",
            title="Summary",
        )
    )
    return 0
