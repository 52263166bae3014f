"""History subcommand - Display or export the portfolio value by day."""

from datetime import date

from rich.console import Console
from rich.table import Table

from ..dates import Range, parse_period
from ..reports import history_frame
from .config import add_common_arguments, date_argument, open_journal, settings_from_args


def register_subcommand(subparsers):
    """Register the history subcommand with the argument parser.

    Args:
        subparsers: The argparse subparsers action to add the command to.
    """
    parser = subparsers.add_parser(
        "history",
        help="Display portfolio value by day",
        description="Display the total portfolio value for every day of a period, "
                    "optionally exporting it to CSV or Excel.",
    )
    parser.add_argument("--date", "-d", type=date_argument, default=None, help="End date (default: today)")
    parser.add_argument("--start", "-s", type=date_argument, default=None, help="Start date of a custom range")
    parser.add_argument("--period", "-p", default="month", help="Calendar period containing the end date (default: month)")
    parser.add_argument("--output", "-o", default=None, help="Write the table to this .csv or .xlsx file")
    add_common_arguments(parser)
    parser.set_defaults(func=run)


def run(args):
    """Print or export the value history.

    Returns:
        int: Exit code (0 for success, 1 for errors).
    """
    end = args.date or date.today()
    try:
        period = Range(args.start, end) if args.start is not None else Range.of(end, parse_period(args.period))
        settings = settings_from_args(args)
        journal = open_journal(settings)
        df = history_frame(journal, period, settings.method)
    except (ValueError, FileNotFoundError) as e:
        print(f"Error: {e}")
        return 1

    if args.output:
        if args.output.lower().endswith(".xlsx"):
            df.to_excel(args.output, index=False)
        else:
            df.to_csv(args.output, index=False)
        print(f"Wrote {len(df)} rows to {args.output}")
        return 0

    console = Console()
    table = Table(title=f"Portfolio Value {period} ({settings.currency})")
    table.add_column("Date", style="cyan", justify="left")
    table.add_column("Value", style="green", justify="right")
    for row in df.itertuples(index=False):
        table.add_row(str(row.Date), f"{row.Value:,.2f}")
    console.print(table)
    return 0
