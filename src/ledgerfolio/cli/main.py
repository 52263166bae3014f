#!/usr/bin/env python3
"""Main entry point for the ledgerfolio CLI."""

import argparse
import sys

LEDGERFOLIO_BANNER = """
 ledgerfolio: portfolio accounting from a plain-text ledger
"""


def main():
    """Parse CLI arguments and dispatch to the appropriate subcommand.

    Returns:
        int: Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="ledgerfolio",
        description="ledgerfolio - portfolio accounting from a plain-text ledger",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ledgerfolio deposit 10000 EUR                 Record a cash deposit today
  ledgerfolio declare AAPL US0378331005 USD     Declare a security
  ledgerfolio sell AAPL 1500 -d 2025-03-14      Sell the whole AAPL position
  ledgerfolio holding -c USD                    Display holdings valued in USD
  ledgerfolio gains -p quarter -m average       Quarter-to-date gains at average cost
        """,
    )

    subparsers = parser.add_subparsers(
        title="commands",
        dest="command",
        help="Available commands",
    )

    # Import subcommand modules and register them
    from .holding import register_subcommand as register_holding
    from .summary import register_subcommand as register_summary
    from .gains import register_subcommand as register_gains
    from .history import register_subcommand as register_history
    from .fmt import register_subcommand as register_fmt
    from .record import register_subcommand as register_record
    from .version import register_subcommand as register_version

    register_holding(subparsers)
    register_summary(subparsers)
    register_gains(subparsers)
    register_history(subparsers)
    register_fmt(subparsers)
    register_record(subparsers)
    register_version(subparsers)

    # Parse arguments
    args = parser.parse_args()

    # If no command specified, show help
    if args.command is None:
        print(LEDGERFOLIO_BANNER)
        parser.print_help()
        return 0

    # Run the appropriate command
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
