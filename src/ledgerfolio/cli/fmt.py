"""Fmt subcommand - Rewrite the ledger in canonical form."""

from ..codec import encode_ledger, load_ledger, save_ledger
from ..errors import PortfolioError
from .config import add_common_arguments, settings_from_args


def register_subcommand(subparsers):
    """Register the fmt subcommand with the argument parser.

    Args:
        subparsers: The argparse subparsers action to add the command to.
    """
    parser = subparsers.add_parser(
        "fmt",
        help="Format the ledger file",
        description="Sort the ledger by date and rewrite every line with the canonical key order.",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only report whether the file is already formatted",
    )
    add_common_arguments(parser)
    parser.set_defaults(func=run)


def run(args):
    """Rewrite the ledger, or check it with --check.

    Returns:
        int: Exit code (0 when formatted, 1 for errors or with --check on an unformatted file).
    """
    try:
        settings = settings_from_args(args)
        ledger = load_ledger(settings.ledger)
        with open(settings.ledger, encoding="utf-8") as f:
            original = f.read()
    except (PortfolioError, FileNotFoundError) as e:
        print(f"Error: {e}")
        return 1

    formatted = encode_ledger(ledger)
    if formatted == original:
        print(f"{settings.ledger} is already formatted")
        return 0
    if args.check:
        print(f"{settings.ledger} is not formatted")
        return 1

    save_ledger(ledger, settings.ledger)
    print(f"Formatted {settings.ledger} ({len(ledger)} transactions)")
    return 0
