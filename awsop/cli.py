"""
Command-line interface for aws-op.
"""

import argparse
import sys

from . import __version__
from .config import OUTPUT_FILENAME
from .core import use_account
from .exceptions import AWSCallFailed, AwsOpError, SelectionCancelled
from .onepassword import list_accounts


def cmd_list(args):
    """Print the title of every AWS account in 1Password."""
    for account in list_accounts():
        print(account["title"])
    return 0


def cmd_use(args):
    """Log in to an account and write its credentials to .credenv."""
    try:
        output_path = use_account(
            account_id=args.account,
            role_name=args.role,
            dry_run=args.dry_run,
        )
    except AWSCallFailed as e:
        if e.operation == "GetSessionToken":
            # The AWS error text is what the user needs here (e.g. a stale MFA code)
            print(e.details, file=sys.stderr)
            return 1
        raise

    if output_path is None:
        return 0

    print(f"Credentials written to {OUTPUT_FILENAME}")
    print(f"Run `source {OUTPUT_FILENAME} && rm {OUTPUT_FILENAME}` to use the credentials")
    return 0


def build_parser():
    parser = argparse.ArgumentParser(
        prog="aws-op",
        description="CLI tool for managing AWS authentication via 1Password",
        epilog="Examples:\n"
        "  aws-op list                                  # List AWS accounts in 1Password\n"
        "  aws-op use                                   # Pick account and role interactively\n"
        "  aws-op use --account <item-id> --role Admin  # Non-interactive login\n"
        "  source .credenv && rm .credenv               # Load the credentials into your shell",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    list_parser = subparsers.add_parser("list", help="List all AWS accounts")
    list_parser.set_defaults(func=cmd_list)

    use_parser = subparsers.add_parser("use", help="Login to an AWS account")
    use_parser.add_argument(
        "-a",
        "--account",
        metavar="ACCOUNT",
        default=None,
        help="1Password item ID (prompts for the account if omitted)",
    )
    use_parser.add_argument(
        "-r",
        "--role",
        metavar="ROLE",
        default=None,
        help="AWS role to assume, by its label in the item's Roles section. "
        "Use 'None' to skip role assumption (prompts if omitted and the item has roles)",
    )
    use_parser.add_argument(
        "-d",
        "--dry-run",
        action="store_true",
        help="Print actions without creating sessions or writing .credenv",
    )
    use_parser.set_defaults(func=cmd_use)

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        return args.func(args)
    except SelectionCancelled as e:
        print(f"\n{e}", file=sys.stderr)
        return 130
    except AWSCallFailed as e:
        print(f"Error: {e}", file=sys.stderr)
        print(f"Details: {e.details}", file=sys.stderr)
        return 1
    except AwsOpError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
