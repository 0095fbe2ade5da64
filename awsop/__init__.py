"""
aws-op: AWS authentication via 1Password.

A Python CLI utility that reads AWS access keys stored in 1Password, optionally
assumes an IAM role and completes MFA through STS, and writes short-lived
credentials to a `.credenv` file for sourcing into the shell.

Key features:
- List AWS accounts stored in 1Password
- Interactive or flag-driven account and role selection
- MFA session tokens using the item's one-time password
- Keeps the credentials file out of git automatically
"""

__version__ = "1.0.0"
__license__ = "MIT"

from .core import (
    add_to_gitignore,
    format_environment,
    resolve_session_environment,
    select_account,
    select_role,
    use_account,
    write_environment,
)
from .onepassword import fetch_item, list_accounts, parse_item, validate_credentials

__all__ = [
    # Python API
    "use_account",
    "resolve_session_environment",
    # 1Password items
    "list_accounts",
    "fetch_item",
    "parse_item",
    "validate_credentials",
    # Selection
    "select_account",
    "select_role",
    # Output
    "format_environment",
    "write_environment",
    "add_to_gitignore",
]
