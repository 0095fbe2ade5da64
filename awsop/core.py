"""
Core logic for aws-op: resolving a 1Password item into AWS session
credentials and writing them out for the shell.
"""

import os
import shlex
import sys
from pathlib import Path

from . import onepassword, sts
from .config import GITIGNORE_FILENAME, OUTPUT_FILENAME, get_item_tag
from .exceptions import AccountNotFound, RoleNotFound
from .prompt import choose

NO_ROLE_LABEL = "None"


def select_account(accounts, account_id=None, chooser=None):
    """
    Pick the account to log in to.

    Args:
        accounts: Accounts from onepassword.list_accounts()
        account_id: 1Password item id given on the command line, if any
        chooser: Prompt function, defaults to prompt.choose

    Returns:
        The selected account dict

    Raises:
        AccountNotFound: If account_id matches no account, or there are
                         no accounts to choose from
    """
    if account_id is not None:
        for account in accounts:
            if account["id"] == account_id:
                return account
        raise AccountNotFound(f"Account {account_id} not found")

    if not accounts:
        raise AccountNotFound(f"No AWS accounts found in 1Password (items tagged '{get_item_tag()}')")

    chooser = chooser or choose
    return chooser(
        "Which account do you want to use?",
        [{"label": account["title"], "value": account} for account in accounts],
    )


def select_role(item, role_name=None, chooser=None):
    """
    Pick the IAM role to assume, if any.

    Items without a Roles section never assume a role, so role_name is
    ignored for them. Otherwise role_name must match a role label exactly,
    and the name "None" explicitly selects no role.

    Returns:
        Role dict with label and value (role ARN), or None for no role

    Raises:
        RoleNotFound: If the item has roles and role_name matches none of them
    """
    if not item.get("has_roles"):
        return None

    choices = [{"label": NO_ROLE_LABEL, "value": None}]
    choices += [{"label": role["label"], "value": role} for role in item["roles"]]

    if role_name is not None:
        for choice in choices:
            if choice["label"] == role_name:
                return choice["value"]
        available = ", ".join(choice["label"] for choice in choices)
        raise RoleNotFound(f"Role '{role_name}' not found on '{item['title']}' (available: {available})")

    chooser = chooser or choose
    return chooser("Which role do you want to use?", choices)


def _apply_temporary_credentials(env, credentials):
    env["AWS_ACCESS_KEY_ID"] = credentials["AccessKeyId"]
    env["AWS_SECRET_ACCESS_KEY"] = credentials["SecretAccessKey"]
    env["AWS_SESSION_TOKEN"] = credentials["SessionToken"]


def resolve_session_environment(account, item, role=None, dry_run=False):
    """
    Turn a validated credential item into the environment to export.

    Steps run in order and any failure aborts the whole resolution:
    1. Seed the item's long-lived access key
    2. Look up the caller identity with it
    3. Assume the selected role (MFA-protected), if any
    4. Otherwise, if the item has MFA, get an MFA session token

    With dry_run, steps 3 and 4 only report what they would do and the
    long-lived key stays in the environment.

    Args:
        account: Selected account dict
        item: Validated credential item
        role: Selected role dict, or None
        dry_run: Skip STS calls that create sessions

    Returns:
        dict of environment variable name to value, in output order
    """
    env = {}
    env["AWS_OP_ID"] = account["id"]
    env["AWS_ACCESS_KEY_ID"] = item["aws_key"]
    env["AWS_SECRET_ACCESS_KEY"] = item["aws_secret"]

    identity = sts.get_caller_identity(env)

    env["AWS_ACCOUNT_ID"] = identity["Account"]
    if item.get("mfa_serial"):
        env["AWS_MFA_DEVICE_ARN"] = item["mfa_serial"]
    env["AWS_VAULT"] = account["title"]

    has_session = False

    if role is not None:
        session_name = sts.role_session_name(identity["Arn"], role["label"])
        if dry_run:
            print(
                f"ℹ Dry run: would assume role {role['value']} as session '{session_name}'",
                file=sys.stderr,
            )
        else:
            credentials = sts.assume_role(env, role["value"], session_name, item["mfa_serial"], item["otp"])
            _apply_temporary_credentials(env, credentials)
        has_session = True

    if item.get("mfa_enabled") and not has_session:
        if dry_run:
            print(
                f"ℹ Dry run: would get a session token with MFA device {item['mfa_serial']}",
                file=sys.stderr,
            )
        else:
            credentials = sts.get_session_token(env, item["mfa_serial"], item["otp"])
            _apply_temporary_credentials(env, credentials)

    return env


def format_environment(env):
    """
    Render an environment mapping as shell export statements.

    Values are shell-quoted, so plain values come out as-is:
        {"A": "1", "B": "2"} -> "export A=1\\nexport B=2"
    """
    return "\n".join(f"export {key}={shlex.quote(str(value))}" for key, value in env.items())


def find_gitignore(directory):
    """
    Find the .gitignore that applies to a directory.

    Walks up from the directory to the enclosing git repository root and
    returns the first existing .gitignore. Outside a repository, or when no
    .gitignore exists yet, returns the path in the directory itself.
    """
    start = Path(directory).resolve()
    candidates = [start] + list(start.parents)

    repo_root = next((path for path in candidates if (path / ".git").exists()), None)
    if repo_root is not None:
        for path in candidates:
            gitignore = path / GITIGNORE_FILENAME
            if gitignore.exists():
                return gitignore
            if path == repo_root:
                break

    return start / GITIGNORE_FILENAME


def add_to_gitignore(entry, directory=None):
    """
    Make sure an entry is listed in the nearest .gitignore.

    An anchored "/entry" line only covers the directory its .gitignore lives
    in, so it counts as present only when that is the target directory.

    Args:
        entry: Pattern to add (e.g. ".credenv")
        directory: Directory to start from, defaults to the current directory

    Returns:
        True if the entry was added, False if it was already present
    """
    target = Path(directory or os.getcwd()).resolve()
    gitignore = find_gitignore(target)

    existing = ""
    if gitignore.exists():
        existing = gitignore.read_text()
        lines = [line.strip() for line in existing.splitlines()]
        if entry in lines:
            return False
        if f"/{entry}" in lines and gitignore.parent == target:
            return False

    with open(gitignore, "a") as f:
        if existing and not existing.endswith("\n"):
            f.write("\n")
        f.write(f"{entry}\n")
    return True


def write_environment(env, directory=None):
    """
    Write the environment to .credenv and keep it out of git.

    The file is created with 0600 permissions since it holds credentials.

    Returns:
        Path of the written file
    """
    directory = directory or os.getcwd()
    output_path = os.path.join(directory, OUTPUT_FILENAME)

    # The mode only applies on creation; fchmod covers a leftover file
    fd = os.open(output_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    try:
        os.fchmod(fd, 0o600)
        f = os.fdopen(fd, "w")
    except Exception:
        os.close(fd)
        raise
    with f:
        f.write(format_environment(env) + "\n")

    add_to_gitignore(OUTPUT_FILENAME, directory)
    return output_path


def use_account(account_id=None, role_name=None, dry_run=False, directory=None, chooser=None):
    """
    Log in to an AWS account stored in 1Password.

    Runs the full pipeline: select the account, fetch and validate its
    item, select a role, resolve session credentials and write .credenv.
    Nothing is written unless every step succeeds.

    Returns:
        Path of the written file, or None for a dry run
    """
    accounts = onepassword.list_accounts()
    account = select_account(accounts, account_id, chooser)

    raw_item = onepassword.fetch_item(account["id"], account["account_id"])
    item = onepassword.validate_credentials(onepassword.parse_item(raw_item))

    role = select_role(item, role_name, chooser)
    env = resolve_session_environment(account, item, role, dry_run=dry_run)

    if dry_run:
        print(f"ℹ Dry run: would write {', '.join(env)} to {OUTPUT_FILENAME}", file=sys.stderr)
        return None

    return write_environment(env, directory)
