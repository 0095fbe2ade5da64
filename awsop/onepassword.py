"""
1Password access for aws-op.

Items are read through the 1Password CLI (`op`). The CLI is run as a
subprocess with JSON output, so it handles sign-in, biometric unlock and
session caching on its own.
"""

import json
import subprocess

from .config import ROLES_SECTION_LABEL, get_item_categories, get_item_tag, get_op_cli
from .exceptions import InvalidCredentialItem, ItemNotFound, StoreUnavailable

# Field labels (or ids) accepted for each credential, compared lowercase
ACCESS_KEY_LABELS = ("access key id", "aws_access_key_id", "access_key_id", "aws_key")
SECRET_KEY_LABELS = ("secret access key", "aws_secret_access_key", "secret_access_key", "aws_secret")
MFA_SERIAL_LABELS = ("mfa serial", "mfa_serial", "mfa device arn", "mfa_device_arn")

OTP_FIELD_TYPE = "OTP"


def run_op(args, account_id=None):
    """
    Run a 1Password CLI command and parse its JSON output.

    Args:
        args: CLI arguments after the executable (e.g. ["item", "list"])
        account_id: 1Password account UUID to run against, if any

    Returns:
        Parsed JSON (list or dict). Empty output is returned as [].

    Raises:
        StoreUnavailable: If the CLI is not installed, not signed in, or fails
        ItemNotFound: If the CLI reports that an item does not exist
    """
    command = [get_op_cli()] + list(args)
    if account_id:
        command += ["--account", account_id]
    command += ["--format", "json"]

    try:
        result = subprocess.run(command, capture_output=True, text=True, check=True)
    except FileNotFoundError:
        raise StoreUnavailable(
            f"1Password CLI '{command[0]}' not found. "
            "Install it from https://developer.1password.com/docs/cli/ and run 'op signin'"
        ) from None
    except subprocess.CalledProcessError as e:
        stderr = (e.stderr or "").strip()
        if "isn't an item" in stderr:
            raise ItemNotFound(stderr) from None
        raise StoreUnavailable(f"1Password CLI failed: {stderr or e}") from None

    if not result.stdout.strip():
        return []
    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise StoreUnavailable(f"1Password CLI returned invalid JSON: {e}") from None


def list_signed_in_accounts():
    """Get the UUIDs of the 1Password accounts known to the CLI."""
    return [entry["account_uuid"] for entry in run_op(["account", "list"]) if entry.get("account_uuid")]


def list_accounts():
    """
    List the AWS credential items across all 1Password accounts.

    Returns:
        list of dicts with id, title and account_id (the 1Password account
        UUID, or None when the CLI has no configured accounts, e.g. when
        running with a service account token)
    """
    args = ["item", "list", "--tags", get_item_tag()]
    categories = get_item_categories()
    if categories:
        args += ["--categories", ",".join(categories)]

    accounts = []
    for account_id in list_signed_in_accounts() or [None]:
        for entry in run_op(args, account_id=account_id):
            if not entry.get("id") or not entry.get("title"):
                continue
            accounts.append({"id": entry["id"], "title": entry["title"], "account_id": account_id})
    return accounts


def fetch_item(item_id, account_id=None):
    """
    Fetch the full field data of one 1Password item.

    Raises:
        ItemNotFound: If the item id no longer resolves
    """
    try:
        return run_op(["item", "get", item_id], account_id=account_id)
    except ItemNotFound:
        raise ItemNotFound(f"1Password item '{item_id}' not found") from None


def _section_label(field):
    return (field.get("section") or {}).get("label")


def _find_field_value(fields, labels):
    for field in fields:
        if (field.get("label") or "").lower() in labels or (field.get("id") or "").lower() in labels:
            return field.get("value")
    return None


def parse_item(raw):
    """
    Extract AWS credentials from a 1Password item.

    Credentials are looked up by field label outside the Roles section. Every
    field inside the Roles section is a role: label is the role name, value
    is the role ARN. The one-time code is the current TOTP of the item's OTP
    field.

    Args:
        raw: Item JSON as returned by fetch_item()

    Returns:
        dict describing the credential item
    """
    fields = raw.get("fields") or []
    sections = raw.get("sections") or []

    credential_fields = [f for f in fields if _section_label(f) != ROLES_SECTION_LABEL]
    otp_field = next((f for f in credential_fields if f.get("type") == OTP_FIELD_TYPE), None)

    return {
        "id": raw.get("id"),
        "title": raw.get("title"),
        "aws_key": _find_field_value(credential_fields, ACCESS_KEY_LABELS),
        "aws_secret": _find_field_value(credential_fields, SECRET_KEY_LABELS),
        "mfa_serial": _find_field_value(credential_fields, MFA_SERIAL_LABELS),
        "otp": otp_field.get("totp") if otp_field else None,
        "mfa_enabled": otp_field is not None,
        "has_roles": any(s.get("label") == ROLES_SECTION_LABEL for s in sections),
        "roles": [
            {"label": f.get("label"), "value": f.get("value")}
            for f in fields
            if _section_label(f) == ROLES_SECTION_LABEL
        ],
        "sections": sections,
        "fields": fields,
    }


def validate_credentials(item):
    """
    Check that an item carries everything needed to authenticate.

    Access key and secret key are always required. MFA serial and a one-time
    code are required when the item has an OTP field or roles, since role
    assumption is always MFA-protected.

    Returns:
        The same item, unchanged

    Raises:
        InvalidCredentialItem: Listing every missing field
    """
    missing = []
    if not item.get("aws_key"):
        missing.append("access key id")
    if not item.get("aws_secret"):
        missing.append("secret access key")
    if item.get("mfa_enabled") or item.get("has_roles"):
        if not item.get("mfa_serial"):
            missing.append("mfa serial")
        if not item.get("otp"):
            missing.append("one-time password")
    if missing:
        raise InvalidCredentialItem(item.get("title") or item.get("id"), missing)
    return item
