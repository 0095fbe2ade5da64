"""
Exceptions raised by aws-op.
"""


class AwsOpError(Exception):
    """Base class for all aws-op failures reported to the user."""


class StoreUnavailable(AwsOpError):
    """The 1Password CLI is missing, not signed in, or failed."""


class ItemNotFound(AwsOpError):
    """A 1Password item id no longer resolves."""


class AccountNotFound(AwsOpError):
    """An explicit account id does not match any listed account."""


class InvalidCredentialItem(AwsOpError):
    """A 1Password item is missing fields required to authenticate."""

    def __init__(self, title, missing):
        self.title = title
        self.missing = list(missing)
        super().__init__(f"Item '{title}' is missing required fields: {', '.join(self.missing)}")


class RoleNotFound(AwsOpError):
    """An explicit role name does not match any role on the item."""


class AWSCallFailed(AwsOpError):
    """An STS call returned an error."""

    def __init__(self, operation, details):
        self.operation = operation
        self.details = details
        super().__init__(f"AWS {operation} call failed")


class SelectionCancelled(AwsOpError):
    """The user aborted an interactive prompt."""
