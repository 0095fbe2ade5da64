"""
Runtime settings for aws-op, read from environment variables.
"""

import os

OUTPUT_FILENAME = ".credenv"
GITIGNORE_FILENAME = ".gitignore"
ROLES_SECTION_LABEL = "Roles"

DEFAULT_OP_CLI = "op"
DEFAULT_ITEM_TAG = "aws"
DEFAULT_REGION = "us-east-1"


def get_op_cli():
    """Get the 1Password CLI executable (AWS_OP_CLI, default 'op')."""
    return os.environ.get("AWS_OP_CLI") or DEFAULT_OP_CLI


def get_item_tag():
    """Get the 1Password tag that marks AWS credential items."""
    return os.environ.get("AWS_OP_TAG") or DEFAULT_ITEM_TAG


def get_item_categories():
    """
    Get the optional 1Password category filter.

    Returns:
        list of category names, empty when AWS_OP_CATEGORIES is unset
    """
    raw = os.environ.get("AWS_OP_CATEGORIES") or ""
    return [category.strip() for category in raw.split(",") if category.strip()]


def get_aws_region():
    """Get the region used for STS calls."""
    return os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION") or DEFAULT_REGION
