"""
AWS STS calls for aws-op.
"""

import re

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config import get_aws_region
from .exceptions import AWSCallFailed

# Characters allowed in an STS role session name
_SESSION_NAME_INVALID = re.compile(r"[^\w+=,.@-]")
MAX_SESSION_NAME_LENGTH = 64


def create_session(env):
    """
    Create a boto3 session from an aws-op environment mapping.

    Args:
        env: dict holding AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY and
             optionally AWS_SESSION_TOKEN

    Returns:
        boto3.Session using exactly those credentials
    """
    # Explicit credentials bypass ~/.aws and the process environment
    return boto3.Session(
        aws_access_key_id=env["AWS_ACCESS_KEY_ID"],
        aws_secret_access_key=env["AWS_SECRET_ACCESS_KEY"],
        aws_session_token=env.get("AWS_SESSION_TOKEN") or None,
        region_name=get_aws_region(),
    )


def _sts_client(env):
    return create_session(env).client("sts")


def _temporary_credentials(response):
    credentials = response["Credentials"]
    return {
        "AccessKeyId": credentials["AccessKeyId"],
        "SecretAccessKey": credentials["SecretAccessKey"],
        "SessionToken": credentials["SessionToken"],
    }


def get_caller_identity(env):
    """
    Get the AWS account and ARN the credentials belong to.

    Returns:
        dict with Account and Arn

    Raises:
        AWSCallFailed: If STS rejects the credentials or cannot be reached
    """
    try:
        response = _sts_client(env).get_caller_identity()
    except (ClientError, BotoCoreError) as e:
        raise AWSCallFailed("GetCallerIdentity", str(e)) from e
    return {"Account": response["Account"], "Arn": response["Arn"]}


def role_session_name(caller_arn, role_label):
    """
    Build the session name used when assuming a role.

    The name is "<caller>-<role>", where caller is the ARN path after the
    resource type (the IAM user name for arn:aws:iam::123:user/alice).

    Examples:
        arn:aws:iam::123456789012:user/alice, Admin -> alice-Admin
    """
    resource = caller_arn.split(":")[-1]
    parts = resource.split("/")
    caller = parts[1] if len(parts) > 1 else parts[0]
    name = _SESSION_NAME_INVALID.sub("-", f"{caller}-{role_label}")
    return name[:MAX_SESSION_NAME_LENGTH]


def assume_role(env, role_arn, session_name, mfa_serial, otp):
    """
    Assume an IAM role with MFA.

    Returns:
        dict with AccessKeyId, SecretAccessKey, SessionToken

    Raises:
        AWSCallFailed: If the role cannot be assumed
    """
    try:
        response = _sts_client(env).assume_role(
            RoleArn=role_arn,
            RoleSessionName=session_name,
            SerialNumber=mfa_serial,
            TokenCode=otp,
        )
    except (ClientError, BotoCoreError) as e:
        raise AWSCallFailed("AssumeRole", str(e)) from e
    return _temporary_credentials(response)


def get_session_token(env, mfa_serial, otp):
    """
    Get an MFA-authenticated session for the item's own IAM user.

    Returns:
        dict with AccessKeyId, SecretAccessKey, SessionToken

    Raises:
        AWSCallFailed: If STS refuses the token code or credentials
    """
    try:
        response = _sts_client(env).get_session_token(SerialNumber=mfa_serial, TokenCode=otp)
    except (ClientError, BotoCoreError) as e:
        raise AWSCallFailed("GetSessionToken", str(e)) from e
    return _temporary_credentials(response)
