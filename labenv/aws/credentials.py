"""AWS credential validation."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from .client import create_boto_client

logger = logging.getLogger(__name__)


class CredentialValidationError(Exception):
    """Raised when AWS credentials are missing or rejected."""


def validate_credentials(profile_name: Optional[str] = None, region_name: Optional[str] = None) -> Dict[str, str]:
    """Validate credentials with STS GetCallerIdentity.

    Args:
        profile_name: AWS profile name (optional)
        region_name: AWS region (optional)

    Returns:
        Dictionary with account_id, user_id and arn

    Raises:
        CredentialValidationError: If credentials are missing, expired or invalid
    """
    try:
        sts = create_boto_client("sts", region_name=region_name, profile_name=profile_name)
        identity = sts.get_caller_identity()
    except NoCredentialsError:
        raise CredentialValidationError("No AWS credentials found. Configure a profile or export AWS_PROFILE.")
    except ClientError as e:
        code = e.response.get("Error", {}).get("Code", "Unknown")
        raise CredentialValidationError(f"AWS credentials rejected ({code}). Refresh them and try again.")
    except BotoCoreError as e:
        raise CredentialValidationError(f"Could not validate AWS credentials: {e}")

    logger.debug(f"Authenticated as {identity['Arn']}")
    return {
        "account_id": identity["Account"],
        "user_id": identity["UserId"],
        "arn": identity["Arn"],
    }
