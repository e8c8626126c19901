"""Classification of AWS API errors into attempt outcomes."""

from __future__ import annotations

from typing import Tuple

from botocore.exceptions import BotoCoreError, ClientError

from ..models.deletion_attempt import AttemptOutcome

# Resource is already gone; deleting it again is a no-op.
NOT_FOUND_CODES = frozenset(
    {
        "LoadBalancerNotFound",
        "TargetGroupNotFound",
        "AccessPointNotFound",
        "InvalidGroup.NotFound",
        "InvalidGroupId.NotFound",
        "InvalidNetworkInterfaceID.NotFound",
        "InvalidAttachmentID.NotFound",
        "InvalidAllocationID.NotFound",
        "InvalidAssociationID.NotFound",
        "InvalidPermission.NotFound",
        "ResourceNotFoundException",
    }
)

# Something still holds the resource, or the API asked us to slow down.
RETRYABLE_CODES = frozenset(
    {
        "DependencyViolation",
        "ResourceInUse",
        "ResourceInUseException",
        "InvalidNetworkInterface.InUse",
        "InvalidIPAddress.InUse",
        "OperationNotPermitted",
        "IncorrectState",
        "RequestLimitExceeded",
        "Throttling",
        "ThrottlingException",
        "ServiceUnavailable",
        "InternalError",
    }
)


def error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "Unknown")


def error_message(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Message", str(error))


def is_not_found(error: ClientError) -> bool:
    return error_code(error) in NOT_FOUND_CODES


def classify_client_error(error: ClientError) -> Tuple[AttemptOutcome, str, str]:
    """Classify a ClientError raised by a mutating call.

    Args:
        error: ClientError from boto3

    Returns:
        Tuple of (outcome, error_code, error_message)
    """
    code = error_code(error)
    message = error_message(error)

    if code in NOT_FOUND_CODES:
        return (AttemptOutcome.ALREADY_ABSENT, code, message)
    if code in RETRYABLE_CODES:
        return (AttemptOutcome.RETRYABLE, code, message)
    return (AttemptOutcome.TERMINAL, code, message)


def classify_exception(error: Exception) -> Tuple[AttemptOutcome, str, str]:
    """Classify any exception raised by a mutating call.

    Transport-level botocore errors are retryable; anything unexpected is terminal.
    """
    if isinstance(error, ClientError):
        return classify_client_error(error)
    if isinstance(error, BotoCoreError):
        return (AttemptOutcome.RETRYABLE, type(error).__name__, str(error))
    return (AttemptOutcome.TERMINAL, type(error).__name__, str(error))
