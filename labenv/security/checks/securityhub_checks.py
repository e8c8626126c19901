"""Security Hub baseline check."""

from __future__ import annotations

from typing import Any

from botocore.exceptions import ClientError

from ...aws.errors import error_code
from ...models.baseline_finding import BaselineFinding, BaselineStatus
from .base import BaselineCheck

# DescribeHub answers with one of these when the account is not subscribed.
NOT_SUBSCRIBED_CODES = ("InvalidAccessException", "ResourceNotFoundException")


class SecurityHubEnabledCheck(BaselineCheck):
    """Checks that the account is subscribed to Security Hub."""

    @property
    def check_id(self) -> str:
        return "securityhub_enabled"

    @property
    def service(self) -> str:
        return "securityhub"

    def execute(self, client: Any) -> BaselineFinding:
        try:
            hub_arn = client.describe_hub().get("HubArn")
        except ClientError as e:
            if error_code(e) not in NOT_SUBSCRIBED_CODES:
                raise
            hub_arn = None

        if not hub_arn:
            return BaselineFinding(
                check_id=self.check_id,
                service=self.service,
                status=BaselineStatus.DISABLED,
                description="Security Hub is not enabled",
                remediation="Enable Security Hub in this region",
            )

        return BaselineFinding(
            check_id=self.check_id,
            service=self.service,
            status=BaselineStatus.ENABLED,
            description="Security Hub enabled",
            resource_id=hub_arn,
        )
