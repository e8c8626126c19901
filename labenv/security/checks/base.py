"""Base class for security baseline checks."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ...models.baseline_finding import BaselineFinding


class BaselineCheck(ABC):
    """Abstract base class for all baseline checks.

    Each check should:
    1. Have a unique check_id
    2. Name the boto3 service it queries
    3. Implement execute against a client for that service
    4. Return exactly one BaselineFinding
    """

    @property
    @abstractmethod
    def check_id(self) -> str:
        """Unique identifier for this check (e.g. "guardduty_detector")."""

    @property
    @abstractmethod
    def service(self) -> str:
        """boto3 service name the check needs a client for."""

    @abstractmethod
    def execute(self, client: Any) -> BaselineFinding:
        """Execute the check.

        Args:
            client: boto3 client for ``service``

        Returns:
            BaselineFinding describing whether the service is enabled

        Raises:
            botocore.exceptions.ClientError: For API errors the check does not interpret
            botocore.exceptions.BotoCoreError: If the query transport fails
        """
