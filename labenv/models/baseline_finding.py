"""Security baseline finding model."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class BaselineStatus(Enum):
    """State of a baseline security service."""

    ENABLED = "enabled"
    DISABLED = "disabled"
    UNKNOWN = "unknown"


@dataclass
class BaselineFinding:
    """Result of one baseline service check.

    Attributes:
        check_id: Identifier of the check that produced the finding
        service: AWS service checked (e.g. "guardduty")
        status: Whether the service is enabled
        description: Human-readable detail
        resource_id: Detector id, recorder name or hub ARN (optional)
        remediation: Guidance when the service is not enabled (optional)
    """

    check_id: str
    service: str
    status: BaselineStatus
    description: str
    resource_id: Optional[str] = None
    remediation: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.status, BaselineStatus):
            raise ValueError(f"Invalid status type: {type(self.status)}. Must be BaselineStatus enum.")
        if not self.check_id:
            raise ValueError("check_id cannot be empty")

    @property
    def passed(self) -> bool:
        return self.status == BaselineStatus.ENABLED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "check_id": self.check_id,
            "service": self.service,
            "status": self.status.value,
            "description": self.description,
            "resource_id": self.resource_id,
            "remediation": self.remediation,
        }
