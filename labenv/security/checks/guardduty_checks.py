"""GuardDuty baseline check."""

from __future__ import annotations

from typing import Any

from ...models.baseline_finding import BaselineFinding, BaselineStatus
from .base import BaselineCheck


class GuardDutyDetectorCheck(BaselineCheck):
    """Checks that the region has a GuardDuty detector and that it is enabled."""

    @property
    def check_id(self) -> str:
        return "guardduty_detector"

    @property
    def service(self) -> str:
        return "guardduty"

    def execute(self, client: Any) -> BaselineFinding:
        detector_ids = client.list_detectors().get("DetectorIds", [])
        if not detector_ids:
            return BaselineFinding(
                check_id=self.check_id,
                service=self.service,
                status=BaselineStatus.DISABLED,
                description="No GuardDuty detector found",
                remediation="Enable GuardDuty in this region",
            )

        detector_id = detector_ids[0]
        detector_status = client.get_detector(DetectorId=detector_id).get("Status", "UNKNOWN")
        enabled = detector_status == "ENABLED"

        return BaselineFinding(
            check_id=self.check_id,
            service=self.service,
            status=BaselineStatus.ENABLED if enabled else BaselineStatus.DISABLED,
            description=f"Detector status {detector_status}",
            resource_id=detector_id,
            remediation=None if enabled else f"Enable GuardDuty detector {detector_id}",
        )
