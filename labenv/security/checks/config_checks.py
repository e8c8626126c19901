"""AWS Config baseline check."""

from __future__ import annotations

from typing import Any

from ...models.baseline_finding import BaselineFinding, BaselineStatus
from .base import BaselineCheck


class ConfigRecorderCheck(BaselineCheck):
    """Checks that an AWS Config recorder exists and is recording."""

    @property
    def check_id(self) -> str:
        return "config_recorder"

    @property
    def service(self) -> str:
        return "config"

    def execute(self, client: Any) -> BaselineFinding:
        recorders = client.describe_configuration_recorders().get("ConfigurationRecorders", [])
        if not recorders:
            return BaselineFinding(
                check_id=self.check_id,
                service=self.service,
                status=BaselineStatus.DISABLED,
                description="No configuration recorder found",
                remediation="Create a configuration recorder and delivery channel",
            )

        name = recorders[0].get("name", "default")
        statuses = client.describe_configuration_recorder_status(ConfigurationRecorderNames=[name]).get(
            "ConfigurationRecordersStatus", []
        )
        recording = bool(statuses and statuses[0].get("recording"))

        if recording:
            return BaselineFinding(
                check_id=self.check_id,
                service=self.service,
                status=BaselineStatus.ENABLED,
                description=f"Recorder {name} is recording",
                resource_id=name,
            )

        return BaselineFinding(
            check_id=self.check_id,
            service=self.service,
            status=BaselineStatus.DISABLED,
            description=f"Recorder {name} exists but is not recording",
            resource_id=name,
            remediation=f"Start the recorder: aws configservice start-configuration-recorder "
            f"--configuration-recorder-name {name}",
        )
