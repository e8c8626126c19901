"""Unit tests for the baseline service checks."""

from __future__ import annotations

from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError

from labenv.models.baseline_finding import BaselineFinding, BaselineStatus
from labenv.security.checks.config_checks import ConfigRecorderCheck
from labenv.security.checks.guardduty_checks import GuardDutyDetectorCheck
from labenv.security.checks.securityhub_checks import SecurityHubEnabledCheck
from tests.fixtures.cloud import client_error


class TestGuardDutyDetectorCheck:
    """Tests for GuardDutyDetectorCheck."""

    def test_enabled(self) -> None:
        client = Mock()
        client.list_detectors.return_value = {"DetectorIds": ["det-1"]}
        client.get_detector.return_value = {"Status": "ENABLED"}

        finding = GuardDutyDetectorCheck().execute(client)

        assert finding.status == BaselineStatus.ENABLED
        assert finding.resource_id == "det-1"
        assert finding.remediation is None
        client.get_detector.assert_called_once_with(DetectorId="det-1")

    def test_suspended_detector(self) -> None:
        client = Mock()
        client.list_detectors.return_value = {"DetectorIds": ["det-1"]}
        client.get_detector.return_value = {"Status": "DISABLED"}

        finding = GuardDutyDetectorCheck().execute(client)

        assert finding.status == BaselineStatus.DISABLED
        assert "det-1" in finding.remediation

    def test_no_detector(self) -> None:
        client = Mock()
        client.list_detectors.return_value = {"DetectorIds": []}

        finding = GuardDutyDetectorCheck().execute(client)

        assert finding.status == BaselineStatus.DISABLED
        client.get_detector.assert_not_called()


class TestConfigRecorderCheck:
    """Tests for ConfigRecorderCheck."""

    def test_recording(self) -> None:
        client = Mock()
        client.describe_configuration_recorders.return_value = {"ConfigurationRecorders": [{"name": "main"}]}
        client.describe_configuration_recorder_status.return_value = {
            "ConfigurationRecordersStatus": [{"name": "main", "recording": True}]
        }

        finding = ConfigRecorderCheck().execute(client)

        assert finding.status == BaselineStatus.ENABLED
        assert finding.resource_id == "main"
        client.describe_configuration_recorder_status.assert_called_once_with(ConfigurationRecorderNames=["main"])

    def test_stopped_recorder(self) -> None:
        client = Mock()
        client.describe_configuration_recorders.return_value = {"ConfigurationRecorders": [{"name": "main"}]}
        client.describe_configuration_recorder_status.return_value = {
            "ConfigurationRecordersStatus": [{"name": "main", "recording": False}]
        }

        finding = ConfigRecorderCheck().execute(client)

        assert finding.status == BaselineStatus.DISABLED
        assert "start-configuration-recorder" in finding.remediation

    def test_no_recorder(self) -> None:
        client = Mock()
        client.describe_configuration_recorders.return_value = {"ConfigurationRecorders": []}

        assert ConfigRecorderCheck().execute(client).status == BaselineStatus.DISABLED


class TestSecurityHubEnabledCheck:
    """Tests for SecurityHubEnabledCheck."""

    def test_subscribed(self) -> None:
        client = Mock()
        client.describe_hub.return_value = {"HubArn": "arn:aws:securityhub:us-east-1:123456789012:hub/default"}

        finding = SecurityHubEnabledCheck().execute(client)

        assert finding.status == BaselineStatus.ENABLED
        assert finding.resource_id.endswith("hub/default")

    @pytest.mark.parametrize("code", ["InvalidAccessException", "ResourceNotFoundException"])
    def test_not_subscribed(self, code: str) -> None:
        client = Mock()
        client.describe_hub.side_effect = client_error(code)

        assert SecurityHubEnabledCheck().execute(client).status == BaselineStatus.DISABLED

    def test_other_errors_propagate(self) -> None:
        client = Mock()
        client.describe_hub.side_effect = client_error("AccessDeniedException")

        with pytest.raises(ClientError):
            SecurityHubEnabledCheck().execute(client)


class TestBaselineFinding:
    """Tests for BaselineFinding validation."""

    def test_rejects_raw_status(self) -> None:
        with pytest.raises(ValueError, match="BaselineStatus"):
            BaselineFinding(check_id="x", service="guardduty", status="enabled", description="")

    def test_rejects_empty_check_id(self) -> None:
        with pytest.raises(ValueError, match="check_id"):
            BaselineFinding(check_id="", service="guardduty", status=BaselineStatus.ENABLED, description="")

    def test_to_dict(self) -> None:
        finding = BaselineFinding(
            check_id="guardduty_detector", service="guardduty", status=BaselineStatus.ENABLED, description="ok"
        )

        assert finding.to_dict()["status"] == "enabled"
        assert finding.passed
