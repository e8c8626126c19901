"""Tests for TeardownReporter."""

from __future__ import annotations

import json

from rich.console import Console

from labenv.models.deletion_attempt import AttemptAction, AttemptOutcome, DeletionAttempt
from labenv.models.managed_resource import ResourceClass
from labenv.models.teardown_summary import TeardownSummary
from labenv.teardown.reporter import TeardownReporter
from tests.fixtures.cloud import resource


def _recording_console() -> Console:
    return Console(record=True, width=200, color_system=None)


def _summary(**kwargs) -> TeardownSummary:
    summary = TeardownSummary(environment="dev", region="us-east-1", network_id="vpc-1", **kwargs)
    summary.finish()
    return summary


class TestDisplayPlan:
    """Test suite for dry-run plan display."""

    def test_lists_planned_resources(self) -> None:
        console = _recording_console()
        summary = _summary(dry_run=True)
        summary.planned = [
            resource(ResourceClass.LOAD_BALANCER, "arn:lb-1", name="k8s-web"),
            resource(ResourceClass.NETWORK_INTERFACE, "eni-1", status="in-use", attached_to="i-123"),
        ]

        TeardownReporter(console).display_plan(summary)

        output = console.export_text()
        assert "Teardown Preview" in output
        assert "Would Delete" in output
        assert "k8s-web (arn:lb-1)" in output
        assert "i-123" in output
        assert "2 resource(s) would be deleted" in output

    def test_nothing_found(self) -> None:
        console = _recording_console()

        TeardownReporter(console).display_plan(_summary(dry_run=True))

        assert "No dependent resources found" in console.export_text()

    def test_unknown_network(self) -> None:
        console = _recording_console()
        summary = TeardownSummary(environment="dev", region="us-east-1", network_id=None, dry_run=True)

        TeardownReporter(console).display_plan(summary)

        output = console.export_text()
        assert "Network: unknown" in output
        assert "Network unknown" in output


class TestDisplaySummary:
    """Test suite for cleanup summary display."""

    def test_shows_status_and_final_attempts(self) -> None:
        console = _recording_console()
        summary = _summary()
        group = resource(ResourceClass.TRAFFIC_FILTER_GROUP, "sg-a")
        summary.record(
            DeletionAttempt(group, AttemptAction.DELETE, 1, AttemptOutcome.RETRYABLE, error_code="DependencyViolation")
        )
        summary.record(DeletionAttempt(group, AttemptAction.DELETE, 2, AttemptOutcome.TERMINAL, error_code="Denied"))
        summary.record(
            DeletionAttempt(
                resource(ResourceClass.LOAD_BALANCER, "arn:lb-1"), AttemptAction.DELETE, 1, AttemptOutcome.SUCCEEDED
            )
        )

        TeardownReporter(console).display_summary(summary)

        output = console.export_text()
        assert "Dependent Resource Cleanup: PARTIAL" in output
        assert "Attempts: 3" in output
        assert "Denied" in output
        assert "DependencyViolation" not in output
        assert output.index("arn:lb-1") < output.index("sg-a")

    def test_empty_run(self) -> None:
        console = _recording_console()

        TeardownReporter(console).display_summary(_summary())

        assert "COMPLETED" in console.export_text()


class TestLeakReport:
    """Test suite for leak formatting and export."""

    def test_no_leaks(self) -> None:
        assert TeardownReporter().format_leaks([]) == "No leaked resources detected."

    def test_leak_table_marks_expired(self) -> None:
        leaks = [
            resource(
                ResourceClass.TRAFFIC_FILTER_GROUP,
                "sg-a",
                name="k8s-elb",
                tags={"ExpiresAt": "2020-01-01T00:00:00Z"},
            ),
            resource(ResourceClass.LOAD_BALANCER, "classic-1", status="active"),
        ]

        output = TeardownReporter().format_leaks(leaks)

        assert "Leaked Resources" in output
        assert "k8s-elb (sg-a)" in output
        assert "classic-1" in output
        assert output.count("expired") == 1

    def test_export_json(self, tmp_path) -> None:
        leaks = [resource(ResourceClass.TRAFFIC_FILTER_GROUP, "sg-a", tags={"Environment": "dev"})]
        output_file = tmp_path / "reports" / "leaks.json"

        TeardownReporter().export_leaks_json(leaks, str(output_file))

        data = json.loads(output_file.read_text())
        assert data["total"] == 1
        assert data["leaks"][0] == {
            "class": "traffic-filter-group",
            "identifier": "sg-a",
            "name": None,
            "network_id": "vpc-1",
            "status": "unknown",
            "tags": {"Environment": "dev"},
        }
