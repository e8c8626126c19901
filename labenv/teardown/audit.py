"""Audit storage for teardown runs.

Stores and retrieves teardown logs in YAML format so an operator can inspect
what recent ``down`` runs deleted, left behind, and how destroy ended.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import List, Optional

import yaml

from ..models.managed_resource import ManagedResource
from ..models.teardown_summary import TeardownSummary

DEFAULT_AUDIT_DIR = Path.home() / ".labenv" / "audit-logs"


class AuditStorage:
    """Teardown log storage and retrieval.

    Storage structure:
        ~/.labenv/audit-logs/
            2026/
                10/
                    teardown-dev-20261019T120000Z.yaml

    Attributes:
        storage_dir: Base directory for audit logs
    """

    def __init__(self, storage_dir: Optional[str] = None) -> None:
        """Initialize audit storage.

        Args:
            storage_dir: Base directory for audit logs (default: ~/.labenv/audit-logs)
        """
        self.storage_dir = Path(storage_dir) if storage_dir else DEFAULT_AUDIT_DIR
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def run_id(summary: TeardownSummary) -> str:
        return f"{summary.environment}-{summary.started_at.strftime('%Y%m%dT%H%M%SZ')}"

    def log_teardown(
        self,
        summary: TeardownSummary,
        destroy_returncode: Optional[int] = None,
        leaks: Optional[List[ManagedResource]] = None,
    ) -> Path:
        """Write a teardown run to audit storage.

        Overwrites an existing log with the same run id.

        Args:
            summary: Orchestrator summary
            destroy_returncode: Exit code of ``terraform destroy`` (None if it never ran)
            leaks: Resources found by the post-destroy check (None if it never ran)

        Returns:
            Path of the written log
        """
        run_id = self.run_id(summary)
        year_month_dir = self.storage_dir / str(summary.started_at.year) / f"{summary.started_at.month:02d}"
        year_month_dir.mkdir(parents=True, exist_ok=True)

        audit_data = {
            "metadata": {
                "version": "1.0",
                "log_type": "teardown",
                "created_at": datetime.utcnow().isoformat() + "Z",
            },
            "teardown": {
                "run_id": run_id,
                "environment": summary.environment,
                "region": summary.region,
                "network_id": summary.network_id,
                "timestamp": summary.started_at.isoformat() + "Z",
                "completed_at": summary.completed_at.isoformat() + "Z" if summary.completed_at else None,
                "duration_seconds": summary.duration_seconds,
                "status": summary.status.value,
                "cancelled": summary.cancelled,
                "total_attempts": summary.total_attempts,
                "outcomes": {outcome.value: count for outcome, count in summary.counts_by_outcome().items()},
                "destroy_returncode": destroy_returncode,
            },
            "attempts": [
                {
                    "resource_class": attempt.resource.resource_class.value,
                    "identifier": attempt.resource.identifier,
                    "name": attempt.resource.name,
                    "action": attempt.action.value,
                    "pass_number": attempt.pass_number,
                    "outcome": attempt.outcome.value,
                    "elapsed_wait": round(attempt.elapsed_wait, 3),
                    "error_code": attempt.error_code,
                    "error_message": attempt.error_message,
                }
                for attempt in summary.attempts
            ],
            "leaks": None
            if leaks is None
            else [
                {
                    "resource_class": resource.resource_class.value,
                    "identifier": resource.identifier,
                    "network_id": resource.network_id,
                }
                for resource in leaks
            ],
        }

        audit_file = year_month_dir / f"teardown-{run_id}.yaml"
        with open(audit_file, "w") as f:
            yaml.dump(audit_data, f, default_flow_style=False, sort_keys=False)

        return audit_file

    def get_teardown(self, run_id: str) -> Optional[dict]:
        """Retrieve a teardown log by run id.

        Args:
            run_id: Run id to retrieve

        Returns:
            Audit log dictionary if found, None otherwise
        """
        for audit_file in self.storage_dir.glob(f"*/*/teardown-{run_id}.yaml"):
            with open(audit_file, "r") as f:
                return yaml.safe_load(f)

        return None

    def query_teardowns(
        self,
        environment: Optional[str] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> List[dict]:
        """Query teardown logs, oldest first.

        Args:
            environment: Only runs for this environment, None for all
            since: Start time (inclusive), None for all
            until: End time (inclusive), None for all

        Returns:
            List of teardown audit logs matching criteria
        """
        results = []

        for year_dir in sorted(self.storage_dir.glob("*")):
            if not year_dir.is_dir():
                continue

            for month_dir in sorted(year_dir.glob("*")):
                if not month_dir.is_dir():
                    continue

                for audit_file in sorted(month_dir.glob("teardown-*.yaml")):
                    with open(audit_file, "r") as f:
                        audit_data = yaml.safe_load(f)

                    teardown = audit_data["teardown"]
                    timestamp = datetime.fromisoformat(teardown["timestamp"].rstrip("Z"))

                    if environment and teardown["environment"] != environment:
                        continue
                    if since and timestamp < since:
                        continue
                    if until and timestamp > until:
                        continue

                    results.append(audit_data)

        results.sort(key=lambda data: data["teardown"]["timestamp"])
        return results
