"""Baseline scan result model for aggregating baseline findings."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List

from ..models.baseline_finding import BaselineFinding, BaselineStatus


@dataclass
class BaselineScanResult:
    """Aggregates baseline findings for one account and region.

    Attributes:
        region: Region that was checked
        scan_timestamp: When the scan was executed
        findings: One finding per check
    """

    region: str
    scan_timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    findings: List[BaselineFinding] = field(default_factory=list)

    @property
    def all_enabled(self) -> bool:
        return all(f.passed for f in self.findings)

    def add_finding(self, finding: BaselineFinding) -> None:
        self.findings.append(finding)

    def get_findings_by_status(self, status: BaselineStatus) -> List[BaselineFinding]:
        return [f for f in self.findings if f.status == status]
