"""Teardown summary model.

Consolidated result of one orchestrator run across all resource classes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from .deletion_attempt import AttemptOutcome, DeletionAttempt
from .managed_resource import ManagedResource, ResourceClass


class TeardownStatus(Enum):
    """Overall orchestrator status."""

    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"


@dataclass
class TeardownSummary:
    """Summary of an orchestrator run.

    Status derivation:
        skipped   - network unknown, nothing was discovered
        cancelled - operator interrupted between classes
        completed - every resource's final attempt succeeded (or nothing to do)
        partial   - some resources remain, some were removed
        failed    - resources remain and none were removed

    Attributes:
        environment: Environment name
        region: AWS region
        network_id: VPC the run was scoped to (None when unknown)
        started_at: Run start (UTC)
        completed_at: Run end (UTC, optional)
        attempts: Every attempt made, in completion order
        cancelled: True if the run stopped early on operator request
        dry_run: True if the run only enumerated resources
        planned: Resources discovered in dry-run mode
    """

    environment: str
    region: str
    network_id: Optional[str]
    started_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None
    attempts: List[DeletionAttempt] = field(default_factory=list)
    cancelled: bool = False
    dry_run: bool = False
    planned: List[ManagedResource] = field(default_factory=list)

    def record(self, attempt: DeletionAttempt) -> None:
        self.attempts.append(attempt)

    def final_attempts(self) -> Dict[str, DeletionAttempt]:
        """Last attempt per resource identifier."""
        latest: Dict[str, DeletionAttempt] = {}
        for attempt in self.attempts:
            latest[attempt.resource.identifier] = attempt
        return latest

    @property
    def failures(self) -> List[DeletionAttempt]:
        """Final attempts of resources that were not removed."""
        return [a for a in self.final_attempts().values() if not a.succeeded]

    @property
    def removed(self) -> List[ManagedResource]:
        return [a.resource for a in self.final_attempts().values() if a.succeeded]

    @property
    def total_attempts(self) -> int:
        return len(self.attempts)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    @property
    def status(self) -> TeardownStatus:
        if self.network_id is None:
            return TeardownStatus.SKIPPED
        if self.cancelled:
            return TeardownStatus.CANCELLED
        if not self.failures:
            return TeardownStatus.COMPLETED
        if self.removed:
            return TeardownStatus.PARTIAL
        return TeardownStatus.FAILED

    def counts_by_outcome(self) -> Dict[AttemptOutcome, int]:
        counts = {outcome: 0 for outcome in AttemptOutcome}
        for attempt in self.final_attempts().values():
            counts[attempt.outcome] += 1
        return counts

    def counts_by_class(self) -> Dict[ResourceClass, int]:
        counts: Dict[ResourceClass, int] = {}
        for attempt in self.final_attempts().values():
            resource_class = attempt.resource.resource_class
            counts[resource_class] = counts.get(resource_class, 0) + 1
        return counts

    def finish(self) -> None:
        self.completed_at = datetime.utcnow()
