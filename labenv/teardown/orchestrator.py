"""Deletion orchestrator.

Removes discovered resources class by class in dependency order:

    load balancers -> settle -> target groups -> security groups (multi-pass)
    -> network interfaces (detach, poll, delete) -> elastic IPs

Each class is enumerated right before it is deleted, so earlier deletions
and settling delays are reflected in what the next class sees. Elastic IPs
are the exception: deleting an interface disassociates its address, so
address ownership is settled before anything is deleted.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Tuple

from ..config import Config
from ..models.deletion_attempt import AttemptOutcome, DeletionAttempt
from ..models.environment import Environment
from ..models.managed_resource import ManagedResource, ResourceClass
from ..models.teardown_summary import TeardownSummary
from .deleter import ResourceDeleter
from .discovery import DependentResourceDiscoverer

logger = logging.getLogger(__name__)

Work = Callable[[ManagedResource, int], List[DeletionAttempt]]
Results = List[Tuple[ManagedResource, List[DeletionAttempt]]]


class DeletionOrchestrator:
    """Ordered, multi-pass deletion of teardown-blocking resources.

    A single resource's failure never stops its siblings or later classes:
    the goal is maximum forward progress in one run, with anything left over
    reported in the TeardownSummary so the operator can re-run.

    Siblings within a class are deleted concurrently on a bounded pool.
    Classes run strictly in order. Cancellation is honoured between classes
    and between passes, and cuts settling and retry waits short; a call
    already in flight completes.

    Attributes:
        discoverer: Resource discoverer for the environment
        deleter: Per-resource deleter
        config: Settling delays, pass counts and pool size
    """

    def __init__(
        self,
        discoverer: DependentResourceDiscoverer,
        deleter: ResourceDeleter,
        config: Config,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self.discoverer = discoverer
        self.deleter = deleter
        self.config = config
        self._cancel_event = cancel_event or threading.Event()
        self._claimed_addresses: List[ManagedResource] = []
        self._phases: List[Tuple[ResourceClass, Callable[[TeardownSummary], None]]] = [
            (ResourceClass.LOAD_BALANCER, self._delete_load_balancers),
            (ResourceClass.TARGET_GROUP, self._delete_target_groups),
            (ResourceClass.TRAFFIC_FILTER_GROUP, self._delete_security_groups),
            (ResourceClass.NETWORK_INTERFACE, self._delete_network_interfaces),
            (ResourceClass.PUBLIC_ADDRESS, self._release_addresses),
        ]

    @property
    def environment(self) -> Environment:
        return self.discoverer.environment

    def cancel(self) -> None:
        """Request cancellation at the next class or pass boundary."""
        logger.warning("Cancellation requested; stopping after the current step completes")
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def plan(self) -> TeardownSummary:
        """Enumerate what a run would delete, without deleting anything.

        Returns:
            TeardownSummary in dry-run mode with the planned resources
        """
        environment = self.environment
        summary = TeardownSummary(
            environment=environment.name,
            region=environment.region,
            network_id=environment.network_id,
            dry_run=True,
        )
        summary.planned = self.discoverer.discover()
        summary.finish()
        return summary

    def run(self) -> TeardownSummary:
        """Delete every discovered resource in dependency order.

        Returns:
            TeardownSummary with every attempt made
        """
        environment = self.environment
        summary = TeardownSummary(
            environment=environment.name,
            region=environment.region,
            network_id=environment.network_id,
        )

        if not environment.has_network:
            logger.warning(f"Network for {environment.name} is unknown; skipping dependent resource cleanup")
            summary.finish()
            return summary

        logger.info(f"Cleaning up dependent resources of {environment.name} in {environment.network_id}")

        if not self.cancelled:
            self._claimed_addresses = self.discoverer.discover_class(ResourceClass.PUBLIC_ADDRESS)

        for resource_class, phase in self._phases:
            if self.cancelled:
                summary.cancelled = True
                logger.warning(f"Cancelled before {resource_class.label} cleanup")
                break
            phase(summary)

        summary.finish()
        logger.info(
            f"Cleanup finished: {len(summary.removed)} removed, {len(summary.failures)} remaining, "
            f"{summary.total_attempts} attempts"
        )
        for attempt in summary.failures:
            logger.error(f"Still present: {attempt.describe()}")

        return summary

    def _delete_load_balancers(self, summary: TeardownSummary) -> None:
        load_balancers = self.discoverer.discover_class(ResourceClass.LOAD_BALANCER)
        if not load_balancers:
            return

        attempts = self._run_passes(load_balancers, summary, self._delete_one)

        # Load balancer deletion is asynchronous with no completion signal.
        if any(a.outcome == AttemptOutcome.SUCCEEDED for a in attempts):
            logger.info(f"Waiting {self.config.lb_settle_seconds}s for load balancer deletion to propagate")
            self._pause(self.config.lb_settle_seconds)

    def _delete_target_groups(self, summary: TeardownSummary) -> None:
        target_groups = self.discoverer.discover_class(ResourceClass.TARGET_GROUP)
        self._run_passes(target_groups, summary, self._delete_one)

    def _delete_security_groups(self, summary: TeardownSummary) -> None:
        pending = self.discoverer.discover_class(ResourceClass.TRAFFIC_FILTER_GROUP)
        passes = max(1, int(self.config.sg_passes))

        for pass_number in range(1, passes + 1):
            if not pending:
                return
            if pass_number > 1:
                logger.info(
                    f"{len(pending)} security group(s) remain; waiting {self.config.sg_pass_delay_seconds}s "
                    f"before pass {pass_number}/{passes}"
                )
                self._pause(self.config.sg_pass_delay_seconds)
                if self.cancelled:
                    summary.cancelled = True
                    logger.warning(f"Cancelled before security group pass {pass_number}")
                    return
            else:
                logger.info(f"Security group pass {pass_number}/{passes}")
            pending = self._security_group_pass(pending, pass_number, summary)

        if pending:
            logger.error(
                f"{len(pending)} security group(s) still referenced after {passes} passes: "
                f"{', '.join(r.identifier for r in pending)}"
            )

    def _security_group_pass(
        self, groups: List[ManagedResource], pass_number: int, summary: TeardownSummary
    ) -> List[ManagedResource]:
        levels, tangled = reference_levels(groups)
        remaining: List[ManagedResource] = []

        for level in levels:
            results = self._fan_out(level, pass_number, self._delete_one, summary)
            remaining.extend(_retryable(results))

        if tangled:
            tangled_ids = {r.identifier for r in tangled}
            logger.info(f"Breaking references between {', '.join(sorted(tangled_ids))}")
            for group in tangled:
                targets = group.references & tangled_ids
                if targets:
                    summary.record(self.deleter.revoke_references(group, targets, pass_number))
            results = self._fan_out(tangled, pass_number, self._delete_one, summary)
            remaining.extend(_retryable(results))

        return remaining

    def _delete_network_interfaces(self, summary: TeardownSummary) -> None:
        interfaces = self.discoverer.discover_class(ResourceClass.NETWORK_INTERFACE)
        self._run_passes(interfaces, summary, self._detach_or_delete)

    def _release_addresses(self, summary: TeardownSummary) -> None:
        addresses = self.discoverer.refresh_addresses(self._claimed_addresses)
        self._run_passes(addresses, summary, self.deleter.release_address)

    def _pause(self, seconds: float) -> None:
        """Wait between steps, returning early once cancellation is requested."""
        self._cancel_event.wait(seconds)

    def _delete_one(self, resource: ManagedResource, pass_number: int) -> List[DeletionAttempt]:
        return [self.deleter.delete(resource, pass_number)]

    def _detach_or_delete(self, resource: ManagedResource, pass_number: int) -> List[DeletionAttempt]:
        if resource.is_attached:
            return self.deleter.detach_and_delete(resource, pass_number)
        return [self.deleter.delete(resource, pass_number)]

    def _run_passes(
        self, resources: List[ManagedResource], summary: TeardownSummary, work: Work
    ) -> List[DeletionAttempt]:
        """Run work over resources, re-trying retryable failures for a bounded number of passes."""
        attempts: List[DeletionAttempt] = []
        pending = list(resources)
        passes = max(1, int(self.config.retry_passes))

        for pass_number in range(1, passes + 1):
            if not pending:
                break
            if pass_number > 1:
                logger.info(f"Retrying {len(pending)} resource(s) in {self.config.retry_delay_seconds}s")
                self._pause(self.config.retry_delay_seconds)
                if self.cancelled:
                    summary.cancelled = True
                    logger.warning(f"Cancelled before retry pass {pass_number}")
                    break

            results = self._fan_out(pending, pass_number, work, summary)
            for _, resource_attempts in results:
                attempts.extend(resource_attempts)
            pending = _retryable(results)

        return attempts

    def _fan_out(
        self, resources: List[ManagedResource], pass_number: int, work: Work, summary: TeardownSummary
    ) -> Results:
        """Apply work to each resource concurrently and record every attempt."""
        if not resources:
            return []

        workers = max(1, min(int(self.config.max_workers), len(resources)))
        if workers == 1:
            outcomes = [work(resource, pass_number) for resource in resources]
        else:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                outcomes = list(executor.map(lambda r: work(r, pass_number), resources))

        results = list(zip(resources, outcomes))
        for _, resource_attempts in results:
            for attempt in resource_attempts:
                summary.record(attempt)
        return results


def reference_levels(groups: List[ManagedResource]) -> Tuple[List[List[ManagedResource]], List[ManagedResource]]:
    """Order security groups so referencing groups come before the groups they reference.

    Args:
        groups: Security groups pending deletion

    Returns:
        Tuple of (levels, tangled). Each level holds groups no other remaining
        group references; tangled holds groups caught in a reference cycle
        (or referenced from one), in input order.
    """
    pending_ids = {g.identifier for g in groups}
    levels: List[List[ManagedResource]] = []

    while pending_ids:
        remaining = [g for g in groups if g.identifier in pending_ids]
        referenced = set()
        for group in remaining:
            referenced |= group.references & pending_ids
        level = [g for g in remaining if g.identifier not in referenced]
        if not level:
            break
        levels.append(level)
        pending_ids -= {g.identifier for g in level}

    tangled = [g for g in groups if g.identifier in pending_ids]
    return levels, tangled


def _retryable(results: Results) -> List[ManagedResource]:
    return [
        resource for resource, attempts in results if attempts and attempts[-1].outcome == AttemptOutcome.RETRYABLE
    ]
