"""Teardown pipeline.

State reader -> dependent resource cleanup -> ``terraform destroy`` ->
leaked resource check -> audit log.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from ..aws.client import TeardownClients
from ..config import Config
from ..models.environment import Environment
from ..models.managed_resource import ManagedResource
from ..models.teardown_summary import TeardownSummary
from ..terraform.runner import TerraformResult, TerraformRunner
from .audit import AuditStorage
from .deleter import ResourceDeleter
from .discovery import DependentResourceDiscoverer
from .orchestrator import DeletionOrchestrator
from .state import StateReader
from .verification import LeakChecker

logger = logging.getLogger(__name__)

# Conventional exit status for a run stopped by SIGINT.
CANCELLED_EXIT_CODE = 130


@dataclass
class TeardownResult:
    """Outcome of a teardown pipeline run.

    Attributes:
        environment: Environment as resolved from Terraform state
        summary: Orchestrator summary (a plan in dry-run mode)
        destroy_result: Result of ``terraform destroy`` (None if it did not run)
        leaks: Resources found after destroy (None if the check did not run or failed)
        audit_path: Path of the written audit log (optional)
    """

    environment: Environment
    summary: TeardownSummary
    destroy_result: Optional[TerraformResult] = None
    leaks: Optional[List[ManagedResource]] = None
    audit_path: Optional[str] = None

    @property
    def exit_code(self) -> int:
        """Destroy's exit code; per-resource cleanup failures never change it."""
        if self.destroy_result is not None:
            return self.destroy_result.returncode
        if self.summary.cancelled:
            return CANCELLED_EXIT_CODE
        return 0


class TeardownPipeline:
    """Runs a full environment teardown.

    Attributes:
        config: Resolved configuration
        runner: Terraform runner for the environment's root module
        clients: AWS clients (created for the resolved region when not given)
        audit_storage: Where non-dry-run results are logged (optional)
    """

    def __init__(
        self,
        config: Config,
        runner: TerraformRunner,
        clients: Optional[TeardownClients] = None,
        audit_storage: Optional[AuditStorage] = None,
    ) -> None:
        self.config = config
        self.runner = runner
        self.clients = clients
        self.audit_storage = audit_storage
        self._cancel_event = threading.Event()

    def cancel(self) -> None:
        """Ask the running cleanup to stop at the next class or pass boundary."""
        logger.warning("Teardown cancellation requested")
        self._cancel_event.set()

    def run(self, dry_run: bool = False, skip_cleanup: bool = False) -> TeardownResult:
        """Tear the environment down.

        Args:
            dry_run: Only list what would be deleted; never mutates anything
            skip_cleanup: Go straight to ``terraform destroy``

        Returns:
            TeardownResult; exit_code mirrors destroy's exit status
        """
        config = self.config
        environment = StateReader(self.runner).read(config.environment, config.region)
        clients = self.clients or TeardownClients.create(environment.region, config.aws_profile)

        orchestrator = DeletionOrchestrator(
            DependentResourceDiscoverer(environment, clients),
            ResourceDeleter(
                clients,
                detach_timeout=config.eni_detach_timeout_seconds,
                poll_interval=config.eni_poll_interval_seconds,
            ),
            config,
            cancel_event=self._cancel_event,
        )

        if dry_run:
            logger.info(f"Dry run: listing dependent resources of {environment.name}")
            return TeardownResult(environment=environment, summary=orchestrator.plan())

        if skip_cleanup:
            logger.info("Skipping dependent resource cleanup")
            summary = TeardownSummary(
                environment=environment.name, region=environment.region, network_id=environment.network_id
            )
            summary.finish()
        else:
            summary = orchestrator.run()

        result = TeardownResult(environment=environment, summary=summary)

        if summary.cancelled:
            logger.warning("Teardown cancelled; terraform destroy was not run")
            self._audit(result)
            return result

        logger.info(f"Running terraform destroy for {environment.name}")
        result.destroy_result = self.runner.destroy()

        if result.destroy_result.ok:
            result.leaks = self._check_leaks(environment, clients)
        else:
            logger.error(f"terraform destroy exited with {result.destroy_result.returncode}")

        self._audit(result)
        return result

    def _check_leaks(self, environment: Environment, clients: TeardownClients) -> Optional[List[ManagedResource]]:
        try:
            return LeakChecker(environment, clients).check()
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"Leak check failed after destroy: {e}. Run 'labenv cleanup-check' to retry.")
            return None

    def _audit(self, result: TeardownResult) -> None:
        if self.audit_storage is None:
            return

        returncode = result.destroy_result.returncode if result.destroy_result is not None else None
        try:
            path = self.audit_storage.log_teardown(result.summary, returncode, result.leaks)
        except OSError as e:
            logger.warning(f"Could not write teardown audit log: {e}")
            return

        result.audit_path = str(path)
        logger.debug(f"Teardown audit log written to {path}")
