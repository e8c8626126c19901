"""Environment bring-up.

init -> staged targeted applies -> full apply -> wait for the cluster -> kubeconfig.
Staged applies create the network and the cluster control plane first so the
full apply can configure providers that depend on them.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError

from .cluster import update_kubeconfig, wait_for_cluster_active
from .config import Config
from .tagging import base_tags, write_tfvars
from .terraform.runner import TerraformResult, TerraformRunner

logger = logging.getLogger(__name__)


def prepare_variables(
    config: Config, extra_tags: Optional[Dict[str, str]] = None, now: Optional[datetime] = None
) -> None:
    """Write the tag set and environment variables Terraform reads on apply/plan."""
    tags = base_tags(config.environment, config.owner, int(config.ttl_hours), now=now, extra=extra_tags)
    path = write_tfvars(config.terraform_dir, config.environment, config.region, tags)
    logger.debug(f"Wrote {path}")


class EnvironmentBringUp:
    """Creates an environment with Terraform.

    Attributes:
        config: Resolved configuration
        runner: Terraform runner for the environment's root module
        wait_for_cluster: Blocks until the cluster is active (default: boto3 EKS waiter)
        kubeconfig: Updates the local kubeconfig, returns an exit status
        extra_tags: Tags added to the standard ownership set (optional)
    """

    def __init__(
        self,
        config: Config,
        runner: TerraformRunner,
        wait_for_cluster: Optional[Callable[[str, str, Optional[str]], None]] = None,
        kubeconfig: Optional[Callable[[str, str, Optional[str]], int]] = None,
        extra_tags: Optional[Dict[str, str]] = None,
    ) -> None:
        self.config = config
        self.runner = runner
        self.wait_for_cluster = wait_for_cluster or wait_for_cluster_active
        self.kubeconfig = kubeconfig or update_kubeconfig
        self.extra_tags = extra_tags

    def run(self) -> int:
        """Bring the environment up.

        Returns:
            0 on success, else the exit status of the first failing step
        """
        config = self.config
        prepare_variables(config, self.extra_tags)

        steps = [("terraform init", self.runner.init)]
        for target in config.staged_targets:
            steps.append((f"terraform apply -target={target}", lambda t=target: self.runner.apply(target=t)))
        steps.append(("terraform apply", self.runner.apply))

        for description, step in steps:
            logger.info(f"Running {description}")
            result: TerraformResult = step()
            if not result.ok:
                logger.error(f"{description} failed with exit code {result.returncode}")
                return result.returncode

        try:
            self.wait_for_cluster(config.cluster_name, config.region, config.aws_profile)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Cluster {config.cluster_name} did not become active: {e}")
            return 1

        return self.kubeconfig(config.cluster_name, config.region, config.aws_profile)
