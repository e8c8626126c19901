"""Environment state lookup from Terraform outputs."""

from __future__ import annotations

import logging
from typing import Any, Dict

from ..models.environment import Environment
from ..terraform.runner import TerraformNotFoundError, TerraformRunner

logger = logging.getLogger(__name__)

VPC_OUTPUT = "vpc_id"
CLUSTER_OUTPUT = "cluster_name"
REGION_OUTPUT = "region"


class StateReader:
    """Resolves an environment's network and cluster from Terraform state.

    Never raises for missing or broken state: the returned Environment simply
    has no network_id, and callers skip network-scoped discovery.
    """

    def __init__(self, runner: TerraformRunner) -> None:
        self.runner = runner

    def read(self, name: str, region: str) -> Environment:
        """Read the environment's last-known outputs.

        Args:
            name: Environment name
            region: Region to use when Terraform does not export one

        Returns:
            Environment with network_id/cluster_name filled in where known
        """
        environment = Environment(name=name, region=region)

        try:
            outputs = self.runner.output()
        except (TerraformNotFoundError, OSError) as e:
            logger.warning(f"Could not read Terraform state for {name}: {e}")
            outputs = {}

        return self._apply_outputs(environment, outputs)

    def _apply_outputs(self, environment: Environment, outputs: Dict[str, Any]) -> Environment:
        vpc_id = outputs.get(VPC_OUTPUT)
        if isinstance(vpc_id, str) and vpc_id:
            environment.network_id = vpc_id
        else:
            logger.warning(
                f"No {VPC_OUTPUT} output recorded for {environment.name}; network-scoped cleanup will be skipped"
            )

        cluster_name = outputs.get(CLUSTER_OUTPUT)
        environment.cluster_name = cluster_name if isinstance(cluster_name, str) and cluster_name else (
            environment.default_cluster_name
        )

        region = outputs.get(REGION_OUTPUT)
        if isinstance(region, str) and region and region != environment.region:
            logger.info(f"Terraform state reports region {region}; using it instead of {environment.region}")
            environment.region = region

        logger.debug(
            f"Resolved environment {environment.name}: network={environment.network_id} "
            f"cluster={environment.cluster_name} region={environment.region}"
        )
        return environment
