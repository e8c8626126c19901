"""EKS cluster readiness and kubeconfig."""

from __future__ import annotations

import logging
import shutil
import subprocess
from typing import Any, List, Optional

from .aws.client import create_boto_client

logger = logging.getLogger(__name__)

# Exit status shells use for a command that cannot be found.
COMMAND_NOT_FOUND = 127


def wait_for_cluster_active(
    cluster_name: str,
    region: str,
    profile_name: Optional[str] = None,
    delay: int = 30,
    max_attempts: int = 40,
    eks_client: Optional[Any] = None,
) -> None:
    """Block until the EKS cluster reports ACTIVE.

    Args:
        cluster_name: EKS cluster name
        region: AWS region
        profile_name: AWS profile name (optional)
        delay: Seconds between status checks
        max_attempts: Status checks before giving up
        eks_client: Pre-built EKS client (optional)

    Raises:
        botocore.exceptions.WaiterError: If the cluster does not become active in time
    """
    client = eks_client or create_boto_client("eks", region_name=region, profile_name=profile_name)
    logger.info(f"Waiting for EKS cluster {cluster_name} to become ACTIVE")
    waiter = client.get_waiter("cluster_active")
    waiter.wait(name=cluster_name, WaiterConfig={"Delay": delay, "MaxAttempts": max_attempts})
    logger.info(f"Cluster {cluster_name} is ACTIVE")


def update_kubeconfig(cluster_name: str, region: str, profile_name: Optional[str] = None) -> int:
    """Point the local kubeconfig at the cluster with ``aws eks update-kubeconfig``.

    Returns:
        Exit status of the aws CLI (127 when it is not installed)
    """
    aws_bin = shutil.which("aws")
    if aws_bin is None:
        logger.error("aws CLI not found; install it to configure kubectl access")
        return COMMAND_NOT_FOUND

    command: List[str] = [aws_bin, "eks", "update-kubeconfig", "--name", cluster_name, "--region", region]
    if profile_name:
        command.extend(["--profile", profile_name])

    logger.debug(f"Running {' '.join(command)}")
    completed = subprocess.run(command, capture_output=True, text=True)

    if completed.returncode != 0:
        logger.error(f"aws eks update-kubeconfig failed ({completed.returncode}): {completed.stderr.strip()}")
    else:
        logger.info(completed.stdout.strip() or f"kubeconfig updated for {cluster_name}")

    return completed.returncode
