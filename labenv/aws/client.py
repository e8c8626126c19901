"""Boto3 client construction."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import boto3
from botocore.config import Config as BotoConfig

# Adaptive mode backs off on throttling.
DEFAULT_BOTO_CONFIG = BotoConfig(retries={"max_attempts": 10, "mode": "adaptive"})


def create_boto_client(
    service_name: str,
    region_name: Optional[str] = None,
    profile_name: Optional[str] = None,
) -> Any:
    """Create a boto3 client for a service.

    Args:
        service_name: AWS service name (e.g. "ec2", "elbv2")
        region_name: AWS region
        profile_name: AWS profile name (optional)

    Returns:
        boto3 client
    """
    session = boto3.Session(profile_name=profile_name, region_name=region_name)
    return session.client(service_name, config=DEFAULT_BOTO_CONFIG)


@dataclass
class TeardownClients:
    """Clients for the services teardown touches.

    Attributes:
        ec2: EC2 client (security groups, interfaces, addresses)
        elbv2: ELBv2 client (application/network load balancers, target groups)
        elb: Classic ELB client (optional)
    """

    ec2: Any
    elbv2: Any
    elb: Any = None

    @classmethod
    def create(cls, region_name: str, profile_name: Optional[str] = None) -> "TeardownClients":
        return cls(
            ec2=create_boto_client("ec2", region_name=region_name, profile_name=profile_name),
            elbv2=create_boto_client("elbv2", region_name=region_name, profile_name=profile_name),
            elb=create_boto_client("elb", region_name=region_name, profile_name=profile_name),
        )
