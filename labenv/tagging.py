"""Ownership and TTL tagging for lab resources.

Tags are handed to Terraform as the ``default_tags`` variable, so every
resource the AWS provider creates carries them. The same keys are used later
to prove that a resource belongs to an environment.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional

PROJECT_TAG = "Project"
ENVIRONMENT_TAG = "Environment"
OWNER_TAG = "Owner"
MANAGED_BY_TAG = "ManagedBy"
CREATED_AT_TAG = "CreatedAt"
TTL_HOURS_TAG = "TTLHours"
EXPIRES_AT_TAG = "ExpiresAt"

MANAGED_BY = "labenv"
PROJECT = "lab"

# Tags written by EKS and the AWS Load Balancer Controller on resources they create.
CLUSTER_TAG_PREFIX = "kubernetes.io/cluster/"
LB_CONTROLLER_CLUSTER_TAG = "elbv2.k8s.aws/cluster"

TFVARS_FILENAME = "labenv.auto.tfvars.json"


def base_tags(
    environment: str,
    owner: str,
    ttl_hours: int,
    now: Optional[datetime] = None,
    extra: Optional[Dict[str, str]] = None,
) -> Dict[str, str]:
    """Build the uniform tag set for an environment.

    Args:
        environment: Environment name
        owner: Owner recorded on every resource
        ttl_hours: Lifetime in hours
        now: Creation time (default: current UTC time)
        extra: Additional tags to include

    Returns:
        Dictionary of tags
    """
    now = now or datetime.utcnow()
    tags = {
        PROJECT_TAG: PROJECT,
        ENVIRONMENT_TAG: environment,
        OWNER_TAG: owner,
        MANAGED_BY_TAG: MANAGED_BY,
        CREATED_AT_TAG: now.replace(microsecond=0).isoformat() + "Z",
        TTL_HOURS_TAG: str(ttl_hours),
        EXPIRES_AT_TAG: (now + timedelta(hours=ttl_hours)).replace(microsecond=0).isoformat() + "Z",
    }

    if extra:
        tags.update(extra)

    return tags


def parse_tags(tag_strings: List[str]) -> Dict[str, str]:
    """Parse "key=value" strings.

    Raises:
        ValueError: If a tag string is malformed
    """
    tags = {}

    for tag_str in tag_strings:
        if "=" not in tag_str:
            raise ValueError(f"Invalid tag format: {tag_str}. Expected 'key=value'")

        key, value = tag_str.split("=", 1)
        if not key.strip() or not value.strip():
            raise ValueError(f"Invalid tag format: {tag_str}. Key and value must not be empty")

        tags[key.strip()] = value.strip()

    return tags


def tags_from_aws(tag_list: Optional[List[Dict[str, str]]]) -> Dict[str, str]:
    """Convert an AWS ``[{"Key": ..., "Value": ...}]`` list to a dict."""
    return {tag["Key"]: tag.get("Value", "") for tag in tag_list or []}


def is_expired(tags: Dict[str, str], now: Optional[datetime] = None) -> bool:
    """Check whether a resource's TTL has elapsed.

    Resources without a parseable ExpiresAt tag never expire.
    """
    if EXPIRES_AT_TAG not in tags:
        return False

    try:
        expires_at = datetime.fromisoformat(tags[EXPIRES_AT_TAG].rstrip("Z"))
    except (ValueError, TypeError):
        return False

    return (now or datetime.utcnow()) > expires_at


def belongs_to_environment(tags: Dict[str, str], environment: str, cluster_name: Optional[str] = None) -> bool:
    """Check whether tags prove ownership by an environment or its cluster."""
    if tags.get(ENVIRONMENT_TAG) == environment:
        return True

    if cluster_name:
        if f"{CLUSTER_TAG_PREFIX}{cluster_name}" in tags:
            return True
        if tags.get(LB_CONTROLLER_CLUSTER_TAG) == cluster_name:
            return True

    return False


def write_tfvars(terraform_dir: str, environment: str, region: str, tags: Dict[str, str]) -> Path:
    """Write the auto-loaded tfvars file Terraform picks up on apply and plan.

    Args:
        terraform_dir: Terraform root module directory
        environment: Environment name
        region: AWS region
        tags: Tag set for the provider's default_tags

    Returns:
        Path of the written file
    """
    tfvars_path = Path(terraform_dir) / TFVARS_FILENAME
    tfvars_path.parent.mkdir(parents=True, exist_ok=True)

    with open(tfvars_path, "w") as f:
        json.dump({"environment": environment, "region": region, "default_tags": tags}, f, indent=2)

    return tfvars_path
