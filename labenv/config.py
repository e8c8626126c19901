"""Configuration for labenv.

Values are resolved once, in increasing precedence: built-in defaults, a YAML
config file, environment variables, then CLI options applied by the caller.
The resulting Config is passed explicitly to every component.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".labenv" / "config.yaml"

# Environment variable -> config attribute. Earlier names win over later ones.
ENV_OVERRIDES = [
    ("LABENV_ENV", "environment"),
    ("ENV", "environment"),
    ("LABENV_REGION", "region"),
    ("REGION", "region"),
    ("AWS_PROFILE", "aws_profile"),
    ("LABENV_LOG_LEVEL", "log_level"),
    ("LABENV_TERRAFORM_DIR", "terraform_dir"),
    ("LABENV_OWNER", "owner"),
]


@dataclass
class Config:
    """Resolved labenv configuration.

    Attributes:
        environment: Environment name (e.g. "dev")
        region: AWS region of the environment
        aws_profile: AWS profile used for credentials (optional)
        log_level: Default log level when neither --verbose nor --quiet is given
        terraform_dir: Directory holding the Terraform root module
        terraform_bin: Terraform executable name or path
        owner: Value of the Owner tag written on created resources
        ttl_hours: Lifetime recorded in the TTL tags
        staged_targets: Targets applied one by one before the full apply
        lb_settle_seconds: Fixed wait after load balancer deletion
        sg_passes: Security group deletion passes
        sg_pass_delay_seconds: Wait after a security group pass that left groups behind
        retry_passes: Passes for retryable failures in the other resource classes
        retry_delay_seconds: Wait between those passes
        eni_detach_timeout_seconds: Max time to wait for a detached interface to become available
        eni_poll_interval_seconds: Interval between interface status polls
        max_workers: Concurrent delete calls within one resource class
        audit_dir: Directory for teardown audit logs (default: ~/.labenv/audit-logs)
    """

    environment: str = "dev"
    region: str = "us-east-1"
    aws_profile: Optional[str] = None
    log_level: str = "INFO"
    terraform_dir: str = "infra"
    terraform_bin: str = "terraform"
    owner: str = "lab"
    ttl_hours: int = 24
    staged_targets: List[str] = field(
        default_factory=lambda: ["module.vpc", "module.eks.aws_eks_cluster.this"]
    )
    lb_settle_seconds: float = 60
    sg_passes: int = 3
    sg_pass_delay_seconds: float = 5
    retry_passes: int = 2
    retry_delay_seconds: float = 5
    eni_detach_timeout_seconds: float = 60
    eni_poll_interval_seconds: float = 5
    max_workers: int = 4
    audit_dir: Optional[str] = None

    @property
    def cluster_name(self) -> str:
        """Default EKS cluster name for the environment."""
        return f"{self.environment}-eks"

    @classmethod
    def load(cls, path: Optional[str] = None, environ: Optional[Dict[str, str]] = None) -> "Config":
        """Load configuration from file and environment variables.

        Args:
            path: Explicit YAML config path. Falls back to $LABENV_CONFIG, then
                ~/.labenv/config.yaml. A missing default file is not an error.
            environ: Environment mapping (default: os.environ)

        Returns:
            Resolved Config

        Raises:
            ValueError: If the config file is unreadable or has unknown keys
        """
        environ = os.environ if environ is None else environ
        config = cls()

        explicit = path or environ.get("LABENV_CONFIG")
        config_path = Path(explicit).expanduser() if explicit else DEFAULT_CONFIG_PATH

        if config_path.exists():
            config.update(cls._read_file(config_path))
            logger.debug(f"Loaded configuration from {config_path}")
        elif explicit:
            raise ValueError(f"Config file not found: {config_path}")

        applied = set()
        for var, attr in ENV_OVERRIDES:
            value = environ.get(var)
            if value and attr not in applied:
                setattr(config, attr, value)
                applied.add(attr)

        return config

    @staticmethod
    def _read_file(config_path: Path) -> Dict[str, Any]:
        try:
            with open(config_path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {config_path}: {e}")

        if not isinstance(data, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")

        return data

    def update(self, values: Dict[str, Any]) -> None:
        """Apply a mapping of overrides, ignoring None values.

        Raises:
            ValueError: If a key is not a known config attribute
        """
        known = {f.name for f in fields(self)}
        for key, value in values.items():
            normalized = key.replace("-", "_")
            if normalized not in known:
                raise ValueError(f"Unknown config key: {key}")
            if value is not None:
                setattr(self, normalized, value)
