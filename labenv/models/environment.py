"""Environment model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class Environment:
    """Logical target of a lifecycle operation.

    Referenced for the duration of one ``up`` or ``down`` invocation and never
    persisted; ownership of the underlying resources lives in Terraform state.

    Attributes:
        name: Environment name (e.g. "dev")
        region: AWS region
        network_id: VPC identifier, None until the state reader resolves it
        cluster_name: EKS cluster name, None until resolved
    """

    name: str
    region: str
    network_id: Optional[str] = None
    cluster_name: Optional[str] = None

    @property
    def default_cluster_name(self) -> str:
        return f"{self.name}-eks"

    @property
    def has_network(self) -> bool:
        return bool(self.network_id)
