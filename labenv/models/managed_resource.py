"""Managed resource model.

A cloud object discovered as a teardown-blocking dependency that Terraform's
own state does not track.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Optional


class ResourceClass(Enum):
    """Resource classes handled by teardown, declared in deletion order."""

    LOAD_BALANCER = "load-balancer"
    TARGET_GROUP = "target-group"
    TRAFFIC_FILTER_GROUP = "traffic-filter-group"
    NETWORK_INTERFACE = "network-interface"
    PUBLIC_ADDRESS = "public-address"

    @property
    def deletion_order(self) -> int:
        return list(ResourceClass).index(self)

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    ResourceClass.LOAD_BALANCER: "load balancer",
    ResourceClass.TARGET_GROUP: "target group",
    ResourceClass.TRAFFIC_FILTER_GROUP: "security group",
    ResourceClass.NETWORK_INTERFACE: "network interface",
    ResourceClass.PUBLIC_ADDRESS: "elastic IP",
}

# Classic ELBs are addressed by name; every ELBv2 identifier is an ARN.
CLASSIC_ELB_KIND = "classic"
ELBV2_KIND = "elbv2"


@dataclass
class ManagedResource:
    """Discovered cloud object subject to deletion.

    Attributes:
        resource_class: Class of the resource, which fixes its deletion phase
        identifier: Opaque identifier (ARN, group id, interface id, allocation id)
        status: Provider status (e.g. "available", "in-use", "active")
        network_id: VPC the resource was found in
        name: Display name (optional)
        attached_to: Object the resource is bound to (instance id, load balancer ARN)
        attachment_id: Id needed to break the attachment (ENI attachment or EIP association)
        device_index: Interface attachment device index, when attached
        references: Security group ids this group references in its rules
        kind: Sub-kind within the class (e.g. "classic" or "elbv2" load balancer)
        tags: Resource tags at discovery time
    """

    resource_class: ResourceClass
    identifier: str
    status: str = "unknown"
    network_id: Optional[str] = None
    name: Optional[str] = None
    attached_to: Optional[str] = None
    attachment_id: Optional[str] = None
    device_index: Optional[int] = None
    references: FrozenSet[str] = field(default_factory=frozenset)
    kind: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)

    @property
    def display_name(self) -> str:
        if self.name and self.name != self.identifier:
            return f"{self.name} ({self.identifier})"
        return self.identifier

    @property
    def is_attached(self) -> bool:
        return self.status == "in-use" and self.attachment_id is not None

    @property
    def is_primary_attachment(self) -> bool:
        """True for an instance's primary interface (device index 0)."""
        return self.device_index == 0

    def describe(self) -> str:
        return f"{self.resource_class.label} {self.display_name}"
