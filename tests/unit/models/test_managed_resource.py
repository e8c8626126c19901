"""Tests for ManagedResource and ResourceClass."""

from __future__ import annotations

from labenv.models.environment import Environment
from labenv.models.managed_resource import ManagedResource, ResourceClass


class TestResourceClass:
    """Test suite for ResourceClass."""

    def test_deletion_order(self) -> None:
        """Test classes are declared in the order they must be deleted."""
        ordered = sorted(ResourceClass, key=lambda c: c.deletion_order)

        assert ordered == [
            ResourceClass.LOAD_BALANCER,
            ResourceClass.TARGET_GROUP,
            ResourceClass.TRAFFIC_FILTER_GROUP,
            ResourceClass.NETWORK_INTERFACE,
            ResourceClass.PUBLIC_ADDRESS,
        ]

    def test_labels(self) -> None:
        assert ResourceClass.TRAFFIC_FILTER_GROUP.label == "security group"
        assert ResourceClass.PUBLIC_ADDRESS.label == "elastic IP"


class TestManagedResource:
    """Test suite for ManagedResource."""

    def test_display_name(self) -> None:
        named = ManagedResource(resource_class=ResourceClass.TRAFFIC_FILTER_GROUP, identifier="sg-1", name="web")
        unnamed = ManagedResource(resource_class=ResourceClass.TRAFFIC_FILTER_GROUP, identifier="sg-2")

        assert named.display_name == "web (sg-1)"
        assert unnamed.display_name == "sg-2"
        assert named.describe() == "security group web (sg-1)"

    def test_attachment_properties(self) -> None:
        """Test in-use interfaces with an attachment id are attached; device index 0 is primary."""
        secondary = ManagedResource(
            resource_class=ResourceClass.NETWORK_INTERFACE,
            identifier="eni-1",
            status="in-use",
            attachment_id="eni-attach-1",
            device_index=1,
        )
        primary = ManagedResource(
            resource_class=ResourceClass.NETWORK_INTERFACE,
            identifier="eni-0",
            status="in-use",
            attachment_id="eni-attach-0",
            device_index=0,
        )
        available = ManagedResource(
            resource_class=ResourceClass.NETWORK_INTERFACE, identifier="eni-2", status="available"
        )

        assert secondary.is_attached and not secondary.is_primary_attachment
        assert primary.is_primary_attachment
        assert not available.is_attached
        assert not available.is_primary_attachment


class TestEnvironment:
    """Test suite for Environment."""

    def test_defaults(self) -> None:
        environment = Environment(name="dev", region="us-east-1")

        assert environment.network_id is None
        assert environment.default_cluster_name == "dev-eks"
        assert not environment.has_network

    def test_has_network(self) -> None:
        assert Environment(name="dev", region="us-east-1", network_id="vpc-1").has_network
