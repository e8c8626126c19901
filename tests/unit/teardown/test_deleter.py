"""Tests for ResourceDeleter.

Test coverage for per-class delete calls, typed outcomes, forced detach with
status polling, and security group reference revocation.
"""

from __future__ import annotations

from unittest.mock import Mock, patch

import pytest
from botocore.exceptions import EndpointConnectionError

from labenv.models.deletion_attempt import AttemptAction, AttemptOutcome
from labenv.models.managed_resource import CLASSIC_ELB_KIND, ELBV2_KIND, ResourceClass
from labenv.teardown.deleter import ResourceDeleter, _permissions_referencing
from tests.fixtures.cloud import client_error, mock_clients, resource


def _attached_interface(device_index: int = 1):
    return resource(
        ResourceClass.NETWORK_INTERFACE,
        "eni-1",
        status="in-use",
        attachment_id="eni-attach-1",
        device_index=device_index,
    )


class TestDelete:
    """Test suite for single delete calls."""

    def test_delete_calls_per_class(self) -> None:
        """Test each resource class maps to its boto3 delete call."""
        clients = mock_clients()
        deleter = ResourceDeleter(clients)

        deleter.delete(resource(ResourceClass.LOAD_BALANCER, "arn:lb-1", kind=ELBV2_KIND))
        deleter.delete(resource(ResourceClass.LOAD_BALANCER, "classic-1", kind=CLASSIC_ELB_KIND))
        deleter.delete(resource(ResourceClass.TARGET_GROUP, "arn:tg-1"))
        deleter.delete(resource(ResourceClass.TRAFFIC_FILTER_GROUP, "sg-a"))
        deleter.delete(resource(ResourceClass.NETWORK_INTERFACE, "eni-1"))
        release = deleter.delete(resource(ResourceClass.PUBLIC_ADDRESS, "eipalloc-1"))

        clients.elbv2.delete_load_balancer.assert_called_once_with(LoadBalancerArn="arn:lb-1")
        clients.elb.delete_load_balancer.assert_called_once_with(LoadBalancerName="classic-1")
        clients.elbv2.delete_target_group.assert_called_once_with(TargetGroupArn="arn:tg-1")
        clients.ec2.delete_security_group.assert_called_once_with(GroupId="sg-a")
        clients.ec2.delete_network_interface.assert_called_once_with(NetworkInterfaceId="eni-1")
        clients.ec2.release_address.assert_called_once_with(AllocationId="eipalloc-1")
        assert release.action == AttemptAction.RELEASE

    def test_success(self) -> None:
        attempt = ResourceDeleter(mock_clients()).delete(resource(ResourceClass.TRAFFIC_FILTER_GROUP, "sg-a"), 2)

        assert attempt.outcome == AttemptOutcome.SUCCEEDED
        assert attempt.pass_number == 2
        assert attempt.error_code is None
        assert attempt.validate()

    def test_not_found_is_already_absent(self) -> None:
        """Test deleting an already-deleted resource counts as success."""
        clients = mock_clients()
        clients.ec2.delete_security_group.side_effect = client_error("InvalidGroup.NotFound")

        attempt = ResourceDeleter(clients).delete(resource(ResourceClass.TRAFFIC_FILTER_GROUP, "sg-a"))

        assert attempt.outcome == AttemptOutcome.ALREADY_ABSENT
        assert attempt.succeeded
        assert attempt.error_code is None

    def test_dependency_violation_is_retryable(self) -> None:
        clients = mock_clients()
        clients.ec2.delete_security_group.side_effect = client_error("DependencyViolation", "has a dependent object")

        attempt = ResourceDeleter(clients).delete(resource(ResourceClass.TRAFFIC_FILTER_GROUP, "sg-a"))

        assert attempt.outcome == AttemptOutcome.RETRYABLE
        assert attempt.error_code == "DependencyViolation"
        assert attempt.error_message == "has a dependent object"
        assert attempt.validate()

    def test_access_denied_is_terminal(self) -> None:
        clients = mock_clients()
        clients.elbv2.delete_target_group.side_effect = client_error("AccessDenied")

        attempt = ResourceDeleter(clients).delete(resource(ResourceClass.TARGET_GROUP, "arn:tg-1"))

        assert attempt.outcome == AttemptOutcome.TERMINAL

    def test_transport_error_is_retryable(self) -> None:
        clients = mock_clients()
        clients.ec2.delete_network_interface.side_effect = EndpointConnectionError(endpoint_url="https://ec2")

        attempt = ResourceDeleter(clients).delete(resource(ResourceClass.NETWORK_INTERFACE, "eni-1"))

        assert attempt.outcome == AttemptOutcome.RETRYABLE


@patch("labenv.teardown.deleter.time.sleep")
class TestDetachAndDelete:
    """Test suite for forced detach with status polling."""

    def test_detach_polls_until_available_then_deletes(self, mock_sleep: Mock) -> None:
        clients = mock_clients()
        clients.ec2.describe_network_interfaces.side_effect = [
            {"NetworkInterfaces": [{"NetworkInterfaceId": "eni-1", "Status": "in-use"}]},
            {"NetworkInterfaces": [{"NetworkInterfaceId": "eni-1", "Status": "available"}]},
        ]

        attempts = ResourceDeleter(clients, detach_timeout=60, poll_interval=5).detach_and_delete(
            _attached_interface()
        )

        assert [a.action for a in attempts] == [AttemptAction.DETACH, AttemptAction.DELETE]
        assert all(a.outcome == AttemptOutcome.SUCCEEDED for a in attempts)
        assert attempts[0].elapsed_wait >= 0
        clients.ec2.detach_network_interface.assert_called_once_with(AttachmentId="eni-attach-1", Force=True)
        clients.ec2.describe_network_interfaces.assert_called_with(NetworkInterfaceIds=["eni-1"])
        mock_sleep.assert_called_once_with(5)
        clients.ec2.delete_network_interface.assert_called_once_with(NetworkInterfaceId="eni-1")

    def test_detach_timeout_is_retryable_and_skips_delete(self, mock_sleep: Mock) -> None:
        """Test an interface that never becomes available is retried later, not deleted now."""
        clients = mock_clients()
        clients.ec2.describe_network_interfaces.return_value = {
            "NetworkInterfaces": [{"NetworkInterfaceId": "eni-1", "Status": "detaching"}]
        }

        attempts = ResourceDeleter(clients, detach_timeout=10, poll_interval=5).detach_and_delete(
            _attached_interface()
        )

        assert len(attempts) == 1
        assert attempts[0].action == AttemptAction.DETACH
        assert attempts[0].outcome == AttemptOutcome.RETRYABLE
        assert attempts[0].error_code == "DetachTimeout"
        assert clients.ec2.describe_network_interfaces.call_count == 2
        clients.ec2.delete_network_interface.assert_not_called()

    def test_interface_gone_while_polling_counts_as_available(self, mock_sleep: Mock) -> None:
        clients = mock_clients()
        clients.ec2.describe_network_interfaces.side_effect = client_error("InvalidNetworkInterfaceID.NotFound")
        clients.ec2.delete_network_interface.side_effect = client_error("InvalidNetworkInterfaceID.NotFound")

        attempts = ResourceDeleter(clients).detach_and_delete(_attached_interface())

        assert [a.outcome for a in attempts] == [AttemptOutcome.SUCCEEDED, AttemptOutcome.ALREADY_ABSENT]
        mock_sleep.assert_not_called()

    def test_failed_detach_skips_delete(self, mock_sleep: Mock) -> None:
        clients = mock_clients()
        clients.ec2.detach_network_interface.side_effect = client_error("OperationNotPermitted")

        attempts = ResourceDeleter(clients).detach_and_delete(_attached_interface())

        assert len(attempts) == 1
        assert attempts[0].outcome == AttemptOutcome.RETRYABLE
        clients.ec2.delete_network_interface.assert_not_called()

    def test_primary_interface_refused(self, mock_sleep: Mock) -> None:
        clients = mock_clients()

        with pytest.raises(ValueError, match="primary"):
            ResourceDeleter(clients).detach_and_delete(_attached_interface(device_index=0))
        clients.ec2.detach_network_interface.assert_not_called()


class TestReleaseAddress:
    """Test suite for elastic IP release."""

    def test_disassociates_before_release(self) -> None:
        clients = mock_clients()
        manager = Mock()
        manager.attach_mock(clients.ec2.disassociate_address, "disassociate_address")
        manager.attach_mock(clients.ec2.release_address, "release_address")
        address = resource(ResourceClass.PUBLIC_ADDRESS, "eipalloc-1", attachment_id="eipassoc-1")

        attempts = ResourceDeleter(clients).release_address(address)

        assert [a.action for a in attempts] == [AttemptAction.DISASSOCIATE, AttemptAction.RELEASE]
        assert [c[0] for c in manager.mock_calls] == ["disassociate_address", "release_address"]
        clients.ec2.disassociate_address.assert_called_once_with(AssociationId="eipassoc-1")

    def test_unassociated_address_released_directly(self) -> None:
        clients = mock_clients()

        attempts = ResourceDeleter(clients).release_address(resource(ResourceClass.PUBLIC_ADDRESS, "eipalloc-1"))

        assert [a.action for a in attempts] == [AttemptAction.RELEASE]
        clients.ec2.disassociate_address.assert_not_called()

    def test_failed_disassociate_skips_release(self) -> None:
        clients = mock_clients()
        clients.ec2.disassociate_address.side_effect = client_error("AuthFailure")
        address = resource(ResourceClass.PUBLIC_ADDRESS, "eipalloc-1", attachment_id="eipassoc-1")

        attempts = ResourceDeleter(clients).release_address(address)

        assert len(attempts) == 1
        assert attempts[0].outcome == AttemptOutcome.TERMINAL
        clients.ec2.release_address.assert_not_called()


class TestRevokeReferences:
    """Test suite for breaking security group reference cycles."""

    def test_revokes_only_rules_pointing_at_targets(self) -> None:
        clients = mock_clients()
        clients.ec2.describe_security_groups.return_value = {
            "SecurityGroups": [
                {
                    "GroupId": "sg-a",
                    "IpPermissions": [
                        {
                            "IpProtocol": "tcp",
                            "FromPort": 443,
                            "ToPort": 443,
                            "UserIdGroupPairs": [{"GroupId": "sg-b", "UserId": "1"}, {"GroupId": "sg-keep"}],
                            "IpRanges": [{"CidrIp": "10.0.0.0/8"}],
                        },
                        {"IpProtocol": "-1", "IpRanges": [{"CidrIp": "0.0.0.0/0"}], "UserIdGroupPairs": []},
                    ],
                    "IpPermissionsEgress": [
                        {"IpProtocol": "-1", "UserIdGroupPairs": [{"GroupId": "sg-b"}]},
                    ],
                }
            ]
        }
        group = resource(ResourceClass.TRAFFIC_FILTER_GROUP, "sg-a", references=frozenset({"sg-b", "sg-keep"}))

        attempt = ResourceDeleter(clients).revoke_references(group, {"sg-b"}, pass_number=1)

        assert attempt.action == AttemptAction.REVOKE
        assert attempt.outcome == AttemptOutcome.SUCCEEDED
        clients.ec2.revoke_security_group_ingress.assert_called_once_with(
            GroupId="sg-a",
            IpPermissions=[
                {"IpProtocol": "tcp", "FromPort": 443, "ToPort": 443, "UserIdGroupPairs": [{"GroupId": "sg-b"}]}
            ],
        )
        clients.ec2.revoke_security_group_egress.assert_called_once_with(
            GroupId="sg-a", IpPermissions=[{"IpProtocol": "-1", "UserIdGroupPairs": [{"GroupId": "sg-b"}]}]
        )

    def test_group_already_gone(self) -> None:
        clients = mock_clients()
        clients.ec2.describe_security_groups.side_effect = client_error("InvalidGroup.NotFound")

        attempt = ResourceDeleter(clients).revoke_references(
            resource(ResourceClass.TRAFFIC_FILTER_GROUP, "sg-a"), {"sg-b"}
        )

        assert attempt.outcome == AttemptOutcome.ALREADY_ABSENT

    def test_permissions_referencing_no_match(self) -> None:
        assert _permissions_referencing([{"IpProtocol": "tcp", "UserIdGroupPairs": []}], {"sg-b"}) == []
