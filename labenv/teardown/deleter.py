"""Per-resource deletion calls.

Maps each resource class to the boto3 call that removes it and turns every
outcome into a typed DeletionAttempt. Nothing here raises for AWS errors:
"not found" is success, and everything else is classified as retryable or
terminal for the orchestrator to act on.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Any, Callable, Dict, Iterable, List

from botocore.exceptions import ClientError

from ..aws.client import TeardownClients
from ..aws.errors import classify_exception, is_not_found
from ..models.deletion_attempt import AttemptAction, AttemptOutcome, DeletionAttempt
from ..models.managed_resource import CLASSIC_ELB_KIND, ManagedResource, ResourceClass

logger = logging.getLogger(__name__)


class DetachTimeout(Exception):
    """Raised when a detached interface does not become available in time."""


class ResourceDeleter:
    """AWS resource deletion for teardown.

    Attributes:
        clients: AWS clients
        detach_timeout: Max seconds to wait for a force-detached interface to become available
        poll_interval: Seconds between interface status polls
    """

    def __init__(self, clients: TeardownClients, detach_timeout: float = 60, poll_interval: float = 5) -> None:
        self.clients = clients
        self.detach_timeout = detach_timeout
        self.poll_interval = poll_interval
        self._deleters: Dict[ResourceClass, Callable[[ManagedResource], Any]] = {
            ResourceClass.LOAD_BALANCER: self._delete_load_balancer,
            ResourceClass.TARGET_GROUP: self._delete_target_group,
            ResourceClass.TRAFFIC_FILTER_GROUP: self._delete_security_group,
            ResourceClass.NETWORK_INTERFACE: self._delete_network_interface,
            ResourceClass.PUBLIC_ADDRESS: self._release_address,
        }

    def delete(self, resource: ManagedResource, pass_number: int = 1) -> DeletionAttempt:
        """Delete a resource with the call for its class.

        Args:
            resource: Resource to delete
            pass_number: Retry pass the attempt belongs to

        Returns:
            DeletionAttempt describing the outcome
        """
        if resource.resource_class == ResourceClass.PUBLIC_ADDRESS:
            action = AttemptAction.RELEASE
        else:
            action = AttemptAction.DELETE
        return self._attempt(resource, action, pass_number, lambda: self._deleters[resource.resource_class](resource))

    def detach_and_delete(self, resource: ManagedResource, pass_number: int = 1) -> List[DeletionAttempt]:
        """Force-detach a non-primary interface, wait until it is available, then delete it.

        Args:
            resource: In-use network interface with an attachment id
            pass_number: Retry pass the attempts belong to

        Returns:
            The detach attempt, followed by the delete attempt if detaching succeeded
        """
        if resource.is_primary_attachment:
            raise ValueError(f"Refusing to detach primary interface {resource.identifier}")

        started = time.monotonic()
        detach = self._attempt(
            resource,
            AttemptAction.DETACH,
            pass_number,
            lambda: self._detach_and_wait(resource),
        )
        detach.elapsed_wait = time.monotonic() - started

        if not detach.succeeded:
            return [detach]
        return [detach, self.delete(resource, pass_number)]

    def release_address(self, resource: ManagedResource, pass_number: int = 1) -> List[DeletionAttempt]:
        """Disassociate an elastic IP if associated, then release it."""
        attempts = []
        if resource.attachment_id:
            disassociate = self._attempt(
                resource,
                AttemptAction.DISASSOCIATE,
                pass_number,
                lambda: self.clients.ec2.disassociate_address(AssociationId=resource.attachment_id),
            )
            attempts.append(disassociate)
            if not disassociate.succeeded:
                return attempts

        attempts.append(self.delete(resource, pass_number))
        return attempts

    def revoke_references(
        self, resource: ManagedResource, group_ids: Iterable[str], pass_number: int = 1
    ) -> DeletionAttempt:
        """Revoke rules of a security group that point at the given groups.

        Used to break reference cycles between groups that are all being deleted.
        """
        targets = set(group_ids)
        return self._attempt(
            resource,
            AttemptAction.REVOKE,
            pass_number,
            lambda: self._revoke_group_rules(resource.identifier, targets),
        )

    def _attempt(
        self,
        resource: ManagedResource,
        action: AttemptAction,
        pass_number: int,
        call: Callable[[], Any],
    ) -> DeletionAttempt:
        outcome, code, message = AttemptOutcome.SUCCEEDED, "", ""
        try:
            call()
        except DetachTimeout as e:
            outcome, code, message = AttemptOutcome.RETRYABLE, "DetachTimeout", str(e)
        except Exception as e:
            outcome, code, message = classify_exception(e)

        attempt = DeletionAttempt(
            resource=resource,
            action=action,
            pass_number=pass_number,
            outcome=outcome,
            error_code=None if outcome.is_success else code,
            error_message=None if outcome.is_success else message,
        )
        self._log(attempt, code, message)
        return attempt

    def _log(self, attempt: DeletionAttempt, code: str = "", message: str = "") -> None:
        target = f"{attempt.resource.describe()} (pass {attempt.pass_number})"
        action = attempt.action.value
        if attempt.outcome == AttemptOutcome.SUCCEEDED:
            logger.info(f"{action.capitalize()} succeeded: {target}")
        elif attempt.outcome == AttemptOutcome.ALREADY_ABSENT:
            logger.info(f"{action.capitalize()} skipped, already gone: {target}")
        elif attempt.outcome == AttemptOutcome.RETRYABLE:
            logger.warning(f"Could not {action} {target}, will retry: {code} - {message}")
        else:
            logger.error(f"Failed to {action} {target}: {code} - {message}")

    def _delete_load_balancer(self, resource: ManagedResource) -> None:
        if resource.kind == CLASSIC_ELB_KIND:
            self.clients.elb.delete_load_balancer(LoadBalancerName=resource.identifier)
        else:
            self.clients.elbv2.delete_load_balancer(LoadBalancerArn=resource.identifier)

    def _delete_target_group(self, resource: ManagedResource) -> None:
        self.clients.elbv2.delete_target_group(TargetGroupArn=resource.identifier)

    def _delete_security_group(self, resource: ManagedResource) -> None:
        self.clients.ec2.delete_security_group(GroupId=resource.identifier)

    def _delete_network_interface(self, resource: ManagedResource) -> None:
        self.clients.ec2.delete_network_interface(NetworkInterfaceId=resource.identifier)

    def _release_address(self, resource: ManagedResource) -> None:
        self.clients.ec2.release_address(AllocationId=resource.identifier)

    def _detach_and_wait(self, resource: ManagedResource) -> None:
        self.clients.ec2.detach_network_interface(AttachmentId=resource.attachment_id, Force=True)
        self._wait_until_available(resource.identifier)

    def _wait_until_available(self, eni_id: str) -> None:
        """Poll an interface until it reports ``available``.

        Raises:
            DetachTimeout: If the interface is still attached after the timeout
        """
        polls = max(1, math.ceil(self.detach_timeout / self.poll_interval)) if self.poll_interval > 0 else 1
        status = "unknown"

        for _ in range(polls):
            try:
                response = self.clients.ec2.describe_network_interfaces(NetworkInterfaceIds=[eni_id])
            except ClientError as e:
                if is_not_found(e):
                    return
                raise

            interfaces = response.get("NetworkInterfaces", [])
            if not interfaces:
                return
            status = interfaces[0].get("Status", "unknown")
            if status == "available":
                return

            time.sleep(self.poll_interval)

        raise DetachTimeout(f"{eni_id} still {status} after {self.detach_timeout}s")

    def _revoke_group_rules(self, group_id: str, targets: set) -> None:
        response = self.clients.ec2.describe_security_groups(GroupIds=[group_id])
        groups = response.get("SecurityGroups", [])
        if not groups:
            return

        group = groups[0]
        ingress = _permissions_referencing(group.get("IpPermissions", []), targets)
        egress = _permissions_referencing(group.get("IpPermissionsEgress", []), targets)

        if ingress:
            self.clients.ec2.revoke_security_group_ingress(GroupId=group_id, IpPermissions=ingress)
        if egress:
            self.clients.ec2.revoke_security_group_egress(GroupId=group_id, IpPermissions=egress)


def _permissions_referencing(permissions: List[dict], targets: set) -> List[dict]:
    """Narrow rule entries to the group pairs that point at target groups."""
    narrowed = []
    for permission in permissions:
        pairs = [p for p in permission.get("UserIdGroupPairs", []) if p.get("GroupId") in targets]
        if not pairs:
            continue
        entry = {k: v for k, v in permission.items() if k in ("IpProtocol", "FromPort", "ToPort")}
        entry["UserIdGroupPairs"] = [{"GroupId": p["GroupId"]} for p in pairs]
        narrowed.append(entry)
    return narrowed
