"""Discovery of teardown-blocking resources.

Controllers running inside the cluster (the AWS Load Balancer Controller, the
VPC CNI) create load balancers, target groups, security groups, interfaces and
addresses that Terraform never sees. This module enumerates them per class,
scoped to the environment's VPC.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Set

from botocore.exceptions import ClientError

from ..aws.client import TeardownClients
from ..aws.errors import error_code
from ..models.environment import Environment
from ..models.managed_resource import CLASSIC_ELB_KIND, ELBV2_KIND, ManagedResource, ResourceClass
from ..tagging import belongs_to_environment, tags_from_aws

logger = logging.getLogger(__name__)

DEFAULT_SECURITY_GROUP_NAME = "default"


class DependentResourceDiscoverer:
    """Enumerates resources that block ``terraform destroy``.

    Every enumeration is independent: a failed query is logged and yields
    zero resources of that class, so one transient error never aborts a
    teardown. The verification report catches anything missed this way.

    Attributes:
        environment: Environment being torn down (network_id must be resolved
            for anything to be found)
        clients: AWS clients
    """

    def __init__(self, environment: Environment, clients: TeardownClients) -> None:
        self.environment = environment
        self.clients = clients
        self._enumerators: Dict[ResourceClass, Callable[[str], List[ManagedResource]]] = {
            ResourceClass.LOAD_BALANCER: self._load_balancers,
            ResourceClass.TARGET_GROUP: self._target_groups,
            ResourceClass.TRAFFIC_FILTER_GROUP: self._security_groups,
            ResourceClass.NETWORK_INTERFACE: self._network_interfaces,
            ResourceClass.PUBLIC_ADDRESS: self._public_addresses,
        }

    def discover(self) -> List[ManagedResource]:
        """Enumerate every resource class.

        Returns:
            Flat list ordered by deletion order; empty when the network is unknown
        """
        resources: List[ManagedResource] = []
        for resource_class in ResourceClass:
            resources.extend(self.discover_class(resource_class))
        return sorted(resources, key=lambda r: r.resource_class.deletion_order)

    def discover_class(self, resource_class: ResourceClass) -> List[ManagedResource]:
        """Enumerate a single resource class.

        Args:
            resource_class: Class to enumerate

        Returns:
            Resources of that class in the environment's VPC
        """
        if not self.environment.has_network:
            logger.debug(f"Network unknown, skipping {resource_class.label} discovery")
            return []

        network_id = self.environment.network_id
        try:
            resources = self._enumerators[resource_class](network_id)
        except ClientError as e:
            logger.error(
                f"Error listing {resource_class.label}s in {network_id} ({error_code(e)}): {e}; "
                f"treating as none found"
            )
            return []
        except Exception as e:
            logger.error(f"Error listing {resource_class.label}s in {network_id}: {e}; treating as none found")
            return []

        logger.info(f"Found {len(resources)} {resource_class.label}(s) in {network_id}")
        return resources

    def _load_balancers(self, network_id: str) -> List[ManagedResource]:
        resources = []

        paginator = self.clients.elbv2.get_paginator("describe_load_balancers")
        for page in paginator.paginate():
            for lb in page.get("LoadBalancers", []):
                if lb.get("VpcId") != network_id:
                    continue
                resources.append(
                    ManagedResource(
                        resource_class=ResourceClass.LOAD_BALANCER,
                        identifier=lb["LoadBalancerArn"],
                        name=lb.get("LoadBalancerName"),
                        status=lb.get("State", {}).get("Code", "unknown"),
                        network_id=network_id,
                        kind=ELBV2_KIND,
                    )
                )

        if self.clients.elb is not None:
            paginator = self.clients.elb.get_paginator("describe_load_balancers")
            for page in paginator.paginate():
                for lb in page.get("LoadBalancerDescriptions", []):
                    if lb.get("VPCId") != network_id:
                        continue
                    resources.append(
                        ManagedResource(
                            resource_class=ResourceClass.LOAD_BALANCER,
                            identifier=lb["LoadBalancerName"],
                            name=lb["LoadBalancerName"],
                            status="active",
                            network_id=network_id,
                            kind=CLASSIC_ELB_KIND,
                        )
                    )

        return resources

    def _target_groups(self, network_id: str) -> List[ManagedResource]:
        resources = []

        paginator = self.clients.elbv2.get_paginator("describe_target_groups")
        for page in paginator.paginate():
            for tg in page.get("TargetGroups", []):
                if tg.get("VpcId") != network_id:
                    continue
                lb_arns = tg.get("LoadBalancerArns", [])
                resources.append(
                    ManagedResource(
                        resource_class=ResourceClass.TARGET_GROUP,
                        identifier=tg["TargetGroupArn"],
                        name=tg.get("TargetGroupName"),
                        status="in-use" if lb_arns else "available",
                        network_id=network_id,
                        attached_to=lb_arns[0] if lb_arns else None,
                    )
                )

        return resources

    def _security_groups(self, network_id: str) -> List[ManagedResource]:
        resources = []

        paginator = self.clients.ec2.get_paginator("describe_security_groups")
        for page in paginator.paginate(Filters=[{"Name": "vpc-id", "Values": [network_id]}]):
            for sg in page.get("SecurityGroups", []):
                # The VPC's default group can never be deleted.
                if sg.get("GroupName") == DEFAULT_SECURITY_GROUP_NAME:
                    continue
                resources.append(
                    ManagedResource(
                        resource_class=ResourceClass.TRAFFIC_FILTER_GROUP,
                        identifier=sg["GroupId"],
                        name=sg.get("GroupName"),
                        status="available",
                        network_id=network_id,
                        references=frozenset(referenced_group_ids(sg) - {sg["GroupId"]}),
                        tags=tags_from_aws(sg.get("Tags")),
                    )
                )

        return resources

    def _network_interfaces(self, network_id: str) -> List[ManagedResource]:
        resources = []

        paginator = self.clients.ec2.get_paginator("describe_network_interfaces")
        for page in paginator.paginate(Filters=[{"Name": "vpc-id", "Values": [network_id]}]):
            for eni in page.get("NetworkInterfaces", []):
                resource = self._interface_resource(eni, network_id)
                if resource is not None:
                    resources.append(resource)

        return resources

    def _interface_resource(self, eni: dict, network_id: str) -> Optional[ManagedResource]:
        eni_id = eni["NetworkInterfaceId"]
        status = eni.get("Status", "unknown")
        tags = tags_from_aws(eni.get("TagSet"))

        if status == "available":
            return ManagedResource(
                resource_class=ResourceClass.NETWORK_INTERFACE,
                identifier=eni_id,
                name=eni.get("Description") or None,
                status=status,
                network_id=network_id,
                tags=tags,
            )

        attachment = eni.get("Attachment") or {}
        device_index = attachment.get("DeviceIndex")
        if status != "in-use" or not attachment.get("AttachmentId"):
            return None

        # Primary interfaces belong to live instances; only the instance's own termination removes them.
        if device_index is None or device_index == 0:
            logger.debug(f"Leaving primary interface {eni_id} attached to {attachment.get('InstanceId')}")
            return None

        return ManagedResource(
            resource_class=ResourceClass.NETWORK_INTERFACE,
            identifier=eni_id,
            name=eni.get("Description") or None,
            status=status,
            network_id=network_id,
            attached_to=attachment.get("InstanceId") or attachment.get("InstanceOwnerId"),
            attachment_id=attachment["AttachmentId"],
            device_index=device_index,
            tags=tags,
        )

    def _public_addresses(self, network_id: str) -> List[ManagedResource]:
        # Addresses are not VPC-scoped. An associated address belongs to the
        # environment only when teardown removes its interface; an unassociated
        # one must carry the environment's tags.
        removable = self._removable_interface_ids(network_id)
        environment = self.environment
        resources = []

        response = self.clients.ec2.describe_addresses(Filters=[{"Name": "domain", "Values": ["vpc"]}])
        for address in response.get("Addresses", []):
            allocation_id = address.get("AllocationId")
            if not allocation_id:
                continue

            tags = tags_from_aws(address.get("Tags"))
            interface_id = address.get("NetworkInterfaceId")
            if interface_id:
                if interface_id not in removable:
                    logger.debug(f"Skipping elastic IP {allocation_id}: {interface_id} is not removed by teardown")
                    continue
            elif not belongs_to_environment(tags, environment.name, environment.cluster_name):
                logger.debug(f"Skipping elastic IP {allocation_id}: no proof it belongs to {environment.name}")
                continue

            resources.append(_address_resource(address, network_id, tags))

        return resources

    def refresh_addresses(self, addresses: List[ManagedResource]) -> List[ManagedResource]:
        """Bring previously discovered elastic IPs up to date before release.

        Ownership is settled at discovery time, before the interfaces the
        addresses sat on are deleted (which disassociates them). This only
        re-reads association state.

        Args:
            addresses: Elastic IPs returned by an earlier discovery

        Returns:
            The addresses that still exist, with current associations. Addresses
            moved to another interface since discovery are left alone. If the
            query fails the addresses are returned unchanged.
        """
        if not addresses:
            return []

        try:
            response = self.clients.ec2.describe_addresses(
                Filters=[{"Name": "allocation-id", "Values": [a.identifier for a in addresses]}]
            )
        except ClientError as e:
            logger.warning(f"Error refreshing elastic IPs ({error_code(e)}): {e}; using discovery results")
            return list(addresses)

        current = {a["AllocationId"]: a for a in response.get("Addresses", []) if a.get("AllocationId")}
        refreshed = []
        for claimed in addresses:
            address = current.get(claimed.identifier)
            if address is None:
                logger.info(f"Elastic IP {claimed.identifier} already released")
                continue

            interface_id = address.get("NetworkInterfaceId")
            if interface_id and interface_id != claimed.attached_to:
                logger.warning(f"Elastic IP {claimed.identifier} moved to {interface_id} since discovery; leaving it")
                continue

            refreshed.append(_address_resource(address, claimed.network_id, claimed.tags))
        return refreshed

    def _removable_interface_ids(self, network_id: str) -> Set[str]:
        """Interfaces in the VPC that teardown deletes (primary attachments excluded)."""
        interface_ids = set()
        paginator = self.clients.ec2.get_paginator("describe_network_interfaces")
        for page in paginator.paginate(Filters=[{"Name": "vpc-id", "Values": [network_id]}]):
            for eni in page.get("NetworkInterfaces", []):
                if self._interface_resource(eni, network_id) is not None:
                    interface_ids.add(eni["NetworkInterfaceId"])
        return interface_ids


def _address_resource(address: dict, network_id: Optional[str], tags: Dict[str, str]) -> ManagedResource:
    return ManagedResource(
        resource_class=ResourceClass.PUBLIC_ADDRESS,
        identifier=address["AllocationId"],
        name=address.get("PublicIp"),
        status="associated" if address.get("AssociationId") else "available",
        network_id=network_id,
        attached_to=address.get("NetworkInterfaceId") or address.get("InstanceId"),
        attachment_id=address.get("AssociationId"),
        tags=tags,
    )


def referenced_group_ids(security_group: dict) -> Set[str]:
    """Collect the group ids a security group's rules point at."""
    group_ids = set()
    for permission in security_group.get("IpPermissions", []) + security_group.get("IpPermissionsEgress", []):
        for pair in permission.get("UserIdGroupPairs", []):
            if pair.get("GroupId"):
                group_ids.add(pair["GroupId"])
    return group_ids
