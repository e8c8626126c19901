"""Post-destroy leaked resource check.

Advisory only: re-queries load balancers and security groups that still
belong to the environment after ``terraform destroy`` and returns them. It
never deletes anything. Query failures propagate so the caller can tell an
empty report from a failed one.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from ..aws.client import TeardownClients
from ..models.environment import Environment
from ..models.managed_resource import CLASSIC_ELB_KIND, ELBV2_KIND, ManagedResource, ResourceClass
from ..tagging import (
    CLUSTER_TAG_PREFIX,
    ENVIRONMENT_TAG,
    LB_CONTROLLER_CLUSTER_TAG,
    belongs_to_environment,
    tags_from_aws,
)
from .discovery import DEFAULT_SECURITY_GROUP_NAME

logger = logging.getLogger(__name__)

# DescribeTags accepts at most 20 load balancers per call.
TAG_BATCH_SIZE = 20


class LeakChecker:
    """Finds resources still owned by an environment.

    A resource is owned when it sits in the environment's VPC (if known) or
    carries the environment's ownership tag or its cluster's tags.
    """

    def __init__(self, environment: Environment, clients: TeardownClients) -> None:
        self.environment = environment
        self.clients = clients

    def check(self) -> List[ManagedResource]:
        """Query for leaked load balancers and security groups.

        Returns:
            Leaked resources, load balancers first

        Raises:
            botocore.exceptions.ClientError: If a query is rejected
            botocore.exceptions.BotoCoreError: If the query transport fails
        """
        leaks = self._load_balancers() + self._security_groups()
        logger.info(f"Leak check for {self.environment.name}: {len(leaks)} resource(s) still present")
        return leaks

    def _owned(self, network_id: Optional[str], tags: Dict[str, str]) -> bool:
        environment = self.environment
        if environment.network_id and network_id == environment.network_id:
            return True
        return belongs_to_environment(tags, environment.name, environment.cluster_name)

    def _load_balancers(self) -> List[ManagedResource]:
        leaks = []

        described = []
        paginator = self.clients.elbv2.get_paginator("describe_load_balancers")
        for page in paginator.paginate():
            described.extend(page.get("LoadBalancers", []))

        tags_by_arn = self._elbv2_tags([lb["LoadBalancerArn"] for lb in described])
        for lb in described:
            arn = lb["LoadBalancerArn"]
            tags = tags_by_arn.get(arn, {})
            if self._owned(lb.get("VpcId"), tags):
                leaks.append(
                    ManagedResource(
                        resource_class=ResourceClass.LOAD_BALANCER,
                        identifier=arn,
                        name=lb.get("LoadBalancerName"),
                        status=lb.get("State", {}).get("Code", "unknown"),
                        network_id=lb.get("VpcId"),
                        kind=ELBV2_KIND,
                        tags=tags,
                    )
                )

        if self.clients.elb is None:
            return leaks

        classic = []
        paginator = self.clients.elb.get_paginator("describe_load_balancers")
        for page in paginator.paginate():
            classic.extend(page.get("LoadBalancerDescriptions", []))

        tags_by_name = self._classic_tags([lb["LoadBalancerName"] for lb in classic])
        for lb in classic:
            name = lb["LoadBalancerName"]
            tags = tags_by_name.get(name, {})
            if self._owned(lb.get("VPCId"), tags):
                leaks.append(
                    ManagedResource(
                        resource_class=ResourceClass.LOAD_BALANCER,
                        identifier=name,
                        name=name,
                        status="active",
                        network_id=lb.get("VPCId"),
                        kind=CLASSIC_ELB_KIND,
                        tags=tags,
                    )
                )

        return leaks

    def _elbv2_tags(self, arns: List[str]) -> Dict[str, Dict[str, str]]:
        tags: Dict[str, Dict[str, str]] = {}
        for batch in _batches(arns, TAG_BATCH_SIZE):
            response = self.clients.elbv2.describe_tags(ResourceArns=batch)
            for description in response.get("TagDescriptions", []):
                tags[description["ResourceArn"]] = tags_from_aws(description.get("Tags"))
        return tags

    def _classic_tags(self, names: List[str]) -> Dict[str, Dict[str, str]]:
        tags: Dict[str, Dict[str, str]] = {}
        for batch in _batches(names, TAG_BATCH_SIZE):
            response = self.clients.elb.describe_tags(LoadBalancerNames=batch)
            for description in response.get("TagDescriptions", []):
                tags[description["LoadBalancerName"]] = tags_from_aws(description.get("Tags"))
        return tags

    def _security_groups(self) -> List[ManagedResource]:
        environment = self.environment
        filter_sets = [[{"Name": f"tag:{ENVIRONMENT_TAG}", "Values": [environment.name]}]]
        if environment.cluster_name:
            filter_sets.append([{"Name": "tag-key", "Values": [f"{CLUSTER_TAG_PREFIX}{environment.cluster_name}"]}])
            filter_sets.append([{"Name": f"tag:{LB_CONTROLLER_CLUSTER_TAG}", "Values": [environment.cluster_name]}])
        if environment.network_id:
            filter_sets.append([{"Name": "vpc-id", "Values": [environment.network_id]}])

        found: Dict[str, ManagedResource] = {}
        paginator = self.clients.ec2.get_paginator("describe_security_groups")
        for filters in filter_sets:
            for page in paginator.paginate(Filters=filters):
                for sg in page.get("SecurityGroups", []):
                    if sg.get("GroupName") == DEFAULT_SECURITY_GROUP_NAME or sg["GroupId"] in found:
                        continue
                    found[sg["GroupId"]] = ManagedResource(
                        resource_class=ResourceClass.TRAFFIC_FILTER_GROUP,
                        identifier=sg["GroupId"],
                        name=sg.get("GroupName"),
                        status="available",
                        network_id=sg.get("VpcId"),
                        tags=tags_from_aws(sg.get("Tags")),
                    )

        return list(found.values())


def _batches(items: List[str], size: int) -> Iterable[List[str]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]
