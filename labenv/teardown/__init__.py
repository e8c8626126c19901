"""Environment teardown.

This module removes the AWS resources that in-cluster controllers create
outside Terraform's state, so that ``terraform destroy`` can succeed.

Classes:
    StateReader: Reads the environment's network and cluster from Terraform outputs
    DependentResourceDiscoverer: Enumerates teardown-blocking resources in a VPC
    ResourceDeleter: Single-resource delete/detach/release calls with typed outcomes
    DeletionOrchestrator: Ordered, multi-pass deletion across resource classes
    LeakChecker: Post-destroy leaked resource check
    TeardownReporter: Rich tables for plans, summaries and leaks
    TeardownPipeline: State -> cleanup -> destroy -> verification
    AuditStorage: YAML audit log of teardown runs
"""

from __future__ import annotations

__all__ = [
    "StateReader",
    "DependentResourceDiscoverer",
    "ResourceDeleter",
    "DeletionOrchestrator",
    "LeakChecker",
    "TeardownReporter",
    "TeardownPipeline",
    "AuditStorage",
]
