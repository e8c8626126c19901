"""Data models for environments, discovered resources and deletion attempts."""

from __future__ import annotations

from .deletion_attempt import AttemptAction, AttemptOutcome, DeletionAttempt
from .environment import Environment
from .managed_resource import ManagedResource, ResourceClass
from .teardown_summary import TeardownStatus, TeardownSummary

__all__ = [
    "AttemptAction",
    "AttemptOutcome",
    "DeletionAttempt",
    "Environment",
    "ManagedResource",
    "ResourceClass",
    "TeardownStatus",
    "TeardownSummary",
]
