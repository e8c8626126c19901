"""Deletion attempt model.

One try of one action against one ManagedResource. Attempts are never
persisted on their own; they drive the retry loop and the final summary.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .managed_resource import ManagedResource


class AttemptOutcome(Enum):
    """Typed outcome of a single attempt."""

    SUCCEEDED = "succeeded"
    ALREADY_ABSENT = "already-absent"
    RETRYABLE = "retryable"
    TERMINAL = "terminal"

    @property
    def is_success(self) -> bool:
        return self in (AttemptOutcome.SUCCEEDED, AttemptOutcome.ALREADY_ABSENT)


class AttemptAction(Enum):
    """Action performed by an attempt."""

    DELETE = "delete"
    DETACH = "detach"
    RELEASE = "release"
    DISASSOCIATE = "disassociate"
    REVOKE = "revoke"


@dataclass
class DeletionAttempt:
    """Record of one deletion try.

    Validation rules:
        - pass_number starts at 1
        - a failed outcome carries an error_code
        - elapsed_wait is never negative

    Attributes:
        resource: Resource acted upon
        action: Action performed
        pass_number: Retry pass this attempt belongs to (1-based)
        outcome: Result of the attempt
        elapsed_wait: Seconds spent waiting inside the attempt (e.g. detach polling)
        error_code: AWS error code when the attempt failed (optional)
        error_message: Human-readable error when the attempt failed (optional)
    """

    resource: ManagedResource
    action: AttemptAction
    pass_number: int
    outcome: AttemptOutcome
    elapsed_wait: float = 0.0
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome.is_success

    def validate(self) -> bool:
        """Validate attempt invariants.

        Raises:
            ValueError: If any validation rule fails
        """
        if self.pass_number < 1:
            raise ValueError("Pass number must start at 1")
        if not self.outcome.is_success and not self.error_code:
            raise ValueError("Failed attempt requires error_code")
        if self.elapsed_wait < 0:
            raise ValueError("Elapsed wait cannot be negative")
        return True

    def describe(self) -> str:
        text = f"{self.action.value} {self.resource.describe()} (pass {self.pass_number}): {self.outcome.value}"
        if self.error_code:
            text += f" [{self.error_code}] {self.error_message or ''}".rstrip()
        return text
