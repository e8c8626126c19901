"""Security baseline scanner."""

from __future__ import annotations

import importlib
import inspect
import logging
import pkgutil
from typing import Any, Callable, List

from botocore.exceptions import ClientError

from ..aws.errors import error_code, error_message
from ..models.baseline_finding import BaselineFinding, BaselineStatus
from .checks.base import BaselineCheck
from .models import BaselineScanResult

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], Any]


class BaselineScanner:
    """Verifies that the account's baseline security services are enabled.

    The scanner discovers every BaselineCheck subclass in the checks package
    and runs each against a client for the service it names.
    """

    def __init__(self, client_factory: ClientFactory, region: str) -> None:
        """Initialize the scanner and load all baseline checks.

        Args:
            client_factory: Returns a boto3 client for a service name
            region: Region being checked
        """
        self.client_factory = client_factory
        self.region = region
        self.checks: List[BaselineCheck] = []
        self._load_checks()

    def _load_checks(self) -> None:
        """Import every module in the checks package and instantiate its BaselineCheck subclasses."""
        from . import checks

        for _, modname, _ in pkgutil.iter_modules(checks.__path__):
            if modname == "base":
                continue

            module = importlib.import_module(f".checks.{modname}", package=__package__)
            for _, obj in inspect.getmembers(module, inspect.isclass):
                if issubclass(obj, BaselineCheck) and obj is not BaselineCheck and obj.__module__ == module.__name__:
                    self.checks.append(obj())

        self.checks.sort(key=lambda check: check.check_id)
        logger.debug(f"Loaded baseline checks: {', '.join(c.check_id for c in self.checks)}")

    def scan(self) -> BaselineScanResult:
        """Run every check.

        An API error from one check becomes an UNKNOWN finding; transport
        failures propagate.

        Returns:
            BaselineScanResult with one finding per check
        """
        result = BaselineScanResult(region=self.region)

        for check in self.checks:
            client = self.client_factory(check.service)
            try:
                finding = check.execute(client)
            except ClientError as e:
                logger.warning(f"Baseline check {check.check_id} failed: {error_code(e)} - {error_message(e)}")
                finding = BaselineFinding(
                    check_id=check.check_id,
                    service=check.service,
                    status=BaselineStatus.UNKNOWN,
                    description=f"{error_code(e)}: {error_message(e)}",
                )
            result.add_finding(finding)

        return result
