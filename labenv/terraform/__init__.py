"""Terraform invocation wrappers."""

from __future__ import annotations

from .runner import TerraformNotFoundError, TerraformResult, TerraformRunner

__all__ = ["TerraformRunner", "TerraformResult", "TerraformNotFoundError"]
