"""Terraform command runner.

Terraform is treated as a black box: labenv only needs init, apply, plan,
destroy and output. Every command's exit status and output are returned
unchanged so callers can surface them verbatim.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

OutputHandler = Callable[[str], None]


class TerraformNotFoundError(Exception):
    """Raised when the Terraform executable cannot be found."""


@dataclass
class TerraformResult:
    """Result of a Terraform command.

    Attributes:
        command: Full command line that was run
        returncode: Process exit status
        output: Combined stdout/stderr
    """

    command: List[str]
    returncode: int
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def tail(self, lines: int = 40) -> str:
        return "\n".join(self.output.splitlines()[-lines:])


class TerraformRunner:
    """Runs Terraform commands in a root module directory.

    Attributes:
        working_dir: Terraform root module directory
        terraform_bin: Terraform executable
        output_handler: Called with each output line as it is produced (optional)
    """

    def __init__(
        self,
        working_dir: str,
        terraform_bin: str = "terraform",
        output_handler: Optional[OutputHandler] = None,
    ) -> None:
        self.working_dir = working_dir
        self.terraform_bin = terraform_bin
        self.output_handler = output_handler

    def init(self) -> TerraformResult:
        return self._run(["init", "-input=false", "-no-color"])

    def apply(self, target: Optional[str] = None) -> TerraformResult:
        args = ["apply", "-auto-approve", "-input=false", "-no-color"]
        if target:
            args.append(f"-target={target}")
        return self._run(args)

    def plan(self) -> TerraformResult:
        return self._run(["plan", "-input=false", "-no-color"])

    def destroy(self) -> TerraformResult:
        """Destroy everything in the Terraform state.

        Returns:
            TerraformResult with the tool's exit status and output, unmodified
        """
        return self._run(["destroy", "-auto-approve", "-input=false", "-no-color"])

    def output(self) -> Dict[str, Any]:
        """Read root module outputs.

        Returns:
            Mapping of output name to value. Empty when there is no state,
            the command fails, or its output is not valid JSON.
        """
        result = self._run(["output", "-json"], stream=False)
        if not result.ok:
            logger.debug(f"terraform output exited {result.returncode}: {result.tail(5)}")
            return {}

        try:
            raw = json.loads(result.output or "{}")
        except json.JSONDecodeError as e:
            logger.warning(f"Could not parse terraform output: {e}")
            return {}

        if not isinstance(raw, dict):
            return {}

        return {name: entry.get("value") for name, entry in raw.items() if isinstance(entry, dict)}

    def _resolve_binary(self) -> str:
        resolved = shutil.which(self.terraform_bin)
        if resolved is None:
            raise TerraformNotFoundError(
                f"Terraform executable '{self.terraform_bin}' not found. Install Terraform or set terraform_bin."
            )
        return resolved

    def _run(self, args: List[str], stream: bool = True) -> TerraformResult:
        command = [self._resolve_binary()] + args
        logger.debug(f"Running {' '.join(command)} in {self.working_dir}")

        process = subprocess.Popen(
            command,
            cwd=self.working_dir,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            bufsize=1,
        )

        output_lines = []
        for line in process.stdout or []:
            line = line.rstrip("\n")
            output_lines.append(line)
            if stream and self.output_handler is not None:
                self.output_handler(line)

        returncode = process.wait()
        if returncode != 0:
            logger.debug(f"{' '.join(command)} exited with {returncode}")

        return TerraformResult(command=command, returncode=returncode, output="\n".join(output_lines))
