# gateway/local.py
from __future__ import annotations

import asyncio
import os
import subprocess
from typing import Dict, List, Optional

from ..model import ExecutionResult, InputValue
from .base import ExecutionGateway, GatewayError


class LocalGateway(ExecutionGateway):
    """
    Runs commands on this machine, the way the dashboard server does:
    `/bin/sh -c <command>` with every input exported as NAME=VALUE.

    Used for local views files and offline runs.
    """

    def __init__(
        self,
        commands: Dict[str, str],
        *,
        timeout: Optional[float] = None,
        cwd: str | None = None,
    ):
        """
        Args:
            commands: Map of command_ref -> shell command line
            timeout: Seconds before a command is killed and reported as a GatewayError
            cwd: Working directory for commands (defaults to the current one)
        """
        self.commands = dict(commands)
        self.timeout = timeout
        self.cwd = cwd

    async def execute(self, command_ref: str, inputs: List[InputValue]) -> ExecutionResult:
        return await asyncio.to_thread(self._run, command_ref, list(inputs))

    def _run(self, command_ref: str, inputs: List[InputValue]) -> ExecutionResult:
        cmd = self.commands.get(command_ref)
        if cmd is None:
            raise GatewayError(f"unknown command {command_ref!r}", code="not_found")

        env = os.environ.copy()
        env.update({v.name: v.value for v in inputs})

        try:
            proc = subprocess.run(
                ["/bin/sh", "-c", cmd],
                cwd=self.cwd,
                env=env,
                text=True,
                capture_output=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            raise GatewayError(
                f"command {command_ref!r} timed out after {self.timeout}s",
                code="timeout",
            )
        except OSError as e:
            raise GatewayError(f"failed to start command {command_ref!r}: {e}", code="exec")
        except ValueError as e:
            # Input names or values the environment cannot hold (NUL bytes, '=')
            raise GatewayError(f"invalid inputs for command {command_ref!r}: {e}", code="input")

        return ExecutionResult(stdout=proc.stdout, stderr=proc.stderr, exit_code=proc.returncode)
