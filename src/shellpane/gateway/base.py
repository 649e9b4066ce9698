# gateway/base.py
from __future__ import annotations

import abc
from typing import List

from ..model import ExecutionResult, InputValue


class GatewayError(Exception):
    """
    Raised when a command could not be executed remotely.

    A non-zero exit code is NOT a GatewayError: that is a successful call
    carrying a failed ExecutionResult.
    """

    def __init__(self, message: str, code: str = ""):
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        if self.code:
            return f"{self.code}: {self.message}"
        return self.message


class ExecutionGateway(abc.ABC):
    """Runs one step's command with its collected input values."""

    @abc.abstractmethod
    async def execute(self, command_ref: str, inputs: List[InputValue]) -> ExecutionResult:
        """
        Execute a command.

        Args:
            command_ref: Command identifier (the server's command slug)
            inputs: Ordered input values to pass along

        Returns:
            ExecutionResult, whatever its exit code

        Raises:
            GatewayError: On transport or service failure
        """
