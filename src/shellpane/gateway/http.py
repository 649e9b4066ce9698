# gateway/http.py
from __future__ import annotations

import asyncio
from typing import List

from ..model import ExecutionResult, InputValue
from .api_client import APIClient
from .base import ExecutionGateway


class HTTPGateway(ExecutionGateway):
    """Executes steps on a dashboard server through APIClient."""

    def __init__(self, api_client: APIClient):
        self.api_client = api_client

    async def execute(self, command_ref: str, inputs: List[InputValue]) -> ExecutionResult:
        # urllib blocks; keep the event loop free while the request is in flight
        return await asyncio.to_thread(self.api_client.execute_command, command_ref, list(inputs))
