# gateway/api_client.py
from __future__ import annotations

import http.client
import json
import urllib.error
import urllib.request
from typing import List, Optional
from urllib.parse import urlencode, urljoin

from pydantic import ValidationError

from ..model import Category, ExecutionResult, InputValue, ViewConfig
from .base import GatewayError
from .schemas import (
    ExecuteCommandResponse,
    GetCategoryConfigsResponse,
    GetViewConfigsResponse,
)

FORMAT_RAW = "raw"


class APIClient:
    """HTTP client for the shellpane dashboard server."""

    def __init__(self, base_url: str, timeout: float | None = 30.0):
        """
        Initialize API client.

        Args:
            base_url: Base URL of the server (e.g., "http://localhost:8080")
            timeout: Socket timeout in seconds for each request
        """
        # Ensure base_url doesn't end with /
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _url(self, path: str) -> str:
        return urljoin(self.base_url + "/", path.lstrip("/"))

    def _request(self, url: str) -> dict:
        """
        GET a URL and decode its JSON body.

        Raises:
            GatewayError: If the request fails or the body is not JSON
        """
        req = urllib.request.Request(
            url,
            headers={"Content-Type": "application/json; charset=utf-8"},
            method="GET",
        )

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                response_data = response.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            error_body = e.read().decode("utf-8") if e.fp else ""
            raise GatewayError(
                f"API request failed: {e.code} {e.reason}. {error_body}".strip(),
                code=str(e.code),
            )
        except urllib.error.URLError as e:
            raise GatewayError(f"Network error: {e.reason}", code="network")
        except TimeoutError:
            raise GatewayError(f"Request timed out after {self.timeout}s", code="timeout")
        except (OSError, http.client.HTTPException) as e:
            # urlopen does not wrap failures from getresponse() or read()
            raise GatewayError(f"Connection failed: {e!r}", code="network")
        except UnicodeDecodeError as e:
            raise GatewayError(f"Invalid response encoding: {e}", code="decode")

        if not response_data:
            return {}
        try:
            data = json.loads(response_data)
        except json.JSONDecodeError as e:
            raise GatewayError(f"Invalid JSON response: {e}", code="decode")
        if not isinstance(data, dict):
            raise GatewayError("Invalid JSON response: expected an object", code="decode")
        return data

    def get_view_configs(self) -> List[ViewConfig]:
        """Fetch every view the server exposes to this user."""
        data = self._request(self._url("/getViewConfigs"))
        try:
            rsp = GetViewConfigsResponse.model_validate(data)
        except ValidationError as e:
            raise GatewayError(f"Invalid view configs: {e}", code="decode")
        _raise_for_error(rsp)
        try:
            return [v.to_domain() for v in rsp.view_configs or []]
        except ValueError as e:
            raise GatewayError(str(e), code="config")

    def get_category_configs(self) -> List[Category]:
        data = self._request(self._url("/getCategoryConfigs"))
        try:
            rsp = GetCategoryConfigsResponse.model_validate(data)
        except ValidationError as e:
            raise GatewayError(f"Invalid category configs: {e}", code="decode")
        _raise_for_error(rsp)
        return [c.to_domain() for c in rsp.category_configs or []]

    def execute_command_link(
        self,
        command_ref: str,
        inputs: List[InputValue],
        fmt: Optional[str] = None,
    ) -> str:
        """
        Build the executeCommand URL.

        With fmt="raw" the server answers with plain stdout, which is what
        the Raw and Download links point at.
        """
        params = [("slug", command_ref)]
        if fmt:
            params.append(("format", fmt))
        for v in inputs:
            params.append((f"input_{v.name}", v.value))
        return f"{self._url('/executeCommand')}?{urlencode(params)}"

    def execute_command(self, command_ref: str, inputs: List[InputValue]) -> ExecutionResult:
        """
        Run a command on the server and return its output.

        Raises:
            GatewayError: On HTTP/network failure or a server error envelope
        """
        data = self._request(self.execute_command_link(command_ref, inputs))
        try:
            rsp = ExecuteCommandResponse.model_validate(data)
        except ValidationError as e:
            raise GatewayError(f"Invalid execute response: {e}", code="decode")
        _raise_for_error(rsp)
        return rsp.to_result()


def _raise_for_error(rsp) -> None:
    if rsp.failed():
        raise GatewayError(rsp.error.message or "server error", code=rsp.error.code)
