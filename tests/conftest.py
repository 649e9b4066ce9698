from __future__ import annotations

import asyncio
import socket
import threading

import pytest

from shellpane import dsl
from shellpane.gateway import ExecutionGateway, GatewayError
from shellpane.model import ExecutionResult, InputSpec, InputValue, Sequence, Step
from shellpane.ui.console import Console, set_console


def ok(stdout: str = "ok") -> ExecutionResult:
    return ExecutionResult(stdout=stdout, stderr="", exit_code=0)


def fail(stderr: str = "boom", code: int = 1) -> ExecutionResult:
    return ExecutionResult(stdout="", stderr=stderr, exit_code=code)


def make_step(name: str, *inputs: str) -> Step:
    return Step(name=name, command_ref=name.lower(), inputs=[InputSpec(slug=i) for i in inputs])


def make_sequence(*steps: Step, inputs: list[str] | None = None) -> Sequence:
    return Sequence(slug="seq", steps=list(steps), inputs=[InputSpec(slug=i) for i in inputs or []])


class FakeGateway(ExecutionGateway):
    """Returns scripted results (or raises scripted errors) and records calls."""

    def __init__(self, *responses: ExecutionResult | GatewayError) -> None:
        self.responses = list(responses)
        self.calls: list[tuple[str, list[InputValue]]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def execute(self, command_ref: str, inputs: list[InputValue]) -> ExecutionResult:
        self.calls.append((command_ref, list(inputs)))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            response = self.responses.pop(0) if self.responses else ok()
            if isinstance(response, GatewayError):
                raise response
            return response
        finally:
            self.in_flight -= 1


class BlockingGateway(ExecutionGateway):
    """Holds every call until the test releases it."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.result = ok()

    async def execute(self, command_ref: str, inputs: list[InputValue]) -> ExecutionResult:
        self.calls.append(command_ref)
        self.started.set()
        await self.release.wait()
        return self.result


@pytest.fixture(autouse=True)
def quiet_console():
    set_console(Console(debug=False))
    yield


@pytest.fixture(autouse=True)
def clean_dsl_registry():
    dsl.clear_commands()
    yield
    dsl.clear_commands()


@pytest.fixture
def dropping_server():
    """
    Start local HTTP endpoints that read a request, optionally send `reply`,
    then close the connection. Yields a factory returning the base URL.
    """
    sockets: list[socket.socket] = []
    hits: list[int] = []

    def start(reply: bytes = b"") -> str:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.bind(("127.0.0.1", 0))
        sock.listen(16)
        sockets.append(sock)

        def serve() -> None:
            while True:
                try:
                    conn, _ = sock.accept()
                except OSError:
                    return
                with conn:
                    hits.append(1)
                    conn.recv(65536)
                    if reply:
                        conn.sendall(reply)

        threading.Thread(target=serve, daemon=True).start()
        return f"http://127.0.0.1:{sock.getsockname()[1]}"

    start.hits = hits
    yield start
    for sock in sockets:
        sock.close()
