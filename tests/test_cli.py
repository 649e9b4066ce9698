from __future__ import annotations

import asyncio
import sys
from urllib.parse import parse_qs, urlparse

import click
import pytest
from click.testing import CliRunner

from test_api_client import VIEWS_PAYLOAD, install_urlopen

from conftest import FakeGateway, make_step

from shellpane.cli import ViewRunner, cli, parse_inputs
from shellpane.gateway import APIClient, HTTPGateway
from shellpane.model import ViewConfig

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="views run through /bin/sh")

VIEWS_FILE = """\
from shellpane.dsl import views, view, step, inp

VIEWS = views(
    view("Echo", step("echo", 'echo "said $word"', inp("word"))),
    view("Broken", step("broken", 'echo nope >&2; exit 4')),
    view(
        "Pipeline",
        step("first", 'echo "first $thing"', inp("thing")),
        step("second", 'echo "second $thing"', inp("thing")),
        step("third", 'echo third'),
    ),
    view("Greeting", step("hello", 'echo "hello $name"'), step("shout", 'echo "HELLO $name"'), inputs=[inp("name")]),
)
"""


@pytest.fixture
def views_file(tmp_path) -> str:
    path = tmp_path / "test_views_file.py"
    path.write_text(VIEWS_FILE, encoding="utf-8")
    return str(path)


def invoke(*args: str, input: str | None = None):
    return CliRunner().invoke(cli, list(args), input=input, env={"SHELLPANE_API_URL": None})


def test_parse_inputs() -> None:
    assert parse_inputs(("a=1", "b=x=y", "c=")) == {"a": "1", "b": "x=y", "c": ""}
    with pytest.raises(click.BadParameter):
        parse_inputs(("novalue",))


def test_views_lists_file_views(views_file) -> None:
    result = invoke("views", "--file", views_file)

    assert result.exit_code == 0, result.output
    assert "Echo command" in result.output
    assert "Pipeline sequence" in result.output
    assert "#2 second <thing>" in result.output


def test_views_without_source_fails() -> None:
    result = invoke("views")

    assert result.exit_code == 1
    assert "No view source" in result.output


def test_run_with_preset_input(views_file) -> None:
    result = invoke("run", "Echo", "--file", views_file, "--input", "word=hi", "--no-prompt")

    assert result.exit_code == 0, result.output
    assert "said hi" in result.output
    assert "STATUS: success" in result.output
    assert "CYCLE 1 COMPLETE" in result.output


def test_run_prompts_for_missing_input(views_file) -> None:
    result = invoke("run", "echo", "--file", views_file, input="typed\n")

    assert result.exit_code == 0, result.output
    assert "said typed" in result.output


def test_run_without_prompt_stops_when_waiting(views_file) -> None:
    result = invoke("run", "Echo", "--file", views_file, "--no-prompt")

    assert result.exit_code == 1
    assert "WAITING: echo needs word" in result.output


def test_run_failing_step_exits_non_zero(views_file) -> None:
    result = invoke("run", "Broken", "--file", views_file)

    assert result.exit_code == 1
    assert "STEP FAILED: broken" in result.output
    assert "Exit code: 4" in result.output


def test_run_sequence_reuses_shared_input_and_chains(views_file) -> None:
    result = invoke("run", "Pipeline", "--file", views_file, "--input", "thing=box", "--no-prompt")

    assert result.exit_code == 0, result.output
    output = result.output
    assert output.index("first box") < output.index("second box") < output.index("third")


def test_run_sequence_with_view_inputs(views_file) -> None:
    result = invoke("run", "Greeting", "--file", views_file, "--input", "name=ada", "--no-prompt")

    assert result.exit_code == 0, result.output
    assert "hello ada" in result.output
    assert "HELLO ada" in result.output


def test_run_sequence_prompts_again_after_loop(views_file) -> None:
    result = invoke("run", "Pipeline", "--file", views_file, "--cycles", "2", input="one\ntwo\n")

    assert result.exit_code == 0, result.output
    assert "second one" in result.output
    assert "second two" in result.output
    assert "CYCLE 2 COMPLETE" in result.output


def test_run_command_keeps_inputs_between_cycles(views_file) -> None:
    result = invoke("run", "Echo", "--file", views_file, "--cycles", "2", input="one\n")

    assert result.exit_code == 0, result.output
    assert result.output.count("said one") == 2


def test_run_unknown_view(views_file) -> None:
    result = invoke("run", "Nope", "--file", views_file)

    assert result.exit_code == 1
    assert "View not found" in result.output


def test_link_prints_raw_url(monkeypatch) -> None:
    install_urlopen(monkeypatch, VIEWS_PAYLOAD)

    result = invoke("link", "pod-logs", "2", "--api", "http://dash", "--input", "ns=prod", "--input", "pod=api-1")

    assert result.exit_code == 0, result.output
    parsed = urlparse(result.output.strip())
    assert parsed.path == "/executeCommand"
    assert parse_qs(parsed.query) == {
        "slug": ["pod-logs"],
        "format": ["raw"],
        "input_ns": ["prod"],
        "input_pod": ["api-1"],
    }


def test_views_from_api_server_error(monkeypatch) -> None:
    install_urlopen(monkeypatch, {"Error": {"Code": "internal", "Message": "config broken"}})

    result = invoke("views", "--api", "http://dash")

    assert result.exit_code == 1
    assert "config broken" in result.output


def test_runner_stops_after_dropped_connection(dropping_server) -> None:
    url = dropping_server()
    view = ViewConfig(name="v", command=make_step("A"))
    runner = ViewRunner(view, HTTPGateway(APIClient(url, timeout=5)), prompt=False)

    code = asyncio.run(asyncio.wait_for(runner.run(), 10))

    assert code == 1
    assert len(dropping_server.hits) == 1
    assert [e.code for e in runner.errors] == ["network"]


def test_runner_does_not_retry_unexpected_gateway_failure() -> None:
    class Broken(FakeGateway):
        async def execute(self, command_ref, inputs):
            self.calls.append((command_ref, list(inputs)))
            raise RuntimeError("bug")

    gateway = Broken()
    runner = ViewRunner(ViewConfig(name="v", command=make_step("A")), gateway, prompt=False)

    code = asyncio.run(asyncio.wait_for(runner.run(), 10))

    assert code == 1
    assert len(gateway.calls) == 1
    assert [e.code for e in runner.errors] == ["internal"]
