from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest

from shellpane import dsl
from shellpane.gateway import GatewayError, LocalGateway
from shellpane.model import InputValue
from shellpane.views import ViewNotFound, find_view, load_views

ROOT = Path(__file__).resolve().parent.parent


def write_views(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "my_views.py"
    path.write_text(body, encoding="utf-8")
    return path


def test_load_views_from_VIEWS(tmp_path) -> None:
    path = write_views(
        tmp_path,
        "from shellpane.dsl import views, view, step, inp\n"
        "VIEWS = views(\n"
        "    view('Echo', step('echo', 'echo $word', inp('word')), auto=True),\n"
        "    view('Two', step('one', 'true'), step('two', 'false')),\n"
        ")\n",
    )

    local = load_views(path)

    assert [v.name for v in local.views] == ["Echo", "Two"]
    assert local.views[0].is_single_command
    assert local.views[0].auto_execute
    assert local.commands == {"echo": "echo $word", "one": "true", "two": "false"}


def test_load_views_from_function(tmp_path) -> None:
    path = write_views(
        tmp_path,
        "from shellpane import dsl\n"
        "def views():\n"
        "    return [dsl.view('Only', dsl.step('only', 'echo hi'))]\n",
    )

    assert [v.name for v in load_views(path).views] == ["Only"]


def test_load_views_rejects_wrong_shape(tmp_path) -> None:
    path = write_views(tmp_path, "VIEWS = ['not a view']\n")

    with pytest.raises(TypeError):
        load_views(path)


def test_load_views_rejects_duplicates(tmp_path) -> None:
    path = write_views(
        tmp_path,
        "from shellpane.dsl import view, step\n"
        "VIEWS = [view('A', step('a', 'true')), view('A', step('b', 'true'))]\n",
    )

    with pytest.raises(ValueError):
        load_views(path)


def test_load_views_missing_file(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_views(tmp_path / "nope.py")


def test_example_views_file_loads() -> None:
    local = load_views(ROOT / "shellpane_views.py")

    greeting = find_view(local.views, "greeting")
    assert greeting.sequence is not None
    assert greeting.sequence.has_pre_phase
    assert set(local.commands) >= {"df", "list-dir", "top-files", "hello", "shout"}


def test_find_view_unknown_name() -> None:
    views = [dsl.view("Disk", dsl.step("df", "df -h"))]

    with pytest.raises(ViewNotFound) as exc:
        find_view(views, "memory")

    assert "Disk" in str(exc.value)


def test_dsl_rejects_conflicting_slugs() -> None:
    dsl.step("a", "true")

    with pytest.raises(ValueError):
        dsl.step("a", "false")


def test_dsl_view_with_view_inputs_is_a_sequence() -> None:
    v = dsl.view("Scoped", dsl.step("status", "true"), inputs=[dsl.inp("env")])

    assert not v.is_single_command
    assert [i.slug for i in v.sequence.inputs] == ["env"]


@pytest.mark.skipif(sys.platform == "win32", reason="needs /bin/sh")
def test_local_gateway_exports_inputs_as_env() -> None:
    gateway = LocalGateway({"greet": 'echo "hi $name"; exit 3'})

    result = asyncio.run(gateway.execute("greet", [InputValue("name", "ada")]))

    assert result.stdout.strip() == "hi ada"
    assert result.exit_code == 3


def test_local_gateway_unknown_command() -> None:
    gateway = LocalGateway({})

    with pytest.raises(GatewayError) as exc:
        asyncio.run(gateway.execute("missing", []))

    assert exc.value.code == "not_found"


@pytest.mark.skipif(sys.platform == "win32", reason="needs /bin/sh")
def test_local_gateway_timeout() -> None:
    gateway = LocalGateway({"slow": "sleep 5"}, timeout=0.2)

    with pytest.raises(GatewayError) as exc:
        asyncio.run(gateway.execute("slow", []))

    assert exc.value.code == "timeout"


def test_local_gateway_rejects_unencodable_input() -> None:
    gateway = LocalGateway({"greet": 'echo "$name"'})

    with pytest.raises(GatewayError) as exc:
        asyncio.run(gateway.execute("greet", [InputValue("name", "a\x00b")]))

    assert exc.value.code == "input"
