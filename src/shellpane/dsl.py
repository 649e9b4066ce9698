# src/shellpane/dsl.py
from __future__ import annotations

from typing import List, Optional

from .model import Category, InputSpec, Sequence, Step, ViewConfig

# ---------------------------------------------------------------------
# Helpers for views files
# ---------------------------------------------------------------------
# A views file describes commands as shell strings so they can be run
# locally. Each helper returns plain model objects; `command_lines()`
# collects the shell strings for LocalGateway.
#
#   from shellpane.dsl import views, view, step, inp
#
#   VIEWS = views(
#       view("Disk", step("usage", "df -h"), auto=True),
#       view(
#           "Logs",
#           step("pick unit", "systemctl list-units --type=service", slug="units"),
#           step("tail", "journalctl -u $unit -n 50", inp("unit")),
#       ),
#   )


_COMMANDS: dict[str, str] = {}


def inp(slug: str, description: str | None = None) -> InputSpec:
    """Declare an input."""
    return InputSpec(slug=slug, description=description)


def _slugify(name: str) -> str:
    return "-".join(name.lower().split())


def step(
    name: str,
    cmd: str,
    *inputs: InputSpec,
    slug: str | None = None,
    display: str = "",
    description: str = "",
) -> Step:
    """Create a step whose command is a shell string."""
    ref = slug or _slugify(name)
    existing = _COMMANDS.get(ref)
    if existing is not None and existing != cmd:
        raise ValueError(f"command slug {ref!r} already used for a different command")
    _COMMANDS[ref] = cmd
    return Step(name=name, command_ref=ref, inputs=list(inputs), display=display, description=description)


def command(name: str, cmd: str, *inputs: InputSpec, slug: str | None = None, display: str = "") -> Step:
    """Alias of step() for single-command views."""
    return step(name, cmd, *inputs, slug=slug, display=display)


def sequence(slug: str, *steps: Step, inputs: Optional[List[InputSpec]] = None) -> Sequence:
    if not steps:
        raise ValueError(f"sequence({slug!r}) must have at least one step")
    return Sequence(slug=slug, steps=list(steps), inputs=list(inputs or []))


def view(
    name: str,
    *steps: Step,
    slug: str | None = None,
    category: Category | str | None = None,
    inputs: Optional[List[InputSpec]] = None,
    auto: bool = False,
) -> ViewConfig:
    """
    Create a view.

    One step without view-level inputs makes a single-command view;
    anything else makes a sequence.
    """
    if not steps:
        raise ValueError(f"view({name!r}) must have at least one step")
    view_slug = slug or _slugify(name)
    if isinstance(category, str):
        category = Category(slug=category, name=category)

    if len(steps) == 1 and not inputs:
        return ViewConfig(name=name, slug=view_slug, category=category, command=steps[0], auto_execute=auto)
    return ViewConfig(
        name=name,
        slug=view_slug,
        category=category,
        sequence=sequence(view_slug, *steps, inputs=inputs),
        auto_execute=auto,
    )


def views(*items: ViewConfig) -> List[ViewConfig]:
    return list(items)


def command_lines() -> dict[str, str]:
    """Shell strings registered by step() so far, keyed by command slug."""
    return dict(_COMMANDS)


def clear_commands() -> None:
    _COMMANDS.clear()
