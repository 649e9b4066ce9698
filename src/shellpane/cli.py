# cli.py
from __future__ import annotations

import asyncio
import sys
from typing import Dict, List, Optional, Tuple

import click

from shellpane.gateway import FORMAT_RAW, APIClient, ExecutionGateway, GatewayError, HTTPGateway, LocalGateway
from shellpane.inputs import VIEW_INPUTS, Gating
from shellpane.model import InputValue, ViewConfig
from shellpane.orchestrator import ViewOrchestrator
from shellpane.sequencer import Outcome, TickReport
from shellpane.settings import Settings
from shellpane.ui.console import Console, get_console, set_console
from shellpane.views import ViewNotFound, find_view, load_views


def parse_inputs(pairs: Tuple[str, ...]) -> Dict[str, str]:
    """
    Parse repeated --input NAME=VALUE options.

    Raises:
        click.BadParameter: If a pair has no '='
    """
    values: Dict[str, str] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name.strip():
            raise click.BadParameter(f"expected NAME=VALUE, got {pair!r}", param_hint="--input")
        values[name.strip()] = value
    return values


def load_source(
    api: Optional[str],
    views_file: Optional[str],
    settings: Settings,
) -> Tuple[List[ViewConfig], ExecutionGateway, Optional[APIClient]]:
    """
    Resolve where views come from and how their commands run.

    Returns:
        (views, gateway, api_client); api_client is None for local files
    """
    console = get_console()

    if api and views_file:
        console.print_error("Conflicting sources", "Use either --api or --file, not both.")
        sys.exit(1)

    if views_file:
        local = load_views(views_file)
        gateway = LocalGateway(local.commands, timeout=settings.timeout)
        return local.views, gateway, None

    api = api or settings.api_url
    if not api:
        console.print_error(
            "No view source",
            "No --api URL or --file given and SHELLPANE_API_URL is not set.",
            suggestion="Point at a server:\n  shellpane views --api http://localhost:8080\n\n"
                       "Or at a local views file:\n  shellpane views --file views.py",
        )
        sys.exit(1)

    client = APIClient(api, timeout=settings.timeout)
    return client.get_view_configs(), HTTPGateway(client), client


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and sequencer transitions)",
)
@click.pass_context
def cli(ctx, debug):
    """shellpane: run dashboard views from the terminal."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["settings"] = Settings.from_env()


@cli.command("views")
@click.option("--api", default=None, help="Dashboard server URL (defaults to SHELLPANE_API_URL)")
@click.option("--file", "views_file", default=None, help="Local views file (.py)")
@click.pass_context
def list_views(ctx, api, views_file):
    """List the views a server or views file exposes."""
    console = get_console()
    try:
        views, _gateway, _client = load_source(api, views_file, ctx.obj["settings"])
    except GatewayError as e:
        console.print_error(
            "Could not fetch views",
            str(e),
            suggestion="Verify the API URL is correct and the server is running.",
        )
        sys.exit(1)
    except (FileNotFoundError, ValueError, TypeError) as e:
        console.print_error("Could not load views", str(e))
        sys.exit(1)

    console.print_view_list(views)


@cli.command()
@click.argument("view_name")
@click.option("--api", default=None, help="Dashboard server URL (defaults to SHELLPANE_API_URL)")
@click.option("--file", "views_file", default=None, help="Local views file (.py)")
@click.option("--input", "input_pairs", multiple=True, help="Input value as NAME=VALUE (repeatable)")
@click.option("--cycles", default=1, show_default=True, type=click.IntRange(min=1), help="Stop after this many completed passes")
@click.option("--gating", type=click.Choice([g.value for g in Gating]), default=None, help="Run a step once any/all of its inputs are set")
@click.option("--dedup/--no-dedup", default=None, help="Collect an input shared by several steps only once")
@click.option("--chain-on-loop/--no-chain-on-loop", default=None, help="Re-run a first step without inputs once after looping")
@click.option("--prompt/--no-prompt", default=True, show_default=True, help="Ask for missing inputs interactively")
@click.pass_context
def run(ctx, view_name, api, views_file, input_pairs, cycles, gating, dedup, chain_on_loop, prompt):
    """Run a view until it has completed --cycles passes."""
    console = get_console()
    settings: Settings = ctx.obj["settings"]
    presets = parse_inputs(input_pairs)

    try:
        views, gateway, _client = load_source(api, views_file, settings)
        view = find_view(views, view_name)
    except ViewNotFound as e:
        console.print_error("View not found", str(e), suggestion="List views with:\n  shellpane views")
        sys.exit(1)
    except GatewayError as e:
        console.print_error("Could not fetch views", str(e))
        sys.exit(1)
    except (FileNotFoundError, ValueError, TypeError) as e:
        console.print_error("Could not load views", str(e))
        sys.exit(1)

    runner = ViewRunner(
        view,
        gateway,
        presets=presets,
        cycles=cycles,
        prompt=prompt,
        gating=Gating(gating) if gating else settings.gating,
        dedup_inputs=settings.dedup_inputs if dedup is None else dedup,
        chain_on_loop=settings.chain_on_loop if chain_on_loop is None else chain_on_loop,
        chain_delay=settings.chain_delay,
    )

    try:
        code = asyncio.run(runner.run())
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except click.Abort:
        console.print_info("\nAborted")
        sys.exit(130)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)

    sys.exit(code)


@cli.command()
@click.argument("view_name")
@click.argument("step_number", type=click.IntRange(min=1))
@click.option("--api", default=None, help="Dashboard server URL (defaults to SHELLPANE_API_URL)")
@click.option("--input", "input_pairs", multiple=True, help="Input value as NAME=VALUE (repeatable)")
@click.pass_context
def link(ctx, view_name, step_number, api, input_pairs):
    """Print the raw-output URL of a view step (1-based)."""
    console = get_console()
    settings: Settings = ctx.obj["settings"]
    presets = parse_inputs(input_pairs)

    try:
        views, _gateway, client = load_source(api, None, settings)
        view = find_view(views, view_name)
    except ViewNotFound as e:
        console.print_error("View not found", str(e))
        sys.exit(1)
    except GatewayError as e:
        console.print_error("Could not fetch views", str(e))
        sys.exit(1)

    steps = view.as_sequence().steps
    if step_number > len(steps):
        console.print_error("No such step", f"{view.name} has {len(steps)} step(s).")
        sys.exit(1)

    step = steps[step_number - 1]
    declared = list(view.as_sequence().inputs) + list(step.inputs)
    inputs = [InputValue(name=s.slug, value=presets[s.slug]) for s in declared if presets.get(s.slug)]
    console.print_info(client.execute_command_link(step.command_ref, inputs, fmt=FORMAT_RAW))


class ViewRunner:
    """
    Drives one view from the terminal: fills inputs (presets, then
    prompts), triggers the orchestrator and prints what comes back.
    """

    def __init__(
        self,
        view: ViewConfig,
        gateway: ExecutionGateway,
        *,
        presets: Dict[str, str] | None = None,
        cycles: int = 1,
        prompt: bool = True,
        gating: Gating = Gating.ANY,
        dedup_inputs: bool = True,
        chain_on_loop: bool = False,
        chain_delay: float = 0.0,
    ):
        self.view = view
        self.gateway = gateway
        self.presets = dict(presets or {})
        self.cycles = cycles
        self.prompt = prompt
        self.gating = gating
        self.dedup_inputs = dedup_inputs
        self.chain_on_loop = chain_on_loop
        self.chain_delay = chain_delay
        self.reports: List[TickReport] = []
        self.errors: List[GatewayError] = []

    async def run(self) -> int:
        console = get_console()
        console.print_view_started(self.view)
        steps = self.view.as_sequence().steps

        def on_result(index, result):
            console.print_step(index, steps[index].name)
            console.print_step_result(index, steps[index].name, result)

        def on_error(index, error):
            self.errors.append(error)
            console.print_error(
                "Failed to get step output",
                f"{steps[index].name}: {error}",
                suggestion="Check the server and run the view again.",
            )

        orchestrator = ViewOrchestrator(
            self.view,
            self.gateway,
            on_result=on_result,
            on_error=on_error,
            on_transition=self.reports.append,
            chain_delay=self.chain_delay,
            gating=self.gating,
            dedup_inputs=self.dedup_inputs,
            chain_on_loop=self.chain_on_loop,
        )

        try:
            return await self._drive(orchestrator)
        finally:
            await orchestrator.wait_idle()
            orchestrator.close()

    async def _drive(self, orchestrator: ViewOrchestrator) -> int:
        console = get_console()
        collector = orchestrator.sequencer.collector

        while True:
            await orchestrator.wait_idle()
            state = orchestrator.state

            if state.cycles >= self.cycles:
                console.print_cycle_complete(state.cycles)
                return 0
            last = self.reports[-1].outcome if self.reports else None
            if self.errors or last is Outcome.ERROR:
                # Errors are never retried
                return 1

            key = VIEW_INPUTS if state.awaiting_view_inputs else state.active_index
            failed = last is Outcome.FAILED
            if failed and not (self.prompt and collector.owned_specs(key)):
                # Same inputs would fail the same way
                return 1

            self._fill_inputs(orchestrator, key, ask_all=failed)

            if not collector.is_complete(key):
                name = "view inputs" if key == VIEW_INPUTS else orchestrator.sequencer.sequence.steps[key].name
                console.print_waiting(name, [s.slug for s in collector.missing(key)])
                if not self.prompt:
                    return 1
                continue

            orchestrator.trigger()

    def _fill_inputs(self, orchestrator: ViewOrchestrator, key: int, *, ask_all: bool) -> None:
        collector = orchestrator.sequencer.collector
        for spec in collector.owned_specs(key):
            current = collector.get_value(key, spec.slug)
            if current and not ask_all:
                continue
            value = self.presets.get(spec.slug) if not current else None
            if value is None and self.prompt:
                label = f"{spec.slug} ({spec.description})" if spec.description else spec.slug
                value = click.prompt(label, default=current or "", show_default=bool(current))
            if value is None:
                continue
            if key == VIEW_INPUTS:
                orchestrator.set_view_value(spec.slug, value)
            else:
                orchestrator.set_value(key, spec.slug, value)


if __name__ == "__main__":
    cli()
