# orchestrator.py
from __future__ import annotations

import asyncio
from typing import Callable, Optional, Set

from .gateway.base import ExecutionGateway, GatewayError
from .inputs import Gating
from .model import ExecutionResult, SequencerState, ViewConfig
from .sequencer import Outcome, StepSequencer, TickOrigin, TickReport
from .ui.console import get_console

ResultCallback = Callable[[int, ExecutionResult], None]
ErrorCallback = Callable[[int, GatewayError], None]
TransitionCallback = Callable[[TickReport], None]


class ViewOrchestrator:
    """
    Binds one view to one StepSequencer and turns triggers into ticks.

    Must be created while an event loop is running. `trigger()` only
    schedules work; results, errors and presentation side effects (focus,
    scrolling, highlighting) reach the caller through the callbacks.
    """

    def __init__(
        self,
        view: ViewConfig,
        gateway: ExecutionGateway,
        *,
        on_result: Optional[ResultCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_transition: Optional[TransitionCallback] = None,
        chain_delay: float = 0.0,
        gating: Gating | str = Gating.ANY,
        dedup_inputs: bool = True,
        chain_on_loop: bool = False,
    ):
        """
        Args:
            view: View configuration to mount
            gateway: Where step commands are executed
            on_result: Called with (step_index, result) after every execution
            on_error: Called with (step_index, error) on gateway failure;
                errors are printed to the console when unset
            on_transition: Called with the TickReport after every tick
            chain_delay: Seconds before an auto-chained tick runs
            gating: Input gating policy passed to the sequencer
            dedup_inputs: Collect a shared input once per sequence
            chain_on_loop: Re-run a zero-input first step once after a loop-back
        """
        self.view = view
        self.on_result = on_result
        self.on_error = on_error
        self.on_transition = on_transition
        self.chain_delay = chain_delay
        self.tick_count = 0

        self._loop = asyncio.get_running_loop()
        self._tasks: Set[asyncio.Task] = set()
        self._chain_handle: Optional[asyncio.TimerHandle] = None
        self._closed = False

        self.sequencer = StepSequencer(
            view.as_sequence(),
            gateway,
            gating=gating,
            dedup_inputs=dedup_inputs,
            # The single-command view keeps its inputs between runs
            reset_on_loop=not view.is_single_command,
            chain_on_loop=chain_on_loop,
        )

        if view.auto_execute:
            self.trigger()

    # ------------------------------------------------------------------
    # Presentation-facing API
    # ------------------------------------------------------------------

    @property
    def state(self) -> SequencerState:
        return self.sequencer.state

    @property
    def closed(self) -> bool:
        return self._closed

    def set_value(self, step_index: int, name: str, value: str) -> None:
        self.sequencer.set_value(step_index, name, value)

    def set_view_value(self, name: str, value: str) -> None:
        self.sequencer.set_view_value(name, value)

    def trigger(self) -> None:
        """Request one evaluation of the active step (user action)."""
        self._schedule(TickOrigin.USER)

    async def run_tick(self, origin: TickOrigin = TickOrigin.USER) -> TickReport:
        """Run one tick now and dispatch its callbacks."""
        if self._closed:
            return TickReport(Outcome.STALE, self.state.active_index)
        self.tick_count += 1
        return await self._tick(origin)

    async def wait_idle(self) -> None:
        """Wait until no tick is scheduled, chained, or in flight."""
        while self._tasks or self._chain_handle is not None:
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
            else:
                await asyncio.sleep(self.chain_delay or 0)

    def close(self) -> None:
        """Unmount: cancel a pending chained tick and retire the sequencer."""
        self._closed = True
        if self._chain_handle is not None:
            self._chain_handle.cancel()
            self._chain_handle = None
        self.sequencer.close()

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def _schedule(self, origin: TickOrigin) -> None:
        if self._closed:
            return
        self.tick_count += 1
        task = self._loop.create_task(self._tick(origin))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _schedule_chain(self) -> None:
        if self._closed or self._chain_handle is not None:
            return
        self._chain_handle = self._loop.call_later(self.chain_delay, self._fire_chain)

    def _fire_chain(self) -> None:
        self._chain_handle = None
        self._schedule(TickOrigin.CHAIN)

    async def _tick(self, origin: TickOrigin) -> TickReport:
        console = get_console()
        try:
            report = await self.sequencer.tick(origin)
        except Exception as e:
            # A broken gateway must not take the view down with it
            console.print_exception(e)
            if not self.sequencer.alive:
                return TickReport(Outcome.STALE, self.state.active_index)
            error = GatewayError(str(e) or type(e).__name__, code="internal")
            report = TickReport(Outcome.ERROR, self.state.active_index, error=error)

        if report.outcome is Outcome.STALE:
            return report

        if report.executed and report.result is not None:
            self._emit_result(report.step_index, report.result)
        elif report.outcome is Outcome.ERROR and report.error is not None:
            self._emit_error(report.step_index, report.error)

        if self.on_transition is not None:
            self.on_transition(report)

        if report.chain:
            self._schedule_chain()
        return report

    def _emit_result(self, step_index: int, result: ExecutionResult) -> None:
        if self.on_result is not None:
            self.on_result(step_index, result)

    def _emit_error(self, step_index: int, error: GatewayError) -> None:
        if self.on_error is not None:
            self.on_error(step_index, error)
            return
        step = self.sequencer.sequence.steps[step_index]
        get_console().print_error(
            "Failed to get step output",
            f"{self.view.name} / {step.name}: {error}",
            suggestion="Trigger the step again once the server is reachable.",
        )
