# sequencer.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from .gateway.base import ExecutionGateway, GatewayError
from .inputs import VIEW_INPUTS, Gating, InputCollector
from .model import ExecutionResult, InputValue, Phase, Sequence, SequencerState, Step
from .ui.console import get_console

# ----------------------------------------------------------------------
# Tick bookkeeping
# ----------------------------------------------------------------------
# One tick = one evaluation of the transition function:
#
#   Idle --(inputs missing)--> Idle                      GATED
#   Idle --(ready)--> Executing --(exit 0)--> Advanced   SUCCEEDED
#                              --(exit != 0)--> Idle     FAILED
#                              --(GatewayError)--> Idle  ERROR
#   Advanced --(next step needs no input)--> chained tick
#
# At most one gateway call is in flight per sequencer; a tick arriving while
# one is running is answered with BUSY.


class Outcome(str, Enum):
    GATED = "gated"
    BUSY = "busy"
    STALE = "stale"
    ADVANCED = "advanced"  # pre-phase finished, nothing executed
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    ERROR = "error"


class TickOrigin(str, Enum):
    USER = "user"
    CHAIN = "chain"


@dataclass(frozen=True)
class Dispatch:
    """A step that passed gating, with the values it will be run with."""
    step_index: int
    command_ref: str
    inputs: List[InputValue]


@dataclass
class TickReport:
    """What one tick did. `step_index` is VIEW_INPUTS for pre-phase ticks."""
    outcome: Outcome
    step_index: int
    result: Optional[ExecutionResult] = None
    error: Optional[GatewayError] = None
    chain: bool = False
    looped: bool = False

    @property
    def executed(self) -> bool:
        return self.outcome in (Outcome.SUCCEEDED, Outcome.FAILED)


class StepSequencer:
    """
    Decides which step of a sequence runs next and runs it.

    Owns the SequencerState of one mounted view. Presentation code reads
    `state` and feeds input through `set_value`; everything else changes
    only inside `tick`.
    """

    def __init__(
        self,
        sequence: Sequence,
        gateway: ExecutionGateway,
        *,
        gating: Gating | str = Gating.ANY,
        dedup_inputs: bool = True,
        reset_on_loop: bool = True,
        chain_on_loop: bool = False,
    ):
        """
        Args:
            sequence: Steps to drive (immutable for this sequencer's lifetime)
            gateway: Where commands are executed
            gating: How many inputs a step needs before it may run
            dedup_inputs: Collect an input slug once, on the first step declaring it
            reset_on_loop: Clear step 0 (and view) inputs when the sequence loops
            chain_on_loop: After a user-triggered loop-back, run a zero-input
                step 0 once more without waiting for the user
        """
        self._sequence = sequence
        self.gateway = gateway
        self.collector = InputCollector(sequence, gating=gating, dedup=dedup_inputs)
        self.reset_on_loop = reset_on_loop
        self.chain_on_loop = chain_on_loop
        self._state = SequencerState(awaiting_view_inputs=sequence.has_pre_phase)
        self._alive = True

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def sequence(self) -> Sequence:
        return self._sequence

    @property
    def state(self) -> SequencerState:
        return self._state

    @property
    def alive(self) -> bool:
        return self._alive

    @property
    def active_step(self) -> Step:
        return self._sequence.steps[self._state.active_index]

    @property
    def results(self) -> Dict[int, ExecutionResult]:
        return dict(self._state.per_step_results)

    def inputs_for(self, step_index: int) -> List[InputValue]:
        """Values a step would be executed with right now."""
        values: List[InputValue] = []
        if self._sequence.has_pre_phase:
            values.extend(self.collector.request_values(VIEW_INPUTS))
        seen = {v.name for v in values}
        for v in self.collector.request_values(step_index):
            if v.name not in seen:
                values.append(v)
        return values

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def set_value(self, step_index: int, name: str, value: str) -> None:
        self.collector.set_value(step_index, name, value)

    def set_view_value(self, name: str, value: str) -> None:
        self.collector.set_value(VIEW_INPUTS, name, value)

    def reset(self, step_index: int) -> None:
        self.collector.reset(step_index)

    # ------------------------------------------------------------------
    # Transition function
    # ------------------------------------------------------------------

    def evaluate(self) -> Optional[Dispatch]:
        """
        Gate the active step.

        Returns None when it must wait for input (or when the view-level
        inputs are pending), otherwise the Dispatch to execute.
        """
        if self._state.awaiting_view_inputs:
            return None
        index = self._state.active_index
        if not self.collector.is_complete(index):
            return None
        step = self._sequence.steps[index]
        return Dispatch(step_index=index, command_ref=step.command_ref, inputs=self.inputs_for(index))

    async def tick(self, origin: TickOrigin = TickOrigin.USER) -> TickReport:
        state = self._state
        console = get_console()

        if not self._alive:
            return TickReport(Outcome.STALE, state.active_index)
        if state.is_executing:
            console.print_debug(f"{self._sequence.slug}: tick ignored, step {state.active_index} in flight")
            return TickReport(Outcome.BUSY, state.active_index)

        if state.awaiting_view_inputs:
            return self._leave_pre_phase()

        dispatch = self.evaluate()
        if dispatch is None:
            state.phase = Phase.IDLE
            console.print_debug(f"{self._sequence.slug}: step {state.active_index} waiting for input")
            return TickReport(Outcome.GATED, state.active_index)

        self._begin(dispatch)
        console.print_debug(
            f"{self._sequence.slug}: executing step {dispatch.step_index} "
            f"({dispatch.command_ref}) origin={origin.value}"
        )

        try:
            result = await self.gateway.execute(dispatch.command_ref, dispatch.inputs)
        except GatewayError as e:
            if not self._alive:
                return TickReport(Outcome.STALE, dispatch.step_index, error=e)
            return self.apply_error(dispatch, e)
        except BaseException:
            # Cancellation or a broken gateway; the step must stay runnable
            if self._alive:
                state.is_executing = False
                state.phase = Phase.IDLE
            raise

        if not self._alive:
            console.print_debug(f"{self._sequence.slug}: discarding result of closed sequencer")
            return TickReport(Outcome.STALE, dispatch.step_index, result=result)
        return self.apply_result(dispatch, result, origin)

    def _begin(self, dispatch: Dispatch) -> None:
        state = self._state
        state.is_executing = True
        state.phase = Phase.EXECUTING
        if dispatch.step_index == 0:
            # A new cycle starts: later steps' output belongs to the previous one
            state.per_step_results = {
                i: r for i, r in state.per_step_results.items() if i == 0
            }

    def apply_result(
        self,
        dispatch: Dispatch,
        result: ExecutionResult,
        origin: TickOrigin = TickOrigin.USER,
    ) -> TickReport:
        state = self._state
        index = dispatch.step_index

        state.per_step_results[index] = result
        state.last_executed_index = index

        looped = False
        if result.ok:
            if index + 1 >= len(self._sequence):
                self._loop_back()
                looped = True
            else:
                state.active_index = index + 1
            state.phase = Phase.ADVANCED

        state.is_executing = False

        chain = result.ok and self._should_chain(looped, origin)
        if not chain:
            state.phase = Phase.IDLE

        get_console().print_debug(
            f"{self._sequence.slug}: step {index} exit={result.exit_code} "
            f"active={state.active_index} looped={looped} chain={chain}"
        )
        return TickReport(
            Outcome.SUCCEEDED if result.ok else Outcome.FAILED,
            index,
            result=result,
            chain=chain,
            looped=looped,
        )

    def apply_error(self, dispatch: Dispatch, error: GatewayError) -> TickReport:
        state = self._state
        state.is_executing = False
        state.phase = Phase.IDLE
        get_console().print_debug(f"{self._sequence.slug}: step {dispatch.step_index} gateway error: {error}")
        return TickReport(Outcome.ERROR, dispatch.step_index, error=error)

    def _loop_back(self) -> None:
        state = self._state
        state.active_index = 0
        state.cycles += 1
        if self.reset_on_loop:
            self.collector.reset(0)
            if self._sequence.has_pre_phase:
                self.collector.reset(VIEW_INPUTS)
        if self._sequence.has_pre_phase:
            state.awaiting_view_inputs = True

    def _should_chain(self, looped: bool, origin: TickOrigin) -> bool:
        if looped:
            # A chained tick never chains through a loop-back, so a sequence
            # without inputs cannot spin on its own.
            if not self.chain_on_loop or origin is not TickOrigin.USER:
                return False
            if self._state.awaiting_view_inputs:
                return self.collector.is_complete(VIEW_INPUTS)
        return not self.collector.needs_input(self._state.active_index)

    def _leave_pre_phase(self) -> TickReport:
        state = self._state
        if not self.collector.is_complete(VIEW_INPUTS):
            state.phase = Phase.IDLE
            return TickReport(Outcome.GATED, VIEW_INPUTS)

        state.awaiting_view_inputs = False
        state.active_index = 0
        state.per_step_results = {}
        for i in range(len(self._sequence)):
            self.collector.reset(i)

        chain = not self.collector.needs_input(0)
        state.phase = Phase.ADVANCED if chain else Phase.IDLE
        return TickReport(Outcome.ADVANCED, VIEW_INPUTS, chain=chain)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Tear down; results still in flight are discarded when they land."""
        self._alive = False
