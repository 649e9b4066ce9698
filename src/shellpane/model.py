# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


@dataclass(frozen=True)
class InputSpec:
    """A named input a step requires before it can run."""
    slug: str
    description: str | None = None


@dataclass(frozen=True)
class InputValue:
    """A collected value; `name` matches an InputSpec slug."""
    name: str
    value: str


@dataclass(frozen=True)
class Step:
    """A single remote command inside a sequence."""
    name: str
    command_ref: str
    inputs: List[InputSpec] = field(default_factory=list)

    # Output-format hint ("", "echarts-json", "apexcharts-json"); presentation only
    display: str = ""
    description: str = ""


@dataclass(frozen=True)
class Sequence:
    """
    Ordered steps of one multi-step view.

    `inputs` are view-level inputs collected once per cycle before step 0
    runs (the pre-phase). Most views leave it empty.
    """
    slug: str
    steps: List[Step]
    inputs: List[InputSpec] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.steps:
            raise ValueError(f"sequence {self.slug!r} must have at least one step")

    def __len__(self) -> int:
        return len(self.steps)

    @property
    def has_pre_phase(self) -> bool:
        return bool(self.inputs)


@dataclass(frozen=True)
class Category:
    slug: str
    name: str = ""
    color: str = ""


@dataclass(frozen=True)
class ViewConfig:
    """
    One dashboard view: either a single command or a sequence of steps.
    """
    name: str
    slug: str = ""
    category: Optional[Category] = None
    command: Optional[Step] = None
    sequence: Optional[Sequence] = None
    auto_execute: bool = False

    def __post_init__(self) -> None:
        if (self.command is None) == (self.sequence is None):
            raise ValueError(f"view {self.name!r} needs exactly one of command or sequence")

    @property
    def is_single_command(self) -> bool:
        return self.command is not None

    def as_sequence(self) -> Sequence:
        if self.sequence is not None:
            return self.sequence
        return Sequence(slug=self.slug or self.name, steps=[self.command])


@dataclass
class ExecutionResult:
    """Output of one remote command execution."""
    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        # The dashboard shows stdout, falling back to stderr when stdout is empty
        return self.stdout if self.stdout else self.stderr


class Phase(str, Enum):
    IDLE = "idle"
    EXECUTING = "executing"
    ADVANCED = "advanced"


@dataclass
class SequencerState:
    """
    Mutable state of one sequencer instance.

    Only the owning StepSequencer mutates it. `last_executed_index` is kept
    for highlighting and is never read by the transition logic.
    """
    active_index: int = 0
    last_executed_index: int = 0
    is_executing: bool = False
    awaiting_view_inputs: bool = False
    phase: Phase = Phase.IDLE
    cycles: int = 0
    per_step_results: Dict[int, ExecutionResult] = field(default_factory=dict)
