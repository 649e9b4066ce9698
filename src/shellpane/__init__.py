from .model import InputSpec, InputValue, Step, Sequence, ViewConfig, ExecutionResult, SequencerState
from .inputs import Gating, InputCollector
from .sequencer import StepSequencer, Outcome, TickOrigin, TickReport
from .orchestrator import ViewOrchestrator
from .gateway import ExecutionGateway, GatewayError

__all__ = [
    "InputSpec", "InputValue", "Step", "Sequence", "ViewConfig", "ExecutionResult", "SequencerState",
    "Gating", "InputCollector",
    "StepSequencer", "Outcome", "TickOrigin", "TickReport",
    "ViewOrchestrator",
    "ExecutionGateway", "GatewayError",
]
