# inputs.py
from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from .model import InputSpec, InputValue, Sequence

# Key under which view-level (pre-phase) values are collected
VIEW_INPUTS = -1


class Gating(str, Enum):
    """
    When a step counts as ready to run.

    ANY is the dashboard's historical rule: one non-empty value is enough,
    even if the step declares several inputs. ALL requires every input.
    """
    ANY = "any"
    ALL = "all"


class InputCollector:
    """
    Holds the values typed for each step of one sequence.

    With `dedup` on, the first step declaring an input slug owns it: later
    steps declaring the same slug do not collect it again and reuse the
    owner's value when they execute.
    """

    def __init__(self, sequence: Sequence, *, gating: Gating | str = Gating.ANY, dedup: bool = True):
        self.sequence = sequence
        self.gating = Gating(gating)
        self.dedup = dedup
        self._values: Dict[int, List[InputValue]] = {}
        self._owned: Dict[int, List[InputSpec]] = {}
        self._owner: Dict[str, int] = {}
        self._resolve_owners()

    def _resolve_owners(self) -> None:
        for index in [VIEW_INPUTS, *range(len(self.sequence.steps))]:
            owned: List[InputSpec] = []
            for spec in self.declared_specs(index):
                if self.dedup and spec.slug in self._owner:
                    continue
                self._owner.setdefault(spec.slug, index)
                owned.append(spec)
            self._owned[index] = owned

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    def declared_specs(self, step_index: int) -> List[InputSpec]:
        if step_index == VIEW_INPUTS:
            return list(self.sequence.inputs)
        return list(self.sequence.steps[step_index].inputs)

    def owned_specs(self, step_index: int) -> List[InputSpec]:
        """Specs this step collects itself (all declared specs when dedup is off)."""
        return list(self._owned[step_index])

    def needs_input(self, step_index: int) -> bool:
        return bool(self._owned[step_index])

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------

    def set_value(self, step_index: int, name: str, value: str) -> None:
        """Upsert a value, keeping the order in which names were first collected."""
        values = self._values.setdefault(step_index, [])
        for i, existing in enumerate(values):
            if existing.name == name:
                values[i] = InputValue(name=name, value=value)
                return
        values.append(InputValue(name=name, value=value))

    def get_value(self, step_index: int, name: str) -> Optional[str]:
        for v in self._values.get(step_index, []):
            if v.name == name:
                return v.value
        return None

    def values(self, step_index: int) -> List[InputValue]:
        return list(self._values.get(step_index, []))

    def reset(self, step_index: int) -> None:
        self._values.pop(step_index, None)

    def reset_all(self) -> None:
        self._values.clear()

    def missing(self, step_index: int) -> List[InputSpec]:
        """Owned specs that have no non-empty value yet."""
        return [s for s in self._owned[step_index] if not self.get_value(step_index, s.slug)]

    def is_complete(self, step_index: int) -> bool:
        owned = self._owned[step_index]
        if not owned:
            return True
        filled = len(owned) - len(self.missing(step_index))
        if self.gating is Gating.ALL:
            return filled == len(owned)
        return filled > 0

    def request_values(self, step_index: int) -> List[InputValue]:
        """
        Values to send with this step's execution, in declaration order.

        Each declared input is looked up on the step that owns it; empty
        values are left out.
        """
        out: List[InputValue] = []
        for spec in self.declared_specs(step_index):
            owner = self._owner[spec.slug] if self.dedup else step_index
            value = self.get_value(owner, spec.slug)
            if value:
                out.append(InputValue(name=spec.slug, value=value))
        return out
