from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .inputs import Gating


def _to_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _to_float(value: Optional[str], default: float) -> float:
    if value is None or not value.strip():
        return default
    try:
        parsed = float(value)
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


@dataclass(frozen=True)
class Settings:
    """Client settings read from SHELLPANE_* environment variables."""
    api_url: Optional[str] = None
    timeout: float = 30.0
    chain_delay: float = 0.0
    gating: Gating = Gating.ANY
    dedup_inputs: bool = True
    chain_on_loop: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ

        gating_raw = (env.get("SHELLPANE_GATING") or Gating.ANY.value).strip().lower()
        try:
            gating = Gating(gating_raw)
        except ValueError:
            gating = Gating.ANY

        return cls(
            api_url=env.get("SHELLPANE_API_URL") or None,
            timeout=_to_float(env.get("SHELLPANE_TIMEOUT"), 30.0),
            chain_delay=_to_float(env.get("SHELLPANE_CHAIN_DELAY"), 0.0),
            gating=gating,
            dedup_inputs=_to_bool(env.get("SHELLPANE_DEDUP_INPUTS"), True),
            chain_on_loop=_to_bool(env.get("SHELLPANE_CHAIN_ON_LOOP"), False),
        )
