# views.py
from __future__ import annotations

import runpy
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List

from . import dsl
from .model import ViewConfig


class ViewNotFound(LookupError):
    def __init__(self, name: str, known: List[str]):
        super().__init__(name)
        self.name = name
        self.known = known

    def __str__(self) -> str:
        return f"no view named {self.name!r} (known: {', '.join(self.known) or 'none'})"


@dataclass
class LocalViews:
    """Views loaded from a file plus the shell strings behind their commands."""
    views: List[ViewConfig]
    commands: Dict[str, str]


# ----------------------------------------------------------------------
# Views loading (local file)
# ----------------------------------------------------------------------

def load_views(path: str | Path) -> LocalViews:
    """
    Load views from a python file path.

    The file must define either:
      - views() -> List[ViewConfig]
      - VIEWS = [ViewConfig, ...]

    Returns:
      LocalViews
    """
    views_path = Path(path).expanduser().resolve()
    if not views_path.exists():
        raise FileNotFoundError(f"Views file not found: {views_path}")
    if views_path.suffix != ".py":
        raise ValueError(f"Views file must be a .py file, got: {views_path.name}")

    dsl.clear_commands()
    module_name = f"shellpane_views_{views_path.stem}"
    globals_dict = runpy.run_path(str(views_path), run_name=module_name)

    loaded = None
    if "VIEWS" in globals_dict:
        loaded = globals_dict["VIEWS"]
    elif "views" in globals_dict and callable(globals_dict["views"]) and globals_dict["views"] is not dsl.views:
        loaded = globals_dict["views"]()

    if not isinstance(loaded, list) or not all(isinstance(v, ViewConfig) for v in loaded):
        raise TypeError(
            "Views file must return/define a List[ViewConfig]. "
            "Define views() -> List[ViewConfig] or VIEWS = [ViewConfig, ...]."
        )

    names = [v.name for v in loaded]
    if len(set(names)) != len(names):
        dupes = sorted({n for n in names if names.count(n) > 1})
        raise ValueError(f"Duplicate view names found: {dupes}")

    return LocalViews(views=loaded, commands=dsl.command_lines())


def find_view(views: List[ViewConfig], name: str) -> ViewConfig:
    """Look a view up by name or slug (case-insensitive)."""
    wanted = name.strip().lower()
    for v in views:
        if v.name.lower() == wanted or (v.slug and v.slug.lower() == wanted):
            return v
    raise ViewNotFound(name, [v.name for v in views])
