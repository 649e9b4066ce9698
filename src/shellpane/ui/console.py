"""Console output formatting utilities for shellpane."""

from __future__ import annotations

import sys
from typing import Optional

from ..model import ExecutionResult, ViewConfig


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_header(self, title: str) -> None:
        """Print a section header."""
        print(f"\n{title}")
        print("-" * len(title))

    def print_view_started(self, view: ViewConfig) -> None:
        """Print view mount information."""
        print("\nVIEW")
        print(f"Name: {view.name}")
        if view.category is not None:
            print(f"Category: {view.category.name or view.category.slug}")
        sequence = view.as_sequence()
        print(f"Steps: {len(sequence)}")
        print()

    def print_view_list(self, views: list[ViewConfig]) -> None:
        """Print the views a source exposes."""
        if not views:
            print("No views configured.")
            return
        for view in views:
            kind = "command" if view.is_single_command else "sequence"
            category = f" [{view.category.slug}]" if view.category else ""
            auto = " (auto)" if view.auto_execute else ""
            print(f"{view.name}{category} {kind}{auto}")
            for i, step in enumerate(view.as_sequence().steps):
                inputs = ", ".join(s.slug for s in step.inputs)
                suffix = f" <{inputs}>" if inputs else ""
                print(f"  #{i + 1} {step.name}{suffix}")

    def print_step(self, index: int, name: str) -> None:
        """Print step start message."""
        print(f"STEP #{index + 1}: {name}")

    def print_step_result(self, index: int, name: str, result: ExecutionResult) -> None:
        """Print a step's output and status."""
        output = result.output
        if output:
            print(output.rstrip("\n"))
        if result.ok:
            print("STATUS: success")
        else:
            self.print_failure(name, result.stderr, exit_code=result.exit_code)

    def print_failure(
        self,
        name: str,
        reason: str,
        exit_code: Optional[int] = None,
        hint: Optional[str] = None,
    ) -> None:
        """
        Print failure message.

        Args:
            name: Step name
            reason: Failure reason/error message
            exit_code: Optional exit code
            hint: Optional hint for user
        """
        print(f"STEP FAILED: {name}")
        if exit_code is not None:
            print(f"Exit code: {exit_code}")
        if hint:
            print(f"Hint: {hint}")
        if self.debug and reason:
            print(f"Error details: {reason}")

    def print_waiting(self, name: str, missing: list[str]) -> None:
        """Print that a step is waiting for input."""
        print(f"WAITING: {name} needs {', '.join(missing)}")

    def print_cycle_complete(self, cycle: int) -> None:
        print(f"\nCYCLE {cycle} COMPLETE")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exception(type(exc), exc, exc.__traceback__)
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
