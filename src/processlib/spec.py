"""Command specification.

processlib v0.1.0

CommandSpec is an immutable description of an external command: what to
launch, where, which sinks receive its output lines and how its exit code is
judged. Every with_* method returns a new CommandSpec and leaves the receiver
untouched, so one spec can serve as a template for many (even concurrent)
executions.

Example:
    spec = (
        CommandSpec.create("git", "status", "--short")
        .with_working_directory("/path/to/repo")
        .with_output_sink(print)
        .with_success_predicate()
    )
    exit_code = await ProcessRunner().execute(spec)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Callable

__all__ = [
    "CommandSpec",
    "ExitCodeRange",
    "LineSink",
    "SuccessPredicate",
    "WindowVisibility",
]

# Receives one line of output, terminator stripped
LineSink = Callable[[str], None]

# Maps an exit code to success (True) or failure (False)
SuccessPredicate = Callable[[int], bool]


class WindowVisibility(str, Enum):
    """Window style hint for the child process.

    Only honored on Windows; other platforms have no window concept.
    """

    HIDDEN = "hidden"
    NORMAL = "normal"
    MINIMIZED = "minimized"
    MAXIMIZED = "maximized"

    @classmethod
    def from_string(cls, value: str) -> "WindowVisibility":
        """Parse a visibility name, case-insensitive.

        Args:
            value: hidden/normal/minimized/maximized

        Returns:
            Matching WindowVisibility, HIDDEN for unknown values
        """
        value = value.lower().strip()
        for mode in cls:
            if mode.value == value:
                return mode
        return cls.HIDDEN


@dataclass(frozen=True)
class ExitCodeRange:
    """Success predicate accepting exit codes in [low, high], both inclusive."""

    low: int
    high: int

    def __call__(self, exit_code: int) -> bool:
        return self.low <= exit_code <= self.high

    def __contains__(self, exit_code: int) -> bool:
        return self(exit_code)


def _exit_code_is_zero(exit_code: int) -> bool:
    return exit_code == 0


@dataclass(frozen=True)
class CommandSpec:
    """Immutable description of a process to launch.

    Attributes:
        executable: Program to run (resolved through PATH by the OS)
        arguments: Positional arguments, passed verbatim (no shell)
        working_directory: Working directory (None = inherit caller's cwd)
        on_output: Sink for stdout lines; stdout is piped only when set
        on_error: Sink for stderr lines; stderr is piped only when set
        success_predicate: Exit code judge (None = never fail)
        window_visibility: Window style hint (Windows only)
    """

    executable: str
    arguments: tuple[str, ...] = ()
    working_directory: Path | None = None
    on_output: LineSink | None = None
    on_error: LineSink | None = None
    success_predicate: SuccessPredicate | None = None
    window_visibility: WindowVisibility = WindowVisibility.HIDDEN

    def __post_init__(self) -> None:
        """Normalize field types (frozen, so via object.__setattr__)."""
        if not isinstance(self.executable, str):
            object.__setattr__(self, "executable", os.fspath(self.executable))
        if not isinstance(self.arguments, tuple):
            object.__setattr__(self, "arguments", tuple(self.arguments))
        if self.working_directory is not None and not isinstance(
            self.working_directory, Path
        ):
            object.__setattr__(
                self, "working_directory", Path(self.working_directory)
            )
        if not isinstance(self.window_visibility, WindowVisibility):
            object.__setattr__(
                self,
                "window_visibility",
                WindowVisibility.from_string(str(self.window_visibility)),
            )

    @classmethod
    def create(
        cls,
        executable: str | os.PathLike[str],
        *arguments: str,
        on_output: LineSink | None = None,
        on_error: LineSink | None = None,
        success_predicate: SuccessPredicate | None = None,
    ) -> "CommandSpec":
        """Create a spec from an executable and its arguments.

        Args:
            executable: Program to run
            *arguments: Positional arguments
            on_output: Optional stdout line sink
            on_error: Optional stderr line sink
            success_predicate: Optional exit code judge

        Returns:
            New CommandSpec
        """
        return cls(
            executable=executable,  # type: ignore[arg-type]
            arguments=arguments,
            on_output=on_output,
            on_error=on_error,
            success_predicate=success_predicate,
        )

    # =========================================================================
    # Derived properties
    # =========================================================================

    @property
    def argv(self) -> list[str]:
        """Argument vector handed to the OS (executable first)."""
        return [self.executable, *self.arguments]

    @property
    def redirects_output(self) -> bool:
        return self.on_output is not None

    @property
    def redirects_error(self) -> bool:
        return self.on_error is not None

    # =========================================================================
    # Transformations
    # =========================================================================

    def with_arguments(self, *arguments: str) -> "CommandSpec":
        """Replace the whole argument list."""
        return replace(self, arguments=tuple(arguments))

    def append_arguments(self, *arguments: str) -> "CommandSpec":
        """Append arguments after the existing ones."""
        return replace(self, arguments=self.arguments + tuple(arguments))

    def with_working_directory(
        self, working_directory: str | os.PathLike[str]
    ) -> "CommandSpec":
        return replace(self, working_directory=Path(working_directory))

    def with_output_sink(self, sink: LineSink) -> "CommandSpec":
        """Set the stdout line sink (enables stdout redirection)."""
        return replace(self, on_output=sink)

    def with_error_sink(self, sink: LineSink) -> "CommandSpec":
        """Set the stderr line sink (enables stderr redirection)."""
        return replace(self, on_error=sink)

    def with_success_predicate(
        self, predicate: SuccessPredicate | None = None
    ) -> "CommandSpec":
        """Fail execution when predicate rejects the exit code.

        Args:
            predicate: Exit code judge. Defaults to ``code == 0``.
        """
        if predicate is None:
            predicate = _exit_code_is_zero
        return replace(self, success_predicate=predicate)

    def with_success_range(self, low: int, high: int) -> "CommandSpec":
        """Accept exit codes in [low, high], both bounds inclusive."""
        return replace(self, success_predicate=ExitCodeRange(low, high))

    def with_window_visibility(self, mode: WindowVisibility) -> "CommandSpec":
        return replace(self, window_visibility=mode)

    def show_window(self) -> "CommandSpec":
        return self.with_window_visibility(WindowVisibility.NORMAL)

    def hide_window(self) -> "CommandSpec":
        return self.with_window_visibility(WindowVisibility.HIDDEN)

    def minimize_window(self) -> "CommandSpec":
        return self.with_window_visibility(WindowVisibility.MINIMIZED)

    def maximize_window(self) -> "CommandSpec":
        return self.with_window_visibility(WindowVisibility.MAXIMIZED)
