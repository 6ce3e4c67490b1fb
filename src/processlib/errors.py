"""processlib exception classes.

processlib v0.1.0

Launch failures (missing executable, missing working directory, permission
denied) are not wrapped: they propagate as the OSError raised by the OS.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .types import ExecutionOutcome

__all__ = [
    "ProcessLibError",
    "ProcessExecutionError",
    "ProcessTimeoutError",
]


class ProcessLibError(Exception):
    """processlib base exception."""
    pass


class ProcessExecutionError(ProcessLibError):
    """The process ran to completion but its exit code was rejected.

    Raised when a success predicate is configured and returns False for the
    observed exit code.

    Attributes:
        exit_code: Exit code reported by the OS
        argv: Argument vector that was run (may be empty)
        outcome: Captured output, set only by the capturing execute variant
    """

    def __init__(
        self,
        exit_code: int,
        argv: Sequence[str] = (),
        outcome: ExecutionOutcome | None = None,
    ) -> None:
        self.exit_code = exit_code
        self.argv = tuple(argv)
        self.outcome = outcome
        if self.argv:
            message = f"{self.argv[0]} exited with code {exit_code}"
        else:
            message = f"process exited with code {exit_code}"
        super().__init__(message)


class ProcessTimeoutError(ProcessLibError):
    """The process did not finish in time and was terminated.

    Attributes:
        timeout: Timeout that expired (seconds)
        argv: Argument vector that was run (may be empty)
    """

    def __init__(self, timeout: float, argv: Sequence[str] = ()) -> None:
        self.timeout = timeout
        self.argv = tuple(argv)
        name = self.argv[0] if self.argv else "process"
        super().__init__(f"{name} timed out after {timeout:g}s")
