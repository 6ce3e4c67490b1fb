"""Execution result types.

processlib v0.1.0
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["ExecutionOutcome"]


@dataclass(frozen=True)
class ExecutionOutcome:
    """Outcome of a single execution.

    Created fresh for every execute call and owned by its caller.

    Attributes:
        exit_code: Exit code reported by the OS
        stdout: Captured standard output (capturing execute only). Every
            received line followed by os.linesep.
        stderr: Captured standard error, same layout as stdout
    """

    exit_code: int
    stdout: str | None = None
    stderr: str | None = None

    @property
    def success(self) -> bool:
        """Whether the exit code is zero (informational only)."""
        return self.exit_code == 0

    def __repr__(self) -> str:
        stdout_len = len(self.stdout) if self.stdout is not None else None
        stderr_len = len(self.stderr) if self.stderr is not None else None
        return (
            f"ExecutionOutcome(exit_code={self.exit_code}, "
            f"stdout_chars={stdout_len}, stderr_chars={stderr_len})"
        )
