"""Runtime module for child process execution.

This module launches CommandSpecs, drains their output streams into the
registered sinks and synchronizes on stream and process completion.
"""

from __future__ import annotations

from .process_runner import (
    ProcessRunner,
    execute,
    execute_capturing,
    execute_capturing_sync,
    execute_sync,
)

__all__ = [
    "ProcessRunner",
    "execute",
    "execute_capturing",
    "execute_capturing_sync",
    "execute_sync",
]
