"""processlib - declarative external command execution.

Describe a command once with CommandSpec, then run it with ProcessRunner:

    spec = (
        CommandSpec.create("git", "branch")
        .with_output_sink(print)
        .with_success_predicate()
    )
    exit_code = await ProcessRunner().execute(spec)

Environment variables:
    PROCESSLIB_TIMEOUT: default execution timeout (empty = none)
    PROCESSLIB_LOG_DEBUG: debug logging to a temp file (default false)

Usage:
    python -m processlib -- git branch
"""

__version__ = "0.1.0"

from .errors import ProcessExecutionError, ProcessLibError, ProcessTimeoutError
from .runtime import (
    ProcessRunner,
    execute,
    execute_capturing,
    execute_capturing_sync,
    execute_sync,
)
from .spec import CommandSpec, ExitCodeRange, LineSink, SuccessPredicate, WindowVisibility
from .types import ExecutionOutcome

__all__ = [
    "__version__",
    # Command description
    "CommandSpec",
    "ExitCodeRange",
    "LineSink",
    "SuccessPredicate",
    "WindowVisibility",
    # Execution
    "ProcessRunner",
    "ExecutionOutcome",
    "execute",
    "execute_capturing",
    "execute_capturing_sync",
    "execute_sync",
    # Errors
    "ProcessLibError",
    "ProcessExecutionError",
    "ProcessTimeoutError",
]
