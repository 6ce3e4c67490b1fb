"""Process runner with ordered stream draining and completion detection.

processlib runtime module v0.1.0

This module provides:
- Launching a CommandSpec as a child process (argument vector, no shell)
- Line-oriented draining of stdout/stderr into the registered sinks
- Ordered completion: stdout drained -> stderr drained -> process exited
- Exit code evaluation against the command's success predicate
- Reliable termination on timeout, cancellation or sink failure

Key design points:
- A stream is piped only when a sink is registered for it, otherwise the
  child inherits ours (nothing to buffer, no unread pipe to fill up)
- Each drain task owns a single-shot asyncio.Event, set once at end-of-stream
- The exit code is read only after both stream events fired, so trailing
  lines still in the pipe when the OS reports exit are never lost
- Sinks run synchronously inside their drain task: one call at a time per
  stream, in arrival order
- If a sink raises, the other drain is cancelled, the child is terminated
  and the sink's exception propagates to the caller of execute()
"""

from __future__ import annotations

import asyncio
import codecs
import functools
import logging
import os
import re
import subprocess
import sys
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

import anyio

from ..config import (
    DEFAULT_ENCODING,
    DEFAULT_KILL_TIMEOUT,
    DEFAULT_TERM_TIMEOUT,
    Config,
    get_config,
)
from ..errors import ProcessExecutionError, ProcessTimeoutError
from ..spec import CommandSpec, LineSink, WindowVisibility
from ..types import ExecutionOutcome

__all__ = [
    "ProcessRunner",
    "execute",
    "execute_capturing",
    "execute_sync",
    "execute_capturing_sync",
]

logger = logging.getLogger(__name__)

# Platform detection
IS_WINDOWS = sys.platform == "win32"

# ShowWindow values from winuser.h
_SHOW_WINDOW = {
    WindowVisibility.HIDDEN: 0,  # SW_HIDE
    WindowVisibility.NORMAL: 1,  # SW_SHOWNORMAL
    WindowVisibility.MINIMIZED: 2,  # SW_SHOWMINIMIZED
    WindowVisibility.MAXIMIZED: 3,  # SW_SHOWMAXIMIZED
}


# Line breaks: \r\n, lone \r or lone \n
_LINE_BREAK = re.compile(rb"\r\n|\r|\n")

# Bytes requested per pipe read
READ_CHUNK_SIZE = 64 * 1024


@dataclass
class _StreamDrain:
    """Drains one redirected stream into its sink.

    Attributes:
        name: Stream name for logging (stdout/stderr)
        reader: Pipe reader of the child process
        sink: Line callback
        encoding: Line decoding
        failed: Shared event, set when any drain's sink raised
        drained: Completion signal, set once at end-of-stream
        line_count: Lines delivered so far
        chunk_size: Bytes requested per read
    """

    name: str
    reader: asyncio.StreamReader
    sink: LineSink
    encoding: str
    failed: asyncio.Event
    drained: asyncio.Event = field(default_factory=asyncio.Event)
    line_count: int = 0
    chunk_size: int = READ_CHUNK_SIZE
    task: asyncio.Task[None] | None = None

    def start(self) -> None:
        self.task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        try:
            async for raw in self._iter_lines():
                self.sink(raw.decode(self.encoding, errors="replace"))
                self.line_count += 1
        except asyncio.CancelledError:
            raise
        except Exception:
            self.failed.set()
            raise

        logger.debug(f"{self.name} drained after {self.line_count} lines")
        self.drained.set()

    async def _iter_lines(self) -> AsyncIterator[bytes]:
        """Yield raw lines without their terminators.

        \\r\\n, \\r and \\n each end a line; a \\r\\n split across two reads
        still counts as one break. A final line without terminator is
        yielded as is.
        """
        buffer = b""
        skip_lf = False
        while True:
            chunk = await self.reader.read(self.chunk_size)
            if not chunk:
                break
            if skip_lf:
                skip_lf = False
                if chunk.startswith(b"\n"):
                    chunk = chunk[1:]

            # The carried-over tail holds no line break, only scan new bytes
            scan_from = len(buffer)
            buffer += chunk
            start = 0
            for match in _LINE_BREAK.finditer(buffer, scan_from):
                yield buffer[start : match.start()]
                start = match.end()
                if match.group() == b"\r" and start == len(buffer):
                    skip_lf = True
            buffer = buffer[start:]

        if buffer:
            yield buffer


@dataclass
class ProcessRunner:
    """Executes CommandSpecs and synchronizes on their completion.

    A runner holds only settings; every execute() call creates its own
    process, drain tasks and completion events, so one runner and one spec
    can be used from many concurrent tasks.

    Example:
        runner = ProcessRunner(timeout=30)
        spec = CommandSpec.create("git", "branch").with_output_sink(print)

        exit_code = await runner.execute(spec)
        outcome = await runner.execute_capturing(spec)

    Attributes:
        timeout: Overall execution timeout in seconds (None = wait forever)
        term_timeout: Wait after terminate() before kill()
        kill_timeout: Wait after kill()
        encoding: Output line encoding (undecodable bytes are replaced)
    """

    timeout: float | None = None
    term_timeout: float = DEFAULT_TERM_TIMEOUT
    kill_timeout: float = DEFAULT_KILL_TIMEOUT
    encoding: str = DEFAULT_ENCODING

    def __post_init__(self) -> None:
        # Unknown encodings fail here, not inside a drain task
        codecs.lookup(self.encoding)

    @classmethod
    def from_config(cls, config: Config | None = None) -> "ProcessRunner":
        """Build a runner from PROCESSLIB_* configuration.

        Args:
            config: Configuration (defaults to the global one)
        """
        config = config or get_config()
        return cls(
            timeout=config.timeout,
            term_timeout=config.term_timeout,
            kill_timeout=config.kill_timeout,
            encoding=config.encoding,
        )

    async def execute(self, spec: CommandSpec) -> int:
        """Run the command to completion and return its exit code.

        Steps:
        1. Start the child, piping only the streams that have a sink
        2. Drain each piped stream line by line into its sink
        3. Wait for stdout drained, then stderr drained, then process exit
        4. Read the exit code once and judge it with the success predicate

        Args:
            spec: Command specification

        Returns:
            Exit code of the process

        Raises:
            ProcessExecutionError: If the success predicate rejects the exit code
            ProcessTimeoutError: If the runner timeout expires
            OSError: If the process cannot be started
            Exception: Whatever a sink raised
        """
        process: asyncio.subprocess.Process | None = None
        drains: list[_StreamDrain] = []

        kwargs = self._build_subprocess_kwargs(spec)

        try:
            # stdin=DEVNULL: the child never competes with us for our stdin
            process = await asyncio.create_subprocess_exec(
                *spec.argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE if spec.redirects_output else None,
                stderr=asyncio.subprocess.PIPE if spec.redirects_error else None,
                cwd=spec.working_directory,
                **kwargs,
            )

            logger.debug(
                f"Started subprocess pid={process.pid} "
                f"argv={spec.argv[0]} cwd={spec.working_directory or os.getcwd()} "
                f"stdout={'PIPE' if spec.redirects_output else 'inherit'} "
                f"stderr={'PIPE' if spec.redirects_error else 'inherit'}"
            )

            failed = asyncio.Event()
            if spec.on_output is not None and process.stdout:
                drains.append(
                    _StreamDrain("stdout", process.stdout, spec.on_output, self.encoding, failed)
                )
            if spec.on_error is not None and process.stderr:
                drains.append(
                    _StreamDrain("stderr", process.stderr, spec.on_error, self.encoding, failed)
                )
            for drain in drains:
                drain.start()

            try:
                exit_code = await asyncio.wait_for(
                    self._wait_for_completion(process, drains, failed),
                    timeout=self.timeout,
                )
            except asyncio.TimeoutError:
                logger.warning(
                    f"Subprocess timed out pid={process.pid} after {self.timeout}s"
                )
                raise ProcessTimeoutError(self.timeout or 0.0, spec.argv) from None

            logger.debug(
                f"Subprocess completed pid={process.pid} returncode={exit_code}"
            )

        finally:
            # Ensure cleanup with shield to prevent cancel interruption
            await self._safe_cleanup(process, drains)

        if spec.success_predicate is not None and not spec.success_predicate(exit_code):
            logger.debug(f"Exit code {exit_code} rejected by success predicate")
            raise ProcessExecutionError(exit_code, spec.argv)

        return exit_code

    async def execute_capturing(self, spec: CommandSpec) -> ExecutionOutcome:
        """Run the command and capture its stdout/stderr text.

        Both streams are always redirected. Each line goes to the spec's own
        sink first (if any), then into the per-call accumulator.

        Args:
            spec: Command specification (not modified)

        Returns:
            ExecutionOutcome with exit code and captured text

        Raises:
            ProcessExecutionError: If the success predicate rejects the exit
                code; its ``outcome`` holds the text captured so far
            ProcessTimeoutError: If the runner timeout expires
            OSError: If the process cannot be started
        """
        stdout_lines: list[str] = []
        stderr_lines: list[str] = []

        capturing = spec.with_output_sink(
            _tee(spec.on_output, stdout_lines)
        ).with_error_sink(
            _tee(spec.on_error, stderr_lines)
        )

        try:
            exit_code = await self.execute(capturing)
        except ProcessExecutionError as e:
            e.outcome = _build_outcome(e.exit_code, stdout_lines, stderr_lines)
            raise

        return _build_outcome(exit_code, stdout_lines, stderr_lines)

    async def _wait_for_completion(
        self,
        process: asyncio.subprocess.Process,
        drains: list[_StreamDrain],
        failed: asyncio.Event,
    ) -> int:
        """Wait for every drain signal in order, then for process exit.

        Args:
            process: The subprocess
            drains: Active drains, stdout first
            failed: Set when a sink raised

        Returns:
            Exit code of the process
        """
        for drain in drains:
            await self._wait_for_signal(drain, failed)
            if failed.is_set():
                await self._raise_sink_failure(drains)

        return await process.wait()

    async def _wait_for_signal(
        self,
        drain: _StreamDrain,
        failed: asyncio.Event,
    ) -> None:
        """Wait until drain signals end-of-stream or any sink fails.

        Args:
            drain: Drain to wait for
            failed: Shared sink failure event
        """
        if drain.drained.is_set() or failed.is_set():
            return

        drained_task = asyncio.create_task(drain.drained.wait())
        failed_task = asyncio.create_task(failed.wait())

        try:
            await asyncio.wait(
                [drained_task, failed_task],
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in (drained_task, failed_task):
                if not task.done():
                    task.cancel()
                    try:
                        await task
                    except asyncio.CancelledError:
                        pass

    async def _raise_sink_failure(self, drains: list[_StreamDrain]) -> None:
        """Re-raise the exception of the first drain whose sink failed."""
        for drain in drains:
            if drain.task is not None and drain.task.done() and not drain.task.cancelled():
                if drain.task.exception() is not None:
                    logger.debug(f"{drain.name} sink raised, abandoning drain")
                    await drain.task

    def _build_subprocess_kwargs(self, spec: CommandSpec) -> dict[str, Any]:
        """Build platform-specific subprocess kwargs.

        Args:
            spec: Command specification

        Returns:
            Dict of kwargs for asyncio.create_subprocess_exec
        """
        kwargs: dict[str, Any] = {}

        if IS_WINDOWS:
            startupinfo = subprocess.STARTUPINFO()
            startupinfo.dwFlags |= subprocess.STARTF_USESHOWWINDOW
            startupinfo.wShowWindow = _SHOW_WINDOW[spec.window_visibility]
            kwargs["startupinfo"] = startupinfo
            if spec.window_visibility is WindowVisibility.HIDDEN:
                kwargs["creationflags"] = subprocess.CREATE_NO_WINDOW

        return kwargs

    async def _safe_cleanup(
        self,
        process: asyncio.subprocess.Process | None,
        drains: list[_StreamDrain],
    ) -> None:
        """Cleanup subprocess and drain tasks, shielded from cancellation.

        Args:
            process: The subprocess to terminate
            drains: Drains whose tasks may still run
        """
        try:
            await asyncio.shield(self._do_cleanup(process, drains))
        except asyncio.CancelledError:
            # If shield itself is cancelled, still try cleanup
            await self._do_cleanup(process, drains)
            raise

    async def _do_cleanup(
        self,
        process: asyncio.subprocess.Process | None,
        drains: list[_StreamDrain],
    ) -> None:
        """Perform actual cleanup.

        Args:
            process: The subprocess to terminate
            drains: Drains whose tasks may still run
        """
        for drain in drains:
            task = drain.task
            if task is None:
                continue
            if not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
                except Exception:
                    # Surfaced through _raise_sink_failure when it matters
                    pass
            elif not task.cancelled():
                # Mark the exception as retrieved
                task.exception()

        if process is not None and process.returncode is None:
            await self._terminate_process(process)

    async def _terminate_process(
        self,
        process: asyncio.subprocess.Process,
    ) -> None:
        """Terminate subprocess gracefully, then forcefully if needed.

        Termination strategy:
        1. terminate() (SIGTERM on POSIX, TerminateProcess on Windows)
        2. Wait up to term_timeout for exit
        3. If still running, kill() (SIGKILL on POSIX)
        4. Wait up to kill_timeout for forced exit

        Args:
            process: The subprocess to terminate
        """
        pid = process.pid
        logger.debug(f"Terminating subprocess pid={pid}")

        try:
            process.terminate()

            try:
                await asyncio.wait_for(process.wait(), timeout=self.term_timeout)
                logger.debug(
                    f"Subprocess terminated gracefully pid={pid} "
                    f"returncode={process.returncode}"
                )
                return
            except asyncio.TimeoutError:
                pass

            logger.debug(f"Force killing subprocess pid={pid}")
            process.kill()

            try:
                await asyncio.wait_for(process.wait(), timeout=self.kill_timeout)
                logger.debug(
                    f"Subprocess killed pid={pid} "
                    f"returncode={process.returncode}"
                )
            except asyncio.TimeoutError:
                logger.warning(f"Subprocess did not exit after kill pid={pid}")

        except ProcessLookupError:
            # Process already exited
            logger.debug(f"Subprocess already exited pid={pid}")
        except OSError as e:
            logger.warning(f"Error terminating subprocess pid={pid}: {e}")


def _tee(sink: LineSink | None, lines: list[str]) -> LineSink:
    """Forward each line to sink (if any), then append it to lines."""

    def deliver(line: str) -> None:
        if sink is not None:
            sink(line)
        lines.append(line)

    return deliver


def _build_outcome(
    exit_code: int, stdout_lines: list[str], stderr_lines: list[str]
) -> ExecutionOutcome:
    return ExecutionOutcome(
        exit_code=exit_code,
        stdout="".join(line + os.linesep for line in stdout_lines),
        stderr="".join(line + os.linesep for line in stderr_lines),
    )


# Convenience functions for simple use cases
async def execute(spec: CommandSpec, *, runner: ProcessRunner | None = None) -> int:
    """Run spec with runner (default: configured from environment)."""
    runner = runner or ProcessRunner.from_config()
    return await runner.execute(spec)


async def execute_capturing(
    spec: CommandSpec, *, runner: ProcessRunner | None = None
) -> ExecutionOutcome:
    """Run spec with capture, see ProcessRunner.execute_capturing."""
    runner = runner or ProcessRunner.from_config()
    return await runner.execute_capturing(spec)


def execute_sync(spec: CommandSpec, *, runner: ProcessRunner | None = None) -> int:
    """Blocking execute() for synchronous callers.

    Must not be called from inside a running event loop.
    """
    return anyio.run(functools.partial(execute, spec, runner=runner))


def execute_capturing_sync(
    spec: CommandSpec, *, runner: ProcessRunner | None = None
) -> ExecutionOutcome:
    """Blocking execute_capturing() for synchronous callers."""
    return anyio.run(functools.partial(execute_capturing, spec, runner=runner))
