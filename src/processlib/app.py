"""processlib command line entry.

Runs one external command through ProcessRunner and reports the outcome:

    python -m processlib [--cwd DIR] [--check | --range LOW HIGH]
                         [--timeout S] [--capture] -- executable [args...]

Streamed lines are printed with [out]/[err] prefixes; --capture prints the
collected text after the process finished instead.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from . import __version__
from .config import Config, get_config
from .errors import ProcessExecutionError, ProcessTimeoutError
from .runtime import ProcessRunner
from .spec import CommandSpec, WindowVisibility
from .types import ExecutionOutcome

__all__ = ["configure_logging", "build_parser", "run_command", "main"]

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Exit code for commands that could not be started (shell convention)
EXIT_LAUNCH_FAILED = 127


def configure_logging(config: Config) -> None:
    """Configure log output.

    Default: INFO on stderr. PROCESSLIB_LOG_DEBUG: DEBUG into config.log_file.
    """
    log_handlers: list[logging.Handler] = []

    if config.log_debug and config.log_file:
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log_handlers.append(file_handler)
        log_level = logging.DEBUG
    else:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log_handlers.append(stderr_handler)
        log_level = logging.INFO

    # Root logger (third-party libraries) at WARNING to reduce noise
    logging.basicConfig(
        level=logging.WARNING,
        handlers=log_handlers,
    )
    # Verbose logging only for the processlib namespace
    logging.getLogger("processlib").setLevel(log_level)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="processlib",
        description="Run an external command and report its exit code.",
        allow_abbrev=False,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--cwd", default=None, help="Working directory for the command")

    judge = parser.add_mutually_exclusive_group()
    judge.add_argument(
        "--check", action="store_true", help="Fail unless the exit code is 0"
    )
    judge.add_argument(
        "--range",
        nargs=2,
        type=int,
        metavar=("LOW", "HIGH"),
        default=None,
        help="Fail unless LOW <= exit code <= HIGH",
    )

    parser.add_argument(
        "--timeout", type=float, default=None, help="Timeout in seconds"
    )
    parser.add_argument(
        "--window",
        choices=[mode.value for mode in WindowVisibility],
        default=WindowVisibility.HIDDEN.value,
        help="Window style (Windows only)",
    )
    parser.add_argument(
        "--capture",
        action="store_true",
        help="Print captured output after the command finished",
    )
    parser.add_argument("executable", help="Program to run")
    parser.add_argument("arguments", nargs=argparse.REMAINDER, help="Program arguments")
    return parser


def _build_spec(args: argparse.Namespace) -> CommandSpec:
    arguments = list(args.arguments)
    if arguments and arguments[0] == "--":
        arguments = arguments[1:]

    spec = CommandSpec.create(args.executable, *arguments).with_window_visibility(
        WindowVisibility.from_string(args.window)
    )
    if args.cwd:
        spec = spec.with_working_directory(args.cwd)
    if args.check:
        spec = spec.with_success_predicate()
    elif args.range is not None:
        spec = spec.with_success_range(*args.range)
    if not args.capture:
        spec = spec.with_output_sink(
            lambda line: print(f"[out] {line}", flush=True)
        ).with_error_sink(
            lambda line: print(f"[err] {line}", file=sys.stderr, flush=True)
        )
    return spec


def _print_outcome(outcome: ExecutionOutcome) -> None:
    print(f"StdOut: {outcome.stdout}")
    print(f"StdErr: {outcome.stderr}")


def _exit_status(exit_code: int) -> int:
    """Map a signal exit (negative returncode) to the shell convention 128 + N."""
    if exit_code < 0:
        return 128 - exit_code
    return exit_code


async def run_command(args: argparse.Namespace, runner: ProcessRunner) -> int:
    """Run the parsed command and print the outcome.

    Returns:
        Exit code for this program
    """
    spec = _build_spec(args)
    logger.debug(f"Running: {' '.join(spec.argv)}")

    try:
        if args.capture:
            outcome = await runner.execute_capturing(spec)
            _print_outcome(outcome)
            exit_code = outcome.exit_code
        else:
            exit_code = await runner.execute(spec)
    except ProcessExecutionError as e:
        if args.capture and e.outcome is not None:
            _print_outcome(e.outcome)
        print(f"Exit code: {e.exit_code} (rejected)")
        return 1
    except ProcessTimeoutError as e:
        print(f"Timed out after {e.timeout:g}s")
        return 1
    except OSError as e:
        logger.error(f"Failed to start {spec.executable}: {e}")
        return EXIT_LAUNCH_FAILED

    print(f"Exit code: {exit_code}")
    return _exit_status(exit_code)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    config = get_config()
    configure_logging(config)

    args = build_parser().parse_args(argv)

    runner = ProcessRunner.from_config(config)
    if args.timeout is not None:
        runner.timeout = args.timeout if args.timeout > 0 else None

    return asyncio.run(run_command(args, runner))


if __name__ == "__main__":
    sys.exit(main())
