#!/usr/bin/env python3
"""Fake CLI for integration testing.

This script writes scripted lines to stdout/stderr and exits with a chosen
code, so runner tests behave the same on every platform.

Usage:
    python fake_cli.py [--stdout LINE]... [--stderr LINE]... [--count N]
                       [--raw TEXT] [--long N] [--print-cwd] [--cat FILE]
                       [--sleep SECONDS] [--exit-code CODE]

Arguments:
    --stdout: Line written to stdout (repeatable, in order)
    --stderr: Line written to stderr (repeatable, in order)
    --count: Write "out<i>" to stdout and "err<i>" to stderr, i in 1..N
    --raw: Text written to stdout verbatim (escapes like \\r\\n are decoded)
    --long: Write one line of N "x" characters to stdout
    --print-cwd: Write the working directory to stdout
    --cat: Write the content of FILE (relative to the cwd) to stdout
    --sleep: Sleep before exiting
    --exit-code: Exit code (default: 0)
"""

from __future__ import annotations

import argparse
import os
import sys
import time
from typing import NoReturn


def main() -> NoReturn:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Fake CLI for testing")
    parser.add_argument("--stdout", action="append", default=[], help="stdout line")
    parser.add_argument("--stderr", action="append", default=[], help="stderr line")
    parser.add_argument("--count", type=int, default=0, help="Bulk line count")
    parser.add_argument("--raw", type=str, default=None, help="Verbatim stdout text")
    parser.add_argument("--long", type=int, default=0, help="Length of one long stdout line")
    parser.add_argument("--print-cwd", action="store_true", help="Print cwd")
    parser.add_argument("--cat", type=str, default=None, help="File to print")
    parser.add_argument("--sleep", type=float, default=0.0, help="Sleep seconds")
    parser.add_argument("--exit-code", type=int, default=0, help="Exit code")
    # Accept any positional arguments and echo them one per line
    parser.add_argument("args", nargs="*", help="Echoed arguments")

    args = parser.parse_args()

    for line in args.stdout:
        print(line)
    for line in args.stderr:
        print(line, file=sys.stderr)

    for i in range(1, args.count + 1):
        sys.stdout.write(f"out{i}\n")
        sys.stderr.write(f"err{i}\n")

    if args.raw is not None:
        text = args.raw.encode("utf-8").decode("unicode_escape")
        sys.stdout.flush()
        sys.stdout.buffer.write(text.encode("utf-8"))
        sys.stdout.buffer.flush()

    if args.long:
        sys.stdout.write("x" * args.long + "\n")

    if args.print_cwd:
        print(os.getcwd())

    if args.cat is not None:
        with open(args.cat, encoding="utf-8") as f:
            sys.stdout.write(f.read())

    for arg in args.args:
        print(f"arg={arg}")

    sys.stdout.flush()
    sys.stderr.flush()

    if args.sleep:
        time.sleep(args.sleep)

    sys.exit(args.exit_code)


if __name__ == "__main__":
    main()
