"""Command line entry tests."""

from __future__ import annotations

import os
import signal
import sys
from pathlib import Path

import pytest

from processlib.app import EXIT_LAUNCH_FAILED, build_parser, main
from processlib.runtime.process_runner import IS_WINDOWS


def _cli(fake_cli_path: Path, *args: str) -> list[str]:
    return [sys.executable, str(fake_cli_path), *args]


class TestParser:
    """Test argument parsing."""

    def test_command_after_separator(self):
        args = build_parser().parse_args(["--check", "--", "git", "log", "-n", "1"])

        assert args.check is True
        assert args.executable == "git"
        assert [a for a in args.arguments if a != "--"] == ["log", "-n", "1"]

    def test_check_and_range_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--check", "--range", "0", "5", "git"])

    def test_range_values(self):
        args = build_parser().parse_args(["--range", "0", "5", "git"])

        assert args.range == [0, 5]


class TestMain:
    """Test running commands through main()."""

    def test_streams_lines_and_returns_exit_code(
        self, fake_cli_path: Path, capsys: pytest.CaptureFixture[str]
    ):
        code = main(_cli(fake_cli_path, "--stdout", "Hello, World!", "--stderr", "warn", "--exit-code", "4"))

        captured = capsys.readouterr()
        assert code == 4
        assert "[out] Hello, World!" in captured.out
        assert "Exit code: 4" in captured.out
        assert "[err] warn" in captured.err

    def test_range_accepts(self, fake_cli_path: Path, capsys: pytest.CaptureFixture[str]):
        code = main(["--range", "0", "5", *_cli(fake_cli_path, "--exit-code", "4")])

        assert code == 4
        assert "Exit code: 4" in capsys.readouterr().out

    def test_check_rejects(self, fake_cli_path: Path, capsys: pytest.CaptureFixture[str]):
        code = main(["--check", *_cli(fake_cli_path, "--exit-code", "4")])

        assert code == 1
        assert "Exit code: 4 (rejected)" in capsys.readouterr().out

    def test_capture_mode(self, fake_cli_path: Path, capsys: pytest.CaptureFixture[str]):
        code = main(["--capture", *_cli(fake_cli_path, "--stdout", "captured")])

        out = capsys.readouterr().out
        assert code == 0
        assert f"StdOut: captured{os.linesep}" in out
        assert "Exit code: 0" in out

    def test_capture_mode_prints_output_on_rejection(
        self, fake_cli_path: Path, capsys: pytest.CaptureFixture[str]
    ):
        args = _cli(fake_cli_path, "--stdout", "partial", "--stderr", "why", "--exit-code", "3")
        code = main(["--capture", "--check", *args])

        out = capsys.readouterr().out
        assert code == 1
        assert f"StdOut: partial{os.linesep}" in out
        assert f"StdErr: why{os.linesep}" in out
        assert "Exit code: 3 (rejected)" in out

    @pytest.mark.skipif(IS_WINDOWS, reason="POSIX signals required")
    def test_signal_exit_maps_to_shell_status(self, capsys: pytest.CaptureFixture[str]):
        code = main(["/bin/sh", "-c", "kill -TERM $$"])

        assert code == 128 + signal.SIGTERM
        assert f"Exit code: -{int(signal.SIGTERM)}" in capsys.readouterr().out

    def test_cwd(self, fake_cli_path: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]):
        code = main(["--cwd", str(tmp_path), *_cli(fake_cli_path, "--print-cwd")])

        out = capsys.readouterr().out
        assert code == 0
        line = next(l for l in out.splitlines() if l.startswith("[out] "))
        assert Path(line[len("[out] "):]).resolve() == tmp_path.resolve()

    def test_timeout(self, fake_cli_path: Path, capsys: pytest.CaptureFixture[str]):
        code = main(["--timeout", "0.5", *_cli(fake_cli_path, "--sleep", "30")])

        assert code == 1
        assert "Timed out" in capsys.readouterr().out

    def test_launch_failure(self):
        assert main(["nonexistent_command_xyz_123"]) == EXIT_LAUNCH_FAILED
