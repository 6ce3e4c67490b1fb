"""Exception class tests."""

from __future__ import annotations

import pytest

from processlib.errors import ProcessExecutionError, ProcessLibError, ProcessTimeoutError
from processlib.types import ExecutionOutcome


class TestProcessExecutionError:
    def test_carries_exit_code(self):
        error = ProcessExecutionError(4)

        assert error.exit_code == 4
        assert error.argv == ()
        assert error.outcome is None
        assert str(error) == "process exited with code 4"

    def test_message_names_executable(self):
        error = ProcessExecutionError(2, ["git", "push"])

        assert error.argv == ("git", "push")
        assert str(error) == "git exited with code 2"

    def test_outcome(self):
        outcome = ExecutionOutcome(exit_code=3, stdout="", stderr="boom\n")
        error = ProcessExecutionError(3, outcome=outcome)

        assert error.outcome is outcome

    def test_hierarchy(self):
        with pytest.raises(ProcessLibError):
            raise ProcessExecutionError(1)


class TestProcessTimeoutError:
    def test_message(self):
        error = ProcessTimeoutError(1.5, ["sleep", "100"])

        assert error.timeout == 1.5
        assert str(error) == "sleep timed out after 1.5s"
        assert isinstance(error, ProcessLibError)


class TestExecutionOutcome:
    def test_success(self):
        assert ExecutionOutcome(0).success
        assert not ExecutionOutcome(1).success

    def test_defaults(self):
        outcome = ExecutionOutcome(5)

        assert outcome.stdout is None
        assert outcome.stderr is None
        assert "exit_code=5" in repr(outcome)
