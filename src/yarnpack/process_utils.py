# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Safe wrappers around ``subprocess`` execution with classified outcomes."""

from __future__ import annotations

import logging
import shutil

# Bandit: subprocess usage is intentional; we provide a controlled wrapper around
# external tool execution, normalising arguments and disabling ``shell=True``.
import subprocess  # nosec B404
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TypeAlias

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Success:
    """The command ran and exited with status zero."""

    stdout: str
    stderr: str = ""


@dataclass(frozen=True, slots=True)
class NonZeroExit:
    """The command ran but exited with a failure status."""

    code: int
    stdout: str
    stderr: str


@dataclass(frozen=True, slots=True)
class SpawnFailed:
    """The binary could not be located or executed."""

    tool: str
    reason: str


Outcome: TypeAlias = Success | NonZeroExit | SpawnFailed


class CommandError(RuntimeError):
    """Base class for failures raised by command helpers."""

    def __init__(self, command: Sequence[str], message: str) -> None:
        super().__init__(message)
        self.command = tuple(command)


class SpawnError(CommandError):
    """Raised when the tool binary is missing or not executable."""

    def __init__(self, command: Sequence[str], reason: str) -> None:
        super().__init__(command, f"Could not spawn '{command[0]}': {reason}")
        self.reason = reason


class ExitStatusError(CommandError):
    """Raised when a command exits with a non-zero status."""

    def __init__(self, command: Sequence[str], returncode: int, stdout: str, stderr: str) -> None:
        output = stderr.strip() or stdout.strip() or "<none>"
        super().__init__(
            command,
            f"Command '{' '.join(command)}' exited with status {returncode}. output: {output}",
        )
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class UnparsableOutputError(CommandError):
    """Raised when a command's output does not have the expected shape."""

    def __init__(self, command: Sequence[str], output: str, expected: str) -> None:
        super().__init__(
            command,
            f"Couldn't parse output of '{' '.join(command)}' as {expected}: {output.strip() or '<empty>'}",
        )
        self.output = output


def _resolve_executable(tool: str, env: Mapping[str, str]) -> str | None:
    tool_path = Path(tool)
    if tool_path.is_absolute():
        return str(tool_path) if tool_path.is_file() else None
    return shutil.which(tool, path=env.get("PATH", ""))


class CommandRunner:
    """Invoke external binaries and classify the result without raising."""

    def run(
        self,
        tool: str,
        args: Sequence[str],
        env: Mapping[str, str],
        *,
        cwd: Path | None = None,
    ) -> Outcome:
        """Run ``tool`` with ``args`` using ``env`` as the full child environment.

        Args:
            tool: Binary name looked up on ``env["PATH"]``, or an absolute path.
            args: Arguments passed after the binary.
            env: Complete environment for the child process.
            cwd: Working directory for the child process.

        Returns:
            Outcome: ``Success``, ``NonZeroExit`` or ``SpawnFailed``.
        """

        executable = _resolve_executable(tool, env)
        if executable is None:
            return SpawnFailed(tool=tool, reason=f"'{tool}' was not found on PATH")
        command = [executable, *args]
        LOGGER.debug("running %s (cwd=%s)", command, cwd)
        try:
            # Bandit: commands are built from fixed templates; arguments are
            # passed as a list without shell expansion.
            completed = subprocess.run(  # nosec B603
                command,
                cwd=str(cwd) if cwd is not None else None,
                env=dict(env),
                check=False,
                capture_output=True,
                text=True,
                stdin=subprocess.DEVNULL,
            )
        except OSError as exc:
            return SpawnFailed(tool=tool, reason=str(exc))
        if completed.returncode != 0:
            return NonZeroExit(code=completed.returncode, stdout=completed.stdout, stderr=completed.stderr)
        return Success(stdout=completed.stdout, stderr=completed.stderr)


def require_success(command: Sequence[str], outcome: Outcome) -> Success:
    """Return ``outcome`` when successful, otherwise raise the matching error.

    Raises:
        SpawnError: For ``SpawnFailed`` outcomes.
        ExitStatusError: For ``NonZeroExit`` outcomes.
    """

    match outcome:
        case Success():
            return outcome
        case SpawnFailed(reason=reason):
            raise SpawnError(command, reason)
        case NonZeroExit(code=code, stdout=stdout, stderr=stderr):
            raise ExitStatusError(command, code, stdout, stderr)
    raise TypeError(f"Unknown command outcome {outcome!r}")


__all__ = [
    "CommandError",
    "CommandRunner",
    "ExitStatusError",
    "NonZeroExit",
    "Outcome",
    "SpawnError",
    "SpawnFailed",
    "Success",
    "UnparsableOutputError",
    "require_success",
]
