# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Yarn invocations layered on :class:`~yarnpack.process_utils.CommandRunner`."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from .constants import YARN_BINARY
from .process_utils import CommandRunner, Outcome, Success, UnparsableOutputError, require_success
from .versions import SemanticVersion, VersionError
from .yarn import YarnLine


@dataclass(frozen=True, slots=True)
class Yarn:
    """Bind a runner, environment and working directory for yarn calls."""

    runner: CommandRunner
    env: Mapping[str, str]
    cwd: Path

    def with_env(self, env: Mapping[str, str]) -> Yarn:
        return Yarn(self.runner, env, self.cwd)

    def _run(self, args: Sequence[str]) -> Success:
        return require_success((YARN_BINARY, *args), self.raw(args))

    def raw(self, args: Sequence[str]) -> Outcome:
        return self.runner.run(YARN_BINARY, args, self.env, cwd=self.cwd)

    def version(self) -> SemanticVersion:
        """Return the version reported by ``yarn --version``.

        Raises:
            SpawnError: If yarn is not installed.
            ExitStatusError: If yarn exits with a failure status.
            UnparsableOutputError: If the output is not a semantic version.
        """

        result = self._run(("--version",))
        output = result.stdout.strip()
        try:
            return SemanticVersion.parse(output.splitlines()[0] if output else output)
        except VersionError as exc:
            raise UnparsableOutputError((YARN_BINARY, "--version"), result.stdout, "a version") from exc

    def disable_global_cache(self, line: YarnLine) -> bool:
        """Turn off the shared global cache; return ``False`` when the line has none."""

        args = line.disable_global_cache_args()
        if args is None:
            return False
        self._run(args)
        return True

    def cache_folder(self, line: YarnLine) -> Path | None:
        """Return the configured cache folder resolved against the app directory.

        Returns ``None`` when no cache folder is configured (yarn 1 prints
        ``undefined``).
        """

        result = self._run(line.cache_folder_get_args())
        lines = result.stdout.strip().splitlines()
        raw = lines[-1].strip().strip('"') if lines else ""
        if not raw or raw == "undefined":
            return None
        path = Path(raw)
        return path if path.is_absolute() else self.cwd / path

    def set_cache_folder(self, line: YarnLine, path: Path) -> None:
        self._run(line.cache_folder_set_args(str(path)))

    def install(self, line: YarnLine, *, zero_install: bool) -> Success:
        return self._run(line.install_args(zero_install=zero_install))

    def run_script(self, line: YarnLine, script: str) -> Success:
        return self._run(line.run_args(script))


__all__ = ["Yarn"]
