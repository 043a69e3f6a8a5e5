# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Launch metadata describing processes the platform may start."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import toml

from .constants import DEFAULT_PROCESS_COMMAND, DEFAULT_PROCESS_TYPE, LAUNCH_FILENAME


@dataclass(frozen=True, slots=True)
class LaunchProcess:
    """Named process definition."""

    type: str
    command: tuple[str, ...]
    args: tuple[str, ...] = ()
    default: bool = False

    def to_document(self) -> dict[str, object]:
        return {
            "type": self.type,
            "command": list(self.command),
            "args": list(self.args),
            "default": self.default,
        }


def default_web_process() -> LaunchProcess:
    return LaunchProcess(type=DEFAULT_PROCESS_TYPE, command=DEFAULT_PROCESS_COMMAND, default=True)


@dataclass(frozen=True, slots=True)
class Launch:
    processes: tuple[LaunchProcess, ...] = field(default_factory=tuple)

    def write(self, layers_dir: Path) -> Path:
        path = layers_dir / LAUNCH_FILENAME
        document = {"processes": [process.to_document() for process in self.processes]}
        path.write_text(toml.dumps(document), encoding="utf-8")
        return path


__all__ = ["Launch", "LaunchProcess", "default_web_process"]
