# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Build plan declarations exchanged with the surrounding pipeline."""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import toml

from .constants import NODE_BUILD_SCRIPTS_PLAN_NAME, PROVIDES, REQUIRES


class BuildPlanError(RuntimeError):
    """Raised when buildpack plan entries cannot be read."""


@dataclass(frozen=True, slots=True)
class BuildPlan:
    """Names this buildpack provides to, and requires from, other buildpacks."""

    provides: tuple[str, ...] = PROVIDES
    requires: tuple[str, ...] = REQUIRES

    def to_document(self) -> dict[str, list[dict[str, str]]]:
        return {
            "provides": [{"name": name} for name in self.provides],
            "requires": [{"name": name} for name in self.requires],
        }

    def write(self, path: Path) -> None:
        path.write_text(toml.dumps(self.to_document()), encoding="utf-8")


@dataclass(frozen=True, slots=True)
class DetectResult:
    """Outcome of detection: pass with a plan, or fail."""

    passed: bool
    plan: BuildPlan | None = None

    @classmethod
    def passing(cls, plan: BuildPlan) -> DetectResult:
        return cls(passed=True, plan=plan)

    @classmethod
    def failing(cls) -> DetectResult:
        return cls(passed=False)


@dataclass(frozen=True, slots=True)
class BuildScriptsMetadata:
    """Opt-out signal other buildpacks attach to ``node_build_scripts``."""

    enabled: bool | None = None

    @property
    def scripts_enabled(self) -> bool:
        return self.enabled is not False


@dataclass(frozen=True, slots=True)
class BuildpackPlan:
    """Entries handed to this buildpack for the build phase."""

    entries: tuple[Mapping[str, Any], ...] = field(default_factory=tuple)

    @classmethod
    def read(cls, path: Path | None) -> BuildpackPlan:
        if path is None or not path.is_file():
            return cls()
        try:
            with path.open("rb") as handle:
                document = tomllib.load(handle)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raise BuildPlanError(f"Couldn't read buildpack plan {path}: {exc}") from exc
        entries = document.get("entries", [])
        if not isinstance(entries, list):
            raise BuildPlanError(f"Buildpack plan {path} has a non-list 'entries' value")
        return cls(tuple(entry for entry in entries if isinstance(entry, Mapping)))

    def build_scripts_metadata(self) -> BuildScriptsMetadata:
        """Merge the metadata of every ``node_build_scripts`` entry.

        Raises:
            BuildPlanError: If ``enabled`` is present but not a boolean.
        """

        enabled: bool | None = None
        for entry in self.entries:
            if entry.get("name") != NODE_BUILD_SCRIPTS_PLAN_NAME:
                continue
            metadata = entry.get("metadata") or {}
            if not isinstance(metadata, Mapping):
                raise BuildPlanError(f"Metadata for '{NODE_BUILD_SCRIPTS_PLAN_NAME}' must be a table")
            if "enabled" not in metadata:
                continue
            value = metadata["enabled"]
            if not isinstance(value, bool):
                raise BuildPlanError(f"'enabled' for '{NODE_BUILD_SCRIPTS_PLAN_NAME}' must be a boolean, got {value!r}")
            enabled = value if enabled is None else (enabled and value)
        return BuildScriptsMetadata(enabled=enabled)


__all__ = [
    "BuildPlan",
    "BuildPlanError",
    "BuildScriptsMetadata",
    "BuildpackPlan",
    "DetectResult",
]
