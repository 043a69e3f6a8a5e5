# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Immutable environments and scoped environment modifications."""

from __future__ import annotations

import os
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType


class Scope(str, Enum):
    """Visibility of an environment modification."""

    ALL = "all"
    BUILD = "build"
    LAUNCH = "launch"

    @property
    def directory_name(self) -> str:
        """Return the CNB layer directory holding modifications for this scope."""

        return "env" if self is Scope.ALL else f"env.{self.value}"

    def visible_in(self, scope: Scope) -> bool:
        return self is Scope.ALL or self is scope


class Behavior(str, Enum):
    """How a modification combines with an existing value."""

    PREPEND = "prepend"
    APPEND = "append"
    OVERRIDE = "override"
    DEFAULT = "default"


class Env(Mapping[str, str]):
    """Read-only set of environment variables; changes produce new instances."""

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, str] | None = None) -> None:
        self._values: Mapping[str, str] = MappingProxyType(dict(values or {}))

    @classmethod
    def from_current(cls) -> Env:
        return cls(os.environ)

    @classmethod
    def from_platform(cls, platform_dir: Path, base: Mapping[str, str] | None = None) -> Env:
        """Return ``base`` overlaid with the files in ``<platform_dir>/env``."""

        values = dict(base if base is not None else os.environ)
        env_dir = platform_dir / "env"
        if env_dir.is_dir():
            for entry in sorted(env_dir.iterdir()):
                if entry.is_file():
                    values[entry.name] = entry.read_text(encoding="utf-8")
        return cls(values)

    def with_values(self, updates: Mapping[str, str]) -> Env:
        merged = dict(self._values)
        merged.update(updates)
        return Env(merged)

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Env({len(self._values)} variables)"


@dataclass(frozen=True, slots=True)
class Modification:
    """Single environment change scoped to build and/or launch."""

    scope: Scope
    behavior: Behavior
    name: str
    value: str
    delimiter: str = os.pathsep

    def apply_to(self, values: dict[str, str]) -> None:
        current = values.get(self.name)
        match self.behavior:
            case Behavior.OVERRIDE:
                values[self.name] = self.value
            case Behavior.DEFAULT:
                values.setdefault(self.name, self.value)
            case Behavior.PREPEND:
                values[self.name] = f"{self.value}{self.delimiter}{current}" if current else self.value
            case Behavior.APPEND:
                values[self.name] = f"{current}{self.delimiter}{self.value}" if current else self.value


@dataclass(frozen=True, slots=True)
class ToolEnvironment:
    """Ordered environment modifications produced by installing a tool."""

    modifications: tuple[Modification, ...] = field(default_factory=tuple)

    def chainable_insert(
        self,
        scope: Scope,
        behavior: Behavior,
        name: str,
        value: str,
        *,
        delimiter: str = os.pathsep,
    ) -> ToolEnvironment:
        modification = Modification(scope, behavior, name, value, delimiter)
        return ToolEnvironment((*self.modifications, modification))

    def apply(self, scope: Scope, env: Env) -> Env:
        """Return a new :class:`Env` with modifications visible in ``scope`` applied."""

        values = dict(env)
        for modification in self.modifications:
            if modification.scope.visible_in(scope):
                modification.apply_to(values)
        return Env(values)

    def write(self, layer_dir: Path) -> None:
        """Persist modifications using the CNB ``<layer>/env*/NAME.<behavior>`` convention."""

        for modification in self.modifications:
            target = layer_dir / modification.scope.directory_name
            target.mkdir(parents=True, exist_ok=True)
            (target / f"{modification.name}.{modification.behavior.value}").write_text(
                modification.value,
                encoding="utf-8",
            )
            if modification.behavior in {Behavior.PREPEND, Behavior.APPEND}:
                (target / f"{modification.name}.delim").write_text(modification.delimiter, encoding="utf-8")


__all__ = ["Behavior", "Env", "Modification", "Scope", "ToolEnvironment"]
