# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Layer directories with persisted ``<name>.toml`` metadata."""

from __future__ import annotations

import logging
import shutil
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import toml

LOGGER = logging.getLogger(__name__)


class LayerError(RuntimeError):
    """Raised when a layer directory or its metadata cannot be managed."""


@dataclass(frozen=True, slots=True)
class LayerTypes:
    """CNB layer flags controlling build, launch and cache visibility."""

    build: bool = False
    launch: bool = False
    cache: bool = False

    def as_dict(self) -> dict[str, bool]:
        return {"build": self.build, "launch": self.launch, "cache": self.cache}


@dataclass(frozen=True, slots=True)
class Layer:
    """A directory under the layers root plus its metadata file."""

    layers_dir: Path
    name: str

    @property
    def path(self) -> Path:
        return self.layers_dir / self.name

    @property
    def metadata_path(self) -> Path:
        return self.layers_dir / f"{self.name}.toml"

    def read_metadata(self) -> dict[str, Any]:
        """Return the ``[metadata]`` table or an empty dict when absent or unreadable."""

        if not self.metadata_path.is_file():
            return {}
        try:
            with self.metadata_path.open("rb") as handle:
                document = tomllib.load(handle)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            LOGGER.debug("ignoring unreadable layer metadata %s: %s", self.metadata_path, exc)
            return {}
        metadata = document.get("metadata", {})
        return dict(metadata) if isinstance(metadata, Mapping) else {}

    def write_metadata(self, types: LayerTypes, metadata: Mapping[str, Any]) -> None:
        document = {"types": types.as_dict(), "metadata": dict(metadata)}
        try:
            self.layers_dir.mkdir(parents=True, exist_ok=True)
            self.metadata_path.write_text(toml.dumps(document), encoding="utf-8")
        except OSError as exc:
            raise LayerError(f"Couldn't write metadata for layer '{self.name}': {exc}") from exc

    def ensure(self) -> Path:
        try:
            self.path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise LayerError(f"Couldn't create layer directory {self.path}: {exc}") from exc
        return self.path

    def clear(self) -> None:
        """Remove every entry inside the layer directory, keeping the directory."""

        self.ensure()
        try:
            for child in self.path.iterdir():
                if child.is_dir() and not child.is_symlink():
                    shutil.rmtree(child)
                else:
                    child.unlink()
        except OSError as exc:
            raise LayerError(f"Couldn't clear layer directory {self.path}: {exc}") from exc


__all__ = ["Layer", "LayerError", "LayerTypes"]
