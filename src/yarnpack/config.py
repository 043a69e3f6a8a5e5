# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Runtime configuration assembled from CLI arguments and the environment."""

from __future__ import annotations

import os
import platform as host_platform
from collections.abc import Mapping
from pathlib import Path
from typing import Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .constants import ENV_CATALOG, ENV_DEBUG, ENV_NO_COLOR, ENV_PLATFORM

_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_MACHINE_ALIASES: Final[dict[str, str]] = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
}


class ConfigError(Exception):
    """Raised when configuration values are invalid."""


def current_platform() -> str:
    """Return ``<os>-<arch>`` for the host, e.g. ``linux-amd64``."""

    machine = host_platform.machine().lower()
    return f"{host_platform.system().lower()}-{_MACHINE_ALIASES.get(machine, machine)}"


class BuildpackConfig(BaseModel):
    """Paths and switches for one detect or build invocation."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    app_dir: Path
    platform_dir: Path
    plan_path: Path | None = None
    layers_dir: Path | None = None
    catalog_path: Path | None = None
    target_platform: str = Field(default_factory=current_platform, min_length=1)
    debug: bool = False
    color: bool = True

    @classmethod
    def from_sources(
        cls,
        *,
        app_dir: Path,
        platform_dir: Path,
        plan_path: Path | None = None,
        layers_dir: Path | None = None,
        debug: bool = False,
        environ: Mapping[str, str] | None = None,
    ) -> BuildpackConfig:
        """Combine CLI arguments with ``YARNPACK_*`` environment overrides.

        Raises:
            ConfigError: If the resulting configuration is invalid.
        """

        env = os.environ if environ is None else environ
        values: dict[str, object] = {
            "app_dir": app_dir.resolve(),
            "platform_dir": platform_dir,
            "plan_path": plan_path,
            "layers_dir": layers_dir,
            "debug": debug or env.get(ENV_DEBUG, "").strip().lower() in _TRUTHY,
            "color": ENV_NO_COLOR not in env,
        }
        if catalog := env.get(ENV_CATALOG):
            values["catalog_path"] = Path(catalog)
        if target := env.get(ENV_PLATFORM):
            values["target_platform"] = target.strip()
        try:
            config = cls.model_validate(values)
        except ValidationError as exc:
            raise ConfigError(str(exc)) from exc
        if not config.app_dir.is_dir():
            raise ConfigError(f"Application directory {config.app_dir} does not exist")
        if config.catalog_path is not None and not config.catalog_path.is_file():
            raise ConfigError(f"{ENV_CATALOG} points at missing file {config.catalog_path}")
        return config


__all__ = ["BuildpackConfig", "ConfigError", "current_platform"]
