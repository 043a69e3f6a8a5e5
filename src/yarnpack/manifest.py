# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Read the parts of ``package.json`` the buildpack relies on."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .versions import VersionConstraint, VersionError

PREBUILD_SCRIPT: Final[str] = "heroku-prebuild"
BUILD_SCRIPTS: Final[tuple[str, ...]] = ("heroku-build", "build")
POSTBUILD_SCRIPT: Final[str] = "heroku-postbuild"
START_SCRIPT: Final[str] = "start"
_PACKAGE_MANAGER_RE: Final[re.Pattern[str]] = re.compile(r"^yarn@(?P<version>[^+\s]+)(?:\+\S+)?$")


class ManifestError(RuntimeError):
    """Raised when ``package.json`` is missing or malformed."""


class Engines(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    yarn: str | None = None


class PackageJson(BaseModel):
    """Subset of ``package.json`` consumed during the build."""

    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    name: str | None = None
    engines: Engines | None = None
    package_manager: str | None = Field(default=None, alias="packageManager")
    scripts: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def read(cls, path: Path) -> PackageJson:
        """Load and validate the manifest at ``path``.

        Raises:
            ManifestError: If the file cannot be read or does not validate.
        """

        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ManifestError(f"Couldn't read {path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ManifestError(f"Couldn't parse {path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise ManifestError(f"{path} must contain a JSON object")
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            raise ManifestError(f"Invalid {path}: {exc}") from exc

    def requested_yarn_range(self) -> VersionConstraint | None:
        """Return the declared yarn constraint, preferring ``engines.yarn``.

        Raises:
            ManifestError: If the declared range cannot be parsed.
        """

        raw: str | None = None
        if self.engines is not None and self.engines.yarn:
            raw = self.engines.yarn
        elif self.package_manager:
            match = _PACKAGE_MANAGER_RE.match(self.package_manager.strip())
            if match is not None:
                raw = match.group("version")
        if raw is None:
            return None
        try:
            return VersionConstraint.parse(raw)
        except VersionError as exc:
            raise ManifestError(f"Invalid yarn version range '{raw}': {exc}") from exc

    def build_scripts(self) -> list[str]:
        """Return build script names in the order they must run."""

        scripts: list[str] = []
        if PREBUILD_SCRIPT in self.scripts:
            scripts.append(PREBUILD_SCRIPT)
        build = next((name for name in BUILD_SCRIPTS if name in self.scripts), None)
        if build is not None:
            scripts.append(build)
        if POSTBUILD_SCRIPT in self.scripts:
            scripts.append(POSTBUILD_SCRIPT)
        return scripts

    def has_start_script(self) -> bool:
        return START_SCRIPT in self.scripts


__all__ = ["ManifestError", "PackageJson"]
