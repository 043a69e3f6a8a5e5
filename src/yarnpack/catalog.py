# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Release catalog of installable Yarn distributions."""

from __future__ import annotations

import logging
import re
import tomllib
from importlib import resources
from pathlib import Path
from typing import Annotated, Any, Final

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    PlainValidator,
    ValidationError,
    field_validator,
    model_validator,
)

from .constants import ANY_PLATFORM, CATALOG_FILENAME
from .versions import SemanticVersion, VersionConstraint, VersionError

LOGGER = logging.getLogger(__name__)

SUPPORTED_ALGORITHMS: Final[frozenset[str]] = frozenset({"sha1", "sha256", "sha512"})
_CHECKSUM_RE: Final[re.Pattern[str]] = re.compile(r"^(?P<algorithm>[a-z0-9]+):(?P<digest>[0-9a-f]+)$")


def _coerce_version(value: Any) -> SemanticVersion:
    if isinstance(value, SemanticVersion):
        return value
    try:
        return SemanticVersion.parse(str(value))
    except VersionError as exc:
        raise ValueError(str(exc)) from exc


CatalogVersion = Annotated[SemanticVersion, PlainValidator(_coerce_version), PlainSerializer(str)]


class CatalogError(RuntimeError):
    """Raised when the release catalog cannot be loaded or validated."""


class NoMatchingReleaseError(LookupError):
    """Raised when no catalog release satisfies a version constraint."""

    def __init__(self, constraint: VersionConstraint) -> None:
        super().__init__(f"No known Yarn release satisfies '{constraint}'")
        self.constraint = constraint


class Artifact(BaseModel):
    """Downloadable archive for one platform."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    platform: str = ANY_PLATFORM
    url: str
    checksum: str

    @field_validator("checksum")
    @classmethod
    def _validate_checksum(cls, value: str) -> str:
        match = _CHECKSUM_RE.match(value.strip().lower())
        if match is None or match.group("algorithm") not in SUPPORTED_ALGORITHMS:
            raise ValueError(f"checksum must be '<algorithm>:<hex digest>' using one of {sorted(SUPPORTED_ALGORITHMS)}")
        return match.group(0)

    @property
    def algorithm(self) -> str:
        return self.checksum.split(":", 1)[0]

    @property
    def digest(self) -> str:
        return self.checksum.split(":", 1)[1]


class Release(BaseModel):
    """A known-good Yarn version and its per-platform artifacts."""

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    version: CatalogVersion
    artifacts: tuple[Artifact, ...] = Field(default_factory=tuple)

    def artifact_for(self, platform: str) -> Artifact | None:
        """Return the artifact for ``platform``, falling back to a platform-neutral one."""

        fallback: Artifact | None = None
        for artifact in self.artifacts:
            if artifact.platform == platform:
                return artifact
            if artifact.platform == ANY_PLATFORM and fallback is None:
                fallback = artifact
        return fallback


class ReleaseCatalog(BaseModel):
    """Immutable, ordered set of releases loaded once per process."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    releases: tuple[Release, ...] = Field(default_factory=tuple)

    @model_validator(mode="after")
    def _reject_duplicates(self) -> ReleaseCatalog:
        seen: set[SemanticVersion] = set()
        for release in self.releases:
            if release.version in seen:
                raise ValueError(f"duplicate release {release.version}")
            seen.add(release.version)
        return self

    @classmethod
    def from_toml(cls, text: str, *, source: str = "<string>") -> ReleaseCatalog:
        """Parse a catalog TOML document.

        Raises:
            CatalogError: If the document is not valid TOML or fails validation.
        """

        try:
            payload = tomllib.loads(text)
            catalog = cls.model_validate(payload)
        except (tomllib.TOMLDecodeError, ValidationError) as exc:
            raise CatalogError(f"{source}: {exc}") from exc
        LOGGER.debug("loaded %d releases from %s", len(catalog.releases), source)
        return catalog

    @classmethod
    def from_path(cls, path: Path) -> ReleaseCatalog:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise CatalogError(f"Unable to read catalog {path}: {exc}") from exc
        return cls.from_toml(text, source=str(path))


def load_default_catalog() -> ReleaseCatalog:
    """Load the catalog bundled with the package."""

    text = resources.files("yarnpack").joinpath(CATALOG_FILENAME).read_text(encoding="utf-8")
    return ReleaseCatalog.from_toml(text, source=CATALOG_FILENAME)


def resolve(constraint: VersionConstraint, catalog: ReleaseCatalog) -> Release:
    """Return the highest release in ``catalog`` satisfying ``constraint``.

    Args:
        constraint: Parsed range requested by the project.
        catalog: Release catalog loaded at startup.

    Returns:
        Release: Highest satisfying release.

    Raises:
        NoMatchingReleaseError: If no release satisfies ``constraint``.
    """

    candidates = [release for release in catalog.releases if constraint.satisfies(release.version)]
    if not candidates:
        raise NoMatchingReleaseError(constraint)
    return max(candidates, key=lambda release: release.version)


__all__ = [
    "Artifact",
    "CatalogError",
    "NoMatchingReleaseError",
    "Release",
    "ReleaseCatalog",
    "SUPPORTED_ALGORITHMS",
    "load_default_catalog",
    "resolve",
]
