# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Download, verify and unpack Yarn distributions into a reusable layer."""

from __future__ import annotations

import hashlib
import logging
import ssl
import tarfile
import tempfile
import urllib.error
import urllib.request
from pathlib import Path, PurePosixPath
from typing import Final, Protocol
from urllib.parse import urlparse

from .catalog import Artifact, Release
from .constants import YARN_BINARY
from .environment import Behavior, Scope, ToolEnvironment
from .layers import Layer, LayerError, LayerTypes

LOGGER = logging.getLogger(__name__)

VERSION_FIELD: Final[str] = "version"
TOOL_LAYER_TYPES: Final[LayerTypes] = LayerTypes(build=True, launch=True, cache=True)
_SUPPORTED_SCHEMES: Final[frozenset[str]] = frozenset({"https"})
_USER_AGENT: Final[str] = "yarnpack/1.0"


class ChecksumMismatchError(RuntimeError):
    """Raised when a downloaded artifact does not match its catalog checksum."""

    def __init__(self, url: str, expected: str, actual: str) -> None:
        super().__init__(f"Checksum mismatch for {url}: expected {expected}, got {actual}")
        self.url = url
        self.expected = expected
        self.actual = actual


class ArtifactUnavailableError(RuntimeError):
    """Raised when an artifact cannot be located, downloaded or extracted."""


class ArtifactFetcher(Protocol):
    """Collaborator that copies the artifact at ``url`` into ``destination``."""

    def fetch(self, url: str, destination: Path) -> None: ...


class UrlFetcher:
    """Fetch artifacts over HTTPS using :mod:`urllib`."""

    def fetch(self, url: str, destination: Path) -> None:
        parsed = urlparse(url)
        if parsed.scheme.lower() not in _SUPPORTED_SCHEMES:
            raise ArtifactUnavailableError(f"Unsupported download scheme '{parsed.scheme}' for {url}")
        destination.parent.mkdir(parents=True, exist_ok=True)
        request = urllib.request.Request(url, headers={"User-Agent": _USER_AGENT})
        opener = urllib.request.build_opener(urllib.request.HTTPSHandler(context=ssl.create_default_context()))
        try:
            with opener.open(request) as response, destination.open("wb") as handle:
                handle.write(response.read())
        except (urllib.error.URLError, OSError) as exc:
            raise ArtifactUnavailableError(f"Couldn't download {url}: {exc}") from exc


def file_digest(path: Path, algorithm: str) -> str:
    with path.open("rb") as handle:
        return hashlib.file_digest(handle, algorithm).hexdigest()


def verify_checksum(path: Path, artifact: Artifact) -> None:
    """Raise :class:`ChecksumMismatchError` unless ``path`` matches ``artifact.checksum``."""

    actual = file_digest(path, artifact.algorithm)
    if actual != artifact.digest:
        raise ChecksumMismatchError(artifact.url, artifact.checksum, f"{artifact.algorithm}:{actual}")


def extract_stripped(archive_path: Path, destination: Path) -> None:
    """Extract a gzip tarball into ``destination`` dropping the top-level directory.

    Raises:
        ArtifactUnavailableError: If the archive is unreadable or contains entries
            that would escape ``destination``.
    """

    destination = destination.resolve()
    try:
        with tarfile.open(archive_path, "r:gz") as archive:
            members: list[tarfile.TarInfo] = []
            for member in archive.getmembers():
                parts = PurePosixPath(member.name).parts[1:]
                if not parts:
                    continue
                target = (destination / Path(*parts)).resolve()
                if not target.is_relative_to(destination):
                    raise ArtifactUnavailableError(f"Unsafe path detected in archive: {member.name}")
                changes: dict[str, str] = {"name": str(PurePosixPath(*parts))}
                if member.islnk():
                    # hard link names are archive-root relative, like member names
                    link_parts = PurePosixPath(member.linkname).parts[1:]
                    if not link_parts:
                        raise ArtifactUnavailableError(f"Unsafe link detected in archive: {member.name}")
                    link_target = (destination / Path(*link_parts)).resolve()
                    changes["linkname"] = str(PurePosixPath(*link_parts))
                elif member.issym():
                    link_target = (target.parent / member.linkname).resolve()
                else:
                    link_target = target
                if not link_target.is_relative_to(destination):
                    raise ArtifactUnavailableError(f"Unsafe link detected in archive: {member.name}")
                members.append(member.replace(**changes, deep=False))
            archive.extractall(destination, members=members, filter="tar")
    except (tarfile.TarError, OSError) as exc:
        raise ArtifactUnavailableError(f"Couldn't extract {archive_path.name}: {exc}") from exc


class ToolInstaller:
    """Materialize a catalog release inside a tool layer."""

    def __init__(self, fetcher: ArtifactFetcher, *, platform: str) -> None:
        self._fetcher = fetcher
        self._platform = platform

    def install(self, release: Release, layer: Layer) -> ToolEnvironment:
        """Install ``release`` into ``layer`` unless it is already present.

        Args:
            release: Resolved catalog release.
            layer: Tool layer that persists across builds.

        Returns:
            ToolEnvironment: Modifications prepending the layer's ``bin`` directory
            to ``PATH`` for build and launch.

        Raises:
            ArtifactUnavailableError: If no artifact exists for the platform or the
                download/extraction fails.
            ChecksumMismatchError: If the downloaded bytes do not match the catalog.
        """

        bin_dir = layer.path / "bin"
        environment = ToolEnvironment().chainable_insert(Scope.ALL, Behavior.PREPEND, "PATH", str(bin_dir))
        if self.is_installed(release, layer):
            LOGGER.debug("reusing yarn %s from %s", release.version, layer.path)
            # restored layers come back with every type flag reset
            self._finalize(release, layer, environment)
            return environment

        artifact = release.artifact_for(self._platform)
        if artifact is None:
            raise ArtifactUnavailableError(
                f"Yarn {release.version} has no artifact for platform '{self._platform}'",
            )

        with tempfile.TemporaryDirectory(prefix="yarnpack-") as scratch:
            archive_path = Path(scratch) / "yarn.tgz"
            self._fetcher.fetch(artifact.url, archive_path)
            if not archive_path.is_file():
                raise ArtifactUnavailableError(f"Download of {artifact.url} produced no file")
            verify_checksum(archive_path, artifact)
            layer.clear()
            extract_stripped(archive_path, layer.path)

        if not (bin_dir / YARN_BINARY).exists():
            raise ArtifactUnavailableError(f"Archive {artifact.url} does not contain bin/{YARN_BINARY}")
        self._finalize(release, layer, environment)
        return environment

    @staticmethod
    def _finalize(release: Release, layer: Layer, environment: ToolEnvironment) -> None:
        layer.write_metadata(TOOL_LAYER_TYPES, {VERSION_FIELD: str(release.version)})
        try:
            environment.write(layer.path)
        except OSError as exc:
            raise LayerError(f"Couldn't write environment for layer '{layer.name}': {exc}") from exc

    @staticmethod
    def is_installed(release: Release, layer: Layer) -> bool:
        recorded = layer.read_metadata().get(VERSION_FIELD)
        return recorded == str(release.version) and (layer.path / "bin" / YARN_BINARY).exists()


__all__ = [
    "ArtifactFetcher",
    "ArtifactUnavailableError",
    "ChecksumMismatchError",
    "ToolInstaller",
    "UrlFetcher",
    "extract_stripped",
    "file_digest",
    "verify_checksum",
]
