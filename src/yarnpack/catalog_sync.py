# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Regenerate the bundled release catalog from the npm registry."""

from __future__ import annotations

import base64
import json
import logging
import ssl
import urllib.error
import urllib.request
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any, Final

import toml

from .catalog import Artifact, CatalogError, Release, ReleaseCatalog
from .constants import ANY_PLATFORM
from .versions import SemanticVersion, VersionError

LOGGER = logging.getLogger(__name__)

REGISTRY_URL: Final[str] = "https://registry.npmjs.org"
CLASSIC_PACKAGE: Final[str] = "yarn"
BERRY_PACKAGE: Final[str] = "@yarnpkg/cli-dist"
_INTEGRITY_PREFIX: Final[str] = "sha512-"
_HEADER: Final[str] = "# Generated by `yarnpack catalog refresh`; do not edit by hand.\n\n"

JsonFetcher = Callable[[str], Mapping[str, Any]]


def fetch_json(url: str) -> Mapping[str, Any]:
    """Return the JSON document served at ``url``.

    Raises:
        CatalogError: If the request fails or the body is not a JSON object.
    """

    request = urllib.request.Request(url, headers={"Accept": "application/json", "User-Agent": "yarnpack/1.0"})
    opener = urllib.request.build_opener(urllib.request.HTTPSHandler(context=ssl.create_default_context()))
    try:
        with opener.open(request) as response:
            payload = json.loads(response.read().decode("utf-8"))
    except (urllib.error.URLError, OSError, json.JSONDecodeError) as exc:
        raise CatalogError(f"Couldn't fetch {url}: {exc}") from exc
    if not isinstance(payload, Mapping):
        raise CatalogError(f"Unexpected registry payload from {url}")
    return payload


def checksum_from_dist(dist: Mapping[str, Any]) -> str | None:
    """Convert an npm ``dist`` block into ``<algorithm>:<hex>`` form."""

    integrity = dist.get("integrity")
    if isinstance(integrity, str):
        for token in integrity.split():
            if token.startswith(_INTEGRITY_PREFIX):
                raw = base64.b64decode(token.removeprefix(_INTEGRITY_PREFIX))
                return f"sha512:{raw.hex()}"
    shasum = dist.get("shasum")
    if isinstance(shasum, str) and shasum:
        return f"sha1:{shasum.lower()}"
    return None


def releases_from_packument(document: Mapping[str, Any], *, majors: Iterable[int]) -> list[Release]:
    """Build releases for the ``majors`` found in an npm package document."""

    wanted = set(majors)
    releases: list[Release] = []
    versions = document.get("versions") or {}
    for raw_version, entry in versions.items():
        try:
            version = SemanticVersion.parse(raw_version)
        except VersionError:
            LOGGER.debug("skipping unparsable version %s", raw_version)
            continue
        if version.major not in wanted:
            continue
        dist = entry.get("dist") or {}
        checksum = checksum_from_dist(dist)
        tarball = dist.get("tarball")
        if checksum is None or not isinstance(tarball, str):
            LOGGER.debug("skipping %s without tarball or checksum", raw_version)
            continue
        artifact = Artifact(platform=ANY_PLATFORM, url=tarball, checksum=checksum)
        releases.append(Release(version=version, artifacts=(artifact,)))
    return releases


def build_catalog(fetch: JsonFetcher = fetch_json, *, registry: str = REGISTRY_URL) -> ReleaseCatalog:
    classic = releases_from_packument(fetch(f"{registry}/{CLASSIC_PACKAGE}"), majors=(1,))
    berry = releases_from_packument(
        fetch(f"{registry}/{BERRY_PACKAGE.replace('/', '%2F')}"),
        majors=range(2, 100),
    )
    ordered = sorted([*classic, *berry], key=lambda release: release.version)
    return ReleaseCatalog(releases=tuple(ordered))


def render_catalog(catalog: ReleaseCatalog) -> str:
    return _HEADER + toml.dumps(catalog.model_dump(mode="json"))


def write_catalog(catalog: ReleaseCatalog, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_catalog(catalog), encoding="utf-8")
    return path


__all__ = [
    "BERRY_PACKAGE",
    "CLASSIC_PACKAGE",
    "REGISTRY_URL",
    "build_catalog",
    "checksum_from_dist",
    "fetch_json",
    "releases_from_packument",
    "render_catalog",
    "write_catalog",
]
