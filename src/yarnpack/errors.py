# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Build failures surfaced to users and the headers they are reported under."""

from __future__ import annotations

from typing import Final

from .constants import NODE_BUILD_SCRIPTS_PLAN_NAME


class BuildpackError(RuntimeError):
    """Root of every failure the build reports to the user.

    Each subclass wraps one underlying cause and renders the user-facing message.
    """

    template: str = "{cause}"

    def __init__(self, cause: BaseException | object) -> None:
        super().__init__(self.template.format(cause=cause))
        self.cause = cause


class BuildScriptError(BuildpackError):
    template = "Couldn't run build script: {cause}"


class ToolLayerError(BuildpackError):
    """Installing the yarn distribution failed (checksum, download, layer I/O)."""


class DepsLayerError(BuildpackError):
    """Managing the dependency cache layer failed."""


class CatalogParseError(BuildpackError):
    template = "Couldn't parse yarn inventory: {cause}"


class PackageJsonError(BuildpackError):
    template = "Couldn't parse package.json: {cause}"


class CacheGetError(BuildpackError):
    template = "Couldn't read yarn cache folder: {cause}"


class DisableGlobalCacheError(BuildpackError):
    template = "Couldn't disable yarn global cache: {cause}"


class InstallError(BuildpackError):
    template = "Yarn install error: {cause}"


class VersionDetectError(BuildpackError):
    template = "Couldn't determine yarn version: {cause}"


class VersionUnsupportedError(BuildpackError):
    template = "Unsupported yarn version: {cause}"


class VersionResolveError(BuildpackError):
    template = "Couldn't resolve yarn version requirement to a known yarn version: {cause}"


class BuildPlanMetadataError(BuildpackError):
    template = f"Couldn't parse metadata for the buildplan named {NODE_BUILD_SCRIPTS_PLAN_NAME}: {{cause}}"


INTERNAL_ERROR_HEADER: Final[str] = "Yarn internal buildpack error"

ERROR_HEADERS: Final[dict[type[BuildpackError], str]] = {
    BuildScriptError: "Yarn build script error",
    ToolLayerError: "Yarn distribution layer error",
    DepsLayerError: "Yarn dependency layer error",
    CatalogParseError: "Yarn inventory parse error",
    PackageJsonError: "Yarn package.json error",
    CacheGetError: "Yarn cache error",
    DisableGlobalCacheError: "Yarn cache error",
    InstallError: "Yarn install error",
    VersionDetectError: "Yarn version error",
    VersionResolveError: "Yarn version error",
    VersionUnsupportedError: "Yarn version error",
    BuildPlanMetadataError: "Yarn buildplan error",
}


def error_header(error: BaseException) -> str:
    """Return the category header shown above ``error``."""

    if isinstance(error, BuildpackError):
        return ERROR_HEADERS.get(type(error), INTERNAL_ERROR_HEADER)
    return INTERNAL_ERROR_HEADER


__all__ = [
    "BuildPlanMetadataError",
    "BuildScriptError",
    "BuildpackError",
    "CacheGetError",
    "CatalogParseError",
    "DepsLayerError",
    "DisableGlobalCacheError",
    "ERROR_HEADERS",
    "INTERNAL_ERROR_HEADER",
    "InstallError",
    "PackageJsonError",
    "ToolLayerError",
    "VersionDetectError",
    "VersionResolveError",
    "VersionUnsupportedError",
    "error_header",
]
