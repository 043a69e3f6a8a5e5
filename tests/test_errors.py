# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for error categories and their headers."""

from __future__ import annotations

import pytest

from yarnpack import errors


@pytest.mark.parametrize(
    ("error_type", "header"),
    [
        (errors.BuildScriptError, "Yarn build script error"),
        (errors.ToolLayerError, "Yarn distribution layer error"),
        (errors.DepsLayerError, "Yarn dependency layer error"),
        (errors.CatalogParseError, "Yarn inventory parse error"),
        (errors.PackageJsonError, "Yarn package.json error"),
        (errors.CacheGetError, "Yarn cache error"),
        (errors.DisableGlobalCacheError, "Yarn cache error"),
        (errors.InstallError, "Yarn install error"),
        (errors.VersionDetectError, "Yarn version error"),
        (errors.VersionResolveError, "Yarn version error"),
        (errors.VersionUnsupportedError, "Yarn version error"),
        (errors.BuildPlanMetadataError, "Yarn buildplan error"),
    ],
)
def test_every_category_has_a_header(error_type: type[errors.BuildpackError], header: str) -> None:
    assert errors.error_header(error_type("cause")) == header


def test_unknown_failures_use_internal_header() -> None:
    assert errors.error_header(ValueError("boom")) == errors.INTERNAL_ERROR_HEADER
    assert errors.error_header(errors.BuildpackError("bare")) == errors.INTERNAL_ERROR_HEADER


def test_message_wraps_cause() -> None:
    cause = FileNotFoundError("yarn.lock")
    error = errors.DepsLayerError(cause)
    assert error.cause is cause
    assert str(error) == "yarn.lock"
    assert str(errors.VersionUnsupportedError(5)) == "Unsupported yarn version: 5"
    assert "node_build_scripts" in str(errors.BuildPlanMetadataError("bad"))
