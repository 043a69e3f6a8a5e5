# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Constants shared across the buildpack."""

from __future__ import annotations

from typing import Final

DEFAULT_YARN_REQUIREMENT: Final[str] = "1.22.x"

YARN_BINARY: Final[str] = "yarn"
LOCKFILE_NAME: Final[str] = "yarn.lock"
MANIFEST_NAME: Final[str] = "package.json"
PROCFILE_NAME: Final[str] = "Procfile"
LAUNCH_FILENAME: Final[str] = "launch.toml"
CATALOG_FILENAME: Final[str] = "inventory.toml"

DIST_LAYER_NAME: Final[str] = "dist"
DEPS_LAYER_NAME: Final[str] = "deps"
DEPS_CACHE_SUBDIR: Final[str] = "cache"

NODE_BUILD_SCRIPTS_PLAN_NAME: Final[str] = "node_build_scripts"
PROVIDES: Final[tuple[str, ...]] = ("yarn", "node_modules", NODE_BUILD_SCRIPTS_PLAN_NAME)
REQUIRES: Final[tuple[str, ...]] = ("node", "yarn", "node_modules", NODE_BUILD_SCRIPTS_PLAN_NAME)

DEFAULT_PROCESS_TYPE: Final[str] = "web"
DEFAULT_PROCESS_COMMAND: Final[tuple[str, ...]] = ("yarn", "start")

ANY_PLATFORM: Final[str] = "any"

DETECT_PASS_EXIT_CODE: Final[int] = 0
DETECT_FAIL_EXIT_CODE: Final[int] = 100

ENV_CATALOG: Final[str] = "YARNPACK_CATALOG"
ENV_DEBUG: Final[str] = "YARNPACK_DEBUG"
ENV_PLATFORM: Final[str] = "YARNPACK_PLATFORM"
ENV_NO_COLOR: Final[str] = "NO_COLOR"

__all__ = [
    "ANY_PLATFORM",
    "CATALOG_FILENAME",
    "DEFAULT_PROCESS_COMMAND",
    "DEFAULT_PROCESS_TYPE",
    "DEFAULT_YARN_REQUIREMENT",
    "DEPS_CACHE_SUBDIR",
    "DEPS_LAYER_NAME",
    "DETECT_FAIL_EXIT_CODE",
    "DETECT_PASS_EXIT_CODE",
    "DIST_LAYER_NAME",
    "ENV_CATALOG",
    "ENV_DEBUG",
    "ENV_NO_COLOR",
    "ENV_PLATFORM",
    "LAUNCH_FILENAME",
    "LOCKFILE_NAME",
    "MANIFEST_NAME",
    "NODE_BUILD_SCRIPTS_PLAN_NAME",
    "PROCFILE_NAME",
    "PROVIDES",
    "REQUIRES",
    "YARN_BINARY",
]
