# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Yarn release lines and the command templates each line understands."""

from __future__ import annotations

from enum import Enum


class YarnLine(Enum):
    """Supported Yarn major versions."""

    YARN1 = 1
    YARN2 = 2
    YARN3 = 3
    YARN4 = 4

    @classmethod
    def from_major(cls, major: int) -> YarnLine | None:
        """Return the line for ``major`` or ``None`` when unsupported."""

        try:
            return cls(major)
        except ValueError:
            return None

    @property
    def is_classic(self) -> bool:
        return self is YarnLine.YARN1

    @property
    def cache_folder_key(self) -> str:
        return "cache-folder" if self.is_classic else "cacheFolder"

    def config_get_args(self, key: str) -> tuple[str, ...]:
        return ("config", "get", key)

    def config_set_args(self, key: str, value: str) -> tuple[str, ...]:
        if self.is_classic:
            # yarn 1 expects ``--`` before the key and value.
            return ("config", "set", "--", key, value)
        return ("config", "set", key, value)

    def cache_folder_get_args(self) -> tuple[str, ...]:
        return self.config_get_args(self.cache_folder_key)

    def cache_folder_set_args(self, path: str) -> tuple[str, ...]:
        return self.config_set_args(self.cache_folder_key, path)

    def disable_global_cache_args(self) -> tuple[str, ...] | None:
        """Return the command disabling the shared global cache, if the line has one."""

        if self.is_classic:
            return None
        return self.config_set_args("enableGlobalCache", "false")

    def install_args(self, *, zero_install: bool) -> tuple[str, ...]:
        if self.is_classic:
            args = ["install", "--production=false", "--frozen-lockfile"]
            if zero_install:
                args.append("--offline")
            return tuple(args)
        args = ["install", "--immutable", "--inline-builds"]
        if zero_install:
            args.append("--immutable-cache")
        return tuple(args)

    def run_args(self, script: str) -> tuple[str, ...]:
        return ("run", script)

    def __str__(self) -> str:
        return f"yarn {self.value}"


__all__ = ["YarnLine"]
