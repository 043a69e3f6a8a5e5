# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Lifecycle of the dependency cache layer keyed on lockfile content."""

from __future__ import annotations

import logging
from enum import Enum
from hashlib import sha256
from pathlib import Path
from typing import Final

from .layers import Layer, LayerTypes

LOGGER = logging.getLogger(__name__)

CACHE_KEY_FIELD: Final[str] = "key"
CACHE_LAYER_TYPES: Final[LayerTypes] = LayerTypes(build=False, launch=False, cache=True)


class CacheDecision(str, Enum):
    """Outcome of reconciling the dependency cache layer."""

    REUSED = "reused"
    INVALIDATED = "invalidated"
    BYPASSED = "bypassed"


def fingerprint(lockfile_content: bytes) -> str:
    """Return the cache identity for ``lockfile_content``."""

    return f"sha256:{sha256(lockfile_content).hexdigest()}"


def is_cache_populated(cache_dir: Path) -> bool:
    """Return ``True`` when ``cache_dir`` exists and holds at least one entry.

    A populated Yarn cache folder inside the project means the project vendors
    its own dependency archives (zero-install).
    """

    if not cache_dir.is_dir():
        return False
    return any(True for _ in cache_dir.iterdir())


class CacheLayerManager:
    """Decide whether the dependency cache layer is reused, reset or skipped."""

    def __init__(self, *, zero_install: bool) -> None:
        self._zero_install = zero_install

    @property
    def zero_install(self) -> bool:
        return self._zero_install

    def reconcile(self, layer: Layer, lockfile_content: bytes) -> CacheDecision:
        """Align ``layer`` with the fingerprint of ``lockfile_content``.

        Args:
            layer: Dependency cache layer.
            lockfile_content: Raw bytes of ``yarn.lock``.

        Returns:
            CacheDecision: ``BYPASSED`` for zero-install projects, ``REUSED`` when
            the stored key matches, ``INVALIDATED`` after clearing the layer.
        """

        if self._zero_install:
            return CacheDecision.BYPASSED

        key = fingerprint(lockfile_content)
        stored = layer.read_metadata().get(CACHE_KEY_FIELD)
        if stored == key and layer.path.is_dir():
            LOGGER.debug("cache layer %s reused (key %s)", layer.name, key)
            # restored layers come back with every type flag reset
            layer.write_metadata(CACHE_LAYER_TYPES, {CACHE_KEY_FIELD: key})
            return CacheDecision.REUSED

        LOGGER.debug("cache layer %s invalidated (stored %s, computed %s)", layer.name, stored, key)
        layer.clear()
        layer.write_metadata(CACHE_LAYER_TYPES, {CACHE_KEY_FIELD: key})
        return CacheDecision.INVALIDATED


__all__ = [
    "CACHE_KEY_FIELD",
    "CACHE_LAYER_TYPES",
    "CacheDecision",
    "CacheLayerManager",
    "fingerprint",
    "is_cache_populated",
]
