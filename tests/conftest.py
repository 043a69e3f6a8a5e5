# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest
from support import build_yarn_tarball, release_for

from yarnpack.catalog import ReleaseCatalog


@pytest.fixture
def yarn_tarball(tmp_path: Path) -> tuple[Path, bytes]:
    archive = tmp_path / "downloads" / "yarn-1.22.5.tgz"
    archive.parent.mkdir()
    return archive, build_yarn_tarball(archive)


@pytest.fixture
def catalog_1_22(yarn_tarball: tuple[Path, bytes]) -> ReleaseCatalog:
    _, payload = yarn_tarball
    return ReleaseCatalog(
        releases=(
            release_for("1.21.1", b"older"),
            release_for("1.22.5", payload),
            release_for("3.6.4", b"berry"),
        ),
    )
