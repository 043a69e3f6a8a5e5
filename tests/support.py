# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Test doubles and archive builders shared by the test modules."""

from __future__ import annotations

import hashlib
import io
import shutil
import tarfile
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from yarnpack.catalog import Artifact, Release
from yarnpack.process_utils import NonZeroExit, Outcome, SpawnFailed, Success


def build_yarn_tarball(path: Path, *, version: str = "1.22.5", top_level: str = "package") -> bytes:
    """Write an npm-style yarn tarball at ``path`` and return its bytes."""

    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
        files = {
            f"{top_level}/bin/yarn": f"#!/bin/sh\necho {version}\n".encode(),
            f"{top_level}/package.json": f'{{"name": "yarn", "version": "{version}"}}'.encode(),
        }
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o755
            archive.addfile(info, io.BytesIO(data))
    payload = buffer.getvalue()
    path.write_bytes(payload)
    return payload


def release_for(version: str, payload: bytes, *, url: str | None = None) -> Release:
    return Release(
        version=version,
        artifacts=(
            Artifact(
                url=url or f"https://registry.example.test/yarn-{version}.tgz",
                checksum=f"sha256:{hashlib.sha256(payload).hexdigest()}",
            ),
        ),
    )


@dataclass
class FakeFetcher:
    """Copy a prepared archive instead of downloading it."""

    source: Path
    calls: list[str] = field(default_factory=list)

    def fetch(self, url: str, destination: Path) -> None:
        self.calls.append(url)
        shutil.copyfile(self.source, destination)


@dataclass
class FakeRunner:
    """Scripted stand-in for :class:`yarnpack.process_utils.CommandRunner`."""

    handler: Callable[[str, tuple[str, ...], Mapping[str, str]], Outcome]
    calls: list[tuple[str, ...]] = field(default_factory=list)

    def run(self, tool: str, args: Sequence[str], env: Mapping[str, str], *, cwd: Path | None = None) -> Outcome:
        self.calls.append((tool, *args))
        return self.handler(tool, tuple(args), env)


__all__ = [
    "FakeFetcher",
    "FakeRunner",
    "NonZeroExit",
    "SpawnFailed",
    "Success",
    "build_yarn_tarball",
    "release_for",
]
