# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""End-to-end tests for the build phase sequencing."""

from __future__ import annotations

import io
import json
import os
from collections.abc import Mapping
from pathlib import Path

import pytest
from rich.console import Console
from support import FakeFetcher, FakeRunner, NonZeroExit, SpawnFailed, Success

from yarnpack import errors
from yarnpack.buildplan import BuildScriptsMetadata
from yarnpack.cache import CACHE_LAYER_TYPES, CacheDecision
from yarnpack.catalog import ReleaseCatalog
from yarnpack.environment import Env
from yarnpack.layers import Layer
from yarnpack.logging import BuildLog
from yarnpack.orchestrator import BuildContext, BuildOrchestrator
from yarnpack.process_utils import Outcome
from yarnpack.versions import SemanticVersion

LOCKFILE = b'# yarn lockfile v1\n\nleft-pad@^1.3.0:\n  version "1.3.0"\n'


class YarnStub:
    """Answer yarn invocations the way a real yarn install would."""

    def __init__(
        self,
        dist_bin: Path,
        *,
        preinstalled: str | None = None,
        cache_folder: str = "undefined",
        failing_script: str | None = None,
    ) -> None:
        self.dist_bin = dist_bin
        self.preinstalled = preinstalled
        self.cache_folder = cache_folder
        self.failing_script = failing_script

    def __call__(self, tool: str, args: tuple[str, ...], env: Mapping[str, str]) -> Outcome:
        on_path = str(self.dist_bin) in env.get("PATH", "").split(os.pathsep)
        if self.preinstalled is None and not on_path:
            return SpawnFailed(tool=tool, reason="not found")
        if args == ("--version",):
            return Success(stdout=f"{self.preinstalled or '1.22.5'}\n")
        if args[:2] == ("config", "get"):
            return Success(stdout=f"{self.cache_folder}\n")
        if args[:1] == ("run",) and args[1] == self.failing_script:
            return NonZeroExit(code=2, stdout="", stderr=f"{args[1]} exploded")
        return Success(stdout=f"ran {' '.join(args)}\n")


@pytest.fixture
def app_dir(tmp_path: Path) -> Path:
    app = tmp_path / "app"
    app.mkdir()
    (app / "yarn.lock").write_bytes(LOCKFILE)
    _write_manifest(app, {"name": "app", "scripts": {"build": "tsc", "start": "node ."}})
    return app


@pytest.fixture
def layers_dir(tmp_path: Path) -> Path:
    layers = tmp_path / "layers"
    layers.mkdir()
    return layers


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()


def _write_manifest(app_dir: Path, payload: dict[str, object]) -> None:
    (app_dir / "package.json").write_text(json.dumps(payload), encoding="utf-8")


def _orchestrator(
    catalog: ReleaseCatalog,
    runner: FakeRunner,
    fetcher: FakeFetcher,
    output: io.StringIO,
) -> BuildOrchestrator:
    log = BuildLog(console=Console(file=output, color_system=None, width=200))
    return BuildOrchestrator(catalog, runner=runner, fetcher=fetcher, platform="linux-amd64", log=log)


def _context(app_dir: Path, layers_dir: Path, *, scripts_enabled: bool | None = None) -> BuildContext:
    return BuildContext(
        app_dir=app_dir,
        layers_dir=layers_dir,
        env=Env({"PATH": "/usr/bin"}),
        build_scripts=BuildScriptsMetadata(enabled=scripts_enabled),
    )


def test_detect_requires_lockfile(app_dir: Path, tmp_path: Path) -> None:
    assert BuildOrchestrator.detect(app_dir).passed
    empty = tmp_path / "empty"
    empty.mkdir()
    result = BuildOrchestrator.detect(empty)
    assert not result.passed
    assert result.plan is None


def test_build_installs_default_yarn_and_runs_scripts(
    app_dir: Path,
    layers_dir: Path,
    yarn_tarball: tuple[Path, bytes],
    catalog_1_22: ReleaseCatalog,
    output: io.StringIO,
) -> None:
    archive, _ = yarn_tarball
    deps = Layer(layers_dir, "deps")
    deps.write_metadata(CACHE_LAYER_TYPES, {"key": "sha256:stale"})
    (deps.path / "cache").mkdir(parents=True)
    (deps.path / "cache" / "old.tgz").write_bytes(b"old")
    runner = FakeRunner(YarnStub(layers_dir / "dist" / "bin"))
    fetcher = FakeFetcher(archive)

    result = _orchestrator(catalog_1_22, runner, fetcher, output).build(_context(app_dir, layers_dir))

    assert result.yarn_version == SemanticVersion(1, 22, 5)
    assert result.yarn_installed
    assert result.cache_decision is CacheDecision.INVALIDATED
    assert result.scripts_run == ("build",)
    assert result.launch is not None
    assert [process.type for process in result.launch.processes] == ["web"]
    assert fetcher.calls == ["https://registry.example.test/yarn-1.22.5.tgz"]
    assert not (deps.path / "cache" / "old.tgz").exists()
    assert runner.calls == [
        ("yarn", "--version"),
        ("yarn", "--version"),
        ("yarn", "config", "get", "cache-folder"),
        ("yarn", "config", "set", "--", "cache-folder", str(deps.path / "cache")),
        ("yarn", "install", "--production=false", "--frozen-lockfile"),
        ("yarn", "run", "build"),
    ]
    text = output.getvalue()
    assert "using default (1.22.x)" in text
    assert "Resolved yarn CLI version: 1.22.5" in text
    assert "Creating new yarn dependency cache" in text


def test_rebuild_reuses_tool_and_cache_layers(
    app_dir: Path,
    layers_dir: Path,
    yarn_tarball: tuple[Path, bytes],
    catalog_1_22: ReleaseCatalog,
    output: io.StringIO,
) -> None:
    archive, _ = yarn_tarball
    runner = FakeRunner(YarnStub(layers_dir / "dist" / "bin"))
    fetcher = FakeFetcher(archive)
    orchestrator = _orchestrator(catalog_1_22, runner, fetcher, output)

    first = orchestrator.build(_context(app_dir, layers_dir))
    second = orchestrator.build(_context(app_dir, layers_dir))

    assert first.cache_decision is CacheDecision.INVALIDATED
    assert second.cache_decision is CacheDecision.REUSED
    assert len(fetcher.calls) == 1
    assert "Restoring yarn dependency cache" in output.getvalue()


def test_existing_yarn_skips_installation(
    app_dir: Path,
    layers_dir: Path,
    yarn_tarball: tuple[Path, bytes],
    catalog_1_22: ReleaseCatalog,
    output: io.StringIO,
) -> None:
    archive, _ = yarn_tarball
    berry_cache = str(layers_dir.parent / "berry-cache")
    runner = FakeRunner(YarnStub(layers_dir / "dist" / "bin", preinstalled="3.6.4", cache_folder=berry_cache))
    fetcher = FakeFetcher(archive)

    result = _orchestrator(catalog_1_22, runner, fetcher, output).build(_context(app_dir, layers_dir))

    assert result.yarn_version == SemanticVersion(3, 6, 4)
    assert not result.yarn_installed
    assert fetcher.calls == []
    assert not (layers_dir / "dist").exists()
    assert ("yarn", "config", "set", "enableGlobalCache", "false") in runner.calls
    assert ("yarn", "install", "--immutable", "--inline-builds") in runner.calls


def test_zero_install_bypasses_cache_layer(
    app_dir: Path,
    layers_dir: Path,
    yarn_tarball: tuple[Path, bytes],
    catalog_1_22: ReleaseCatalog,
    output: io.StringIO,
) -> None:
    archive, _ = yarn_tarball
    vendored = app_dir / ".yarn" / "cache"
    vendored.mkdir(parents=True)
    (vendored / "left-pad-npm-1.3.0.zip").write_bytes(b"zip")
    runner = FakeRunner(YarnStub(layers_dir / "dist" / "bin", preinstalled="4.1.0", cache_folder=".yarn/cache"))

    result = _orchestrator(catalog_1_22, runner, FakeFetcher(archive), output).build(_context(app_dir, layers_dir))

    assert result.cache_decision is CacheDecision.BYPASSED
    assert not (layers_dir / "deps").exists()
    assert ("yarn", "install", "--immutable", "--inline-builds", "--immutable-cache") in runner.calls
    assert not any(call[1:3] == ("config", "set") and "cacheFolder" in call for call in runner.calls)
    assert "zero-install" in output.getvalue()


def test_unsupported_yarn_major_fails(
    app_dir: Path,
    layers_dir: Path,
    yarn_tarball: tuple[Path, bytes],
    catalog_1_22: ReleaseCatalog,
    output: io.StringIO,
) -> None:
    archive, _ = yarn_tarball
    runner = FakeRunner(YarnStub(layers_dir / "dist" / "bin", preinstalled="5.0.0"))

    with pytest.raises(errors.VersionUnsupportedError) as excinfo:
        _orchestrator(catalog_1_22, runner, FakeFetcher(archive), output).build(_context(app_dir, layers_dir))
    assert errors.error_header(excinfo.value) == "Yarn version error"


def test_unresolvable_range_fails(
    app_dir: Path,
    layers_dir: Path,
    yarn_tarball: tuple[Path, bytes],
    catalog_1_22: ReleaseCatalog,
    output: io.StringIO,
) -> None:
    archive, _ = yarn_tarball
    _write_manifest(app_dir, {"engines": {"yarn": "2.x"}})
    fetcher = FakeFetcher(archive)
    runner = FakeRunner(YarnStub(layers_dir / "dist" / "bin"))

    with pytest.raises(errors.VersionResolveError):
        _orchestrator(catalog_1_22, runner, fetcher, output).build(_context(app_dir, layers_dir))
    assert fetcher.calls == []


def test_checksum_mismatch_is_a_tool_layer_error(
    app_dir: Path,
    layers_dir: Path,
    yarn_tarball: tuple[Path, bytes],
    catalog_1_22: ReleaseCatalog,
    output: io.StringIO,
) -> None:
    archive, _ = yarn_tarball
    _write_manifest(app_dir, {"engines": {"yarn": "3.x"}})
    runner = FakeRunner(YarnStub(layers_dir / "dist" / "bin"))

    with pytest.raises(errors.ToolLayerError) as excinfo:
        _orchestrator(catalog_1_22, runner, FakeFetcher(archive), output).build(_context(app_dir, layers_dir))
    assert errors.error_header(excinfo.value) == "Yarn distribution layer error"
    assert not (layers_dir / "dist").exists()


def test_failing_build_script_stops_the_build(
    app_dir: Path,
    layers_dir: Path,
    yarn_tarball: tuple[Path, bytes],
    catalog_1_22: ReleaseCatalog,
    output: io.StringIO,
) -> None:
    archive, _ = yarn_tarball
    _write_manifest(app_dir, {"scripts": {"heroku-prebuild": "a", "build": "b", "heroku-postbuild": "c"}})
    runner = FakeRunner(YarnStub(layers_dir / "dist" / "bin", failing_script="build"))

    with pytest.raises(errors.BuildScriptError) as excinfo:
        _orchestrator(catalog_1_22, runner, FakeFetcher(archive), output).build(_context(app_dir, layers_dir))

    assert "build exploded" in str(excinfo.value)
    assert ("yarn", "run", "heroku-prebuild") in runner.calls
    assert ("yarn", "run", "heroku-postbuild") not in runner.calls


def test_install_failure_is_reported(
    app_dir: Path,
    layers_dir: Path,
    yarn_tarball: tuple[Path, bytes],
    catalog_1_22: ReleaseCatalog,
    output: io.StringIO,
) -> None:
    archive, _ = yarn_tarball
    stub = YarnStub(layers_dir / "dist" / "bin")

    def handler(tool: str, args: tuple[str, ...], env: Mapping[str, str]) -> Outcome:
        if args[:1] == ("install",):
            return NonZeroExit(code=1, stdout="", stderr="Your lockfile needs to be updated")
        return stub(tool, args, env)

    with pytest.raises(errors.InstallError):
        _orchestrator(catalog_1_22, FakeRunner(handler), FakeFetcher(archive), output).build(
            _context(app_dir, layers_dir),
        )


def test_disabled_build_scripts_are_skipped(
    app_dir: Path,
    layers_dir: Path,
    yarn_tarball: tuple[Path, bytes],
    catalog_1_22: ReleaseCatalog,
    output: io.StringIO,
) -> None:
    archive, _ = yarn_tarball
    runner = FakeRunner(YarnStub(layers_dir / "dist" / "bin"))

    result = _orchestrator(catalog_1_22, runner, FakeFetcher(archive), output).build(
        _context(app_dir, layers_dir, scripts_enabled=False),
    )

    assert result.scripts_run == ()
    assert not any(call[1:2] == ("run",) for call in runner.calls)
    assert "disabled by a participating buildpack" in output.getvalue()


def test_procfile_suppresses_default_web_process(
    app_dir: Path,
    layers_dir: Path,
    yarn_tarball: tuple[Path, bytes],
    catalog_1_22: ReleaseCatalog,
    output: io.StringIO,
) -> None:
    archive, _ = yarn_tarball
    (app_dir / "Procfile").write_text("web: node server.js\n", encoding="utf-8")
    runner = FakeRunner(YarnStub(layers_dir / "dist" / "bin"))

    result = _orchestrator(catalog_1_22, runner, FakeFetcher(archive), output).build(_context(app_dir, layers_dir))

    assert result.launch is None


def test_invalid_manifest_fails_before_running_yarn(
    app_dir: Path,
    layers_dir: Path,
    yarn_tarball: tuple[Path, bytes],
    catalog_1_22: ReleaseCatalog,
    output: io.StringIO,
) -> None:
    archive, _ = yarn_tarball
    (app_dir / "package.json").write_text("{oops", encoding="utf-8")
    runner = FakeRunner(YarnStub(layers_dir / "dist" / "bin"))

    with pytest.raises(errors.PackageJsonError):
        _orchestrator(catalog_1_22, runner, FakeFetcher(archive), output).build(_context(app_dir, layers_dir))
    assert runner.calls == []
