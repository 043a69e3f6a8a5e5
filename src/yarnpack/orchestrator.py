# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Detect and build entry points sequencing the Yarn build phases."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from . import errors
from .buildplan import BuildPlan, BuildScriptsMetadata, DetectResult
from .cache import CacheDecision, CacheLayerManager, is_cache_populated
from .catalog import NoMatchingReleaseError, ReleaseCatalog, resolve
from .constants import (
    DEFAULT_YARN_REQUIREMENT,
    DEPS_CACHE_SUBDIR,
    DEPS_LAYER_NAME,
    DIST_LAYER_NAME,
    LOCKFILE_NAME,
    MANIFEST_NAME,
    PROCFILE_NAME,
)
from .environment import Env, Scope
from .installer import ArtifactFetcher, ArtifactUnavailableError, ChecksumMismatchError, ToolInstaller
from .launch import Launch, default_web_process
from .layers import Layer, LayerError
from .logging import BuildLog
from .manifest import ManifestError, PackageJson
from .process_utils import CommandError, CommandRunner, SpawnError
from .versions import SemanticVersion, VersionConstraint
from .yarn import YarnLine
from .yarn_cmd import Yarn

LOGGER = logging.getLogger(__name__)

DEFAULT_YARN_CONSTRAINT: Final[VersionConstraint] = VersionConstraint.parse(DEFAULT_YARN_REQUIREMENT)


@dataclass(frozen=True, slots=True)
class BuildContext:
    """Inputs for a single build, supplied by the host adapter."""

    app_dir: Path
    layers_dir: Path
    env: Env
    build_scripts: BuildScriptsMetadata = field(default_factory=BuildScriptsMetadata)


@dataclass(frozen=True, slots=True)
class BuildResult:
    """What a successful build produced."""

    yarn_version: SemanticVersion
    yarn_installed: bool
    cache_decision: CacheDecision
    scripts_run: tuple[str, ...] = ()
    launch: Launch | None = None


class BuildOrchestrator:
    """Run the Yarn build phases in order, stopping at the first failure."""

    def __init__(
        self,
        catalog: ReleaseCatalog,
        *,
        runner: CommandRunner,
        fetcher: ArtifactFetcher,
        platform: str,
        log: BuildLog | None = None,
    ) -> None:
        self._catalog = catalog
        self._runner = runner
        self._installer = ToolInstaller(fetcher, platform=platform)
        self._log = log or BuildLog()

    @staticmethod
    def detect(app_dir: Path) -> DetectResult:
        """Pass with the Yarn build plan when ``yarn.lock`` exists."""

        if (app_dir / LOCKFILE_NAME).exists():
            return DetectResult.passing(BuildPlan())
        return DetectResult.failing()

    def build(self, context: BuildContext) -> BuildResult:
        """Run every build phase for ``context``.

        Raises:
            errors.BuildpackError: The first phase failure, categorized.
        """

        manifest = self._read_manifest(context.app_dir)
        yarn = Yarn(self._runner, context.env, context.app_dir)

        yarn, version, installed = self._ensure_yarn(yarn, manifest, context)
        line = YarnLine.from_major(version.major)
        if line is None:
            raise errors.VersionUnsupportedError(version.major)
        self._log.info(f"Yarn CLI operating in yarn {version} mode.")

        self._log.header("Setting up yarn dependency cache")
        decision = self._reconcile_cache(yarn, line, context)

        self._log.header("Installing dependencies")
        try:
            result = yarn.install(line, zero_install=decision is CacheDecision.BYPASSED)
        except CommandError as exc:
            raise errors.InstallError(exc) from exc
        self._log.output(result.stdout)

        self._log.header("Running scripts")
        scripts_run = self._run_build_scripts(yarn, line, manifest, context.build_scripts)

        launch = self._launch_metadata(context.app_dir, manifest)
        return BuildResult(
            yarn_version=version,
            yarn_installed=installed,
            cache_decision=decision,
            scripts_run=scripts_run,
            launch=launch,
        )

    def _read_manifest(self, app_dir: Path) -> PackageJson:
        try:
            return PackageJson.read(app_dir / MANIFEST_NAME)
        except ManifestError as exc:
            raise errors.PackageJsonError(exc) from exc

    def _ensure_yarn(
        self,
        yarn: Yarn,
        manifest: PackageJson,
        context: BuildContext,
    ) -> tuple[Yarn, SemanticVersion, bool]:
        try:
            return yarn, yarn.version(), False
        except SpawnError:
            LOGGER.debug("yarn is not callable; installing from the catalog")
        except CommandError as exc:
            raise errors.VersionDetectError(exc) from exc

        self._log.header("Detecting yarn CLI version to install")
        try:
            requested = manifest.requested_yarn_range()
        except ManifestError as exc:
            raise errors.PackageJsonError(exc) from exc
        if requested is None:
            self._log.info(f"No yarn engine range detected in package.json, using default ({DEFAULT_YARN_REQUIREMENT})")
            requested = DEFAULT_YARN_CONSTRAINT
        else:
            self._log.info(f"Detected yarn engine version range {requested} in package.json")

        try:
            release = resolve(requested, self._catalog)
        except NoMatchingReleaseError as exc:
            raise errors.VersionResolveError(exc) from exc
        self._log.info(f"Resolved yarn CLI version: {release.version}")

        self._log.header("Installing yarn CLI")
        layer = Layer(context.layers_dir, DIST_LAYER_NAME)
        reused = self._installer.is_installed(release, layer)
        try:
            tool_env = self._installer.install(release, layer)
        except (ChecksumMismatchError, ArtifactUnavailableError, LayerError) as exc:
            raise errors.ToolLayerError(exc) from exc
        self._log.info(f"Reusing yarn {release.version}" if reused else f"Installed yarn {release.version}")

        yarn = yarn.with_env(tool_env.apply(Scope.BUILD, Env(yarn.env)))
        try:
            return yarn, yarn.version(), True
        except CommandError as exc:
            raise errors.VersionDetectError(exc) from exc

    def _reconcile_cache(self, yarn: Yarn, line: YarnLine, context: BuildContext) -> CacheDecision:
        try:
            yarn.disable_global_cache(line)
        except CommandError as exc:
            raise errors.DisableGlobalCacheError(exc) from exc
        try:
            cache_folder = yarn.cache_folder(line)
        except CommandError as exc:
            raise errors.CacheGetError(exc) from exc

        zero_install = cache_folder is not None and is_cache_populated(cache_folder)
        manager = CacheLayerManager(zero_install=zero_install)
        layer = Layer(context.layers_dir, DEPS_LAYER_NAME)
        try:
            lockfile = (context.app_dir / LOCKFILE_NAME).read_bytes()
            decision = manager.reconcile(layer, lockfile)
        except (OSError, LayerError) as exc:
            raise errors.DepsLayerError(exc) from exc

        match decision:
            case CacheDecision.BYPASSED:
                self._log.info("Yarn zero-install detected. Skipping dependency cache.")
                return decision
            case CacheDecision.REUSED:
                self._log.info("Restoring yarn dependency cache")
            case CacheDecision.INVALIDATED:
                self._log.info("Creating new yarn dependency cache")

        cache_dir = layer.path / DEPS_CACHE_SUBDIR
        try:
            cache_dir.mkdir(parents=True, exist_ok=True)
            yarn.set_cache_folder(line, cache_dir)
        except (OSError, CommandError) as exc:
            raise errors.DepsLayerError(exc) from exc
        return decision

    def _run_build_scripts(
        self,
        yarn: Yarn,
        line: YarnLine,
        manifest: PackageJson,
        metadata: BuildScriptsMetadata,
    ) -> tuple[str, ...]:
        scripts = manifest.build_scripts()
        if not scripts:
            self._log.info("No build scripts found")
            return ()
        executed: list[str] = []
        for script in scripts:
            if not metadata.scripts_enabled:
                self._log.warning(f"Not running `{script}` as it was disabled by a participating buildpack")
                continue
            self._log.info(f"Running `{script}` script")
            try:
                result = yarn.run_script(line, script)
            except CommandError as exc:
                raise errors.BuildScriptError(exc) from exc
            self._log.output(result.stdout)
            executed.append(script)
        return tuple(executed)

    def _launch_metadata(self, app_dir: Path, manifest: PackageJson) -> Launch | None:
        if (app_dir / PROCFILE_NAME).exists():
            self._log.info("Skipping default web process (Procfile detected)")
            return None
        if manifest.has_start_script():
            return Launch(processes=(default_web_process(),))
        return None


__all__ = ["BuildContext", "BuildOrchestrator", "BuildResult", "DEFAULT_YARN_CONSTRAINT"]
