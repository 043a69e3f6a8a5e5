# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Typer application implementing the buildpack ``detect`` and ``build`` executables."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from . import errors
from .buildplan import BuildpackPlan, BuildPlanError
from .catalog import CatalogError, ReleaseCatalog, load_default_catalog
from .catalog_sync import build_catalog, write_catalog
from .config import BuildpackConfig, ConfigError
from .constants import DETECT_FAIL_EXIT_CODE, DETECT_PASS_EXIT_CODE, LOCKFILE_NAME
from .environment import Env
from .installer import UrlFetcher
from .logging import BuildLog, configure_logging, make_console
from .orchestrator import BuildContext, BuildOrchestrator
from .process_utils import CommandRunner

LOGGER = logging.getLogger(__name__)

app = typer.Typer(
    help="Cloud Native Buildpack for Yarn applications.",
    no_args_is_help=True,
    add_completion=False,
)
catalog_app = typer.Typer(help="Inspect or regenerate the Yarn release catalog.", no_args_is_help=True)
app.add_typer(catalog_app, name="catalog")


def load_catalog(config: BuildpackConfig) -> ReleaseCatalog:
    """Load the catalog override or the bundled catalog.

    Raises:
        errors.CatalogParseError: If the catalog is unreadable or invalid.
    """

    try:
        if config.catalog_path is not None:
            return ReleaseCatalog.from_path(config.catalog_path)
        return load_default_catalog()
    except CatalogError as exc:
        raise errors.CatalogParseError(exc) from exc


def _config_or_exit(log: BuildLog, **kwargs: object) -> BuildpackConfig:
    try:
        return BuildpackConfig.from_sources(**kwargs)  # type: ignore[arg-type]
    except ConfigError as exc:
        log.error(errors.INTERNAL_ERROR_HEADER, str(exc))
        raise typer.Exit(code=1) from exc


@app.command("detect")
def detect_command(
    platform_dir: Path = typer.Argument(..., help="Platform directory supplied by the lifecycle."),
    plan_path: Path = typer.Argument(..., help="File receiving the build plan."),
    app_dir: Path = typer.Option(Path.cwd(), "--app-dir", help="Application source directory."),
    debug: bool = typer.Option(False, "--debug", help="Emit debug logging to stderr."),
) -> None:
    """Pass when the application is managed by Yarn."""

    log = BuildLog()
    config = _config_or_exit(log, app_dir=app_dir, platform_dir=platform_dir, plan_path=plan_path, debug=debug)
    configure_logging(debug=config.debug)
    result = BuildOrchestrator.detect(config.app_dir)
    if not result.passed or result.plan is None:
        LOGGER.debug("no %s in %s", LOCKFILE_NAME, config.app_dir)
        raise typer.Exit(code=DETECT_FAIL_EXIT_CODE)
    result.plan.write(plan_path)
    raise typer.Exit(code=DETECT_PASS_EXIT_CODE)


@app.command("build")
def build_command(
    layers_dir: Path = typer.Argument(..., help="Directory where layers are created."),
    platform_dir: Path = typer.Argument(..., help="Platform directory supplied by the lifecycle."),
    plan_path: Path = typer.Argument(..., help="Buildpack plan handed to this buildpack."),
    app_dir: Path = typer.Option(Path.cwd(), "--app-dir", help="Application source directory."),
    debug: bool = typer.Option(False, "--debug", help="Emit debug logging to stderr."),
) -> None:
    """Install yarn and dependencies, run build scripts, and write launch metadata."""

    log = BuildLog()
    config = _config_or_exit(
        log,
        app_dir=app_dir,
        platform_dir=platform_dir,
        plan_path=plan_path,
        layers_dir=layers_dir,
        debug=debug,
    )
    configure_logging(debug=config.debug)
    log = BuildLog(make_console(color=config.color))

    try:
        catalog = load_catalog(config)
        try:
            scripts_metadata = BuildpackPlan.read(config.plan_path).build_scripts_metadata()
        except BuildPlanError as exc:
            raise errors.BuildPlanMetadataError(exc) from exc
        orchestrator = BuildOrchestrator(
            catalog,
            runner=CommandRunner(),
            fetcher=UrlFetcher(),
            platform=config.target_platform,
            log=log,
        )
        context = BuildContext(
            app_dir=config.app_dir,
            layers_dir=layers_dir,
            env=Env.from_platform(config.platform_dir),
            build_scripts=scripts_metadata,
        )
        result = orchestrator.build(context)
        if result.launch is not None:
            result.launch.write(layers_dir)
    except errors.BuildpackError as exc:
        log.error(errors.error_header(exc), str(exc))
        raise typer.Exit(code=1) from exc
    except Exception as exc:
        LOGGER.debug("internal failure", exc_info=True)
        log.error(errors.INTERNAL_ERROR_HEADER, str(exc))
        raise typer.Exit(code=1) from exc
    raise typer.Exit(code=0)


@catalog_app.command("show")
def catalog_show_command(
    catalog_path: Optional[Path] = typer.Option(None, "--catalog", help="Catalog file to show instead of the bundled one."),
) -> None:
    """List the releases in the catalog."""

    console = make_console(color=True)
    try:
        catalog = ReleaseCatalog.from_path(catalog_path) if catalog_path else load_default_catalog()
    except CatalogError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    table = Table(title="Yarn releases")
    table.add_column("Version")
    table.add_column("Platforms")
    for release in catalog.releases:
        table.add_row(str(release.version), ", ".join(artifact.platform for artifact in release.artifacts))
    console.print(table)


@catalog_app.command("refresh")
def catalog_refresh_command(
    output: Path = typer.Option(
        Path("src/yarnpack/inventory.toml"),
        "--output",
        "-o",
        help="Destination for the regenerated catalog.",
    ),
) -> None:
    """Rebuild the catalog from the npm registry."""

    console = make_console(color=True)
    try:
        catalog = build_catalog()
    except CatalogError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    write_catalog(catalog, output)
    console.print(f"Wrote {len(catalog.releases)} releases to {output}")


def main() -> None:
    app()


__all__ = ["app", "load_catalog", "main"]
