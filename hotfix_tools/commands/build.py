"""Build and release commands."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click
import structlog
from rich.console import Console
from rich.table import Table

from hotfix_tools.build.pipeline import BuildPipeline, BuildReport
from hotfix_tools.core.config import AppConfig
from hotfix_tools.core.errors import BuildError, SizeLimitExceeded
from hotfix_tools.core.utils import format_size
from hotfix_tools.formats.content import ContentManifestParser

logger = structlog.get_logger()


def _get_context_objects(ctx: click.Context) -> tuple[AppConfig, Console, bool, bool]:
    """Extract context objects from Click context."""
    config = ctx.obj["config"]
    console = ctx.obj["console"]
    verbose = ctx.obj.get("verbose", False)
    debug = ctx.obj.get("debug", False)
    return config, console, verbose, debug


def _report_dict(report: BuildReport) -> dict[str, Any]:
    data: dict[str, Any] = {
        "version": str(report.version),
        "package": report.package_name,
        "package_dir": str(report.package_dir),
        "hash": report.state.hash,
        "total_size": report.state.total_size,
        "bundles": len(report.state.bundles),
        "delete_list": report.state.delete_list,
        "labels": str(report.labels_path),
        "manifest": str(report.manifest_path),
    }
    if report.diff is not None:
        data["modified"] = [asset.path for asset in report.diff.modified]
        data["added"] = [asset.path for asset in report.diff.added]
        data["removed"] = [asset.path for asset in report.diff.removed]
    return data


def _print_report(report: BuildReport, config: AppConfig, console: Console, verbose: bool) -> None:
    if config.output_format == "json":
        print(json.dumps(_report_dict(report), indent=2))
        return

    table = Table(title=f"Package {report.package_name}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Version", str(report.version))
    table.add_row("Directory", str(report.package_dir))
    table.add_row("Hash", report.state.hash)
    table.add_row("Bundles", str(len(report.state.bundles)))
    table.add_row("Total Size", format_size(report.state.total_size))
    table.add_row("Delete List", ", ".join(report.state.delete_list) or "-")
    if report.diff is not None:
        table.add_row("Modified", str(len(report.diff.modified)))
        table.add_row("Added", str(len(report.diff.added)))
        table.add_row("Removed", str(len(report.diff.removed)))
    console.print(table)

    if verbose:
        bundles = Table(title="Bundles", show_header=True)
        bundles.add_column("Bundle", style="cyan")
        bundles.add_column("Size", justify="right")
        bundles.add_column("Logical Key", style="yellow")
        for bundle in report.state.bundles:
            bundles.add_row(bundle.bundle_name, format_size(bundle.size), bundle.logical_key)
        console.print(bundles)


def _run_build(ctx: click.Context, full: bool, raw_dir: Path, manifest: Path, content_root: Path) -> None:
    config, console, verbose, debug = _get_context_objects(ctx)

    try:
        content = ContentManifestParser().parse_file(manifest)
        pipeline = BuildPipeline(config.build)
        if full:
            report = pipeline.build_full(raw_dir, content, content_root)
        else:
            report = pipeline.build_hotfix(raw_dir, content, content_root)
    except SizeLimitExceeded as e:
        console.print(f"[red]Package too large: {format_size(e.total_size)} >= {format_size(e.limit)}[/red]")
        raise click.Abort() from e
    except (BuildError, ValueError) as e:
        console.print(f"[red]Build failed: {e}[/red]")
        if debug:
            import traceback
            console.print(traceback.format_exc())
        raise click.Abort() from e

    _print_report(report, config, console, verbose)


@click.group("build", short_help="Build hotfix packages.")
def build_group() -> None:
    """Build packages from content bundler output.

    RAW_DIR is the bundler output directory holding the catalog and the
    bundle files. The content manifest lists every authored group and
    entry and is used for the labels config and snapshot diffing.
    """
    pass


_raw_dir_argument = click.argument(
    "raw_dir", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
_manifest_option = click.option(
    "--manifest",
    "-m",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Content manifest (groups and entries)",
)
_content_root_option = click.option(
    "--content-root",
    "-r",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Directory entry paths are relative to",
)


@build_group.command("full")
@_raw_dir_argument
@_manifest_option
@_content_root_option
@click.pass_context
def build_full(ctx: click.Context, raw_dir: Path, manifest: Path, content_root: Path) -> None:
    """Build a full package (major version bump)."""
    _run_build(ctx, True, raw_dir, manifest, content_root)


@build_group.command("hotfix")
@_raw_dir_argument
@_manifest_option
@_content_root_option
@click.pass_context
def build_hotfix(ctx: click.Context, raw_dir: Path, manifest: Path, content_root: Path) -> None:
    """Build a hotfix package (patch version bump)."""
    _run_build(ctx, False, raw_dir, manifest, content_root)


@click.group("release", short_help="Manage released snapshots.")
def release_group() -> None:
    """Manage the snapshot history of released builds."""
    pass


@release_group.command("confirm")
@click.pass_context
def release_confirm(ctx: click.Context) -> None:
    """Confirm the staged hotfix build as the new head."""
    config, console, _, _ = _get_context_objects(ctx)

    try:
        version = BuildPipeline(config.build).confirm_release()
    except BuildError as e:
        console.print(f"[yellow]{e}[/yellow]")
        raise click.Abort() from e

    if config.output_format == "json":
        print(json.dumps({"head": str(version)}, indent=2))
    else:
        console.print(f"[green]Version {version} confirmed as head[/green]")
