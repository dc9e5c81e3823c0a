"""Inspect and verify published packages."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import click
import structlog
from rich.console import Console
from rich.table import Table

from hotfix_tools.core.config import AppConfig
from hotfix_tools.core.errors import HashMismatch
from hotfix_tools.core.hashing import VERSION_STATE_FILENAME, hash_directory
from hotfix_tools.core.integrity import verify_bundle_file
from hotfix_tools.core.paths import BUNDLES_DIR
from hotfix_tools.core.utils import format_size
from hotfix_tools.formats.version_state import VersionState, VersionStateParser

logger = structlog.get_logger()


def _get_context_objects(ctx: click.Context) -> tuple[AppConfig, Console, bool, bool]:
    """Extract context objects from Click context."""
    config = ctx.obj["config"]
    console = ctx.obj["console"]
    verbose = ctx.obj.get("verbose", False)
    debug = ctx.obj.get("debug", False)
    return config, console, verbose, debug


def _load_state(path: Path) -> tuple[Path, VersionState]:
    """Load a descriptor from a package directory or descriptor file."""
    state_path = path / VERSION_STATE_FILENAME if path.is_dir() else path
    try:
        return state_path, VersionStateParser().parse_file(state_path)
    except ValueError as e:
        raise click.ClickException(str(e)) from e


@click.command("inspect")
@click.argument("path", type=click.Path(exists=True, path_type=Path))
@click.pass_context
def inspect(ctx: click.Context, path: Path) -> None:
    """Show the version descriptor of a package.

    PATH is a package directory or a version_state.json file.
    """
    config, console, _, _ = _get_context_objects(ctx)
    state_path, state = _load_state(path)

    if config.output_format == "json":
        print(json.dumps(state.model_dump(mode="json", by_alias=True), indent=2))
        return

    console.print(f"[bold]{state_path}[/bold]")
    console.print(f"Version: [cyan]{state.version}[/cyan]")
    console.print(f"Hash: [green]{state.hash}[/green]")
    console.print(f"Total Size: {format_size(state.total_size)}")
    if state.delete_list:
        console.print(f"Delete List: {', '.join(state.delete_list)}")

    table = Table(title="Bundles", show_header=True)
    table.add_column("Bundle", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Hash", style="green")
    table.add_column("Logical Key", style="yellow")
    for bundle in state.bundles:
        table.add_row(bundle.bundle_name, format_size(bundle.size), bundle.hash, bundle.logical_key)
    console.print(table)


@click.command("verify")
@click.argument("package_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.pass_context
def verify(ctx: click.Context, package_dir: Path) -> None:
    """Re-hash a package directory against its descriptor."""
    config, console, verbose, _ = _get_context_objects(ctx)
    _, state = _load_state(package_dir)

    failures: list[dict[str, Any]] = []
    for bundle in state.bundles:
        bundle_path = package_dir / BUNDLES_DIR / bundle.bundle_name
        try:
            verify_bundle_file(bundle_path, bundle)
        except HashMismatch as e:
            failures.append({"bundle": bundle.bundle_name, "error": str(e)})
        except OSError as e:
            failures.append({"bundle": bundle.bundle_name, "error": f"unreadable: {e}"})

    try:
        rollup = hash_directory(package_dir)
    except OSError as e:
        raise click.ClickException(f"Cannot hash {package_dir}: {e}") from e
    rollup_valid = rollup.lower() == state.hash.lower()
    valid = rollup_valid and not failures

    if config.output_format == "json":
        print(json.dumps({
            "package": str(package_dir),
            "version": str(state.version),
            "expected_hash": state.hash,
            "computed_hash": rollup,
            "valid": valid,
            "failures": failures,
        }, indent=2))
    else:
        for failure in failures:
            console.print(f"[red]✗ {failure['bundle']}: {failure['error']}[/red]")
        if not rollup_valid:
            console.print(f"[red]✗ Rollup hash: expected {state.hash}, got {rollup}[/red]")
        if valid:
            console.print(f"[green]✓ {package_dir} matches its descriptor ({len(state.bundles)} bundles)[/green]")
        elif verbose:
            console.print(f"[yellow]{len(failures)} bundle failures[/yellow]")

    if not valid:
        sys.exit(1)
