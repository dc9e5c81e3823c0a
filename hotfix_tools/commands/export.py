"""Export the labels config of a content manifest."""

from __future__ import annotations

import json
from pathlib import Path

import click
import structlog
from rich.console import Console
from rich.table import Table

from hotfix_tools.build.exporter import ManifestExporter
from hotfix_tools.core.config import AppConfig
from hotfix_tools.formats.content import ContentManifestParser
from hotfix_tools.formats.labels import LabelsConfigParser

logger = structlog.get_logger()


def _get_context_objects(ctx: click.Context) -> tuple[AppConfig, Console, bool, bool]:
    """Extract context objects from Click context."""
    config = ctx.obj["config"]
    console = ctx.obj["console"]
    verbose = ctx.obj.get("verbose", False)
    debug = ctx.obj.get("debug", False)
    return config, console, verbose, debug


@click.command("export")
@click.argument("manifest", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--output",
    "-O",
    "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the labels config to this file",
)
@click.pass_context
def export(ctx: click.Context, manifest: Path, output_path: Path | None) -> None:
    """Export the labels config of a content manifest.

    Without --output the labels config is printed to stdout.
    """
    config, console, verbose, _ = _get_context_objects(ctx)

    try:
        content = ContentManifestParser().parse_file(manifest)
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    labels = ManifestExporter(content).export()
    parser = LabelsConfigParser()

    if output_path is None:
        print(parser.build_text(labels), end="")
        return

    try:
        parser.build_file(labels, output_path)
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    if config.output_format == "json":
        print(json.dumps({
            "output": str(output_path),
            "entries": len(labels.all_entries),
            "types": len(labels.keys_by_type),
            "labels": len(labels.keys_by_label),
            "logical_hashes": len(labels.label_logical_hashes),
        }, indent=2))
        return

    console.print(f"[green]Labels config written to {output_path}[/green]")
    if verbose:
        table = Table(title="Logical Hashes", show_header=True)
        table.add_column("Group", style="cyan")
        table.add_column("Labels", style="yellow")
        table.add_column("Hash", style="green")
        for item in labels.label_logical_hashes:
            table.add_row(item.group, item.combine_label, item.hash)
        console.print(table)
