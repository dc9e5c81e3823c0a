"""Run the client update flow against the configured remote."""

from __future__ import annotations

import asyncio
import json
from dataclasses import asdict
from pathlib import Path

import click
import structlog
from pydantic import ValidationError
from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table

from hotfix_tools.core.catalog import LocalContentResolver
from hotfix_tools.core.config import AppConfig, RemoteConfig
from hotfix_tools.core.errors import BootstrapError, PromotionError, UpdateInProgressError
from hotfix_tools.core.orchestrator import (
    UpdateContext,
    UpdateOrchestrator,
    UpdateOutcome,
    UpdateResult,
)

logger = structlog.get_logger()


def _get_context_objects(ctx: click.Context) -> tuple[AppConfig, Console, bool, bool]:
    """Extract context objects from Click context."""
    config = ctx.obj["config"]
    console = ctx.obj["console"]
    verbose = ctx.obj.get("verbose", False)
    debug = ctx.obj.get("debug", False)
    return config, console, verbose, debug


async def _run_update(
    config: AppConfig, base_catalog: Path | None, progress: Progress | None
) -> UpdateResult:
    context = UpdateContext.create(config, resolver=LocalContentResolver(base_catalog))
    task_id = progress.add_task("Downloading bundles", total=None) if progress is not None else None

    def on_progress(completed: int, total: int, _bytes: int) -> None:
        if progress is not None and task_id is not None:
            progress.update(task_id, completed=completed, total=total)

    try:
        return await UpdateOrchestrator(context, progress_callback=on_progress).run()
    finally:
        await context.aclose()


@click.command("update")
@click.option("--base-url", "-u", help="Override the remote base URL")
@click.option(
    "--base-catalog",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Catalog shipped with the base package",
)
@click.pass_context
def update(ctx: click.Context, base_url: str | None, base_catalog: Path | None) -> None:
    """Check the remote for a newer package and apply it."""
    config, console, verbose, debug = _get_context_objects(ctx)

    if base_url:
        try:
            remote = RemoteConfig(**{**config.remote.model_dump(), "base_url": base_url})
        except ValidationError as e:
            raise click.BadParameter(str(e), param_hint="--base-url") from e
        config = config.model_copy(update={"remote": remote})

    try:
        if config.output_format == "rich":
            with Progress(
                TextColumn("[bold blue]{task.description}"),
                BarColumn(),
                TextColumn("{task.completed}/{task.total}"),
                console=console,
                transient=True,
            ) as progress:
                result = asyncio.run(_run_update(config, base_catalog, progress))
        else:
            result = asyncio.run(_run_update(config, base_catalog, None))
    except UpdateInProgressError as e:
        console.print(f"[yellow]{e}[/yellow]")
        raise click.Abort() from e
    except (BootstrapError, PromotionError) as e:
        console.print(f"[red]Update failed: {e}[/red]")
        if debug:
            import traceback
            console.print(traceback.format_exc())
        raise click.Abort() from e

    if config.output_format == "json":
        data = asdict(result)
        data["stage"] = result.stage.value
        data["outcome"] = result.outcome.value
        data["recovery"] = result.recovery.value
        print(json.dumps(data, indent=2))
        return

    table = Table(title="Update Result", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Outcome", result.outcome.value)
    table.add_row("Stage", result.stage.value)
    table.add_row("Local Version", result.local_version or "-")
    table.add_row("Remote Version", result.remote_version or "-")
    table.add_row("Downloaded", str(len(result.downloaded)))
    table.add_row("Deleted", str(len(result.deleted)))
    table.add_row("Wiped", "yes" if result.wiped else "no")
    if result.error:
        table.add_row("Error", f"[yellow]{result.error}[/yellow]")
    console.print(table)

    if verbose and result.downloaded:
        for name in result.downloaded:
            console.print(f"  [green]+[/green] {name}")

    if result.outcome == UpdateOutcome.UPDATED:
        console.print(f"[green]Updated to {result.remote_version}[/green]")
