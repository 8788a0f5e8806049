"""distpatch CLI — Typer + Rich terminal interface.

Commands: apply, rollback, show.
The install must be stopped while a patch is applied or rolled back.
"""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.text import Text

from distpatch import __version__
from distpatch.apply.descriptor import find_descriptors
from distpatch.apply.engine import PatchApplier
from distpatch.apply.process import run_migrator
from distpatch.apply.source import ZipPatchSource
from distpatch.errors import PatchError
from distpatch.schemas.patch import ApplyResult, PatcherConfig, RollbackResult
from distpatch.settings import load_patcher_config

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name="distpatch",
    help="Patch a stopped application install in place, with rollback.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ───────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"distpatch {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """distpatch — offline patching with per-patch backups."""


# ── Helpers ──────────────────────────────────────────────────────


def _configure_logging(verbose: bool) -> None:
    """Route engine logging through Rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _load_config(config_path: Path | None) -> PatcherConfig:
    """Load the install layout, exit on error."""
    try:
        return load_patcher_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1) from None


def _check_archive(archive: Path) -> None:
    if not archive.is_file():
        console.print(f"[red]Patch archive not found:[/red] {archive}")
        raise typer.Exit(1)


def _display_apply_result(result: ApplyResult) -> None:
    """Display the result of one patch application."""
    console.print(f"\n[bold]Patch {result.patch_id}[/bold] — {result.state.value}")

    for err in result.errors:
        console.print(f"  [red]Error:[/red] {err}")
    for warning in result.warnings:
        console.print(f"  [yellow]Warning:[/yellow] {warning}")

    if result.extracted or result.deleted:
        table = Table(title="Artifacts")
        table.add_column("Action", width=8)
        table.add_column("Path", style="cyan")
        for path in result.extracted:
            table.add_row(Text("+ NEW", style="bold green"), path)
        for path in result.deleted:
            table.add_row(Text("- DEL", style="bold red"), path)
        console.print(table)

    if result.files_updated or result.files_added:
        table = Table(title="Patched Files")
        table.add_column("Action", width=8)
        table.add_column("File", style="cyan")
        for path in result.files_added:
            table.add_row(Text("+ NEW", style="bold green"), path)
        for path in result.files_updated:
            table.add_row(Text("* MOD", style="bold yellow"), path)
        console.print(table)

    if result.migrator_staged:
        console.print(f"  [green]Migrator staged:[/green] {result.migrator_staged}")


def _display_rollback_result(result: RollbackResult) -> None:
    """Display the result of one patch rollback."""
    console.print(f"\n[bold]Patch {result.patch_id}[/bold] — rolled back")
    for path in result.restored:
        console.print(f"  [green]Restored:[/green] {path}")
    for path in result.removed:
        console.print(f"  [yellow]Removed:[/yellow] {path}")
    if not result.restored and not result.removed:
        console.print("  [dim]No files to restore.[/dim]")


def _run_staged_migrators(results: list[ApplyResult], base: Path) -> None:
    """Run every staged migrator in order, stop at the first failure."""
    for result in results:
        if not result.migrator_staged:
            continue
        console.print(f"\n[bold]Running migrator[/bold] {result.migrator_staged}")
        try:
            code = run_migrator(Path(result.migrator_staged), base)
        except OSError as e:
            console.print(f"[red]Cannot start migrator:[/red] {e}")
            raise typer.Exit(1) from None
        if code != 0:
            console.print(f"[red]Migrator failed[/red] with exit code {code}")
            raise typer.Exit(1)
        console.print("  [green]Migrator finished.[/green]")


# ── Commands ─────────────────────────────────────────────────────


@app.command()
def apply(
    archive: Path = typer.Argument(..., help="Patch archive (.zip)"),
    base: Path = typer.Option(
        ..., "--base", "-b",
        help="Root directory of the stopped install",
    ),
    config: Path = typer.Option(
        None, "--config", "-c",
        help="TOML file with a [patcher] layout section",
    ),
    run_migrators: bool = typer.Option(
        False, "--run-migrator",
        help="Run each staged migrator jar with java after applying",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every step"),
) -> None:
    """Apply every patch in an archive to a stopped install."""
    _configure_logging(verbose)
    _check_archive(archive)
    applier = PatchApplier(base, _load_config(config))

    try:
        results = applier.apply(archive)
    except (PatchError, OSError, zipfile.BadZipFile) as e:
        console.print(f"[red]Apply failed:[/red] {e}")
        if applier.last_result is not None:
            console.print(
                f"  [dim]Patch {applier.last_result.patch_id} stopped at "
                f"'{applier.last_result.state.value}'.[/dim]"
            )
        raise typer.Exit(1) from None

    if not results:
        console.print("[dim]No patch to apply.[/dim]")
    for result in results:
        _display_apply_result(result)

    if run_migrators:
        _run_staged_migrators(results, base)


@app.command()
def rollback(
    archive: Path = typer.Argument(..., help="Patch archive (.zip)"),
    base: Path = typer.Option(
        ..., "--base", "-b",
        help="Root directory of the stopped install",
    ),
    config: Path = typer.Option(
        None, "--config", "-c",
        help="TOML file with a [patcher] layout section",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every step"),
) -> None:
    """Restore the plain files changed by every patch in an archive.

    Registry entries and artifacts are not reverted.
    """
    _configure_logging(verbose)
    _check_archive(archive)
    applier = PatchApplier(base, _load_config(config))

    try:
        results = applier.rollback(archive)
    except (PatchError, OSError, zipfile.BadZipFile) as e:
        console.print(f"[red]Rollback failed:[/red] {e}")
        raise typer.Exit(1) from None

    if not results:
        console.print("[dim]No patch to roll back.[/dim]")
    for result in results:
        _display_rollback_result(result)


@app.command()
def show(
    archive: Path = typer.Argument(..., help="Patch archive (.zip)"),
    config: Path = typer.Option(
        None, "--config", "-c",
        help="TOML file with a [patcher] layout section",
    ),
) -> None:
    """List the patches described in an archive."""
    _check_archive(archive)
    layout = _load_config(config)
    try:
        with ZipPatchSource(archive) as source:
            patches = find_descriptors(source, layout.descriptor_suffix)
    except (PatchError, OSError, zipfile.BadZipFile) as e:
        console.print(f"[red]Cannot read patch archive:[/red] {e}")
        raise typer.Exit(1) from None

    if not patches:
        console.print("[dim]No patch descriptors found.[/dim]")
        return

    table = Table(title=f"Patches in {archive.name}")
    table.add_column("Id", style="bold cyan")
    table.add_column("Description")
    table.add_column("Bundles", justify="right")
    table.add_column("Files", justify="right")
    table.add_column("Requires")
    for patch in patches:
        table.add_row(
            patch.id,
            patch.description,
            str(len(patch.bundles)),
            str(len(patch.files)),
            ", ".join(patch.requirements) or "-",
        )
    console.print(table)


# ── Entry point ──────────────────────────────────────────────────

if __name__ == "__main__":
    app()
