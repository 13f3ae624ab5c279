# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.10
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ------
# src/shadowdiff/cli/main.py

"""
shadowdiff command line interface.

Routes commands to the handlers in shadowdiff.cli.commands and maps their
outcomes to console output and exit codes.
"""

# Standard library imports
from importlib.metadata import version, PackageNotFoundError
from pathlib import Path
from typing import Optional, Any

# Third-party imports
import typer
from rich.console import Console

# Local imports
from shadowdiff.cli.commands import conflicts as conflict_commands
from shadowdiff.cli.utils import (
    EXIT_CANCELLED, EXIT_CONFLICTS, EXIT_ERROR,
    handle_operation_error, load_config_with_console, resolve_target
)
from shadowdiff.config.manager import validate_config
from shadowdiff.data.json_collector import JSONCollector
from shadowdiff.system.display import display_diff_result
from shadowdiff.system.exceptions import ShadowDiffError
from shadowdiff.system.logging_setup import setup_logging

app = typer.Typer(
    help="""shadowdiff - detect remote changes before a deploy overwrites them

[bold green]Core Operations:[/bold green] check, diff
[bold red]Validation:[/bold red] validate-config
""",
    rich_markup_mode="rich"
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        try:
            pkg_version = version("shadowdiff")
        except PackageNotFoundError as e:
            handle_operation_error(console, "retrieving version", e)
        console.print(f"shadowdiff version {pkg_version}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Optional[bool] = typer.Option(
        None, "--version", callback=version_callback, is_eager=True,
        help="Show version and exit"
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """shadowdiff - compare a local source tree with deployed remote metadata."""
    setup_logging(debug=debug)


# =============================================================================
# CORE OPERATIONS
# =============================================================================

@app.command()
def check(
    manifest: Path = typer.Option(..., "--manifest", "-m", help="Manifest selecting the metadata to retrieve"),
    target: Optional[str] = typer.Option(None, "--target", "-u", help="Remote username or alias"),
    package_dir: Optional[Path] = typer.Option(None, "--package-dir", help="Local package directory (default: from config)"),
    fold_case: bool = typer.Option(False, "--fold-case", help="Match paths case-insensitively"),
    fail_on_conflict: bool = typer.Option(False, "--fail-on-conflict", help="Exit with status 2 when conflicts are found"),
    show_identical: bool = typer.Option(False, "--show-identical", help="Include identical files in the table"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show step progress and command output"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress output"),
    to_json: bool = typer.Option(False, "--json", help="Output results as JSON")
) -> Any:
    """[bold green]Core Operations[/bold green]: Check for conflicts between local source and a remote target."""
    collector = JSONCollector(enabled=to_json)
    config = load_config_with_console(console, verbose=verbose)
    resolved_target = resolve_target(console, config, target)

    try:
        outcome = conflict_commands.check(
            console, config,
            target=resolved_target, manifest=manifest, package_dir=package_dir,
            fold_case=fold_case, verbose=verbose, quiet=quiet or to_json
        )
    except ShadowDiffError as e:
        handle_operation_error(console, "checking for conflicts", e, collector)

    cleanup_error = str(outcome.cleanup_error) if outcome.cleanup_error else None
    if outcome.cancelled:
        collector.capture_cancelled(cleanup_error=cleanup_error)
        collector.output()
        if not to_json:
            console.print("[yellow]![/yellow] Conflict check cancelled")
        raise typer.Exit(EXIT_CANCELLED)

    collector.capture_success(outcome.diff, target=resolved_target, cleanup_error=cleanup_error)
    collector.output()
    if not to_json:
        display_diff_result(console, outcome.diff, show_identical=show_identical, verbose=verbose, quiet=quiet)

    if fail_on_conflict and outcome.diff.has_conflicts:
        raise typer.Exit(EXIT_CONFLICTS)
    return outcome


@app.command()
def diff(
    local: Path = typer.Argument(..., help="Local directory"),
    remote: Path = typer.Argument(..., help="Remote (or any second) directory"),
    fold_case: bool = typer.Option(False, "--fold-case", help="Match paths case-insensitively"),
    show_identical: bool = typer.Option(False, "--show-identical", help="Include identical files in the table"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show content hashes"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress output"),
    to_json: bool = typer.Option(False, "--json", help="Output results as JSON")
) -> Any:
    """[bold green]Core Operations[/bold green]: Compare two directory trees file by file."""
    collector = JSONCollector(enabled=to_json)
    try:
        result = conflict_commands.diff(local, remote, fold_case=fold_case)
    except ShadowDiffError as e:
        handle_operation_error(console, "comparing directories", e, collector)

    collector.capture_success(result)
    collector.output()
    if not to_json:
        display_diff_result(console, result, show_identical=show_identical, verbose=verbose, quiet=quiet)
    return result


# =============================================================================
# VALIDATION
# =============================================================================

@app.command(name="validate-config")
def validate_config_command(
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress output"),
    to_json: bool = typer.Option(False, "--json", help="Output results as JSON")
) -> Any:
    """[bold red]Validation[/bold red]: Validate project and user configuration."""
    collector = JSONCollector(enabled=to_json)
    errors = validate_config()
    collector.record("errors", errors)
    collector.record("valid", not errors)
    collector.output()

    if not to_json and not quiet:
        if errors:
            for error in errors:
                console.print(f"[red]✗[/red] {error}")
        else:
            console.print("[green]✓[/green] Configuration is valid")

    if errors:
        raise typer.Exit(EXIT_ERROR)
    return errors


# =============================================================================
# ENTRY POINT
# =============================================================================

def main() -> None:  # pragma: no cover - entry point
    """Entry point for the shadowdiff CLI application."""
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
