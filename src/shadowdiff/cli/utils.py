# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.10
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ------
# src/shadowdiff/cli/utils.py

"""
CLI utility functions shared by shadowdiff commands.

All functions handle console output and typer exits consistently.
"""

from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console

from shadowdiff.config.manager import Config
from shadowdiff.data.json_collector import JSONCollector
from shadowdiff.system.exceptions import ConfigError

EXIT_ERROR = 1
EXIT_CONFLICTS = 2
EXIT_CANCELLED = 130


def load_config_with_console(console: Console, verbose: bool = False, start_path: Optional[Path] = None) -> Config:
    """
    Load configuration with proper error handling and console output.

    Raises:
        typer.Exit: If configuration loading fails
    """
    if verbose:
        console.print("[dim]Loading configuration...[/dim]")

    try:
        return Config.load(start_path)
    except ConfigError as e:
        console.print(f"[red]✗[/red] Configuration error: {e}")
        raise typer.Exit(EXIT_ERROR)


def resolve_target(console: Console, config: Config, target: Optional[str]) -> str:
    """Pick the target from the command line, falling back to user config."""
    resolved = target or config.user.default_target
    if not resolved:
        console.print("[red]✗[/red] No target given")
        console.print("Pass --target, or set default_target in shadowdiff.yml")
        raise typer.Exit(EXIT_ERROR)
    return resolved


def handle_operation_error(
    console: Console,
    operation: str,
    error: Exception,
    collector: Optional[JSONCollector] = None
) -> NoReturn:
    """Handle operation errors with consistent formatting."""
    if collector is not None:
        collector.capture_error(error)
        collector.output()
    console.print(f"[red]✗[/red] Error {operation}: {error}")
    cleanup_error = getattr(error, "cleanup_error", None)
    if cleanup_error is not None:
        console.print(f"[yellow]⚠[/yellow] {cleanup_error}")
    raise typer.Exit(EXIT_ERROR)
