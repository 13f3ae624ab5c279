# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.09
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ------
# src/shadowdiff/system/display.py

# Standard library imports
from typing import Optional

# Third-party imports
import humanize
from rich.console import Console
from rich.table import Table

# Local imports
from shadowdiff.core.differ import DiffDetail, DiffStatus, DirectoryDiffResult, FileInfo


STATUS_LABELS = {
    DiffStatus.IDENTICAL: "[dim]identical[/dim]",
    DiffStatus.DIFFERENT: "[red]different[/red]",
    DiffStatus.LOCAL_ONLY: "[green]local only[/green]",
    DiffStatus.REMOTE_ONLY: "[yellow]remote only[/yellow]",
}


def _size(info: Optional[FileInfo]) -> str:
    return humanize.naturalsize(info.size) if info is not None else ""


def diff_result_to_table(
    result: DirectoryDiffResult,
    show_identical: bool = False,
    verbose: bool = False
) -> Table:
    """Convert a diff result to a rich Table for display.

    Args:
        result: Output of a directory diff
        show_identical: Whether to include identical files
        verbose: Whether to include content hashes

    Returns:
        Rich Table object ready for display
    """
    table = Table()
    table.add_column("Status")
    table.add_column("Path")
    table.add_column("Local", justify="right")
    table.add_column("Remote", justify="right")
    if verbose:
        table.add_column("Local hash")
        table.add_column("Remote hash")

    for entry in result.entries():
        if entry.status is DiffStatus.IDENTICAL and not show_identical:
            continue
        detail: DiffDetail = result.bucket(entry.status)[entry.path]
        row = [
            STATUS_LABELS[entry.status],
            entry.path,
            _size(detail.local),
            _size(detail.remote),
        ]
        if verbose:
            row.extend([
                (detail.local.hash or "")[:12] if detail.local else "",
                (detail.remote.hash or "")[:12] if detail.remote else "",
            ])
        table.add_row(*row)

    return table


def format_diff_summary(result: DirectoryDiffResult) -> str:
    """One-line summary of bucket sizes."""
    counts = result.counts()
    return (
        f"{counts['different']} different, "
        f"{counts['remote_only']} remote only, "
        f"{counts['local_only']} local only, "
        f"{counts['identical']} identical"
    )


def display_diff_result(
    console: Console,
    result: DirectoryDiffResult,
    show_identical: bool = False,
    verbose: bool = False,
    quiet: bool = False
) -> None:
    """Print a diff result with a summary line."""
    if quiet:
        return

    visible = len(result.entries()) if show_identical else (
        len(result.different) + len(result.local_only) + len(result.remote_only)
    )
    if visible:
        console.print(diff_result_to_table(result, show_identical=show_identical, verbose=verbose))
    else:
        console.print("[green]✓[/green] No differences found")

    console.print(f"[dim]{format_diff_summary(result)}[/dim]")
    if result.has_conflicts:
        console.print("[yellow]⚠[/yellow] Remote changes would be overwritten by a deploy")
