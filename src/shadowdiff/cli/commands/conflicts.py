# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.10
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ------
# src/shadowdiff/cli/commands/conflicts.py

"""
Conflict command handlers.

Handles: check, diff
"""

import asyncio
import signal
from pathlib import Path
from typing import Optional

from loguru import logger
from rich.console import Console

from shadowdiff.config.manager import Config, DiffSettings
from shadowdiff.core.cancellation import CancellationToken
from shadowdiff.core.differ import DirectoryDiffResult, TreeDiffer
from shadowdiff.core.pipeline import ConflictDetectionPipeline, DetectionOutcome, DetectionRequest
from shadowdiff.core.sinks import ConsoleSink
from shadowdiff.system.exceptions import DiffError


async def run_with_interrupt(
    pipeline: ConflictDetectionPipeline,
    request: DetectionRequest,
    token: CancellationToken
) -> DetectionOutcome:
    """Run the pipeline with SIGINT wired to the cancellation token."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel, "interrupted by user")
        installed = True
    except (NotImplementedError, RuntimeError, ValueError):
        # No signal support on this platform or not in the main thread
        logger.debug("SIGINT handler not installed")
        installed = False

    try:
        return await pipeline.run(request, token)
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


def check(
    console: Console,
    config: Config,
    target: str,
    manifest: Path,
    package_dir: Optional[Path] = None,
    fold_case: bool = False,
    verbose: bool = False,
    quiet: bool = False,
) -> DetectionOutcome:
    """Check the local package directory for conflicts with a remote target.

    Args:
        console: Rich console for output
        config: Loaded configuration
        target: Remote username or alias passed to the retrieval command
        manifest: Manifest selecting what to retrieve (relative to cwd)
        package_dir: Local package directory (relative to cwd); defaults to
            the configured package_dir under the project root
        fold_case: Match paths case-insensitively
        verbose: Show step progress and command output
        quiet: Suppress progress output

    Returns:
        DetectionOutcome in DONE or CANCELLED state

    Raises:
        ShadowDiffError: the failing step's error
    """
    settings = config.project
    if fold_case:
        settings = settings.model_copy(update={"diff": DiffSettings(fold_case=True)})

    request = DetectionRequest(
        target_identifier=target,
        local_package_dir=package_dir.resolve() if package_dir else settings.package_dir,
        manifest_path=manifest.resolve(),
    )
    pipeline = ConflictDetectionPipeline(
        config.project_root,
        settings,
        sink=ConsoleSink(console, verbose=verbose, quiet=quiet),
    )
    return asyncio.run(run_with_interrupt(pipeline, request, CancellationToken()))


def diff(
    local_root: Path,
    remote_root: Path,
    fold_case: bool = False,
) -> DirectoryDiffResult:
    """Diff two directories directly, without retrieval.

    Raises:
        PathNotFoundError: a root is missing
        ValidationError: two paths under one root are ambiguous
        DiffError: a file could not be read
    """
    try:
        return TreeDiffer(fold_case=fold_case).diff(local_root, remote_root)
    except OSError as e:
        raise DiffError(f"Could not compare {local_root} with {remote_root}: {e}") from e
