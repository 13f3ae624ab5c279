# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.05
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ------
# src/shadowdiff/system/exceptions.py

"""
shadowdiff-specific exception classes.

Every failure the conflict check can produce derives from ShadowDiffError so the
CLI can report it uniformly. Pipeline errors carry the step that failed; the
original exception is chained as __cause__.
"""

from pathlib import Path
from typing import Optional


class ShadowDiffError(Exception):
    """Base exception for all shadowdiff errors."""

    # Set by the pipeline when removing the workspace also failed
    cleanup_error: Optional["CleanupError"] = None


class ConfigError(ShadowDiffError):
    """Raised when there are configuration validation or loading errors."""
    pass


class ValidationError(ShadowDiffError):
    """Raised when validation of files, paths, or data fails."""
    pass


class PathNotFoundError(ShadowDiffError):
    """Raised when a directory root handed to the differ does not exist."""

    def __init__(self, message: str, path: Path | str | None = None):
        self.path = Path(path) if path is not None else None
        super().__init__(message)


# === EXTERNAL COMMAND ERRORS ===

class CommandFailedError(ShadowDiffError):
    """An external command exited with a non-zero status."""

    def __init__(self, message: str, exit_code: int, stderr_tail: str = "", command: str = None):
        self.exit_code = exit_code
        self.stderr_tail = stderr_tail
        self.command = command
        super().__init__(message)

    def __str__(self) -> str:
        base = super().__str__()
        if self.stderr_tail:
            return f"{base}\n{self.stderr_tail}"
        return base


# === PIPELINE ERRORS ===

class PipelineError(ShadowDiffError):
    """Base class for errors raised by a conflict detection step."""

    step: str = "pipeline"

    def __init__(self, message: str, step: Optional[str] = None):
        if step is not None:
            self.step = step
        super().__init__(message)


class WorkspaceSetupError(PipelineError):
    """Creating the workspace or staging the manifest failed."""
    step = "staging_manifest"


class RetrievalError(PipelineError):
    """The retrieval command failed."""
    step = "retrieving"


class ExtractionError(PipelineError):
    """The retrieved archive was missing or could not be extracted."""
    step = "extracting"


class ConversionError(PipelineError):
    """The format conversion command failed."""
    step = "converting"


class DiffError(PipelineError):
    """Reading the local or converted tree failed while comparing."""
    step = "diffing"


class CleanupError(PipelineError):
    """Removing the workspace failed. Reported, never fatal to the result."""
    step = "cleaning_up"

    def __init__(self, message: str, path: Path | str | None = None, step: Optional[str] = None):
        self.path = Path(path) if path is not None else None
        super().__init__(message, step=step)


class PipelineCancelled(ShadowDiffError):
    """Control-flow signal: the run's cancellation token fired.

    Not an error for reporting purposes; the pipeline turns it into the
    CANCELLED outcome after cleanup.
    """

    def __init__(self, message: str = "Operation cancelled", step: Optional[str] = None):
        self.step = step
        super().__init__(message)
