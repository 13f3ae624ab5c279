# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.06
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ------
# src/shadowdiff/core/__init__.py

"""Conflict detection core: differ, command runner, pipeline."""

from .cancellation import CancellationToken
from .differ import DiffStatus, DirectoryDiffResult, TreeDiffer, diff_directories
from .pipeline import (
    ConflictDetectionPipeline, DetectionOutcome, DetectionRequest,
    PipelineState, PipelineWorkspace
)
from .runner import CommandExecutionResult, CommandRunner
