# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.08
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ------
# src/shadowdiff/core/pipeline.py

"""
Conflict detection pipeline.

One run stages the caller's manifest into a workspace under the project,
retrieves the matching remote metadata with an external command, extracts the
retrieved archive, converts it to the local source layout with a second
command, and diffs the result against the local package directory.

The run is a linear state machine. Each non-terminal state has one handler
that does that step's work and returns the next state; the driver loop routes
every failure and every cancellation into CLEANING_UP, so the workspace is
removed on all exits. The workspace survives a run only when removing it
fails, which is reported as a CleanupError alongside the primary outcome.

At most one run may be active per workspace path. This is not enforced.
"""

import asyncio
import os
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Optional, Protocol

import loguru
from pydantic import BaseModel, ConfigDict, Field

from shadowdiff.config.manager import ProjectConfig, WorkspaceSettings
from shadowdiff.core.archive import ArchiveExtractor, ZipArchiveExtractor
from shadowdiff.core.cancellation import CancellationToken
from shadowdiff.core.commands import Command, build_convert_command, build_retrieve_command
from shadowdiff.core.differ import DirectoryDiffResult, DirectoryDiffer, TreeDiffer
from shadowdiff.core.runner import CommandExecutionResult, CommandRunner
from shadowdiff.core.sinks import LoggingSink, ProgressSink, RunEvent
from shadowdiff.system.exceptions import (
    CleanupError, CommandFailedError, ConversionError, DiffError, ExtractionError,
    PipelineCancelled, PipelineError, RetrievalError, ShadowDiffError, WorkspaceSetupError
)

logger = loguru.logger


class PipelineState(str, Enum):
    INIT = "init"
    STAGING_MANIFEST = "staging_manifest"
    RETRIEVING = "retrieving"
    EXTRACTING = "extracting"
    CONVERTING = "converting"
    DIFFING = "diffing"
    CLEANING_UP = "cleaning_up"
    DONE = "done"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({PipelineState.DONE, PipelineState.CANCELLED})

STEP_ERRORS: dict[PipelineState, type[PipelineError]] = {
    PipelineState.INIT: WorkspaceSetupError,
    PipelineState.STAGING_MANIFEST: WorkspaceSetupError,
    PipelineState.RETRIEVING: RetrievalError,
    PipelineState.EXTRACTING: ExtractionError,
    PipelineState.CONVERTING: ConversionError,
    PipelineState.DIFFING: DiffError,
}


class DetectionRequest(BaseModel):
    """Immutable input to one pipeline run."""
    model_config = ConfigDict(frozen=True)

    target_identifier: str = Field(min_length=1)
    local_package_dir: Path
    manifest_path: Path


@dataclass(frozen=True)
class PipelineWorkspace:
    """Paths inside the temporary workspace of one run."""
    root: Path
    manifest: Path
    archive: Path
    raw_dir: Path
    converted_dir: Path

    @classmethod
    def for_project(cls, project_root: Path, settings: WorkspaceSettings) -> "PipelineWorkspace":
        root = project_root / settings.path
        return cls(
            root=root,
            manifest=root / settings.manifest_name,
            archive=root / settings.archive_name,
            raw_dir=root / settings.raw_dir,
            converted_dir=root / settings.converted_dir,
        )


@dataclass(frozen=True)
class DetectionOutcome:
    """Result of a run that reached DONE or CANCELLED."""
    state: PipelineState
    workspace: Path
    transitions: tuple[PipelineState, ...]
    diff: Optional[DirectoryDiffResult] = None
    cleanup_error: Optional[CleanupError] = None

    @property
    def cancelled(self) -> bool:
        return self.state is PipelineState.CANCELLED


class CommandExecutor(Protocol):
    async def execute(
        self,
        command: Command,
        working_dir: Path,
        env_overrides: Optional[dict[str, str]] = None,
        token: Optional[CancellationToken] = None,
    ) -> CommandExecutionResult:
        ...


def _overlaps(a: Path, b: Path) -> bool:
    """True if a and b are the same directory or one contains the other."""
    return a == b or a.is_relative_to(b) or b.is_relative_to(a)


@dataclass
class _RunContext:
    request: DetectionRequest
    token: CancellationToken
    workspace: PipelineWorkspace
    manifest_path: Path
    local_dir: Path
    transitions: list[PipelineState] = field(default_factory=list)
    workspace_created: bool = False
    diff: Optional[DirectoryDiffResult] = None
    failure: Optional[BaseException] = None
    cancelled: bool = False
    task_cancelled: bool = False
    cleanup_error: Optional[CleanupError] = None


class ConflictDetectionPipeline:
    """Detect divergence between a local package directory and a remote environment.

    Args:
        project_root: directory the workspace and relative paths are based on
        settings: project settings (workspace layout, commands, differ options)
        runner: executes the retrieval and conversion commands
        differ: compares the local tree with the converted remote tree
        extractor: decodes the retrieved archive
        sink: receives status events (and command output via the default runner)
    """

    def __init__(
        self,
        project_root: Path,
        settings: Optional[ProjectConfig] = None,
        runner: Optional[CommandExecutor] = None,
        differ: Optional[DirectoryDiffer] = None,
        extractor: Optional[ArchiveExtractor] = None,
        sink: Optional[ProgressSink] = None,
    ) -> None:
        self.project_root = Path(project_root)
        self.settings = settings or ProjectConfig()
        self.sink = sink or LoggingSink()
        self.runner = runner or CommandRunner(self.sink, self.settings.commands.terminate_timeout)
        self.differ = differ or TreeDiffer(fold_case=self.settings.diff.fold_case)
        self.extractor = extractor or ZipArchiveExtractor()
        self._handlers: dict[PipelineState, Callable[[_RunContext], Awaitable[PipelineState]]] = {
            PipelineState.INIT: self._init,
            PipelineState.STAGING_MANIFEST: self._stage_manifest,
            PipelineState.RETRIEVING: self._retrieve,
            PipelineState.EXTRACTING: self._extract,
            PipelineState.CONVERTING: self._convert,
            PipelineState.DIFFING: self._diff,
            PipelineState.CLEANING_UP: self._cleanup,
        }

    @property
    def workspace(self) -> PipelineWorkspace:
        return PipelineWorkspace.for_project(self.project_root, self.settings.workspace)

    def _resolve(self, path: Path) -> Path:
        return path if path.is_absolute() else self.project_root / path

    async def run(self, request: DetectionRequest, token: Optional[CancellationToken] = None) -> DetectionOutcome:
        """Run one conflict check.

        Returns:
            DetectionOutcome in state DONE (with a diff) or CANCELLED.

        Raises:
            WorkspaceSetupError, RetrievalError, ExtractionError,
            ConversionError, DiffError, PathNotFoundError: the step that
                failed, with the underlying exception as __cause__. When
                cleanup also failed, the CleanupError is on .cleanup_error.
        """
        ctx = _RunContext(
            request=request,
            token=token or CancellationToken(),
            workspace=self.workspace,
            manifest_path=self._resolve(request.manifest_path),
            local_dir=self._resolve(request.local_package_dir),
        )
        self.sink.run_event(
            RunEvent.STARTED,
            f"Checking {ctx.local_dir} for conflicts with {request.target_identifier}"
        )

        state = PipelineState.INIT
        while state not in TERMINAL_STATES:
            ctx.transitions.append(state)
            state = await self._advance(state, ctx)
        ctx.transitions.append(state)

        return DetectionOutcome(
            state=state,
            workspace=ctx.workspace.root,
            transitions=tuple(ctx.transitions),
            diff=ctx.diff if state is PipelineState.DONE else None,
            cleanup_error=ctx.cleanup_error,
        )

    async def _advance(self, state: PipelineState, ctx: _RunContext) -> PipelineState:
        handler = self._handlers[state]
        if state is PipelineState.CLEANING_UP:
            return await handler(ctx)

        try:
            if state is not PipelineState.INIT:
                ctx.token.raise_if_cancelled(state.value)
            return await handler(ctx)
        except PipelineCancelled:
            logger.info(f"Conflict check cancelled during {state.value}")
            ctx.cancelled = True
        except asyncio.CancelledError:
            logger.info(f"Conflict check task cancelled during {state.value}")
            ctx.token.cancel("task cancelled")
            ctx.cancelled = True
            ctx.task_cancelled = True
        except ShadowDiffError as e:
            self._record_failure(ctx, state, e)
        except Exception as e:
            # Untyped failures (OSError, ValueError, ...) still report the step
            wrapped = STEP_ERRORS[state](f"Step {state.value} failed: {type(e).__name__}: {e}")
            wrapped.__cause__ = e
            self._record_failure(ctx, state, wrapped)
        return PipelineState.CLEANING_UP

    def _record_failure(self, ctx: _RunContext, state: PipelineState, error: ShadowDiffError) -> None:
        logger.debug(f"Step {state.value} failed: {error!r}")
        ctx.failure = error
        if not ctx.workspace_created:
            self.sink.run_event(RunEvent.FAILED, str(error))
            raise error

    # ---- Steps ----

    async def _init(self, ctx: _RunContext) -> PipelineState:
        manifest = ctx.manifest_path
        if not manifest.is_file():
            raise WorkspaceSetupError(f"Manifest not found: {manifest}")
        if not os.access(manifest, os.R_OK):
            raise WorkspaceSetupError(f"Manifest is not readable: {manifest}")

        # The workspace is deleted wholesale; it must not hold the caller's files
        ws_root = ctx.workspace.root.resolve()
        local_dir = ctx.local_dir.resolve()
        if _overlaps(ws_root, local_dir):
            raise WorkspaceSetupError(
                f"Workspace {ws_root} overlaps the local package directory {local_dir}"
            )
        if manifest.resolve().is_relative_to(ws_root):
            raise WorkspaceSetupError(f"Manifest {manifest} is inside the workspace {ws_root}")
        return PipelineState.STAGING_MANIFEST

    async def _stage_manifest(self, ctx: _RunContext) -> PipelineState:
        ws = ctx.workspace
        self.sink.run_event(RunEvent.STEP, f"Staging manifest in {ws.root}")
        try:
            if ws.root.exists():
                logger.warning(f"Removing stale workspace left by an earlier run: {ws.root}")
                ctx.workspace_created = True
                await asyncio.to_thread(shutil.rmtree, ws.root)
            ws.root.mkdir(parents=True)
            ctx.workspace_created = True
            await asyncio.to_thread(shutil.copyfile, ctx.manifest_path, ws.manifest)
        except OSError as e:
            raise WorkspaceSetupError(f"Could not stage manifest in {ws.root}: {e}") from e
        ctx.token.raise_if_cancelled(PipelineState.STAGING_MANIFEST.value)
        return PipelineState.RETRIEVING

    async def _retrieve(self, ctx: _RunContext) -> PipelineState:
        command = build_retrieve_command(self.settings, ctx.request.target_identifier)
        await self._run_command(command, ctx, RetrievalError)
        return PipelineState.EXTRACTING

    async def _extract(self, ctx: _RunContext) -> PipelineState:
        ws = ctx.workspace
        self.sink.run_event(RunEvent.STEP, f"Extracting {ws.archive.name}")
        if not ws.archive.is_file():
            raise ExtractionError(f"Retrieved archive not found: {ws.archive}")
        try:
            await asyncio.to_thread(self.extractor.extract, ws.archive, ws.root, ctx.token)
        except PipelineCancelled:
            raise
        except Exception as e:
            raise ExtractionError(f"Could not extract {ws.archive}: {e}") from e
        if not ws.raw_dir.is_dir():
            raise ExtractionError(f"Archive {ws.archive.name} did not contain {ws.raw_dir.name}/")
        ctx.token.raise_if_cancelled(PipelineState.EXTRACTING.value)
        return PipelineState.CONVERTING

    async def _convert(self, ctx: _RunContext) -> PipelineState:
        command = build_convert_command(self.settings)
        await self._run_command(command, ctx, ConversionError)
        return PipelineState.DIFFING

    async def _diff(self, ctx: _RunContext) -> PipelineState:
        self.sink.run_event(RunEvent.STEP, "Comparing local and remote trees")
        try:
            ctx.diff = await asyncio.to_thread(self.differ.diff, ctx.local_dir, ctx.workspace.converted_dir)
        except OSError as e:
            raise DiffError(f"Could not compare {ctx.local_dir} with {ctx.workspace.converted_dir}: {e}") from e
        ctx.token.raise_if_cancelled(PipelineState.DIFFING.value)
        return PipelineState.CLEANING_UP

    async def _cleanup(self, ctx: _RunContext) -> PipelineState:
        ws = ctx.workspace
        if ctx.workspace_created and ws.root.exists():
            try:
                await asyncio.to_thread(shutil.rmtree, ws.root)
                logger.debug(f"Removed workspace {ws.root}")
            except OSError as e:
                # Failed cleanup should not overturn the primary outcome
                ctx.cleanup_error = CleanupError(f"Failed to remove workspace {ws.root}: {e}", path=ws.root)
                ctx.cleanup_error.__cause__ = e
                self.sink.run_event(RunEvent.CLEANUP_FAILED, str(ctx.cleanup_error))

        if ctx.failure is not None:
            if ctx.cleanup_error is not None:
                ctx.failure.cleanup_error = ctx.cleanup_error
            self.sink.run_event(RunEvent.FAILED, str(ctx.failure))
            raise ctx.failure

        if ctx.cancelled:
            self.sink.run_event(RunEvent.CANCELLED, "Conflict check cancelled")
            if ctx.task_cancelled:
                raise asyncio.CancelledError()
            return PipelineState.CANCELLED

        counts = ctx.diff.counts() if ctx.diff is not None else {}
        self.sink.run_event(
            RunEvent.SUCCEEDED,
            f"Conflict check complete: {counts.get('different', 0)} different, "
            f"{counts.get('remote_only', 0)} remote only, {counts.get('local_only', 0)} local only"
        )
        return PipelineState.DONE

    async def _run_command(
        self,
        command: Command,
        ctx: _RunContext,
        error_cls: type[PipelineError],
    ) -> CommandExecutionResult:
        self.sink.run_event(RunEvent.STEP, command.description)
        try:
            result = await self.runner.execute(
                command,
                self.project_root,
                self.settings.commands.env,
                ctx.token,
            )
        except CommandFailedError as e:
            raise error_cls(f"{command.description} failed: {e}") from e
        if result.cancelled:
            raise PipelineCancelled(f"{command.log_name} cancelled", step=error_cls.step)
        return result
