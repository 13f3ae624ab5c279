# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.06
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ------
# src/shadowdiff/core/runner.py

"""
Asynchronous execution of one external command.

The runner streams output to a ProgressSink line by line while capturing it,
and watches a CancellationToken. When the token fires the child's process
group is sent SIGTERM, then SIGKILL after terminate_timeout seconds, and the
call resolves with a cancelled result instead of hanging.
"""

import asyncio
import contextlib
import os
import signal
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

import loguru

from shadowdiff.core.cancellation import CancellationToken
from shadowdiff.core.commands import Command
from shadowdiff.core.sinks import LoggingSink, ProgressSink
from shadowdiff.system.exceptions import CommandFailedError

logger = loguru.logger

STDERR_TAIL_LINES = 20
STREAM_LIMIT = 1024 * 1024


@dataclass(frozen=True)
class CommandExecutionResult:
    """Outcome of one command execution."""
    command: Command
    returncode: Optional[int]
    stdout: str
    stderr: str
    duration: float
    cancelled: bool = False

    @property
    def success(self) -> bool:
        return not self.cancelled and self.returncode == 0

    def stderr_tail(self, lines: int = STDERR_TAIL_LINES) -> str:
        return "\n".join(self.stderr.splitlines()[-lines:])


class CommandRunner:
    """Run external commands without blocking the event loop."""

    def __init__(self, sink: Optional[ProgressSink] = None, terminate_timeout: float = 5.0) -> None:
        self.sink = sink or LoggingSink()
        self.terminate_timeout = terminate_timeout

    async def execute(
        self,
        command: Command,
        working_dir: Path,
        env_overrides: Optional[Mapping[str, str]] = None,
        token: Optional[CancellationToken] = None,
        check: bool = True,
    ) -> CommandExecutionResult:
        """Run command in working_dir with env_overrides applied.

        Raises:
            CommandFailedError: the command could not be started, or exited
                non-zero while check is True. Never raised for cancellation.
        """
        token = token or CancellationToken()
        if token.is_cancelled:
            logger.debug(f"Not starting {command.log_name}: already cancelled")
            return CommandExecutionResult(command, None, "", "", 0.0, cancelled=True)

        env = os.environ.copy()
        env.update(env_overrides or {})

        logger.debug(f"Running {command.to_command()} in {working_dir}")
        start_time = time.monotonic()
        try:
            proc = await asyncio.create_subprocess_exec(
                *command.argv,
                cwd=str(working_dir),
                env=env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=(os.name == "posix"),
                limit=STREAM_LIMIT,
            )
        except OSError as e:
            raise CommandFailedError(
                f"Failed to start {command.argv[0]}: {e}",
                exit_code=127,
                command=command.to_command()
            ) from e

        stdout_lines: list[str] = []
        stderr_lines: list[str] = []
        completion = asyncio.ensure_future(self._run_to_exit(
            proc,
            self._pump(proc.stdout, "stdout", command, stdout_lines),
            self._pump(proc.stderr, "stderr", command, stderr_lines),
        ))
        cancel_wait = asyncio.ensure_future(token.wait())

        cancelled = False
        try:
            done, _ = await asyncio.wait({completion, cancel_wait}, return_when=asyncio.FIRST_COMPLETED)
            if completion in done:
                returncode = completion.result()
            else:
                cancelled = True
                returncode = await self._terminate(proc, completion)
        finally:
            cancel_wait.cancel()
            if proc.returncode is None:
                # The awaiting task itself was cancelled
                self._signal(proc, force=True)
                completion.cancel()

        result = CommandExecutionResult(
            command=command,
            returncode=returncode,
            stdout="\n".join(stdout_lines),
            stderr="\n".join(stderr_lines),
            duration=time.monotonic() - start_time,
            cancelled=cancelled,
        )

        if cancelled:
            logger.warning(f"{command.log_name} cancelled after {result.duration:.2f}s")
            return result

        logger.info(f"{command.log_name} exited with {returncode} in {result.duration:.2f}s")
        if check and returncode != 0:
            raise CommandFailedError(
                f"{command.log_name} failed with exit code {returncode}",
                exit_code=returncode,
                stderr_tail=result.stderr_tail(),
                command=command.to_command()
            )
        return result

    async def _run_to_exit(self, proc: asyncio.subprocess.Process, *pumps) -> int:
        await asyncio.gather(*pumps)
        return await proc.wait()

    async def _pump(self, stream: asyncio.StreamReader, name: str, command: Command, lines: list[str]) -> None:
        """Forward stream to the sink line by line until EOF.

        A line longer than the reader's buffer limit is collected in pieces
        and delivered whole.
        """
        partial = bytearray()
        while True:
            try:
                partial += await stream.readuntil(b"\n")
            except asyncio.LimitOverrunError as e:
                partial += await stream.read(e.consumed)
                continue
            except asyncio.IncompleteReadError as e:
                partial += e.partial
                if partial:
                    self._emit(bytes(partial), name, command, lines)
                break
            self._emit(bytes(partial), name, command, lines)
            partial.clear()

    def _emit(self, raw: bytes, name: str, command: Command, lines: list[str]) -> None:
        line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
        lines.append(line)
        self.sink.command_output(command, name, line)

    async def _terminate(self, proc: asyncio.subprocess.Process, completion: asyncio.Future) -> Optional[int]:
        logger.warning(f"Terminating process {proc.pid}")
        self._signal(proc, force=False)
        try:
            return await asyncio.wait_for(asyncio.shield(completion), timeout=self.terminate_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Process {proc.pid} still running after {self.terminate_timeout}s, killing")

        self._signal(proc, force=True)
        try:
            return await asyncio.wait_for(asyncio.shield(completion), timeout=self.terminate_timeout)
        except asyncio.TimeoutError:
            # A grandchild may still hold the pipes open; the process itself is gone
            completion.cancel()
            return await proc.wait()

    def _signal(self, proc: asyncio.subprocess.Process, force: bool) -> None:
        with contextlib.suppress(ProcessLookupError):
            if os.name == "posix":
                os.killpg(proc.pid, signal.SIGKILL if force else signal.SIGTERM)
            elif force:
                proc.kill()
            else:
                proc.terminate()
