# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.07
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ------
# src/shadowdiff/core/sinks.py

"""
Progress and log sinks.

A sink receives streamed command output and high-level status events for a
run. Nothing in the diff result depends on a sink; they exist for the user.
"""

from enum import Enum
from typing import Protocol

import loguru
from rich.console import Console
from rich.markup import escape

from shadowdiff.core.commands import Command

logger = loguru.logger


class RunEvent(str, Enum):
    STARTED = "started"
    STEP = "step"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"
    CLEANUP_FAILED = "cleanup_failed"


class ProgressSink(Protocol):
    """Receives run status and command output."""

    def run_event(self, event: RunEvent, message: str) -> None:
        ...

    def command_output(self, command: Command, stream: str, line: str) -> None:
        ...


class LoggingSink:
    """Forward everything to loguru."""

    def run_event(self, event: RunEvent, message: str) -> None:
        if event in (RunEvent.FAILED, RunEvent.CLEANUP_FAILED):
            logger.error(message)
        elif event == RunEvent.CANCELLED:
            logger.warning(message)
        else:
            logger.info(message)

    def command_output(self, command: Command, stream: str, line: str) -> None:
        logger.bind(command_output=True).debug(f"[{command.log_name}:{stream}] {line}")


class ConsoleSink(LoggingSink):
    """Print run progress to a rich console, and log like LoggingSink."""

    _STYLES = {
        RunEvent.STARTED: "[cyan]→[/cyan]",
        RunEvent.STEP: "[dim]•[/dim]",
        RunEvent.SUCCEEDED: "[green]✓[/green]",
        RunEvent.FAILED: "[red]✗[/red]",
        RunEvent.CANCELLED: "[yellow]![/yellow]",
        RunEvent.CLEANUP_FAILED: "[yellow]⚠[/yellow]",
    }

    def __init__(self, console: Console, verbose: bool = False, quiet: bool = False) -> None:
        self.console = console
        self.verbose = verbose
        self.quiet = quiet

    def run_event(self, event: RunEvent, message: str) -> None:
        super().run_event(event, message)
        if self.quiet and event not in (RunEvent.FAILED, RunEvent.CLEANUP_FAILED):
            return
        if event == RunEvent.STEP and not self.verbose:
            return
        self.console.print(f"{self._STYLES[event]} {escape(message)}")

    def command_output(self, command: Command, stream: str, line: str) -> None:
        super().command_output(command, stream, line)
        if self.verbose and not self.quiet:
            self.console.print(f"[dim]{escape(line)}[/dim]", highlight=False)
