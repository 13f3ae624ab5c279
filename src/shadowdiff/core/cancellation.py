# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.06
# License: (c) HRDAG, 2026, GPL-2 or newer
#
# ------
# src/shadowdiff/core/cancellation.py

"""
Cooperative cancellation for one conflict detection run.

A CancellationToken is created by the caller and handed explicitly to every
step that can suspend. It moves from active to cancelled exactly once.
cancel() must be called from the event loop thread (e.g. from a handler
installed with loop.add_signal_handler); worker threads may only read
is_cancelled.
"""

import asyncio
from typing import Optional

import loguru

from shadowdiff.system.exceptions import PipelineCancelled

logger = loguru.logger


class CancellationToken:
    """Single-shot cancellation flag shared by the steps of one run."""

    def __init__(self) -> None:
        self._cancelled = False
        self._reason: Optional[str] = None
        self._event = asyncio.Event()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "cancelled by caller") -> bool:
        """Fire the token. Returns False if it had already fired."""
        if self._cancelled:
            return False
        self._cancelled = True
        self._reason = reason
        self._event.set()
        logger.info(f"Cancellation requested: {reason}")
        return True

    async def wait(self) -> None:
        """Suspend until the token fires."""
        await self._event.wait()

    def raise_if_cancelled(self, step: Optional[str] = None) -> None:
        if self._cancelled:
            raise PipelineCancelled(f"Cancelled: {self._reason}", step=step)

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "active"
        return f"<CancellationToken {state}>"
