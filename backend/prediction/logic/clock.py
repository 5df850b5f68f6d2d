"""
One-shot round expiry timer.

A RoundClock is armed once per round, when the first participant is admitted.
It fires its callback at most once per start() and reports the whole seconds
left until the deadline. Negative durations clamp to zero (immediate expiry).
"""

from __future__ import annotations

import asyncio
import math
import time
from typing import TYPE_CHECKING

import structlog

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


class RoundClock:
    """Asyncio-task backed expiry timer for a single round."""

    def __init__(self, monotonic: Callable[[], float] = time.monotonic) -> None:
        self._monotonic = monotonic
        self._task: asyncio.Task[None] | None = None
        self._deadline: float | None = None
        self._fired = False

    @property
    def started(self) -> bool:
        return self._deadline is not None

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, duration_seconds: float, on_expire: Callable[[], Awaitable[None]]) -> None:
        """Arm the timer. Re-arming cancels the previous pending callback."""
        self.cancel()
        duration = max(0.0, duration_seconds)
        self._fired = False
        self._deadline = self._monotonic() + duration
        self._task = asyncio.create_task(self._run(duration, on_expire))

    def cancel(self) -> None:
        """Disarm the timer if it has not fired yet."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def time_remaining(self, now: float | None = None) -> int:
        """Whole seconds until the deadline; 0 if never started or already fired."""
        if self._deadline is None or self._fired:
            return 0
        if now is None:
            now = self._monotonic()
        return max(0, math.floor(self._deadline - now))

    async def _run(self, seconds: float, on_expire: Callable[[], Awaitable[None]]) -> None:
        try:
            await asyncio.sleep(seconds)
            if self._fired:
                return
            self._fired = True
            await on_expire()
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception("round clock callback failed")
