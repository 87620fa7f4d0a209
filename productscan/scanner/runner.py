"""
==============================================================================
Scan Runner Module
==============================================================================

Scheduler that drives a ScanSession on a fixed cadence.

Ticks run on worker threads so OpenCV and zbar never block the event
loop. At most one tick is in flight; a cadence slot that finds the
previous tick still running is skipped.

==============================================================================
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

from .session import ScanOutcome, ScanSession


# Module logger
logger = logging.getLogger(__name__)


class ScanRunner:
    """
    Drives scan sessions until they resolve.

    Example:
        >>> runner = ScanRunner(interval=0.5)
        >>> outcome = await runner.run(session)
    """

    def __init__(self, interval: float = 0.5) -> None:
        """
        Initialize runner.

        Args:
            interval: Seconds between ticks
        """
        if interval <= 0:
            raise ValueError("Scan interval must be positive")
        self._interval = interval
        self.skipped_slots = 0

    @property
    def interval(self) -> float:
        """Seconds between ticks."""
        return self._interval

    async def run(
        self,
        session: ScanSession,
        timeout: Optional[float] = None
    ) -> ScanOutcome:
        """
        Start a session and tick it until it resolves.

        Args:
            session: Session in IDLE state
            timeout: Abandon the session after this many seconds

        Returns:
            The session outcome

        If the awaiting task is cancelled, the session is cancelled and
        its device released before CancelledError propagates.
        """
        loop = asyncio.get_running_loop()
        resolved: asyncio.Future = loop.create_future()

        def _set_outcome(outcome: ScanOutcome) -> None:
            if not resolved.done():
                resolved.set_result(outcome)

        def _notify(outcome: ScanOutcome) -> None:
            if loop.is_closed():
                logger.debug(f"Session {session.session_id} resolved after its loop closed")
                return
            loop.call_soon_threadsafe(_set_outcome, outcome)

        session.add_done_callback(_notify)

        start_task: Optional[asyncio.Future] = None
        tick_task: Optional[asyncio.Future] = None
        deadline = loop.time() + timeout if timeout is not None else None

        try:
            start_task = asyncio.ensure_future(asyncio.to_thread(session.start))
            start_task.add_done_callback(self._log_worker_error)
            await asyncio.shield(start_task)

            while not resolved.done():
                if deadline is not None and loop.time() >= deadline:
                    logger.info(f"⏱️ Session {session.session_id} timed out after {timeout}s")
                    session.abandon("timeout")
                elif tick_task is None or tick_task.done():
                    tick_task = asyncio.ensure_future(asyncio.to_thread(session.tick))
                    tick_task.add_done_callback(self._log_worker_error)
                else:
                    self.skipped_slots += 1
                    logger.debug(f"Session {session.session_id}: slot skipped, tick in flight")

                try:
                    await asyncio.wait_for(asyncio.shield(resolved), timeout=self._interval)
                except asyncio.TimeoutError:
                    pass

            return resolved.result()

        finally:
            if not session.done:
                session.cancel()
            await self._wait_released(session, resolved, start_task, tick_task)

    def run_blocking(
        self,
        session: ScanSession,
        timeout: Optional[float] = None
    ) -> ScanOutcome:
        """
        Start a session and tick it inline until it resolves.

        Ticks never overlap here, so nothing is skipped.
        """
        deadline = time.monotonic() + timeout if timeout is not None else None

        try:
            session.start()

            while not session.done:
                if deadline is not None and time.monotonic() >= deadline:
                    session.abandon("timeout")
                    break
                if session.tick() is not None:
                    break
                time.sleep(self._interval)

            return session.outcome

        finally:
            if not session.done:
                session.cancel()

    @staticmethod
    async def _wait_released(
        session: ScanSession,
        resolved: asyncio.Future,
        *workers: Optional[asyncio.Future]
    ) -> None:
        """
        Wait until the session has resolved and no worker thread still
        touches its device.

        A cancellation that arrives while waiting is re-raised once the
        device is free.
        """
        interrupted = False

        while True:
            pending = {f for f in (resolved, *workers) if f is not None and not f.done()}
            if not pending:
                break
            try:
                await asyncio.wait(pending)
            except asyncio.CancelledError:
                interrupted = True
                logger.debug(f"Session {session.session_id}: still releasing device")

        if interrupted:
            raise asyncio.CancelledError

    @staticmethod
    def _log_worker_error(task: asyncio.Future) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Scan worker raised: {error!r}")
