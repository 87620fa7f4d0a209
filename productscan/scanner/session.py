"""
==============================================================================
Scan Session Module
==============================================================================

Tick-driven state machine that turns camera frames into exactly one
product record.

States:
-------
    IDLE → ACQUIRING → {DECODING ⇄ ACQUIRING} → SUCCEEDED | FAILED | CANCELLED

Each tick does bounded work: one frame read, one locate attempt and at
most one payload decode. Misses and malformed payloads keep the session
scanning; only a lost device, an abandon signal or a configured policy
limit fail it.

Guarantees:
----------
- The session resolves once and delivers at most one record
- The device handle is closed on every exit path
- A tick that arrives while another is in flight is skipped, not queued
- Cancellation wins over a success found in the same tick

Usage:
------
    session = ScanSession(OpenCVFrameSource(0), PyzbarLocator(["QRCODE"]))
    session.start()
    while not session.done:
        session.tick()
        time.sleep(0.5)
    print(session.outcome)

==============================================================================
"""

from __future__ import annotations

import enum
import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

from productscan.catalog.models import ProductRecord
from productscan.codec import PayloadCodec
from productscan.config import Settings
from productscan.core.exceptions import (
    AppException,
    DeviceUnavailableError,
    MalformedPayloadError,
    ScanAbandonedError,
    ScanLimitExceededError,
    internal_error,
)

from .frame_source import FrameSource
from .locator import Locator, PyzbarLocator


# Module logger
logger = logging.getLogger(__name__)


class ScanState(str, enum.Enum):
    """Lifecycle states of a scan session."""

    IDLE = "idle"
    ACQUIRING = "acquiring"
    DECODING = "decoding"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Check if no further transitions are possible."""
        return self in (ScanState.SUCCEEDED, ScanState.FAILED, ScanState.CANCELLED)


@dataclass(frozen=True)
class ScanOutcome:
    """Terminal result of a scan session."""

    state: ScanState
    record: Optional[ProductRecord] = None
    error: Optional[AppException] = None
    ticks: int = 0
    malformed_reads: int = 0

    @property
    def succeeded(self) -> bool:
        return self.state is ScanState.SUCCEEDED

    @property
    def cancelled(self) -> bool:
        return self.state is ScanState.CANCELLED

    @property
    def failed(self) -> bool:
        return self.state is ScanState.FAILED


@dataclass(frozen=True)
class ScanPolicy:
    """
    Upper bounds for a session.

    None means unbounded: the session keeps scanning until it succeeds,
    is cancelled or the device fails.
    """

    max_ticks: Optional[int] = None
    max_malformed: Optional[int] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "ScanPolicy":
        return cls(
            max_ticks=settings.scan_max_ticks,
            max_malformed=settings.scan_max_malformed,
        )


_Settled = Tuple[ScanOutcome, Any, bool, List[Callable[[ScanOutcome], None]]]


class ScanSession:
    """
    Single-use camera scan session.

    The session owns the frame source handle from start() until it
    resolves. Ticks are driven by an external scheduler (see ScanRunner);
    cancel() and abandon() may be called from any thread.

    Attributes:
        session_id: Identifier used in logs
        ticks: Ticks that performed work
        skipped_ticks: Ticks dropped because another was in flight
        frames_read: Frames handed to the locator
        malformed_reads: Located codes that failed payload decoding
    """

    def __init__(
        self,
        source: FrameSource,
        locator: Optional[Locator] = None,
        codec: Optional[PayloadCodec] = None,
        policy: Optional[ScanPolicy] = None,
        session_id: Optional[str] = None
    ) -> None:
        self.session_id = session_id or uuid.uuid4().hex[:8]
        self._source = source
        self._locator = locator or PyzbarLocator(["QRCODE"])
        self._codec = codec or PayloadCodec()
        self._policy = policy or ScanPolicy()

        self._lock = threading.RLock()
        self._busy = threading.Lock()
        self._state = ScanState.IDLE
        self._handle: Any = None
        self._handle_open = False
        self._signal: Optional[Tuple[ScanState, Optional[AppException]]] = None
        self._outcome: Optional[ScanOutcome] = None
        self._callbacks: List[Callable[[ScanOutcome], None]] = []

        self.ticks = 0
        self.skipped_ticks = 0
        self.frames_read = 0
        self.malformed_reads = 0

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def state(self) -> ScanState:
        """Current state."""
        return self._state

    @property
    def outcome(self) -> Optional[ScanOutcome]:
        """Terminal outcome, once resolved."""
        return self._outcome

    @property
    def done(self) -> bool:
        """Check if the session has resolved."""
        return self._outcome is not None

    def add_done_callback(self, callback: Callable[[ScanOutcome], None]) -> None:
        """
        Register a callback invoked once with the outcome.

        Called immediately if the session already resolved.
        """
        with self._lock:
            if self._outcome is None:
                self._callbacks.append(callback)
                return
            outcome = self._outcome
        callback(outcome)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> Optional[ScanOutcome]:
        """
        Acquire the camera.

        Returns:
            The outcome if the session resolved during start, else None

        Raises:
            RuntimeError: If the session was already started
        """
        with self._lock:
            if self._outcome is not None:
                return self._outcome
            if self._state is not ScanState.IDLE:
                raise RuntimeError(f"Session {self.session_id} already started")
            self._state = ScanState.ACQUIRING

        logger.info(f"🚀 Scan session {self.session_id} acquiring device")

        try:
            handle = self._source.open()
        except DeviceUnavailableError as e:
            logger.error(f"❌ Session {self.session_id}: {e.message}")
            return self._resolve(ScanState.FAILED, error=e)

        with self._lock:
            if self._outcome is None:
                self._handle = handle
                self._handle_open = True
                return None

        # Resolved (cancelled) while the device was opening
        self._release(handle)
        return self._outcome

    def tick(self) -> Optional[ScanOutcome]:
        """
        Run one sample/locate/decode cycle.

        Returns:
            The outcome once resolved, else None
        """
        if self._outcome is not None:
            return self._outcome

        if self._state is ScanState.IDLE:
            raise RuntimeError(f"Session {self.session_id} ticked before start()")

        if not self._busy.acquire(blocking=False):
            with self._lock:
                self.skipped_ticks += 1
            logger.debug(f"Session {self.session_id}: tick skipped, previous still running")
            return None

        try:
            return self._cycle()
        except Exception:
            logger.exception(f"Session {self.session_id}: unexpected error during tick")
            self._resolve(ScanState.FAILED, error=internal_error("Scan cycle failed"))
            raise
        finally:
            self._busy.release()
            self._apply_signal()

    def cancel(self) -> Optional[ScanOutcome]:
        """
        Request cancellation.

        Resolves immediately when no tick is in flight; otherwise the
        in-flight tick resolves the session when it finishes.
        """
        return self._request_signal(ScanState.CANCELLED, None)

    def abandon(self, reason: str = "abandoned") -> Optional[ScanOutcome]:
        """Fail the session on behalf of the caller."""
        return self._request_signal(ScanState.FAILED, ScanAbandonedError(reason))

    def __enter__(self) -> "ScanSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self.done:
            self.cancel()

    # =========================================================================
    # CYCLE
    # =========================================================================

    def _cycle(self) -> Optional[ScanOutcome]:
        if self._signal is not None:
            return self._resolve(*self._signal)

        # Device still opening
        if not self._handle_open:
            return None

        max_ticks = self._policy.max_ticks
        if max_ticks is not None and self.ticks >= max_ticks:
            return self._resolve(ScanState.FAILED, error=ScanLimitExceededError("max_ticks", max_ticks))

        self.ticks += 1

        try:
            frame = self._source.current_frame(self._handle)
        except DeviceUnavailableError as e:
            logger.error(f"❌ Session {self.session_id}: device lost ({e.message})")
            return self._resolve(ScanState.FAILED, error=e)

        if frame is None:
            self._state = ScanState.ACQUIRING
            return None

        self.frames_read += 1
        self._state = ScanState.DECODING

        text = self._locator.locate(frame)
        if text is None:
            self._state = ScanState.ACQUIRING
            return None

        try:
            record = self._codec.decode(text)
        except MalformedPayloadError as e:
            self.malformed_reads += 1
            self._state = ScanState.ACQUIRING
            logger.warning(
                f"Session {self.session_id}: ignoring unreadable code "
                f"({e.reason}), read #{self.malformed_reads}"
            )
            max_malformed = self._policy.max_malformed
            if max_malformed is not None and self.malformed_reads >= max_malformed:
                return self._resolve(
                    ScanState.FAILED,
                    error=ScanLimitExceededError("max_malformed", max_malformed)
                )
            return None

        return self._resolve(ScanState.SUCCEEDED, record=record)

    # =========================================================================
    # RESOLUTION
    # =========================================================================

    def _request_signal(
        self,
        state: ScanState,
        error: Optional[AppException]
    ) -> Optional[ScanOutcome]:
        with self._lock:
            if self._outcome is not None:
                return self._outcome
            if self._signal is None:
                self._signal = (state, error)

        if self._busy.acquire(blocking=False):
            try:
                return self._apply_signal()
            finally:
                self._busy.release()

        logger.debug(f"Session {self.session_id}: {state.value} deferred to in-flight tick")
        return None

    def _apply_signal(self) -> Optional[ScanOutcome]:
        with self._lock:
            if self._outcome is not None or self._signal is None:
                return self._outcome
            settled = self._settle(*self._signal)
        return self._finish(settled)

    def _resolve(
        self,
        state: ScanState,
        error: Optional[AppException] = None,
        record: Optional[ProductRecord] = None
    ) -> ScanOutcome:
        with self._lock:
            # A signal requested during the tick takes precedence
            if self._signal is not None:
                settled = self._settle(*self._signal)
            else:
                settled = self._settle(state, error=error, record=record)
        return self._finish(settled)

    def _settle(
        self,
        state: ScanState,
        error: Optional[AppException] = None,
        record: Optional[ProductRecord] = None
    ) -> Optional[_Settled]:
        """Record the outcome; caller must hold the lock."""
        if self._outcome is not None:
            return None

        self._outcome = ScanOutcome(
            state=state,
            record=record,
            error=error,
            ticks=self.ticks,
            malformed_reads=self.malformed_reads,
        )
        self._state = state

        handle, release = self._handle, self._handle_open
        self._handle, self._handle_open = None, False
        callbacks, self._callbacks = self._callbacks, []

        return self._outcome, handle, release, callbacks

    def _finish(self, settled: Optional[_Settled]) -> ScanOutcome:
        """Release the device and notify, outside the lock."""
        if settled is None:
            return self._outcome

        outcome, handle, release, callbacks = settled

        if release:
            self._release(handle)

        if outcome.succeeded:
            logger.info(f"✅ Session {self.session_id} identified {outcome.record.id} after {outcome.ticks} ticks")
        elif outcome.cancelled:
            logger.info(f"🛑 Session {self.session_id} cancelled")
        else:
            logger.info(f"❌ Session {self.session_id} failed: {outcome.error.code}")

        for callback in callbacks:
            callback(outcome)

        return outcome

    def _release(self, handle: Any) -> None:
        try:
            self._source.close(handle)
        except Exception:
            logger.exception(f"Session {self.session_id}: error releasing device")
