"""
==============================================================================
Scan Service Module
==============================================================================

Coordinates scan sessions across the process.

This module implements:
- ScanService: Session factory and per-device registry
- Device exclusivity: one active session per camera index
- Direct payload decoding outside a session

Device Ownership:
----------------
A new camera scan on a device that is still held force-cancels the
previous session and waits until it has released the camera before
opening it again.

==============================================================================
"""

from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import Dict, List, Optional, Tuple

from productscan.catalog.models import ProductRecord
from productscan.codec import PayloadCodec
from productscan.config import Settings, get_settings
from productscan.scanner import (
    FrameSource,
    OpenCVFrameSource,
    PyzbarLocator,
    ScanOutcome,
    ScanPolicy,
    ScanRunner,
    ScanSession,
)


# Module logger
logger = logging.getLogger(__name__)


class ScanService:
    """
    Service for creating and running scan sessions.

    Example:
        >>> service = ScanService()
        >>> outcome = await service.camera_scan(camera_index=0, timeout=30)
        >>> if outcome.succeeded:
        ...     print(outcome.record.name)
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        """
        Initialize scan service.

        Args:
            settings: Application settings (global settings if None)
        """
        self._settings = settings or get_settings()
        self._codec = PayloadCodec()
        self._runner = ScanRunner(self._settings.scan_interval_seconds)
        self._active: Dict[int, Tuple[ScanSession, asyncio.Task]] = {}
        self._lock: Optional[asyncio.Lock] = None

    @property
    def runner(self) -> ScanRunner:
        """Runner used for every session."""
        return self._runner

    @property
    def policy(self) -> ScanPolicy:
        """Policy applied to new sessions."""
        return ScanPolicy.from_settings(self._settings)

    # =========================================================================
    # SESSIONS
    # =========================================================================

    def create_session(self, source: FrameSource) -> ScanSession:
        """Create a session wired with the configured locator and policy."""
        return ScanSession(
            source,
            locator=PyzbarLocator(self._settings.symbology_list),
            codec=self._codec,
            policy=self.policy,
        )

    async def run_session(
        self,
        session: ScanSession,
        timeout: Optional[float] = None
    ) -> ScanOutcome:
        """Run a session that does not hold a local camera."""
        return await self._runner.run(session, timeout=timeout)

    async def camera_scan(
        self,
        camera_index: Optional[int] = None,
        timeout: Optional[float] = None,
        source: Optional[FrameSource] = None
    ) -> ScanOutcome:
        """
        Scan with a local camera until one product is identified.

        Args:
            camera_index: Camera device index (settings default if None)
            timeout: Abandon the session after this many seconds
            source: Frame source override (OpenCV camera if None)

        Returns:
            Session outcome
        """
        index = self._settings.camera_index if camera_index is None else camera_index
        source = source or OpenCVFrameSource(index, self._settings.max_missed_reads)
        session = self.create_session(source)

        async with self._device_lock():
            await self._release_device(index)
            task = asyncio.create_task(self._runner.run(session, timeout=timeout))
            self._active[index] = (session, task)
            logger.info(f"📷 Camera {index} assigned to session {session.session_id}")

        try:
            return await task
        finally:
            entry = self._active.get(index)
            if entry is not None and entry[0] is session:
                del self._active[index]

    async def _release_device(self, index: int) -> None:
        """Cancel the session holding a device and wait for it to let go."""
        entry = self._active.get(index)
        if entry is None:
            return

        session, task = entry
        if not session.done:
            logger.warning(
                f"⚠️ Force-releasing camera {index} held by session {session.session_id}"
            )
            session.cancel()

        await asyncio.wait({task})

    def _device_lock(self) -> asyncio.Lock:
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    def active_devices(self) -> List[int]:
        """Camera indexes currently held by a session."""
        return [index for index, (session, _) in self._active.items() if not session.done]

    async def shutdown(self) -> None:
        """Cancel every active session and wait for devices to be released."""
        entries = list(self._active.values())
        for session, _ in entries:
            session.cancel()
        if entries:
            await asyncio.wait({task for _, task in entries})
            logger.info(f"🛑 Released {len(entries)} camera sessions")

    # =========================================================================
    # DIRECT DECODING
    # =========================================================================

    def decode_payload(self, payload: str) -> ProductRecord:
        """
        Decode a payload entered outside a scan session.

        Raises:
            MalformedPayloadError: Propagated to the caller
        """
        return self._codec.decode(payload)


# =============================================================================
# SINGLETON INSTANCE MANAGEMENT
# =============================================================================

@lru_cache(maxsize=1)
def get_scan_service() -> ScanService:
    """Get the global ScanService instance."""
    return ScanService()
