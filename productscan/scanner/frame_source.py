"""
==============================================================================
Frame Source Module
==============================================================================

Camera abstractions used by scan sessions.

Contract:
--------
- open() → handle, or raises DeviceUnavailableError
- current_frame(handle) → numpy array, or None when no frame is ready;
  raises DeviceUnavailableError when the device is lost
- close(handle) → releases the device; safe to call more than once

Implementations:
---------------
- OpenCVFrameSource: Local camera via cv2.VideoCapture
- PushFrameSource: Frames pushed by a remote client (WebSocket)

==============================================================================
"""

from __future__ import annotations

import base64
import binascii
import logging
import threading
from typing import Any, Optional, Protocol

import cv2
import numpy as np

from productscan.core.exceptions import DeviceUnavailableError


# Module logger
logger = logging.getLogger(__name__)


class FrameSource(Protocol):
    """Anything that can supply pixel buffers to a scan session."""

    def open(self) -> Any:
        ...

    def current_frame(self, handle: Any) -> Optional[np.ndarray]:
        ...

    def close(self, handle: Any) -> None:
        ...


class OpenCVFrameSource:
    """
    Local camera frame source.

    A failed read is treated as "no frame yet". Only a run of
    ``max_missed_reads`` consecutive failures, or the capture reporting
    itself closed, counts as a lost device.

    Example:
        >>> source = OpenCVFrameSource(camera_index=0)
        >>> cap = source.open()
        >>> frame = source.current_frame(cap)
        >>> source.close(cap)
    """

    def __init__(self, camera_index: int = 0, max_missed_reads: int = 30) -> None:
        """
        Initialize frame source.

        Args:
            camera_index: Camera device index (0 = default)
            max_missed_reads: Consecutive failed reads treated as device loss
        """
        self._camera_index = camera_index
        self._max_missed_reads = max_missed_reads
        self._missed_reads = 0

    @property
    def camera_index(self) -> int:
        """Camera device index."""
        return self._camera_index

    def open(self) -> cv2.VideoCapture:
        """
        Open the camera.

        Raises:
            DeviceUnavailableError: If the device cannot be opened
        """
        cap = cv2.VideoCapture(self._camera_index)

        if not cap.isOpened():
            cap.release()
            logger.error(f"Cannot open camera {self._camera_index}")
            raise DeviceUnavailableError(
                f"Cannot open camera {self._camera_index}",
                device=self._camera_index
            )

        self._missed_reads = 0
        logger.info(f"📷 Camera {self._camera_index} opened")
        return cap

    def current_frame(self, handle: cv2.VideoCapture) -> Optional[np.ndarray]:
        """
        Read the current frame.

        Returns:
            BGR frame, or None if no frame was ready

        Raises:
            DeviceUnavailableError: If the camera was lost
        """
        if handle is None or not handle.isOpened():
            raise DeviceUnavailableError(
                f"Camera {self._camera_index} is no longer open",
                device=self._camera_index
            )

        ret, frame = handle.read()

        if not ret or frame is None:
            self._missed_reads += 1
            if self._missed_reads >= self._max_missed_reads:
                raise DeviceUnavailableError(
                    f"Camera {self._camera_index} stopped delivering frames",
                    device=self._camera_index
                )
            return None

        self._missed_reads = 0
        return frame

    def close(self, handle: Optional[cv2.VideoCapture]) -> None:
        """Release the camera."""
        if handle is not None:
            handle.release()
            logger.debug(f"Camera {self._camera_index} released")


class PushFrameSource:
    """
    Frame source fed by a remote client.

    Holds a single pending frame. A newer frame replaces an unread one,
    so a slow decoder only ever sees the latest picture.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: Optional[np.ndarray] = None
        self._opened = False
        self._lost = False
        self._dropped = 0

    @property
    def dropped_frames(self) -> int:
        """Frames replaced before they were read."""
        return self._dropped

    def open(self) -> "PushFrameSource":
        """Mark the source as open; the client is the camera."""
        with self._lock:
            if self._lost:
                raise DeviceUnavailableError("Client frame stream is closed")
            self._opened = True
        return self

    def push(self, frame: np.ndarray) -> None:
        """Replace the pending frame."""
        with self._lock:
            if self._pending is not None:
                self._dropped += 1
            self._pending = frame

    def push_encoded(self, data: str) -> bool:
        """
        Decode a base64 JPEG/PNG and push it.

        Returns:
            True if the image decoded into a frame
        """
        try:
            img_data = base64.b64decode(data)
        except (binascii.Error, ValueError, TypeError):
            logger.debug("Discarding frame with invalid base64")
            return False

        nparr = np.frombuffer(img_data, np.uint8)
        frame = cv2.imdecode(nparr, cv2.IMREAD_COLOR) if nparr.size else None

        if frame is None:
            logger.debug("Discarding frame that OpenCV could not decode")
            return False

        self.push(frame)
        return True

    def mark_lost(self) -> None:
        """Signal that the client stream ended."""
        with self._lock:
            self._lost = True
            self._pending = None

    def current_frame(self, handle: Any) -> Optional[np.ndarray]:
        """Hand out the pending frame once."""
        with self._lock:
            if self._lost or not self._opened:
                raise DeviceUnavailableError("Client frame stream is closed")
            frame, self._pending = self._pending, None
            return frame

    def close(self, handle: Any) -> None:
        """Stop accepting frames."""
        with self._lock:
            self._opened = False
            self._pending = None
