"""
==============================================================================
Optical Code Locator Module
==============================================================================

Finds optical codes in a frame and extracts their raw text.

Features:
---------
- Grayscale conversion with OpenCV before detection
- Symbology filter (QR by default)
- Library errors and unreadable symbols are misses, never exceptions

==============================================================================
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

import cv2
import numpy as np
from pyzbar.pyzbar import ZBarSymbol, decode


# Module logger
logger = logging.getLogger(__name__)


class Locator(Protocol):
    """Extracts candidate payload text from a frame."""

    def locate(self, frame: np.ndarray) -> Optional[str]:
        ...


class PyzbarLocator:
    """
    Optical code locator backed by pyzbar.

    Example:
        >>> locator = PyzbarLocator(["QRCODE"])
        >>> text = locator.locate(frame)
    """

    def __init__(self, symbologies: Optional[Sequence[str]] = None) -> None:
        """
        Initialize locator.

        Args:
            symbologies: pyzbar symbol names (e.g. "QRCODE", "CODE128");
                None means every symbology zbar supports

        Raises:
            ValueError: If a symbology name is unknown
        """
        self._symbols: Optional[List[ZBarSymbol]] = None

        if symbologies:
            try:
                self._symbols = [ZBarSymbol[name.upper()] for name in symbologies]
            except KeyError as e:
                raise ValueError(f"Unknown symbology: {e.args[0]}") from e

        logger.debug(f"Locator created (symbologies={symbologies or 'all'})")

    @staticmethod
    def _prepare(frame: np.ndarray) -> np.ndarray:
        """Convert colour frames to grayscale."""
        if frame.ndim == 3 and frame.shape[2] == 4:
            return cv2.cvtColor(frame, cv2.COLOR_BGRA2GRAY)
        if frame.ndim == 3:
            return cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        return frame

    def locate_all(self, frame: np.ndarray) -> List[str]:
        """
        Find every readable code in a frame.

        Args:
            frame: OpenCV image (numpy array)

        Returns:
            Decoded texts in detection order
        """
        if frame is None or frame.size == 0:
            return []

        try:
            barcodes = decode(self._prepare(frame), symbols=self._symbols)
        except Exception as e:
            logger.error(f"Decode error: {e}")
            return []

        texts = []
        for barcode in barcodes:
            try:
                texts.append(barcode.data.decode("utf-8"))
            except UnicodeDecodeError:
                logger.debug(f"Skipping {barcode.type} symbol with non UTF-8 data")

        return texts

    def locate(self, frame: np.ndarray) -> Optional[str]:
        """
        Find the first readable code in a frame.

        Returns:
            Raw embedded text, or None if nothing was found
        """
        texts = self.locate_all(frame)
        return texts[0] if texts else None

    def locate_in_image(self, image_path: Path) -> Optional[str]:
        """Locate a code in a static image file."""
        if not image_path.exists():
            logger.error(f"Image not found: {image_path}")
            return None

        frame = cv2.imread(str(image_path))
        if frame is None:
            logger.error(f"Could not read image: {image_path}")
            return None

        return self.locate(frame)
